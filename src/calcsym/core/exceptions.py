"""Module for all calcsym exceptions."""
from __future__ import annotations

from typing import Optional


class CalcSymError(Exception):
    """Superclass for all calcsym exceptions."""

    pass


class LexError(CalcSymError):
    """Raised when the lexer meets a character it cannot classify."""

    character: str
    position: int

    def __init__(self, character: str, position: int):
        """Record the offending character and its offset in the input."""
        super().__init__(f"Invalid character {character!r} at position {position}")
        self.character = character
        self.position = position


class ParseError(CalcSymError):
    """Raised for malformed input: unexpected token or end of input."""

    position: Optional[int]

    def __init__(self, message: str, position: Optional[int] = None):
        """Create a new :class:`ParseError`."""
        if position is not None:
            message = f"{message} at position {position}"
        super().__init__(message)
        self.position = position


class BindError(CalcSymError):
    """Raised when arguments and formal parameters differ in number."""

    pass


class NotFoundError(CalcSymError, KeyError):
    """Raised when a function is not registered with the engine."""

    def __str__(self) -> str:
        """Avoid the quoting that ``KeyError`` adds."""
        return str(self.args[0]) if self.args else ""


class EvaluationError(CalcSymError):
    """Raised when an expression cannot be evaluated."""

    pass


class SimplificationError(EvaluationError):
    """Raised when simplification meets an undefined value e.g. ``0^0``."""

    pass


class RecursionDepthError(EvaluationError):
    """Raised when nested invocations exceed the allowed depth."""

    pass


class DifferentiationError(CalcSymError):
    """Raised when a derivative is not well defined."""

    pass


class AmbiguousVariableError(DifferentiationError):
    """Raised when the variable of differentiation cannot be inferred."""

    pass


class NoEvaluationRuleError(CalcSymError):
    """Raised when an :class:`Evaluator` has no rule for an expression."""

    pass
