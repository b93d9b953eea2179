"""The execution engine: function registry and call frames.

Every transformation in :mod:`calcsym.core` receives an
:class:`ExecutionEngine` explicitly. The engine decides whether a
:class:`~calcsym.core.expr.Function` is a free variable, a reference to a
registered function or a parameter bound in the active call frame.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator
from typing import Optional
from typing import Sequence

from calcsym.core.exceptions import BindError
from calcsym.core.exceptions import NotFoundError
from calcsym.core.exceptions import RecursionDepthError
from calcsym.core.expr import Assignment
from calcsym.core.expr import Expression


__all__ = [
    "EngineConfig",
    "FunctionDefinition",
    "Frame",
    "ExecutionEngine",
]


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineConfig:
    """Limits used by the engine.

    :ivar max_call_depth: Most frames that may be active at once. Exceeding
        it raises :class:`~calcsym.core.exceptions.RecursionDepthError`.
    :ivar max_simplify_passes: Most bottom-up passes that ``simplify`` makes
        while looking for a fixed point.
    """

    max_call_depth: int = 64
    max_simplify_passes: int = 32

    def __post_init__(self) -> None:
        """Check that the limits are usable."""
        if self.max_call_depth < 1:
            raise ValueError("max_call_depth should be at least 1")
        if self.max_simplify_passes < 1:
            raise ValueError("max_simplify_passes should be at least 1")


@dataclass(frozen=True)
class FunctionDefinition:
    """A registered function: name, formal parameters and body."""

    name: str
    parameters: tuple[str, ...]
    body: Expression

    @classmethod
    def from_assignment(cls, assignment: Assignment) -> FunctionDefinition:
        """Make a definition from a parsed ``f(x, y) = body``.

        >>> from calcsym.repl.parser import parse
        >>> from calcsym.repl.engine import FunctionDefinition
        >>> definition = FunctionDefinition.from_assignment(parse('f(x, y) = x*y'))
        >>> definition.name, definition.parameters
        ('f', ('x', 'y'))
        >>> print(definition.body)
        x*y
        """
        return cls(assignment.name, assignment.parameters, assignment.body.clone())

    def __str__(self) -> str:
        """Show the definition as it would be typed."""
        if not self.parameters:
            return f"{self.name} = {self.body}"
        return f"{self.name}({', '.join(self.parameters)}) = {self.body}"


class Frame:
    """Bindings of formal parameter names to argument expressions.

    >>> from calcsym.core.expr import Constant
    >>> from calcsym.repl.engine import Frame
    >>> frame = Frame([Constant(1), Constant(2)])
    >>> frame.bind_parameters(['x', 'y'])
    >>> frame.get_argument('y')
    Constant(2.0)
    >>> frame.get_argument('z') is None
    True
    """

    arguments: tuple[Expression, ...]
    _parameters: dict[str, int]

    def __init__(self, arguments: Sequence[Expression]):
        """Create a frame holding ``arguments`` with no names bound yet."""
        self.arguments = tuple(arguments)
        self._parameters = {}

    def bind_parameters(self, parameters: Sequence[str]) -> None:
        """Name the arguments positionally."""
        if len(parameters) != len(self.arguments):
            raise BindError(
                f"Expected {len(parameters)} arguments, got {len(self.arguments)}"
            )
        self._parameters = {name: index for index, name in enumerate(parameters)}

    @property
    def parameters(self) -> list[str]:
        """Bound parameter names in order."""
        return list(self._parameters)

    def get_argument(self, name: str) -> Optional[Expression]:
        """The argument bound to ``name`` or ``None``."""
        index = self._parameters.get(name)
        if index is None:
            return None
        return self.arguments[index]


class ExecutionEngine:
    """Function registry and call stack for evaluating expressions.

    >>> from calcsym.repl.engine import ExecutionEngine
    >>> engine = ExecutionEngine()
    >>> print(engine.run('f(x) = x^2 + 3*x'))
    f(x) = x^2 + 3*x
    >>> print(engine.run('d/dx f(x)'))
    2*x + 3
    >>> print(engine.run('f(2)'))
    10

    Definitions persist until they are replaced or deregistered. Errors while
    evaluating one statement leave the registry and the call stack as they
    were before the statement.
    """

    config: EngineConfig
    functions: dict[str, FunctionDefinition]
    call_stack: list[Frame]

    def __init__(self, config: Optional[EngineConfig] = None):
        """Create an engine with no registered functions."""
        self.config = config if config is not None else EngineConfig()
        self.functions = {}
        self.call_stack = []

    # ------------------------------------------------------------------ #
    #     Function registry                                              #
    # ------------------------------------------------------------------ #

    def register_function(self, definition: FunctionDefinition) -> None:
        """Register ``definition`` replacing any function of the same name."""
        if definition.name in self.functions:
            logger.debug("Redefining function %s", definition.name)
        else:
            logger.debug("Defining function %s", definition.name)
        self.functions[definition.name] = definition

    def retrieve_function(self, name: str) -> FunctionDefinition:
        """The function registered as ``name``."""
        try:
            return self.functions[name]
        except KeyError:
            raise NotFoundError(f"Unknown function {name}") from None

    def deregister_function(self, name: str) -> None:
        """Forget the function ``name`` if there is one."""
        if self.functions.pop(name, None) is not None:
            logger.debug("Removed function %s", name)

    def has_function(self, name: str) -> bool:
        """True if ``name`` is registered."""
        return name in self.functions

    # ------------------------------------------------------------------ #
    #     Call frames                                                    #
    # ------------------------------------------------------------------ #

    @property
    def call_depth(self) -> int:
        """Number of active frames."""
        return len(self.call_stack)

    def push_frame(self, arguments: Sequence[Expression]) -> None:
        """Enter a new frame holding ``arguments``."""
        if len(self.call_stack) >= self.config.max_call_depth:
            raise RecursionDepthError(
                f"Maximum call depth of {self.config.max_call_depth} exceeded"
            )
        self.call_stack.append(Frame(arguments))

    def pop_frame(self) -> None:
        """Leave the top frame."""
        self.call_stack.pop()

    def bind_frame_parameters(self, parameters: Sequence[str]) -> None:
        """Name the arguments of the top frame."""
        self.call_stack[-1].bind_parameters(parameters)

    def frame_parameters(self) -> list[str]:
        """Parameter names bound in the top frame."""
        if not self.call_stack:
            return []
        return self.call_stack[-1].parameters

    def get_frame_arg(self, name: str) -> Optional[Expression]:
        """The argument bound to ``name`` in the top frame only."""
        if not self.call_stack:
            return None
        return self.call_stack[-1].get_argument(name)

    @contextmanager
    def call_frame(
        self, arguments: Sequence[Expression], parameters: Sequence[str]
    ) -> Iterator[Frame]:
        """Push a frame binding ``parameters`` to ``arguments``.

        The frame is popped when the block exits however it exits.
        """
        self.push_frame(arguments)
        try:
            self.bind_frame_parameters(parameters)
            yield self.call_stack[-1]
        finally:
            self.pop_frame()

    # ------------------------------------------------------------------ #
    #     Execution                                                      #
    # ------------------------------------------------------------------ #

    def evaluate(self, expr: Expression) -> Expression:
        """Substitute any active bindings then simplify."""
        return expr.substitute(self).simplify(self)

    def execute(self, expr: Expression) -> Expression:
        """Register an :class:`Assignment` or evaluate any other expression.

        An assignment is returned unchanged once its function is registered.
        Any other expression is returned in simplified form.
        """
        if isinstance(expr, Assignment):
            self.register_function(FunctionDefinition.from_assignment(expr))
            return expr
        logger.debug("Evaluating %r", expr)
        try:
            return self.evaluate(expr)
        except RecursionError:
            raise RecursionDepthError("Maximum recursion depth exceeded") from None

    def run(self, text: str) -> Expression:
        """Lex, parse and execute one statement."""
        from calcsym.repl.parser import parse

        return self.execute(parse(text))
