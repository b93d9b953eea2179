"""Recursive descent parser producing :class:`~calcsym.core.expr.Expression`.

Binary operators are parsed by precedence climbing over an
:class:`OperatorTable`. Everything else (numbers, names, calls, brackets,
``log``/``ln``, ``d/dx`` and unary minus) is an atom.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Iterator
from typing import Mapping
from typing import Optional
from typing import Sequence
from typing import Union

from calcsym.core.exceptions import ParseError
from calcsym.core.expr import (
    BINARY_OPERATORS,
    Assignment,
    Constant,
    Differentiation,
    E,
    Expression,
    Function,
    Invocation,
    Log,
    Product,
)
from calcsym.repl.lexer import Token
from calcsym.repl.lexer import TokenType
from calcsym.repl.lexer import lex


__all__ = [
    "Associativity",
    "OperatorInfo",
    "OperatorTable",
    "DEFAULT_OPERATORS",
    "Parser",
    "parse",
]


RESERVED_NAMES = frozenset(["e", "log", "ln"])


class Associativity(Enum):
    """Which way repeated operators of one precedence group."""

    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class OperatorInfo:
    """Associativity and precedence of one binary operator."""

    associativity: Associativity
    precedence: int


class OperatorTable:
    """Immutable mapping from operator symbols to :class:`OperatorInfo`.

    >>> from calcsym.repl.parser import DEFAULT_OPERATORS
    >>> DEFAULT_OPERATORS['^']
    OperatorInfo(associativity=<Associativity.RIGHT: 'right'>, precedence=3)
    >>> '=' in DEFAULT_OPERATORS
    False
    """

    _operators: Mapping[str, OperatorInfo]

    def __init__(self, operators: Mapping[str, OperatorInfo]):
        """Copy ``operators`` into a new table."""
        unknown = set(operators) - set(BINARY_OPERATORS)
        if unknown:
            raise ValueError(f"No expression type for operators {sorted(unknown)}")
        self._operators = MappingProxyType(dict(operators))

    def __contains__(self, symbol: object) -> bool:
        """True if ``symbol`` is a binary operator in this table."""
        return symbol in self._operators

    def __getitem__(self, symbol: str) -> OperatorInfo:
        """Info for ``symbol``."""
        return self._operators[symbol]

    def __iter__(self) -> Iterator[str]:
        """Iterate over the operator symbols."""
        return iter(self._operators)

    def __len__(self) -> int:
        """Number of operators."""
        return len(self._operators)


DEFAULT_OPERATORS = OperatorTable(
    {
        "+": OperatorInfo(Associativity.LEFT, 1),
        "-": OperatorInfo(Associativity.LEFT, 1),
        "*": OperatorInfo(Associativity.LEFT, 2),
        "/": OperatorInfo(Associativity.LEFT, 2),
        "^": OperatorInfo(Associativity.RIGHT, 3),
    }
)

# Precedence of unary minus and of the operand of d/dx.
UNARY_PRECEDENCE = 3


class Parser:
    """Parser for one statement.

    >>> from calcsym.repl.lexer import lex
    >>> from calcsym.repl.parser import Parser
    >>> Parser(lex('2*x + 1')).parse()
    Sum(Product(Constant(2.0), Function('x')), Constant(1.0))
    >>> Parser(lex('x^2^3')).parse()
    Power(Function('x'), Power(Constant(2.0), Constant(3.0)))
    >>> Parser(lex('f(x) = x')).parse()
    Assignment(Invocation(Function('f'), [Function('x')]), Function('x'))
    """

    tokens: list[Token]
    index: int
    operators: OperatorTable

    def __init__(
        self, tokens: Sequence[Token], operators: Optional[OperatorTable] = None
    ):
        """Create a parser for ``tokens``."""
        self.tokens = list(tokens)
        self.index = 0
        self.operators = operators if operators is not None else DEFAULT_OPERATORS

    # ------------------------------------------------------------------ #
    #     Token access                                                   #
    # ------------------------------------------------------------------ #

    def peek(self, ahead: int = 0) -> Optional[Token]:
        """The token ``ahead`` places from the current one, if any."""
        index = self.index + ahead
        return self.tokens[index] if index < len(self.tokens) else None

    def match(
        self, type: TokenType, contents: Optional[str] = None, ahead: int = 0
    ) -> bool:
        """True if the token ``ahead`` places on matches."""
        token = self.peek(ahead)
        return token is not None and token.match(type, contents)

    def consume(self) -> Token:
        """Return the current token and move past it."""
        token = self.peek()
        if token is None:
            raise ParseError("Unexpected end of input")
        self.index += 1
        return token

    def expect(self, type: TokenType, contents: str) -> Token:
        """Consume a token that must match."""
        token = self.peek()
        if token is None:
            raise ParseError(f"Expected {contents!r} but input ended")
        if not token.match(type, contents):
            raise ParseError(
                f"Expected {contents!r} not {token.contents!r}", token.position
            )
        return self.consume()

    # ------------------------------------------------------------------ #
    #     Grammar                                                        #
    # ------------------------------------------------------------------ #

    def parse(self) -> Expression:
        """Parse a whole statement: an assignment or an expression."""
        self.index = 0
        try:
            expr = self.parse_assignment()
            if expr is None:
                expr = self.parse_expression()
        except RecursionError:
            raise ParseError("Expression is nested too deeply") from None
        token = self.peek()
        if token is not None:
            raise ParseError(f"Unexpected {token.contents!r}", token.position)
        return expr

    def parse_assignment(self) -> Optional[Expression]:
        """Parse ``f(x, y) = expr`` or ``a = expr``.

        Returns ``None`` leaving the position unchanged if the statement does
        not start with a declaration followed by ``=``.
        """
        start = self.index
        declaration = self.parse_declaration()
        if declaration is None or not self.match(TokenType.OPERATOR, "="):
            self.index = start
            return None
        self.consume()
        name = declaration.callee.name  # type: ignore[attr-defined]
        if name in RESERVED_NAMES:
            raise ParseError(f"Cannot assign to reserved name {name!r}")
        for param in declaration.arguments:
            if param.name in RESERVED_NAMES:  # type: ignore[attr-defined]
                raise ParseError(f"Cannot use reserved name {param} as a parameter")
        body = self.parse_expression()
        return Assignment(declaration, body)

    def parse_declaration(self) -> Optional[Invocation]:
        """Parse ``name`` or ``name(p1, ..., pn)`` or return ``None``."""
        if not self.match(TokenType.IDENTIFIER):
            return None
        name = Function(self.consume().contents)
        params: list[Expression] = []
        if self.match(TokenType.SEPARATOR, "("):
            self.consume()
            while not self.match(TokenType.SEPARATOR, ")"):
                if params:
                    if not self.match(TokenType.SEPARATOR, ","):
                        return None
                    self.consume()
                if not self.match(TokenType.IDENTIFIER):
                    return None
                params.append(Function(self.consume().contents))
            self.consume()
        return Invocation(name, params)

    def parse_expression(self, min_precedence: int = 0) -> Expression:
        """Precedence climbing over the binary operators."""
        lhs = self.parse_atom()
        while True:
            token = self.peek()
            if (
                token is None
                or token.type is not TokenType.OPERATOR
                or token.contents not in self.operators
            ):
                break
            info = self.operators[token.contents]
            if info.precedence < min_precedence:
                break
            self.consume()
            if info.associativity is Associativity.RIGHT:
                next_precedence = info.precedence
            else:
                next_precedence = info.precedence + 1
            rhs = self.parse_expression(next_precedence)
            lhs = self.parse_binop(token.contents, lhs, rhs)
        return lhs

    def parse_binop(self, op: str, lhs: Expression, rhs: Expression) -> Expression:
        """Build the node for ``lhs op rhs``."""
        return BINARY_OPERATORS[op](lhs, rhs)

    def parse_atom(self) -> Expression:
        """Numbers, names, calls, brackets and the prefix forms."""
        token = self.peek()
        if token is None:
            raise ParseError("Unexpected end of input")

        if token.type is TokenType.NUMBER:
            return self.parse_constant()
        elif token.match(TokenType.OPERATOR, "-"):
            return self.parse_negation()
        elif token.match(TokenType.SEPARATOR, "("):
            self.consume()
            expr = self.parse_expression()
            self.expect(TokenType.SEPARATOR, ")")
            return expr
        elif token.type is TokenType.IDENTIFIER:
            name = token.contents
            if name == "e":
                self.consume()
                return E()
            elif name in ("log", "ln"):
                return self.parse_log()
            elif self.is_differentiation():
                return self.parse_differentiation()
            self.consume()
            reference = Function(name)
            if self.match(TokenType.SEPARATOR, "("):
                return self.parse_invocation(reference)
            return reference

        raise ParseError(f"Unexpected {token.contents!r}", token.position)

    def parse_constant(self) -> Expression:
        """A numeric literal."""
        token = self.consume()
        return Constant(float(token.contents))

    def parse_negation(self) -> Expression:
        """Unary minus: ``-2`` or ``-x^2`` meaning ``-1*x^2``."""
        self.consume()
        operand = self.parse_expression(UNARY_PRECEDENCE)
        if type(operand) is Constant:
            return Constant(-operand.value)
        return Product(Constant(-1), operand)

    def parse_arguments(self) -> list[Expression]:
        """A bracketed, comma separated and possibly empty list."""
        self.expect(TokenType.SEPARATOR, "(")
        arguments: list[Expression] = []
        if self.match(TokenType.SEPARATOR, ")"):
            self.consume()
            return arguments
        arguments.append(self.parse_expression())
        while self.match(TokenType.SEPARATOR, ","):
            self.consume()
            arguments.append(self.parse_expression())
        self.expect(TokenType.SEPARATOR, ")")
        return arguments

    def parse_invocation(self, expr: Expression) -> Expression:
        """Apply ``expr`` to a list of arguments."""
        return Invocation(expr, self.parse_arguments())

    def parse_log(self) -> Expression:
        """``log(b, a)``, ``log(a)`` (base 10) and ``ln(a)``."""
        token = self.consume()
        if not self.match(TokenType.SEPARATOR, "("):
            raise ParseError(f"Expected '(' after {token.contents}", token.position)
        arguments = self.parse_arguments()
        if token.contents == "ln" and len(arguments) == 1:
            return Log(E(), arguments[0])
        elif token.contents == "log" and len(arguments) == 1:
            return Log(Constant(10), arguments[0])
        elif token.contents == "log" and len(arguments) == 2:
            return Log(arguments[0], arguments[1])
        raise ParseError(
            f"Wrong number of arguments to {token.contents}", token.position
        )

    def is_differentiation(self) -> bool:
        """True at ``d / dVAR`` or ``d / d``."""
        return (
            self.match(TokenType.IDENTIFIER, "d")
            and self.match(TokenType.OPERATOR, "/", ahead=1)
            and self.match(TokenType.IDENTIFIER, ahead=2)
            and self.peek(2).contents.startswith("d")  # type: ignore[union-attr]
        )

    def parse_differentiation(self) -> Expression:
        """``d/dx operand`` or ``d/d operand`` to infer the variable."""
        self.consume()
        self.consume()
        variable = self.consume().contents[1:]
        operand = self.parse_expression(UNARY_PRECEDENCE)
        if not variable:
            return Differentiation(operand)
        return Differentiation(operand, Function(variable))


def parse(source: Union[str, Sequence[Token]]) -> Expression:
    """Parse a statement from text or from tokens.

    >>> from calcsym.repl.parser import parse
    >>> print(parse('(2+3)*4'))
    (2 + 3)*4
    >>> parse('d/dx x^2')
    Differentiation(Power(Function('x'), Constant(2.0)), Function('x'))
    >>> parse('2 +')
    Traceback (most recent call last):
        ...
    calcsym.core.exceptions.ParseError: Unexpected end of input
    """
    tokens = lex(source) if isinstance(source, str) else source
    return Parser(tokens).parse()
