"""Split input text into tokens."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from calcsym.core.exceptions import LexError


__all__ = ["TokenType", "Token", "Lexer", "lex"]


OPERATORS = frozenset("+-*/^=")
SEPARATORS = frozenset("(),")


class TokenType(Enum):
    """The four kinds of token."""

    IDENTIFIER = "identifier"
    NUMBER = "number"
    OPERATOR = "operator"
    SEPARATOR = "separator"


@dataclass(frozen=True)
class Token:
    """A classified run of characters and where it started."""

    type: TokenType
    contents: str
    position: int = 0

    def match(self, type: TokenType, contents: Optional[str] = None) -> bool:
        """True if this token has ``type`` and (if given) ``contents``."""
        return self.type is type and (contents is None or self.contents == contents)

    def __str__(self) -> str:
        """The text of the token."""
        return self.contents


class Lexer:
    """Left-to-right scanner producing a list of :class:`Token`.

    >>> from calcsym.repl.lexer import Lexer
    >>> [str(t) for t in Lexer('f(x) = 2.5*x^2').lex()]
    ['f', '(', 'x', ')', '=', '2.5', '*', 'x', '^', '2']
    """

    text: str
    index: int

    def __init__(self, text: str):
        """Create a lexer for ``text``."""
        self.text = text
        self.index = 0

    @staticmethod
    def is_operator(c: str) -> bool:
        """``+ - * / ^ =``."""
        return c in OPERATORS

    @staticmethod
    def is_separator(c: str) -> bool:
        """``( ) ,``."""
        return c in SEPARATORS

    @staticmethod
    def is_letter(c: str) -> bool:
        """ASCII letters only."""
        return c.isascii() and c.isalpha()

    @staticmethod
    def is_number(c: str) -> bool:
        """ASCII digits and the decimal point."""
        return c == "." or (c.isascii() and c.isdigit())

    def peek(self) -> str:
        """The current character or ``""`` at the end."""
        return self.text[self.index] if self.index < len(self.text) else ""

    def lex(self) -> list[Token]:
        """Scan the whole text."""
        tokens: list[Token] = []
        self.index = 0
        while self.index < len(self.text):
            c = self.peek()
            if c.isspace():
                self.index += 1
            elif self.is_letter(c):
                tokens.append(self.lex_identifier())
            elif self.is_number(c):
                tokens.append(self.lex_number())
            elif self.is_operator(c):
                tokens.append(Token(TokenType.OPERATOR, c, self.index))
                self.index += 1
            elif self.is_separator(c):
                tokens.append(Token(TokenType.SEPARATOR, c, self.index))
                self.index += 1
            else:
                raise LexError(c, self.index)
        return tokens

    def lex_identifier(self) -> Token:
        """A maximal run of letters."""
        start = self.index
        while self.is_letter(self.peek()):
            self.index += 1
        return Token(TokenType.IDENTIFIER, self.text[start : self.index], start)

    def lex_number(self) -> Token:
        """A maximal run of digits with at most one decimal point."""
        start = self.index
        seen_point = False
        while self.is_number(self.peek()):
            if self.peek() == ".":
                if seen_point:
                    break
                seen_point = True
            self.index += 1
        contents = self.text[start : self.index]
        if contents == ".":
            raise LexError(".", start)
        return Token(TokenType.NUMBER, contents, start)


def lex(text: str) -> list[Token]:
    """Split ``text`` into tokens.

    >>> from calcsym.repl.lexer import lex
    >>> lex('x+1')  # doctest: +NORMALIZE_WHITESPACE
    [Token(type=<TokenType.IDENTIFIER: 'identifier'>, contents='x', position=0),
     Token(type=<TokenType.OPERATOR: 'operator'>, contents='+', position=1),
     Token(type=<TokenType.NUMBER: 'number'>, contents='1', position=2)]
    >>> lex('x % 2')
    Traceback (most recent call last):
        ...
    calcsym.core.exceptions.LexError: Invalid character '%' at position 2
    """
    return Lexer(text).lex()
