"""Symbolic differentiation and simplification of algebraic expressions.

>>> from calcsym import ExecutionEngine
>>> engine = ExecutionEngine()
>>> print(engine.run('(2+3)*4'))
20
"""
from __future__ import annotations

from calcsym.core.exceptions import (
    AmbiguousVariableError,
    BindError,
    CalcSymError,
    DifferentiationError,
    EvaluationError,
    LexError,
    NotFoundError,
    ParseError,
    RecursionDepthError,
    SimplificationError,
)
from calcsym.core.expr import (
    Assignment,
    BinaryOperator,
    Constant,
    Difference,
    Differentiation,
    E,
    Expression,
    Function,
    Invocation,
    Log,
    Power,
    Product,
    Quotient,
    Sum,
)
from calcsym.repl.engine import EngineConfig, ExecutionEngine, Frame, FunctionDefinition
from calcsym.repl.lexer import Token, TokenType, lex
from calcsym.repl.parser import Parser, parse

__all__ = [
    "Expression",
    "Constant",
    "E",
    "Function",
    "Invocation",
    "Differentiation",
    "Assignment",
    "BinaryOperator",
    "Power",
    "Log",
    "Sum",
    "Difference",
    "Product",
    "Quotient",
    "ExecutionEngine",
    "EngineConfig",
    "Frame",
    "FunctionDefinition",
    "Token",
    "TokenType",
    "lex",
    "Parser",
    "parse",
    "CalcSymError",
    "LexError",
    "ParseError",
    "BindError",
    "NotFoundError",
    "EvaluationError",
    "SimplificationError",
    "RecursionDepthError",
    "DifferentiationError",
    "AmbiguousVariableError",
]
