"""Conversions to and from SymPy expressions.

These are defined in their own module so that SymPy will not be imported if it is
not needed.
"""
from __future__ import annotations

from functools import reduce
from typing import Any

import sympy
from sympy.core.function import AppliedUndef

from calcsym.core.evaluate import Evaluator
from calcsym.core.expr import (
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


def _sympy_number(atom: Any) -> sympy.Basic:
    value = atom.value
    if value.is_integer():
        return sympy.Integer(int(value))
    return sympy.Float(value)


def _sympy_invocation(node: Any, args: Any) -> sympy.Basic:
    callee, *arguments = args
    return sympy.Function(str(callee))(*arguments)  # pyright: ignore


eval_to_sympy = Evaluator[Any]()
eval_to_sympy.add_atom(Constant, _sympy_number)
eval_to_sympy.add_atom(E, lambda atom: sympy.E)
eval_to_sympy.add_atom(Function, lambda atom: sympy.Symbol(atom.name))
eval_to_sympy.add_op(Sum, lambda node, args: sympy.Add(*args))
eval_to_sympy.add_op(Difference, lambda node, args: args[0] - args[1])
eval_to_sympy.add_op(Product, lambda node, args: sympy.Mul(*args))
eval_to_sympy.add_op(Quotient, lambda node, args: args[0] / args[1])
eval_to_sympy.add_op(Power, lambda node, args: sympy.Pow(*args))
eval_to_sympy.add_op(Log, lambda node, args: sympy.log(args[1], args[0]))
eval_to_sympy.add_op(Invocation, _sympy_invocation)
eval_to_sympy.add_op(Differentiation, lambda node, args: sympy.Derivative(*args))


def to_sympy(expr: Expression) -> Any:
    """Convert ``Expression`` to a SymPy expression."""
    return eval_to_sympy(expr)


def from_sympy(expr: sympy.Basic) -> Expression:
    """Convert a SymPy expression to ``Expression``."""
    return _from_sympy_cache(expr, {})


def _from_sympy_cache(
    expr: sympy.Basic, cache: dict[sympy.Basic, Expression]
) -> Expression:
    ret = cache.get(expr)
    if ret is not None:
        return ret.clone()
    elif expr is sympy.E:
        ret = E()
    elif expr.args:
        ret = _from_sympy_cache_args(expr, cache)
    elif isinstance(expr, sympy.Integer):
        ret = Constant(int(expr))
    elif isinstance(expr, sympy.Rational):
        ret = Quotient(Constant(int(expr.p)), Constant(int(expr.q)))  # pyright: ignore
    elif isinstance(expr, (sympy.Float, sympy.NumberSymbol)):
        ret = Constant(float(expr))
    elif isinstance(expr, sympy.Symbol):
        ret = Function(expr.name)
    else:
        raise NotImplementedError("Cannot convert " + type(expr).__name__)
    cache[expr] = ret
    return ret


def _from_sympy_cache_args(expr: Any, cache: dict[Any, Expression]) -> Expression:
    if isinstance(expr, sympy.Derivative):
        [(variable, count)] = expr.variable_count
        operand = _from_sympy_cache(expr.expr, cache)
        for _ in range(count):
            operand = Differentiation(operand, Function(variable.name))
        return operand
    args = [_from_sympy_cache(arg, cache) for arg in expr.args]
    if expr.is_Add:
        return reduce(Sum, args)
    elif expr.is_Mul:
        return reduce(Product, args)
    elif expr.is_Pow:
        return Power(*args)
    elif isinstance(expr, sympy.exp):
        return Power(E(), *args)
    elif isinstance(expr, sympy.log):
        return Log(E(), *args)
    elif isinstance(expr, AppliedUndef):
        return Invocation(Function(expr.func.__name__), args)
    else:
        raise NotImplementedError("Cannot convert " + type(expr).__name__)
