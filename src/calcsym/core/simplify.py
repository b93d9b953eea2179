"""Value-preserving simplification of expression trees."""
from __future__ import annotations

import math
from typing import TYPE_CHECKING as _TYPE_CHECKING

from calcsym.core.differentiate import evaluate_differentiation
from calcsym.core.evaluate import Transformer
from calcsym.core.exceptions import EvaluationError
from calcsym.core.exceptions import SimplificationError
from calcsym.core.expr import (
    Assignment,
    BinaryOperator,
    Constant,
    Difference,
    Differentiation,
    Expression,
    Function,
    Invocation,
    Log,
    Power,
    Product,
    Quotient,
    Sum,
)
from calcsym.core.numeric import F64_OPERATIONS
from calcsym.core.substitute import substitute


if _TYPE_CHECKING:
    from calcsym.repl.engine import ExecutionEngine


__all__ = ["simplify", "equals"]


def simplify(expr: Expression, engine: ExecutionEngine) -> Expression:
    """Simplify ``expr`` resolving named functions through ``engine``.

    >>> from calcsym.repl.engine import ExecutionEngine
    >>> from calcsym.core.expr import Function, Constant, Sum, Product, Power
    >>> from calcsym.core.simplify import simplify
    >>> engine = ExecutionEngine()
    >>> x = Function('x')
    >>> print(simplify(Product(Sum(Constant(2), Constant(3)), Constant(4)), engine))
    20
    >>> print(simplify(Sum(Power(x, Constant(1)), Constant(0)), engine))
    x

    Each pass rewrites the tree bottom-up. Passes are repeated until the tree
    stops changing or ``engine.config.max_simplify_passes`` is reached.
    The rules are:

    Constant folding: :math:`2 + 3 = 5` for every binary operator.
    Identity (addition): :math:`x + 0 = 0 + x = x - 0 = x`
    Cancellation: :math:`x - x = 0`
    Identity (multiplication): :math:`x * 1 = 1 * x = x / 1 = x`
    Annihilation: :math:`x * 0 = 0 * x = 0`
    Coefficients: :math:`2 * (3 * x) = 6 * x`
    Powers: :math:`x^1 = x`, :math:`x^0 = 1`, :math:`1^x = 1`
    Logarithms: :math:`log(b, b) = 1`, :math:`log(b, 1) = 0`

    Folding an undefined value such as ``0^0`` or ``1/0`` raises
    :class:`~calcsym.core.exceptions.SimplificationError`.

    The rule :math:`x^0 = 1` is only checked against ``0^0`` when ``x`` is a
    constant. A symbolic ``x`` is assumed to be non-zero so ``y^0`` gives
    ``1`` even though substituting ``y = 0`` afterwards would be undefined.

    Invocations of registered functions are replaced by their bodies with the
    arguments substituted and :class:`Differentiation` nodes are evaluated.
    """
    current = _simplify(expr, engine)
    for _ in range(engine.config.max_simplify_passes - 1):
        new = _simplify(current, engine)
        if new == current:
            break
        current = new
    return current


def equals(expr: Expression, engine: ExecutionEngine, other: Expression) -> bool:
    """Compare two expressions after simplifying both.

    >>> from calcsym.repl.engine import ExecutionEngine
    >>> from calcsym.core.expr import Function, Constant, Sum, Product
    >>> from calcsym.core.simplify import equals
    >>> engine = ExecutionEngine()
    >>> x = Function('x')
    >>> equals(Product(Constant(1), x), engine, Sum(x, Constant(0)))
    True

    Operands of commutative operators are not reordered:

    >>> equals(Sum(x, Constant(1)), engine, Sum(Constant(1), x))
    False
    """
    return simplify(expr, engine) == simplify(other, engine)


def _simplify(expr: Expression, engine: ExecutionEngine) -> Expression:
    """One bottom-up pass."""
    if isinstance(expr, BinaryOperator):
        left = _simplify(expr.left, engine)
        right = _simplify(expr.right, engine)
        return binop_rules.eval_operation(expr, [left, right])
    elif isinstance(expr, Function):
        return _simplify_function(expr, engine)
    elif isinstance(expr, Invocation):
        return _simplify_invocation(expr, engine)
    elif isinstance(expr, Differentiation):
        return simplify(evaluate_differentiation(expr, engine), engine)
    elif isinstance(expr, Assignment):
        raise EvaluationError(f"The definition {expr} is not a value")
    else:
        return expr.rebuild()


def _simplify_function(expr: Function, engine: ExecutionEngine) -> Expression:
    if not engine.has_function(expr.name):
        return expr.rebuild()
    body = engine.retrieve_function(expr.name).body
    with engine.call_frame([], []):
        return simplify(body, engine)


def _simplify_invocation(expr: Invocation, engine: ExecutionEngine) -> Expression:
    callee = expr.callee
    if not isinstance(callee, Function):
        raise EvaluationError(f"Cannot invoke {callee}")
    definition = engine.retrieve_function(callee.name)
    arguments = [_simplify(argument, engine) for argument in expr.arguments]
    with engine.call_frame(arguments, definition.parameters):
        return simplify(substitute(definition.body, engine), engine)


# ------------------------------------------------------------------------- #
#                                                                           #
#     Rules for binary operators. Operands are already simplified.          #
#                                                                           #
# ------------------------------------------------------------------------- #


def _is(expr: Expression, value: float) -> bool:
    return Constant.is_constant_value(expr, value)


def _fold(cls: type[BinaryOperator], left: Constant, right: Constant) -> Constant:
    """Apply ``cls`` to two constants."""
    if cls is Power and left.value == 0 and right.value == 0:
        raise SimplificationError("0^0 is undefined")
    try:
        value = F64_OPERATIONS[cls](left.value, right.value)
    except (ArithmeticError, ValueError) as exc:
        raise SimplificationError(f"{cls(left, right)} is undefined") from exc
    if isinstance(value, complex) or not math.isfinite(value):
        raise SimplificationError(f"{cls(left, right)} is not a finite real number")
    return Constant(value)


def _both_constant(left: Expression, right: Expression) -> bool:
    return isinstance(left, Constant) and isinstance(right, Constant)


def _simplify_sum(left: Expression, right: Expression) -> Expression:
    if _both_constant(left, right):
        return _fold(Sum, left, right)  # type: ignore[arg-type]
    elif _is(right, 0):
        return left
    elif _is(left, 0):
        return right
    return Sum(left, right)


def _simplify_difference(left: Expression, right: Expression) -> Expression:
    if _both_constant(left, right):
        return _fold(Difference, left, right)  # type: ignore[arg-type]
    elif _is(right, 0):
        return left
    elif left == right:
        return Constant(0)
    return Difference(left, right)


def _simplify_product(left: Expression, right: Expression) -> Expression:
    if _both_constant(left, right):
        return _fold(Product, left, right)  # type: ignore[arg-type]
    elif _is(left, 0) or _is(right, 0):
        return Constant(0)
    elif _is(right, 1):
        return left
    elif _is(left, 1):
        return right

    # Merge numeric coefficients
    # 2*(3*x) -> 6*x and (2*x)*3 -> 6*x
    if (
        isinstance(left, Constant)
        and isinstance(right, Product)
        and isinstance(right.left, Constant)
    ):
        return Product(_fold(Product, left, right.left), right.right)
    elif (
        isinstance(right, Constant)
        and isinstance(left, Product)
        and isinstance(left.left, Constant)
    ):
        return Product(_fold(Product, left.left, right), left.right)
    return Product(left, right)


def _simplify_quotient(left: Expression, right: Expression) -> Expression:
    if _both_constant(left, right):
        return _fold(Quotient, left, right)  # type: ignore[arg-type]
    elif _is(right, 1):
        return left
    return Quotient(left, right)


def _simplify_power(left: Expression, right: Expression) -> Expression:
    if _both_constant(left, right):
        return _fold(Power, left, right)  # type: ignore[arg-type]
    elif _is(right, 1):
        return left
    elif _is(right, 0):
        # left is not a constant here so it cannot be 0
        return Constant(1)
    elif _is(left, 1):
        return Constant(1)
    return Power(left, right)


def _simplify_log(left: Expression, right: Expression) -> Expression:
    if _both_constant(left, right):
        return _fold(Log, left, right)  # type: ignore[arg-type]
    elif left == right:
        return Constant(1)
    elif _is(right, 1):
        return Constant(0)
    return Log(left, right)


# Applied on its own this simplifies the arithmetic of a tree without
# resolving names or evaluating derivatives.
binop_rules = Transformer()
binop_rules.add_op(Sum, lambda node, args: _simplify_sum(*args))
binop_rules.add_op(Difference, lambda node, args: _simplify_difference(*args))
binop_rules.add_op(Product, lambda node, args: _simplify_product(*args))
binop_rules.add_op(Quotient, lambda node, args: _simplify_quotient(*args))
binop_rules.add_op(Power, lambda node, args: _simplify_power(*args))
binop_rules.add_op(Log, lambda node, args: _simplify_log(*args))
