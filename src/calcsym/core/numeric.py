"""Numerical evaluation of expressions with 64-bit floats."""
from __future__ import annotations

import math
import operator
from typing import Any
from typing import Callable
from typing import Optional
from typing import Sequence

from calcsym.core.evaluate import Evaluator
from calcsym.core.expr import (
    BinaryOperator,
    Constant,
    Difference,
    Expression,
    Function,
    Log,
    Power,
    Product,
    Quotient,
    Sum,
)


__all__ = ["F64_OPERATIONS", "eval_f64", "lambdify"]


def _f64_log(base: float, argument: float) -> float:
    return math.log(argument) / math.log(base)


F64_OPERATIONS: dict[type[BinaryOperator], Callable[[float, float], float]] = {
    Sum: operator.add,
    Difference: operator.sub,
    Product: operator.mul,
    Quotient: operator.truediv,
    Power: math.pow,
    Log: _f64_log,
}


def _binop_rule(func: Callable[[Any, Any], Any]) -> Callable[..., Any]:
    return lambda node, args: func(*args)


_eval_f64 = Evaluator[float]()
_eval_f64.add_atom(Constant, lambda atom: atom.value)  # type: ignore[attr-defined]
for _cls, _func in F64_OPERATIONS.items():
    _eval_f64.add_op(_cls, _binop_rule(_func))


def eval_f64(expr: Expression, values: Optional[dict[str, float]] = None) -> float:
    """Evaluate ``expr`` as a ``float`` with ``values`` for its variables.

    >>> from calcsym.core.expr import Function, Constant, Power, Sum
    >>> from calcsym.core.numeric import eval_f64
    >>> x = Function('x')
    >>> eval_f64(Sum(Power(x, Constant(2)), Constant(1)), {'x': 3.0})
    10.0

    Only the arithmetic nodes can be evaluated. Named functions must be
    resolved first with :meth:`~calcsym.core.expr.Expression.simplify`.
    Errors from the float operations (e.g. ``ZeroDivisionError``) propagate.
    """
    if values is None:
        values = {}
    f64_values = {Function(name): float(v) for name, v in values.items()}
    return _eval_f64(expr, f64_values)  # type: ignore[arg-type]


def lambdify(expr: Expression, params: Sequence[Function]) -> Callable[..., Any]:
    """Make a NumPy-vectorized function evaluating ``expr``.

    >>> # xdoctest: +REQUIRES(module:numpy)
    >>> import numpy as np
    >>> from calcsym.core.expr import Function, Product
    >>> from calcsym.core.numeric import lambdify
    >>> x, y = Function('x'), Function('y')
    >>> f = lambdify(Product(x, y), [x, y])
    >>> f(np.array([1.0, 2.0]), 3.0)
    array([3., 6.])
    """
    import numpy as np

    eval_numpy = Evaluator[Any]()
    eval_numpy.add_atom(Constant, lambda atom: np.float64(atom.value))  # type: ignore
    eval_numpy.add_op(Sum, _binop_rule(np.add))
    eval_numpy.add_op(Difference, _binop_rule(np.subtract))
    eval_numpy.add_op(Product, _binop_rule(np.multiply))
    eval_numpy.add_op(Quotient, _binop_rule(np.divide))
    eval_numpy.add_op(Power, _binop_rule(np.power))
    eval_numpy.add_op(Log, _binop_rule(lambda b, a: np.log(a) / np.log(b)))

    params = list(params)

    def func(*args: Any) -> Any:
        if len(args) != len(params):
            raise TypeError(f"Expected {len(params)} arguments, got {len(args)}")
        values = {p: np.asarray(a, dtype=np.float64) for p, a in zip(params, args)}
        return eval_numpy(expr, values)  # type: ignore[arg-type]

    return func
