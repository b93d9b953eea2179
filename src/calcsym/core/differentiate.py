"""Symbolic differentiation of expression trees.

The rules here are the closed-form rules of elementary calculus applied by
structural recursion. Nothing is simplified: the result of
:func:`derivative` usually wants to be passed through
:func:`calcsym.core.simplify.simplify`.
"""
from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from functools import reduce
from typing import TYPE_CHECKING as _TYPE_CHECKING
from typing import Callable

from calcsym.core.exceptions import DifferentiationError
from calcsym.core.expr import (
    Assignment,
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
from calcsym.core.substitute import get_var
from calcsym.core.substitute import rename_parameters
from calcsym.core.substitute import substitute


if _TYPE_CHECKING:
    from calcsym.repl.engine import ExecutionEngine

    _DiffRule = Callable[[Expression, "ExecutionEngine", Function], Expression]


__all__ = ["DiffProperties", "derivative", "evaluate_differentiation"]


@dataclass(frozen=True)
class DiffProperties:
    """Rules for differentiating each class of node.

    A rule receives the node, the engine and the variable. Rules are looked
    up along the class hierarchy so the rule for :class:`Constant` also
    covers :class:`E`.
    """

    diff_rules: dict[type, _DiffRule] = field(default_factory=dict)

    def add_diff_rule(self, cls: type, func: _DiffRule) -> None:
        """Add the rule for differentiating nodes of class ``cls``."""
        self.diff_rules[cls] = func

    def rule_for(self, expr: Expression) -> _DiffRule:
        """The rule for ``expr`` or :class:`DifferentiationError` if none."""
        for cls in type(expr).__mro__:
            rule = self.diff_rules.get(cls)
            if rule is not None:
                return rule
        raise DifferentiationError(f"Cannot differentiate {expr!r}")


def derivative(
    expr: Expression, engine: ExecutionEngine, respect: Function
) -> Expression:
    """Derivative of ``expr`` with respect to the variable ``respect``.

    >>> from calcsym.repl.engine import ExecutionEngine
    >>> from calcsym.core.expr import Function, Constant, Product
    >>> from calcsym.core.differentiate import derivative
    >>> engine = ExecutionEngine()
    >>> x = Function('x')
    >>> print(derivative(Product(Constant(3), x), engine, x))
    0*x + 3*1

    The product rule was applied literally. Use ``simplify`` to tidy up:

    >>> print(derivative(Product(Constant(3), x), engine, x).simplify(engine))
    3

    References to registered functions are differentiated through their
    bodies and invocations use the chain rule.
    """
    if not isinstance(respect, Function):
        raise DifferentiationError(
            f"Cannot differentiate with respect to non-variable {respect}"
        )
    return _derivative(expr, engine, respect)


def evaluate_differentiation(
    expr: Differentiation, engine: ExecutionEngine
) -> Expression:
    """Carry out the derivative represented by a :class:`Differentiation`.

    If no variable was given it is inferred with
    :func:`~calcsym.core.substitute.get_var`.
    """
    respect = expr.respect
    if respect is None:
        respect = get_var(expr.expr, engine)
    return _derivative(expr.expr, engine, respect)


def _derivative(
    expr: Expression, engine: ExecutionEngine, respect: Function
) -> Expression:
    rule = diff_properties.rule_for(expr)
    return rule(expr, engine, respect)


def _diff_constant(
    expr: Expression, engine: ExecutionEngine, respect: Function
) -> Expression:
    return Constant(0)


def _diff_function(
    expr: Expression, engine: ExecutionEngine, respect: Function
) -> Expression:
    name = expr.name  # type: ignore[attr-defined]
    if name == respect.name:
        return Constant(1)
    elif engine.has_function(name):
        body = engine.retrieve_function(name).body
        # An empty frame bounds the depth of self-referencing definitions.
        with engine.call_frame([], []):
            return _derivative(body, engine, respect)
    else:
        return Constant(0)


def _diff_linear(
    expr: Expression, engine: ExecutionEngine, respect: Function
) -> Expression:
    left, right = expr.children
    return expr.rebuild(
        _derivative(left, engine, respect), _derivative(right, engine, respect)
    )


def _diff_product(
    expr: Expression, engine: ExecutionEngine, respect: Function
) -> Expression:
    # (l*r)' = l'*r + l*r'
    left, right = expr.children
    dleft = _derivative(left, engine, respect)
    dright = _derivative(right, engine, respect)
    return Sum(Product(dleft, right.clone()), Product(left.clone(), dright))


def _diff_quotient(
    expr: Expression, engine: ExecutionEngine, respect: Function
) -> Expression:
    # (l/r)' = (l'*r - l*r')/r^2
    left, right = expr.children
    dleft = _derivative(left, engine, respect)
    dright = _derivative(right, engine, respect)
    numerator = Difference(Product(dleft, right.clone()), Product(left.clone(), dright))
    return Quotient(numerator, Power(right.clone(), Constant(2)))


def _diff_power(
    expr: Expression, engine: ExecutionEngine, respect: Function
) -> Expression:
    base, exponent = expr.children
    if Constant.is_constant_value(base, 0) and Constant.is_constant_value(exponent, 0):
        raise DifferentiationError("0^0 is undefined")

    if exponent.is_constant():
        # (b^c)' = c*b^(c-1)*b'
        dbase = _derivative(base, engine, respect)
        reduced = Power(base.clone(), Difference(exponent.clone(), Constant(1)))
        return Product(Product(exponent.clone(), reduced), dbase)
    elif base.is_constant():
        # (c^x)' = c^x*ln(c)*x'
        if base.value <= 0:  # type: ignore[attr-defined]
            raise DifferentiationError(f"{expr} has no real derivative")
        dexponent = _derivative(exponent, engine, respect)
        return Product(Product(expr.clone(), Log(E(), base.clone())), dexponent)
    else:
        # (b^x)' = b^x*(x'*ln(b) + x*b'/b)
        dbase = _derivative(base, engine, respect)
        dexponent = _derivative(exponent, engine, respect)
        return Product(
            expr.clone(),
            Sum(
                Product(dexponent, Log(E(), base.clone())),
                Quotient(Product(exponent.clone(), dbase), base.clone()),
            ),
        )


def _diff_log(
    expr: Expression, engine: ExecutionEngine, respect: Function
) -> Expression:
    base, argument = expr.children
    dargument = _derivative(argument, engine, respect)

    if base.is_constant():
        # log_c(a)' = a'/(a*ln(c))
        value = base.value  # type: ignore[attr-defined]
        if value <= 0 or value == 1:
            raise DifferentiationError(f"{expr} has an invalid base")
        return Quotient(dargument, Product(argument.clone(), Log(E(), base.clone())))

    # log_b(a) = ln(a)/ln(b) and the quotient rule
    dbase = _derivative(base, engine, respect)
    numerator = Difference(
        Product(Quotient(dargument, argument.clone()), Log(E(), base.clone())),
        Product(Log(E(), argument.clone()), Quotient(dbase, base.clone())),
    )
    return Quotient(numerator, Power(Log(E(), base.clone()), Constant(2)))


def _diff_invocation(
    expr: Expression, engine: ExecutionEngine, respect: Function
) -> Expression:
    callee = expr.callee  # type: ignore[attr-defined]
    arguments = expr.arguments  # type: ignore[attr-defined]
    if not isinstance(callee, Function):
        raise DifferentiationError(f"Cannot differentiate a call of {callee}")
    definition = engine.retrieve_function(callee.name)
    names, body = rename_parameters(definition)

    #
    # Chain rule: d/dt f(a1(t), ..., an(t)) is the sum of df/dpi * ai'(t)
    # with each partial derivative evaluated at the arguments. The partial
    # derivatives are taken by the renamed parameters so that a variable of
    # the same name in another function the body refers to stays free. If
    # the body also uses t directly that dependence adds one more term.
    #
    with engine.call_frame(arguments, names):
        terms: list[Expression] = []
        for name, argument in zip(names, arguments):
            partial = _derivative(body, engine, Function(name))
            terms.append(Product(partial, _derivative(argument, engine, respect)))
        terms.append(_derivative(body, engine, respect))
        return substitute(reduce(Sum, terms), engine)


def _diff_differentiation(
    expr: Expression, engine: ExecutionEngine, respect: Function
) -> Expression:
    inner = evaluate_differentiation(expr, engine)  # type: ignore[arg-type]
    return _derivative(inner, engine, respect)


def _diff_assignment(
    expr: Expression, engine: ExecutionEngine, respect: Function
) -> Expression:
    raise DifferentiationError(f"Cannot differentiate the definition {expr}")


diff_properties = DiffProperties()
diff_properties.add_diff_rule(Constant, _diff_constant)
diff_properties.add_diff_rule(Function, _diff_function)
diff_properties.add_diff_rule(Sum, _diff_linear)
diff_properties.add_diff_rule(Difference, _diff_linear)
diff_properties.add_diff_rule(Product, _diff_product)
diff_properties.add_diff_rule(Quotient, _diff_quotient)
diff_properties.add_diff_rule(Power, _diff_power)
diff_properties.add_diff_rule(Log, _diff_log)
diff_properties.add_diff_rule(Invocation, _diff_invocation)
diff_properties.add_diff_rule(Differentiation, _diff_differentiation)
diff_properties.add_diff_rule(Assignment, _diff_assignment)
