"""String representations of expressions.

``eval_repr`` gives the infix form used by ``str`` and understood by the
parser. ``eval_latex`` gives a LaTeX string.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Sequence

from calcsym.core.evaluate import Evaluator
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


__all__ = ["eval_repr", "eval_latex", "format_number"]


# Binding strength of each kind of node. Atoms bind tightest. Unary forms
# (negative numbers and d/dx) bind like the operand of ^.
PREC_SUM = 1
PREC_PRODUCT = 2
PREC_POWER = 3
PREC_ATOM = 4

_precedence: dict[type, int] = {
    Sum: PREC_SUM,
    Difference: PREC_SUM,
    Product: PREC_PRODUCT,
    Quotient: PREC_PRODUCT,
    Power: PREC_POWER,
    Differentiation: PREC_POWER,
}

Printed = tuple[str, int]


def format_number(value: float) -> str:
    """Format a float so that the lexer can read it back exactly.

    >>> from calcsym.core.printing import format_number
    >>> format_number(2.0)
    '2'
    >>> format_number(0.25)
    '0.25'
    >>> format_number(1e-05)
    '0.00001'
    """
    if value.is_integer():
        return str(int(value))
    # repr is the shortest exact form but may use exponent notation.
    return format(Decimal(repr(value)), "f")


def _wrap(printed: Printed, parens: bool, left: str = "(", right: str = ")") -> str:
    text, _ = printed
    return f"{left}{text}{right}" if parens else text


def _operands(
    node: BinaryOperator, args: Sequence[Printed], prec: int
) -> tuple[bool, bool]:
    """Which operands of ``node`` need brackets."""
    (_, lprec), (_, rprec) = args
    right_assoc = isinstance(node, Power)
    lparens = lprec < prec or (lprec == prec and right_assoc)
    rparens = rprec < prec or (rprec == prec and not right_assoc)
    return lparens, rparens


def _constant_prec(atom: Expression) -> int:
    return PREC_POWER if atom.value < 0 else PREC_ATOM  # type: ignore


# ------------------------------------------------------------------------- #
#                                                                           #
#     eval_repr: infix string representation                                #
#                                                                           #
# ------------------------------------------------------------------------- #


def _repr_binop(node: Expression, args: Sequence[Printed]) -> Printed:
    prec = _precedence[type(node)]
    lparens, rparens = _operands(node, args, prec)  # type: ignore[arg-type]
    left = _wrap(args[0], lparens)
    right = _wrap(args[1], rparens)
    symbol = node.symbol  # type: ignore[attr-defined]
    if prec == PREC_SUM:
        text = f"{left} {symbol} {right}"
    else:
        if isinstance(node, Quotient) and left == "d" and right.startswith("d"):
            # d/dx would read back as a derivative
            left = "(d)"
        text = f"{left}{symbol}{right}"
    return text, prec


def _repr_log(node: Expression, args: Sequence[Printed]) -> Printed:
    base, argument = (text for text, _ in args)
    if isinstance(node.left, E):  # type: ignore[attr-defined]
        return f"ln({argument})", PREC_ATOM
    return f"log({base}, {argument})", PREC_ATOM


def _repr_invocation(node: Expression, args: Sequence[Printed]) -> Printed:
    callee = _wrap(args[0], args[0][1] < PREC_ATOM)
    argstr = ", ".join(text for text, _ in args[1:])
    return f"{callee}({argstr})", PREC_ATOM


def _repr_differentiation(node: Expression, args: Sequence[Printed]) -> Printed:
    operand = args[0][0]
    respect = args[1][0] if len(args) > 1 else ""
    return f"d/d{respect}({operand})", PREC_POWER


def _repr_assignment(node: Expression, args: Sequence[Printed]) -> Printed:
    declaration, body = (text for text, _ in args)
    if not node.declaration.arguments:  # type: ignore[attr-defined]
        declaration = node.name  # type: ignore[attr-defined]
    return f"{declaration} = {body}", 0


_eval_repr = Evaluator[Printed]()
_eval_repr.add_atom(Constant, lambda a: (format_number(a.value), _constant_prec(a)))  # type: ignore
_eval_repr.add_atom(E, lambda a: ("e", PREC_ATOM))
_eval_repr.add_atom(Function, lambda a: (a.name, PREC_ATOM))  # type: ignore
_eval_repr.add_op(BinaryOperator, _repr_binop)
_eval_repr.add_op(Log, _repr_log)
_eval_repr.add_op(Invocation, _repr_invocation)
_eval_repr.add_op(Differentiation, _repr_differentiation)
_eval_repr.add_op(Assignment, _repr_assignment)


def eval_repr(expr: Expression) -> str:
    """Infix string e.g. ``"2*x + 3"``.

    >>> from calcsym.core.expr import Function, Constant, Power, Sum, Product
    >>> from calcsym.core.printing import eval_repr
    >>> x = Function('x')
    >>> eval_repr(Product(Sum(x, Constant(1)), Power(x, Constant(2))))
    '(x + 1)*x^2'
    >>> eval_repr(Power(Power(x, x), x))
    '(x^x)^x'
    >>> eval_repr(Power(Constant(-2), x))
    '(-2)^x'
    """
    text, _ = _eval_repr(expr)
    return text


# ------------------------------------------------------------------------- #
#                                                                           #
#     eval_latex: LaTeX string representation                               #
#                                                                           #
# ------------------------------------------------------------------------- #

_latex_symbols = {Sum: " + ", Difference: " - ", Product: r" \cdot "}


def _latex_binop(node: Expression, args: Sequence[Printed]) -> Printed:
    prec = _precedence[type(node)]
    lparens, rparens = _operands(node, args, prec)  # type: ignore[arg-type]
    left = _wrap(args[0], lparens, r"\left(", r"\right)")
    right = _wrap(args[1], rparens, r"\left(", r"\right)")
    return f"{left}{_latex_symbols[type(node)]}{right}", prec


def _latex_quotient(node: Expression, args: Sequence[Printed]) -> Printed:
    (num, _), (den, _) = args
    return rf"\frac{{{num}}}{{{den}}}", PREC_ATOM


def _latex_power(node: Expression, args: Sequence[Printed]) -> Printed:
    base = _wrap(args[0], args[0][1] <= PREC_POWER, r"\left(", r"\right)")
    return f"{base}^{{{args[1][0]}}}", PREC_POWER


def _latex_log(node: Expression, args: Sequence[Printed]) -> Printed:
    (base, _), (argument, _) = args
    if isinstance(node.left, E):  # type: ignore[attr-defined]
        return rf"\ln\left({argument}\right)", PREC_ATOM
    return rf"\log_{{{base}}}\left({argument}\right)", PREC_ATOM


def _latex_differentiation(node: Expression, args: Sequence[Printed]) -> Printed:
    operand = args[0][0]
    respect = args[1][0] if len(args) > 1 else ""
    return rf"\frac{{d}}{{d{respect}}}\left({operand}\right)", PREC_POWER


def _latex_invocation(node: Expression, args: Sequence[Printed]) -> Printed:
    argstr = ", ".join(text for text, _ in args[1:])
    return rf"{args[0][0]}\left({argstr}\right)", PREC_ATOM


_eval_latex = Evaluator[Printed]()
_eval_latex.add_atom(Constant, lambda a: (format_number(a.value), _constant_prec(a)))  # type: ignore
_eval_latex.add_atom(E, lambda a: ("e", PREC_ATOM))
_eval_latex.add_atom(Function, lambda a: (a.name, PREC_ATOM))  # type: ignore
_eval_latex.add_op(BinaryOperator, _latex_binop)
_eval_latex.add_op(Quotient, _latex_quotient)
_eval_latex.add_op(Power, _latex_power)
_eval_latex.add_op(Log, _latex_log)
_eval_latex.add_op(Invocation, _latex_invocation)
_eval_latex.add_op(Differentiation, _latex_differentiation)
_eval_latex.add_op(Assignment, _repr_assignment)


def eval_latex(expr: Expression) -> str:
    r"""LaTeX string for ``expr``.

    >>> from calcsym.core.expr import Function, Constant, Quotient, Log, E
    >>> from calcsym.core.printing import eval_latex
    >>> x = Function('x')
    >>> print(eval_latex(Quotient(Constant(1), Log(E(), x))))
    \frac{1}{\ln\left(x\right)}
    """
    text, _ = _eval_latex(expr)
    return text
