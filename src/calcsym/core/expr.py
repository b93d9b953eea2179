"""calcsym.core.expr module.

This module defines the :class:`Expression` tree. The set of node classes is
closed: every other part of calcsym dispatches on exactly these classes.
"""
from __future__ import annotations

import math
from typing import TYPE_CHECKING as _TYPE_CHECKING
from typing import Any
from typing import Iterator
from typing import Optional
from typing import Sequence

from calcsym.core.exceptions import DifferentiationError
from calcsym.core.exceptions import ParseError


if _TYPE_CHECKING:
    from calcsym.repl.engine import ExecutionEngine


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
    "BINARY_OPERATORS",
    "walk",
]


class Expression:
    """Base class for all expression nodes.

    Expressions are built from the node classes in this module:

    >>> from calcsym.core.expr import Constant, Function, Sum, Power
    >>> x = Function('x')
    >>> expr = Sum(Power(x, Constant(2)), Constant(1))
    >>> expr
    Sum(Power(Function('x'), Constant(2.0)), Constant(1.0))
    >>> print(expr)
    x^2 + 1

    The verbose ``repr`` shows the exact tree whereas ``str`` gives the infix
    form that can be read back by the parser.

    Every node holds its ``children`` in order and can be rebuilt from new
    children. Nothing in calcsym modifies a node after construction: all
    transformations return newly allocated trees.

    >>> expr.children[0]
    Power(Function('x'), Constant(2.0))
    >>> expr.rebuild(x, x)
    Sum(Function('x'), Function('x'))

    Equality with ``==`` is plain structural equality. Comparison that takes
    registered functions into account is done with :meth:`equals`.

    >>> expr == Sum(Power(Function('x'), Constant(2)), Constant(1))
    True
    >>> Sum(x, Constant(1)) == Sum(Constant(1), x)
    False
    """

    __slots__ = ()

    @property
    def children(self) -> tuple[Expression, ...]:
        """Sub-expressions of this node in order."""
        return ()

    def rebuild(self, *children: Expression) -> Expression:
        """Make a new node of the same kind from ``children``."""
        raise NotImplementedError

    def _fields(self) -> tuple[Any, ...]:
        return self.children

    def __eq__(self, other: object) -> bool:
        """Structural equality."""
        if not isinstance(other, Expression):
            return NotImplemented
        return type(self) is type(other) and self._fields() == other._fields()

    def __ne__(self, other: object) -> bool:
        """Structural inequality."""
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __hash__(self) -> int:
        """Hash consistent with structural equality."""
        return hash((type(self).__name__, self._fields()))

    def __str__(self) -> str:
        """Infix representation e.g. ``"2*x + 3"``."""
        from calcsym.core.printing import eval_repr

        return eval_repr(self)

    def is_constant(self) -> bool:
        """True for :class:`Constant` (including :class:`E`)."""
        return False

    def clone(self) -> Expression:
        """Deep copy of the tree sharing no node with the original.

        >>> from calcsym.core.expr import Function, Product
        >>> x = Function('x')
        >>> expr = Product(x, x)
        >>> copy = expr.clone()
        >>> copy == expr
        True
        >>> copy.left is expr.left
        False
        """
        from calcsym.core.evaluate import clone

        return clone(self)

    def derivative(self, engine: ExecutionEngine, respect: Function) -> Expression:
        """Derivative of this expression with respect to ``respect``.

        No simplification is done. See :func:`calcsym.core.differentiate.derivative`.
        """
        from calcsym.core.differentiate import derivative

        return derivative(self, engine, respect)

    def substitute(self, engine: ExecutionEngine) -> Expression:
        """Replace parameters bound in the engine's active frame."""
        from calcsym.core.substitute import substitute

        return substitute(self, engine)

    def simplify(self, engine: ExecutionEngine) -> Expression:
        """Simplified form of this expression.

        See :func:`calcsym.core.simplify.simplify`.
        """
        from calcsym.core.simplify import simplify

        return simplify(self, engine)

    def get_var(self, engine: ExecutionEngine) -> Function:
        """The single free variable of this expression."""
        from calcsym.core.substitute import get_var

        return get_var(self, engine)

    def equals(self, engine: ExecutionEngine, other: Expression) -> bool:
        """Compare with ``other`` after simplifying both."""
        from calcsym.core.simplify import equals

        return equals(self, engine, other)

    def eval_f64(self, values: Optional[dict[str, float]] = None) -> float:
        """Evaluate the expression as a 64-bit ``float``.

        >>> from calcsym.core.expr import Function, Product, Constant
        >>> x = Function('x')
        >>> Product(Constant(3), x).eval_f64({'x': 2.0})
        6.0
        """
        from calcsym.core.numeric import eval_f64

        return eval_f64(self, values)

    def eval_latex(self) -> str:
        r"""Return a LaTeX representation of the expression.

        >>> from calcsym.core.expr import Function, Power, Constant
        >>> print(Power(Function('x'), Constant(2)).eval_latex())
        x^{2}
        """
        from calcsym.core.printing import eval_latex

        return eval_latex(self)

    def to_sympy(self) -> Any:
        """Convert to a SymPy expression.

        See Also
        --------
        calcsym.sympy_conversions.from_sympy
        """
        from calcsym.sympy_conversions import to_sympy

        return to_sympy(self)


class Constant(Expression):
    """A finite real number."""

    __slots__ = ("value",)

    value: float

    def __init__(self, value: float):
        """Create a new constant, rejecting ``inf`` and ``nan``."""
        value = float(value)
        if not math.isfinite(value):
            raise ValueError(f"Constant must be finite, not {value!r}")
        # Normalise -0.0 to 0.0
        self.value = value + 0.0

    def rebuild(self, *children: Expression) -> Expression:
        """Fresh copy of this constant."""
        return Constant(self.value)

    def _fields(self) -> tuple[Any, ...]:
        return (self.value,)

    def __repr__(self) -> str:
        """Verbose representation e.g. ``Constant(2.0)``."""
        return f"Constant({self.value!r})"

    def is_constant(self) -> bool:
        """Constants are constant."""
        return True

    @staticmethod
    def is_constant_value(expr: Expression, value: float) -> bool:
        """True if ``expr`` is a :class:`Constant` equal to ``value``.

        >>> from calcsym.core.expr import Constant, Function
        >>> Constant.is_constant_value(Constant(1), 1)
        True
        >>> Constant.is_constant_value(Function('x'), 1)
        False
        """
        return isinstance(expr, Constant) and expr.value == value


class E(Constant):
    """Euler's number, rendered as ``e``."""

    __slots__ = ()

    def __init__(self) -> None:
        """Create a new ``e``."""
        super().__init__(math.e)

    def rebuild(self, *children: Expression) -> Expression:
        """Fresh copy of ``e``."""
        return E()

    def __repr__(self) -> str:
        """Verbose representation."""
        return "E()"


class Function(Expression):
    """A named variable or a reference to a named function.

    Whether a :class:`Function` is a free variable or stands for the body of
    a registered function is decided by the engine when a transformation is
    applied, never when the node is built.
    """

    __slots__ = ("name",)

    name: str

    def __init__(self, name: str):
        """Create a new reference to ``name``."""
        if not isinstance(name, str) or not name:
            raise TypeError("Function name should be a non-empty string")
        self.name = name

    def rebuild(self, *children: Expression) -> Expression:
        """Fresh copy of this reference."""
        return Function(self.name)

    def _fields(self) -> tuple[Any, ...]:
        return (self.name,)

    def __repr__(self) -> str:
        """Verbose representation e.g. ``Function('x')``."""
        return f"Function({self.name!r})"


class Invocation(Expression):
    """Application of a callee to argument expressions e.g. ``f(x, 2)``."""

    __slots__ = ("callee", "arguments")

    callee: Expression
    arguments: tuple[Expression, ...]

    def __init__(self, callee: Expression, arguments: Sequence[Expression]):
        """Create a new invocation."""
        self.callee = callee
        self.arguments = tuple(arguments)

    @property
    def children(self) -> tuple[Expression, ...]:
        """The callee followed by the arguments."""
        return (self.callee,) + self.arguments

    def rebuild(self, *children: Expression) -> Expression:
        """New invocation from callee and arguments."""
        return Invocation(children[0], children[1:])

    def __repr__(self) -> str:
        """Verbose representation."""
        args = ", ".join(map(repr, self.arguments))
        return f"Invocation({self.callee!r}, [{args}])"


class Differentiation(Expression):
    """Unevaluated derivative ``d/d(respect) expr``.

    If ``respect`` is ``None`` the variable is inferred from ``expr`` when the
    derivative is evaluated.
    """

    __slots__ = ("expr", "respect")

    expr: Expression
    respect: Optional[Function]

    def __init__(self, expr: Expression, respect: Optional[Function] = None):
        """Create a new unevaluated derivative."""
        if respect is not None and not isinstance(respect, Function):
            raise DifferentiationError(
                f"Cannot differentiate with respect to non-variable {respect}"
            )
        self.expr = expr
        self.respect = respect

    @property
    def children(self) -> tuple[Expression, ...]:
        """The operand, followed by the variable if there is one."""
        if self.respect is None:
            return (self.expr,)
        return (self.expr, self.respect)

    def rebuild(self, *children: Expression) -> Expression:
        """New derivative from operand and optional variable."""
        expr, *rest = children
        return Differentiation(expr, *rest)  # type: ignore[arg-type]

    def __repr__(self) -> str:
        """Verbose representation."""
        if self.respect is None:
            return f"Differentiation({self.expr!r})"
        return f"Differentiation({self.expr!r}, {self.respect!r})"


class Assignment(Expression):
    """Definition of a named function e.g. ``f(x, y) = x*y``.

    An :class:`Assignment` is an instruction for the engine rather than a
    value. The declaration must be an :class:`Invocation` of a
    :class:`Function` whose arguments are distinct :class:`Function` nodes:

    >>> from calcsym.core.expr import Assignment, Invocation, Function, Constant
    >>> f, x = Function('f'), Function('x')
    >>> Assignment(Invocation(f, [x]), x).parameters
    ('x',)
    >>> Assignment(Invocation(f, [Constant(1)]), x)
    Traceback (most recent call last):
        ...
    calcsym.core.exceptions.ParseError: Parameter of f must be a name, not 1
    """

    __slots__ = ("declaration", "body")

    declaration: Invocation
    body: Expression

    def __init__(self, declaration: Invocation, body: Expression):
        """Create a new assignment validating the declaration."""
        if not isinstance(declaration, Invocation) or not isinstance(
            declaration.callee, Function
        ):
            raise ParseError(f"Cannot assign to {declaration}")
        name = declaration.callee.name
        seen: set[str] = set()
        for param in declaration.arguments:
            if not isinstance(param, Function):
                raise ParseError(f"Parameter of {name} must be a name, not {param}")
            if param.name in seen:
                raise ParseError(f"Duplicate parameter {param.name} in {name}")
            seen.add(param.name)
        self.declaration = declaration
        self.body = body

    @property
    def name(self) -> str:
        """Name of the function being defined."""
        return self.declaration.callee.name  # type: ignore[attr-defined]

    @property
    def parameters(self) -> tuple[str, ...]:
        """Names of the formal parameters in order."""
        return tuple(p.name for p in self.declaration.arguments)  # type: ignore

    @property
    def children(self) -> tuple[Expression, ...]:
        """The declaration and the body."""
        return (self.declaration, self.body)

    def rebuild(self, *children: Expression) -> Expression:
        """New assignment from declaration and body."""
        declaration, body = children
        return Assignment(declaration, body)  # type: ignore[arg-type]

    def __repr__(self) -> str:
        """Verbose representation."""
        return f"Assignment({self.declaration!r}, {self.body!r})"


class BinaryOperator(Expression):
    """Base class for operators with exactly two operands."""

    __slots__ = ("left", "right")

    symbol: Optional[str] = None

    left: Expression
    right: Expression

    def __init__(self, left: Expression, right: Expression):
        """Create a new binary operation."""
        self.left = left
        self.right = right

    @property
    def children(self) -> tuple[Expression, ...]:
        """Left and right operands."""
        return (self.left, self.right)

    def rebuild(self, *children: Expression) -> Expression:
        """New operation of the same kind."""
        left, right = children
        return type(self)(left, right)

    def __repr__(self) -> str:
        """Verbose representation e.g. ``Sum(Function('x'), Constant(1.0))``."""
        return f"{type(self).__name__}({self.left!r}, {self.right!r})"


class Power(BinaryOperator):
    """``left ^ right``."""

    __slots__ = ()
    symbol = "^"


class Log(BinaryOperator):
    """Logarithm of ``right`` to the base ``left``."""

    __slots__ = ()

    @property
    def base(self) -> Expression:
        """The base of the logarithm."""
        return self.left

    @property
    def argument(self) -> Expression:
        """The argument of the logarithm."""
        return self.right


class Sum(BinaryOperator):
    """``left + right``."""

    __slots__ = ()
    symbol = "+"


class Difference(BinaryOperator):
    """``left - right``."""

    __slots__ = ()
    symbol = "-"


class Product(BinaryOperator):
    """``left * right``."""

    __slots__ = ()
    symbol = "*"


class Quotient(BinaryOperator):
    """``left / right``."""

    __slots__ = ()
    symbol = "/"


BINARY_OPERATORS: dict[str, type[BinaryOperator]] = {
    cls.symbol: cls  # type: ignore[misc]
    for cls in [Sum, Difference, Product, Quotient, Power]
}


def walk(expression: Expression) -> Iterator[Expression]:
    """Iterate over all subexpressions in post-order.

    >>> from calcsym.core.expr import Function, Sum, Product, walk
    >>> x, y = Function('x'), Function('y')
    >>> for e in walk(Sum(Product(x, y), x)):
    ...     print(e)
    x
    y
    x*y
    x
    x*y + x

    No node appears before any of its children.
    """
    #
    # A stack is used rather than recursion so that there is no limit on the
    # depth of the tree.
    #
    stack = [(expression, list(expression.children)[::-1])]
    while stack:
        top, children = stack[-1]
        if children:
            child = children.pop()
            stack.append((child, list(child.children)[::-1]))
        else:
            stack.pop()
            yield top
