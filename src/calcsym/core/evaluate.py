"""Define the core evaluation code."""
from __future__ import annotations

from typing import TYPE_CHECKING as _TYPE_CHECKING
from typing import Callable
from typing import Generic
from typing import TypeVar

from calcsym.core.exceptions import NoEvaluationRuleError
from calcsym.core.expr import Expression
from calcsym.core.expr import walk


__all__ = ["Evaluator", "Transformer", "clone"]


_T = TypeVar("_T")


if _TYPE_CHECKING:
    from typing import Any, Optional, Sequence

    AtomFunc = Callable[[Expression], _T]
    OpFunc = Callable[[Expression, Sequence[_T]], _T]


def _generic_operation_error(node: Expression, argvals: Sequence[Any]) -> Any:
    """Error fallback rule for handling unknown compound nodes."""
    msg = "No rule for node: " + type(node).__name__
    raise NoEvaluationRuleError(msg)


def _generic_atom_error(atom: Expression) -> Any:
    """Error fallback rule for handling unknown atoms."""
    msg = "No rule for atom: " + repr(atom)
    raise NoEvaluationRuleError(msg)


class Evaluator(Generic[_T]):
    """Objects that evaluate expressions.

    Examples
    ========

    An :class:`Evaluator` has a rule for each class of node. Rules for atoms
    (nodes without children) receive the atom. Rules for other nodes receive
    the node and the already evaluated children:

    >>> from calcsym.core.expr import Constant, Function, Sum, Product
    >>> from calcsym.core.evaluate import Evaluator
    >>> count = Evaluator[int]()
    >>> count.add_atom(Constant, lambda atom: 0)
    >>> count.add_atom(Function, lambda atom: 1)
    >>> count.add_op(Sum, lambda node, args: sum(args))
    >>> x = Function('x')
    >>> count(Sum(x, Sum(Constant(1), x)))
    2

    Rules are looked up along the class hierarchy so a rule for
    :class:`Constant` also covers :class:`E`. Evaluating a node with no rule
    fails:

    >>> count(Product(x, x))
    Traceback (most recent call last):
        ...
    calcsym.core.exceptions.NoEvaluationRuleError: No rule for node: Product

    Values can be supplied for any subexpression:

    >>> count(Product(x, x), {Product(x, x): 5})
    5
    """

    atoms: dict[type, Callable[[Expression], _T]]
    operations: dict[type, Callable[[Expression, Sequence[_T]], _T]]
    generic_operation_func: Callable[[Expression, Sequence[_T]], _T]
    generic_atom_func: Callable[[Expression], _T]

    def __init__(self) -> None:
        """Create an empty evaluator."""
        self.atoms = {}
        self.operations = {}
        self.generic_operation_func = _generic_operation_error
        self.generic_atom_func = _generic_atom_error

    def add_atom(self, cls: type, func: AtomFunc[_T]) -> None:
        """Add an evaluation rule for a class of atoms."""
        self.atoms[cls] = func

    def add_atom_generic(self, func: AtomFunc[_T]) -> None:
        """Add a generic fallback rule for atoms."""
        self.generic_atom_func = func

    def add_op(self, cls: type, func: OpFunc[_T]) -> None:
        """Add an evaluation rule for a class of compound nodes."""
        self.operations[cls] = func

    def add_op_generic(self, func: OpFunc[_T]) -> None:
        """Add a generic fallback rule for compound nodes."""
        self.generic_operation_func = func

    def eval_atom(self, atom: Expression) -> _T:
        """Evaluate an atom."""
        for cls in type(atom).__mro__:
            atom_func = self.atoms.get(cls)
            if atom_func is not None:
                return atom_func(atom)
        return self.generic_atom_func(atom)

    def eval_operation(self, node: Expression, argvals: Sequence[_T]) -> _T:
        """Evaluate one compound node given the values of its children."""
        for cls in type(node).__mro__:
            op_func = self.operations.get(cls)
            if op_func is not None:
                return op_func(node, argvals)
        return self.generic_operation_func(node, argvals)

    def evaluate(self, expr: Expression, values: dict[Expression, _T]) -> _T:
        """Evaluate the expression using the registered rules."""
        return self.eval_forward(expr, values)

    def eval_recursive(self, expr: Expression, values: dict[Expression, _T]) -> _T:
        """Evaluate the expression using recursion."""
        if values and expr in values:
            # Use an explicit value if given
            return values[expr]
        elif not expr.children:
            return self.eval_atom(expr)
        else:
            argvals = [self.eval_recursive(c, values) for c in expr.children]
            return self.eval_operation(expr, argvals)

    def eval_forward(self, expr: Expression, values: dict[Expression, _T]) -> _T:
        """Evaluate the expression using an explicit stack."""
        #
        # walk() gives the nodes in post-order so the values of the children
        # of each node are the last len(children) items on the stack. Nodes
        # with a value given explicitly are still walked but their children
        # are dropped from the stack without being used.
        #
        stack: list[_T] = []
        for node in walk(expr):
            nchildren = len(node.children)
            argvals = stack[len(stack) - nchildren :]
            del stack[len(stack) - nchildren :]
            if values and node in values:
                value = values[node]
            elif not nchildren:
                value = self.eval_atom(node)
            else:
                value = self.eval_operation(node, argvals)
            stack.append(value)
        return stack[-1]

    def __call__(
        self, expr: Expression, values: Optional[dict[Expression, _T]] = None
    ) -> _T:
        """Short-hand for evaluate."""
        if values is None:
            values = {}
        return self.evaluate(expr, values)


class Transformer(Evaluator[Expression]):
    """Specialized Evaluator for Expression -> Expression operations.

    Nodes without a rule are rebuilt from their transformed children so a
    :class:`Transformer` only needs rules for the nodes it changes.

    >>> from calcsym.core.expr import Function, Sum, Product
    >>> from calcsym.core.evaluate import Transformer
    >>> sum2prod = Transformer()
    >>> sum2prod.add_op(Sum, lambda node, args: Product(*args))
    >>> x, y = Function('x'), Function('y')
    >>> print(sum2prod(Sum(x, Product(y, Sum(x, y)))))
    x*(y*(x*y))
    """

    def __init__(self) -> None:
        super().__init__()
        self.add_atom_generic(lambda atom: atom.rebuild())
        self.add_op_generic(lambda node, args: node.rebuild(*args))


# A Transformer with no rules rebuilds every node.
clone = Transformer()
