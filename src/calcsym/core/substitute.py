"""Frame-sensitive substitution and free variable inference.

Both operations need the engine: substitution reads the bindings of the
active call frame and variable inference looks through references to
registered functions.
"""
from __future__ import annotations

from itertools import count
from typing import TYPE_CHECKING as _TYPE_CHECKING
from typing import Mapping
from typing import Sequence

from calcsym.core.evaluate import Transformer
from calcsym.core.exceptions import AmbiguousVariableError
from calcsym.core.exceptions import DifferentiationError
from calcsym.core.expr import Differentiation
from calcsym.core.expr import Expression
from calcsym.core.expr import Function
from calcsym.core.expr import Invocation


if _TYPE_CHECKING:
    from calcsym.repl.engine import ExecutionEngine
    from calcsym.repl.engine import FunctionDefinition


__all__ = [
    "substitute",
    "free_variables",
    "get_var",
    "fresh_names",
    "rename",
    "rename_parameters",
]


_fresh_ids = count()


def substitute(expr: Expression, engine: ExecutionEngine) -> Expression:
    """Replace parameters bound in the active frame with their arguments.

    Every :class:`Function` leaf whose name is bound in the top frame of the
    engine is replaced by a clone of the bound argument. Other leaves are
    copied unchanged:

    >>> from calcsym.repl.engine import ExecutionEngine
    >>> from calcsym.core.expr import Function, Constant, Sum
    >>> from calcsym.core.substitute import substitute
    >>> engine = ExecutionEngine()
    >>> x, y = Function('x'), Function('y')
    >>> with engine.call_frame([Constant(2)], ['x']):
    ...     print(substitute(Sum(x, y), engine))
    2 + y
    >>> print(substitute(Sum(x, y), engine))
    x + y

    A :class:`Differentiation` evaluated under an active frame is
    differentiated before the bindings are applied so that its variable
    still refers to the parameter. This makes ``g(x) = d/dx x^2`` give
    ``g(3) = 2*3``.
    """
    if isinstance(expr, Function):
        argument = engine.get_frame_arg(expr.name)
        if argument is not None:
            return argument.clone()
        return expr.rebuild()
    elif isinstance(expr, Differentiation) and engine.call_depth:
        from calcsym.core.differentiate import evaluate_differentiation

        return substitute(evaluate_differentiation(expr, engine), engine)
    elif not expr.children:
        return expr.rebuild()
    else:
        return expr.rebuild(*(substitute(c, engine) for c in expr.children))


def free_variables(expr: Expression, engine: ExecutionEngine) -> list[Function]:
    """Free variables of ``expr`` in the order they are first seen.

    >>> from calcsym.repl.engine import ExecutionEngine
    >>> from calcsym.core.expr import Function, Constant, Sum, Product
    >>> from calcsym.core.substitute import free_variables
    >>> engine = ExecutionEngine()
    >>> x, y = Function('x'), Function('y')
    >>> free_variables(Sum(Product(y, x), Product(Constant(2), y)), engine)
    [Function('y'), Function('x')]

    References to registered functions are looked through. The formal
    parameters of an invoked function are not free in the invocation.
    """
    found: dict[str, Function] = {}
    _collect(expr, engine, found, frozenset())
    return list(found.values())


def _collect(
    expr: Expression,
    engine: ExecutionEngine,
    found: dict[str, Function],
    resolving: frozenset[str],
) -> None:
    if isinstance(expr, Function):
        name = expr.name
        if engine.has_function(name) and name not in resolving:
            body = engine.retrieve_function(name).body
            _collect(body, engine, found, resolving | {name})
        elif name not in found:
            found[name] = Function(name)
    elif isinstance(expr, Invocation) and isinstance(expr.callee, Function):
        name = expr.callee.name
        definition = None
        if engine.has_function(name) and name not in resolving:
            definition = engine.retrieve_function(name)
        if definition is None or len(definition.parameters) != len(expr.arguments):
            for argument in expr.arguments:
                _collect(argument, engine, found, resolving)
            return
        # A parameter contributes the variables of its argument, and only if
        # the body uses it.
        names, body = rename_parameters(definition)
        arguments = dict(zip(names, expr.arguments))
        inner: dict[str, Function] = {}
        _collect(body, engine, inner, resolving | {name})
        for var_name, var in inner.items():
            if var_name in arguments:
                _collect(arguments[var_name], engine, found, resolving)
            else:
                found.setdefault(var_name, var)
    elif isinstance(expr, Differentiation):
        _collect(expr.expr, engine, found, resolving)
    else:
        for child in expr.children:
            _collect(child, engine, found, resolving)


def fresh_names(names: Sequence[str]) -> list[str]:
    """Names for ``names`` that are not used anywhere else.

    The lexer rejects ``_`` so no parsed input can contain these names.
    """
    return [f"_{next(_fresh_ids)}_{name}" for name in names]


def rename(expr: Expression, names: Mapping[str, str]) -> Expression:
    """Copy of ``expr`` with each :class:`Function` named in ``names`` renamed.

    >>> from calcsym.core.expr import Function, Product
    >>> from calcsym.core.substitute import rename
    >>> x, y = Function('x'), Function('y')
    >>> print(rename(Product(x, y), {'x': 't'}))
    t*y
    """
    renamer = Transformer()
    renamer.add_atom(Function, lambda atom: Function(names.get(atom.name, atom.name)))
    return renamer(expr)


def rename_parameters(definition: FunctionDefinition) -> tuple[list[str], Expression]:
    """Body of ``definition`` with its parameters given fresh names.

    Variables in other functions that the body refers to can share a name
    with a parameter. After renaming, only the parameters themselves have
    the new names.
    """
    parameters = definition.parameters
    names = fresh_names(parameters)
    return names, rename(definition.body, dict(zip(parameters, names)))


def get_var(expr: Expression, engine: ExecutionEngine) -> Function:
    """The variable to differentiate ``expr`` by when none is given.

    >>> from calcsym.repl.engine import ExecutionEngine
    >>> from calcsym.core.expr import Function, Constant, Power, Sum
    >>> from calcsym.core.substitute import get_var
    >>> engine = ExecutionEngine()
    >>> x, y = Function('x'), Function('y')
    >>> get_var(Power(x, Constant(2)), engine)
    Function('x')
    >>> get_var(Sum(x, y), engine)
    Traceback (most recent call last):
        ...
    calcsym.core.exceptions.AmbiguousVariableError: Cannot infer variable of x + y from x, y
    """
    variables = free_variables(expr, engine)
    if not variables:
        raise DifferentiationError(f"No variable to differentiate {expr} by")
    elif len(variables) > 1:
        names = ", ".join(v.name for v in variables)
        raise AmbiguousVariableError(f"Cannot infer variable of {expr} from {names}")
    return variables[0]
