from calcsym.core.expr import (
    Assignment,
    Constant,
    Difference,
    Differentiation,
    E,
    Function,
    Invocation,
    Log,
    Power,
    Product,
    Quotient,
    Sum,
)
from calcsym.core.printing import eval_latex, eval_repr, format_number

x = Function("x")
y = Function("y")
d = Function("d")
f = Function("f")
one = Constant(1)
two = Constant(2)
negtwo = Constant(-2)


def test_format_number() -> None:
    """Test that numbers are printed without exponents or trailing .0."""
    test_cases = [
        (0.0, "0"),
        (2.0, "2"),
        (-3.0, "-3"),
        (2.5, "2.5"),
        (0.1, "0.1"),
        (1e-07, "0.0000001"),
        (1e20, "100000000000000000000"),
    ]
    for value, expected in test_cases:
        assert format_number(value) == expected


def test_eval_repr() -> None:
    """Test the infix string representation."""
    test_cases = [
        (one, "1"),
        (Constant(0.5), "0.5"),
        (E(), "e"),
        (x, "x"),
        (Sum(Product(two, x), Constant(3)), "2*x + 3"),
        (Difference(x, Sum(y, one)), "x - (y + 1)"),
        (Difference(Difference(x, y), one), "x - y - 1"),
        (Product(Sum(x, one), y), "(x + 1)*y"),
        (Quotient(x, Product(y, two)), "x/(y*2)"),
        (Quotient(Quotient(x, y), two), "x/y/2"),
        (Power(x, Power(y, two)), "x^y^2"),
        (Power(Power(x, y), two), "(x^y)^2"),
        (Power(negtwo, x), "(-2)^x"),
        (Power(x, negtwo), "x^-2"),
        (Sum(x, negtwo), "x + -2"),
        (Log(E(), x), "ln(x)"),
        (Log(Constant(10), x), "log(10, x)"),
        (Log(y, Sum(x, one)), "log(y, x + 1)"),
        (Invocation(f, [x, Sum(y, one)]), "f(x, y + 1)"),
        (Invocation(f, []), "f()"),
        (Differentiation(Power(x, two), x), "d/dx(x^2)"),
        (Differentiation(Power(x, two)), "d/d(x^2)"),
        (Product(Differentiation(x, x), y), "d/dx(x)*y"),
        (Power(Differentiation(x, x), two), "(d/dx(x))^2"),
        (Quotient(d, x), "d/x"),
        (Quotient(d, Function("dx")), "(d)/dx"),
        (Assignment(Invocation(f, [x, y]), Product(x, y)), "f(x, y) = x*y"),
        (Assignment(Invocation(f, []), two), "f = 2"),
    ]
    for expr, expected in test_cases:
        assert eval_repr(expr) == expected
        assert str(expr) == expected


def test_eval_latex() -> None:
    """Test the LaTeX representation."""
    test_cases = [
        (one, "1"),
        (E(), "e"),
        (Sum(Product(two, x), one), r"2 \cdot x + 1"),
        (Difference(x, Sum(y, one)), r"x - \left(y + 1\right)"),
        (Quotient(x, Sum(y, one)), r"\frac{x}{y + 1}"),
        (Power(x, Sum(y, one)), r"x^{y + 1}"),
        (Power(Sum(x, one), two), r"\left(x + 1\right)^{2}"),
        (Power(negtwo, x), r"\left(-2\right)^{x}"),
        (Log(E(), x), r"\ln\left(x\right)"),
        (Log(two, x), r"\log_{2}\left(x\right)"),
        (Invocation(f, [x, y]), r"f\left(x, y\right)"),
        (Differentiation(Power(x, two), x), r"\frac{d}{dx}\left(x^{2}\right)"),
    ]
    for expr, expected in test_cases:
        assert eval_latex(expr) == expected
        assert expr.eval_latex() == expected
