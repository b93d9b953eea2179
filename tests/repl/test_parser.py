from pytest import raises

from calcsym.core.exceptions import ParseError
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
from calcsym.core.simplify import simplify
from calcsym.repl.lexer import lex
from calcsym.repl.parser import (
    DEFAULT_OPERATORS,
    Associativity,
    OperatorInfo,
    OperatorTable,
    Parser,
    parse,
)

from ..utils import make_engine

x = Function("x")
y = Function("y")
f = Function("f")
one = Constant(1)
two = Constant(2)
three = Constant(3)


def test_parse_expressions() -> None:
    """Test precedence, associativity and the atoms."""
    test_cases = [
        ("1", one),
        ("2.5", Constant(2.5)),
        ("x", x),
        ("e", E()),
        ("x + 1", Sum(x, one)),
        ("1 + 2*x", Sum(one, Product(two, x))),
        ("(1 + 2)*x", Product(Sum(one, two), x)),
        ("x - 1 - 2", Difference(Difference(x, one), two)),
        ("x/2/3", Quotient(Quotient(x, two), three)),
        ("x^2^3", Power(x, Power(two, three))),
        ("2*x^3", Product(two, Power(x, three))),
        ("x^2*3", Product(Power(x, two), three)),
        ("((x))", x),
        ("f(x)", Invocation(f, [x])),
        ("f()", Invocation(f, [])),
        ("f(x, 2*y)", Invocation(f, [x, Product(two, y)])),
        ("f(g(x))", Invocation(f, [Invocation(Function("g"), [x])])),
        ("ln(x)", Log(E(), x)),
        ("log(x)", Log(Constant(10), x)),
        ("log(2, x)", Log(two, x)),
        ("d/dx x^2", Differentiation(Power(x, two), x)),
        ("d/dx x*2", Product(Differentiation(x, x), two)),
        ("d/dy (x + y)", Differentiation(Sum(x, y), y)),
        ("d/d x^2", Differentiation(Power(x, two))),
        ("d/dx d/dx x^3", Differentiation(Differentiation(Power(x, three), x), x)),
        ("d/x", Quotient(Function("d"), x)),
        ("d*x", Product(Function("d"), x)),
        ("-2", Constant(-2)),
        ("-x", Product(Constant(-1), x)),
        ("-x^2", Product(Constant(-1), Power(x, two))),
        ("-2^2", Product(Constant(-1), Power(two, two))),
        ("x*-2", Product(x, Constant(-2))),
        ("x - -1", Difference(x, Constant(-1))),
        ("2^-1", Power(two, Constant(-1))),
    ]
    for text, expected in test_cases:
        assert parse(text) == expected
        assert Parser(lex(text)).parse() == expected
        assert parse(lex(text)) == expected


def test_parse_assignments() -> None:
    """Test parsing of definitions."""
    test_cases = [
        ("f(x) = x^2", Assignment(Invocation(f, [x]), Power(x, two))),
        (
            "f(x, y) = x*y",
            Assignment(Invocation(f, [x, y]), Product(x, y)),
        ),
        ("c = 4", Assignment(Invocation(Function("c"), []), Constant(4))),
        ("f() = 1", Assignment(Invocation(f, []), one)),
    ]
    for text, expected in test_cases:
        assert parse(text) == expected


def test_parse_errors() -> None:
    """Test malformed input."""
    bad = [
        "",
        "2 +",
        "(x + 1",
        "x + 1)",
        "f(x,",
        "f(x y)",
        "2 x",
        "* 2",
        "x = ",
        "f(x + 1) = 2",
        "f(x, x) = x",
        "f(2) = x",
        "e = 2",
        "ln(x) = 2",
        "f(e) = e",
        "log = 3",
        "log(1, 2, 3)",
        "ln(1, 2)",
        "ln x",
        "log()",
        "x = y = 1",
        ")",
    ]
    for text in bad:
        raises(ParseError, lambda: parse(text))


def test_parse_deeply_nested() -> None:
    """Nesting too deep for the parser raises ParseError."""
    depth = 5000
    with raises(ParseError) as excinfo:
        parse("(" * depth + "x" + ")" * depth)
    assert str(excinfo.value) == "Expression is nested too deeply"
    raises(ParseError, lambda: parse("-" * depth + "x"))
    assert parse("(" * 20 + "x" + ")" * 20) == x


def test_parse_error_position() -> None:
    """The position of the offending token is reported."""
    with raises(ParseError) as excinfo:
        parse("x + 1)")
    assert excinfo.value.position == 5
    assert str(excinfo.value) == "Unexpected ')' at position 5"

    with raises(ParseError) as excinfo:
        parse("2 +")
    assert excinfo.value.position is None


def test_OperatorTable() -> None:
    """Test the default table and custom tables."""
    assert len(DEFAULT_OPERATORS) == 5
    assert set(DEFAULT_OPERATORS) == {"+", "-", "*", "/", "^"}
    assert DEFAULT_OPERATORS["*"] == OperatorInfo(Associativity.LEFT, 2)
    assert DEFAULT_OPERATORS["^"] == OperatorInfo(Associativity.RIGHT, 3)
    assert "=" not in DEFAULT_OPERATORS
    raises(TypeError, lambda: DEFAULT_OPERATORS._operators.__setitem__("+", None))
    raises(ValueError, lambda: OperatorTable({"%": OperatorInfo(Associativity.LEFT, 2)}))

    # A table where - binds tighter than + and ^ is left associative
    table = OperatorTable(
        {
            "+": OperatorInfo(Associativity.LEFT, 1),
            "-": OperatorInfo(Associativity.LEFT, 2),
            "^": OperatorInfo(Associativity.LEFT, 3),
        }
    )
    assert Parser(lex("x + y - 1"), table).parse() == Sum(x, Difference(y, one))
    assert Parser(lex("x^2^3"), table).parse() == Power(Power(x, two), three)
    raises(ParseError, lambda: Parser(lex("x*y"), table).parse())
    # The default table is not affected
    assert parse("x + y - 1") == Difference(Sum(x, y), one)


def test_parse_round_trip() -> None:
    """Printing then parsing a simplified expression gives the same value."""
    engine = make_engine("f(t) = t^2")
    test_cases = [
        "x^2 + 3*x",
        "(x + 1)*(x - 1)",
        "x - (y - 1)",
        "x/(y/2)",
        "(x^y)^2",
        "x^y^2",
        "-x^2 + 2^-1",
        "(-2)^x",
        "ln(x)/log(2, y)",
        "log(x)",
        "e^x",
        "d/dx f(x)*y",
        "d/dy (x*y)",
        "x*2.5 - 0.001",
    ]
    for text in test_cases:
        simplified = simplify(parse(text), engine)
        reparsed = parse(str(simplified))
        assert reparsed.equals(engine, simplified)
        assert reparsed == simplified
