import logging

from pytest import raises

from calcsym.core.exceptions import (
    AmbiguousVariableError,
    BindError,
    CalcSymError,
    DifferentiationError,
    EvaluationError,
    LexError,
    NotFoundError,
    ParseError,
    RecursionDepthError,
    SimplificationError,
)
from calcsym.core.expr import (
    Assignment,
    Constant,
    Differentiation,
    Function,
    Invocation,
    Product,
    Sum,
)
from calcsym.repl.engine import EngineConfig, ExecutionEngine, Frame, FunctionDefinition
from calcsym.repl.parser import parse

x = Function("x")
y = Function("y")
one = Constant(1)
two = Constant(2)


def test_EngineConfig() -> None:
    """Test defaults and validation of the configuration."""
    config = EngineConfig()
    assert config.max_call_depth == 64
    assert config.max_simplify_passes == 32
    raises(ValueError, lambda: EngineConfig(max_call_depth=0))
    raises(ValueError, lambda: EngineConfig(max_simplify_passes=0))
    assert ExecutionEngine().config == config


def test_FunctionDefinition() -> None:
    """Test making a definition from an assignment."""
    assignment = parse("f(x, y) = x*y + 1")
    assert isinstance(assignment, Assignment)
    definition = FunctionDefinition.from_assignment(assignment)
    assert definition.name == "f"
    assert definition.parameters == ("x", "y")
    assert definition.body == Sum(Product(x, y), one)
    assert definition.body is not assignment.body
    assert str(definition) == "f(x, y) = x*y + 1"
    assert str(FunctionDefinition("c", (), two)) == "c = 2"


def test_Frame() -> None:
    """Test binding parameters to arguments."""
    frame = Frame([one, Sum(x, one)])
    assert frame.parameters == []
    assert frame.get_argument("a") is None
    frame.bind_parameters(["a", "b"])
    assert frame.parameters == ["a", "b"]
    assert frame.get_argument("a") == one
    assert frame.get_argument("b") == Sum(x, one)
    assert frame.get_argument("c") is None
    raises(BindError, lambda: frame.bind_parameters(["a"]))
    raises(BindError, lambda: Frame([]).bind_parameters(["a"]))
    Frame([]).bind_parameters([])


def test_engine_registry() -> None:
    """Test registering, retrieving and removing functions."""
    engine = ExecutionEngine()
    definition = FunctionDefinition("f", ("x",), Product(two, x))
    assert engine.has_function("f") is False
    raises(NotFoundError, lambda: engine.retrieve_function("f"))
    raises(KeyError, lambda: engine.retrieve_function("f"))

    engine.register_function(definition)
    assert engine.has_function("f") is True
    assert engine.retrieve_function("f") is definition

    replacement = FunctionDefinition("f", ("y",), y)
    engine.register_function(replacement)
    assert engine.retrieve_function("f") is replacement

    engine.deregister_function("f")
    assert engine.has_function("f") is False
    engine.deregister_function("f")

    with raises(NotFoundError) as excinfo:
        engine.retrieve_function("g")
    assert str(excinfo.value) == "Unknown function g"


def test_engine_frames() -> None:
    """Test pushing, binding and popping frames."""
    engine = ExecutionEngine()
    assert engine.call_depth == 0
    assert engine.frame_parameters() == []
    assert engine.get_frame_arg("x") is None

    engine.push_frame([one])
    engine.bind_frame_parameters(["x"])
    assert engine.call_depth == 1
    assert engine.frame_parameters() == ["x"]
    assert engine.get_frame_arg("x") == one

    engine.push_frame([two])
    engine.bind_frame_parameters(["y"])
    assert engine.get_frame_arg("y") == two
    # Only the top frame is visible
    assert engine.get_frame_arg("x") is None
    engine.pop_frame()
    assert engine.get_frame_arg("x") == one
    engine.pop_frame()
    assert engine.call_depth == 0


def test_engine_call_frame() -> None:
    """The context manager pops the frame on every path."""
    engine = ExecutionEngine()
    with engine.call_frame([one, two], ["a", "b"]) as frame:
        assert engine.call_depth == 1
        assert frame.get_argument("b") == two
        assert engine.get_frame_arg("a") == one
    assert engine.call_depth == 0

    def bad_bind() -> None:
        with engine.call_frame([one], ["a", "b"]):
            pass  # pragma: no cover

    raises(BindError, bad_bind)
    assert engine.call_depth == 0

    def bad_body() -> None:
        with engine.call_frame([one], ["a"]):
            raise ValueError

    raises(ValueError, bad_body)
    assert engine.call_depth == 0


def test_engine_max_call_depth() -> None:
    """Pushing past the configured depth raises RecursionDepthError."""
    engine = ExecutionEngine(EngineConfig(max_call_depth=2))
    engine.push_frame([])
    engine.push_frame([])
    raises(RecursionDepthError, lambda: engine.push_frame([]))
    assert engine.call_depth == 2


def test_engine_scenarios() -> None:
    """Statements run one after another against the same engine."""
    engine = ExecutionEngine()
    test_cases = [
        ("(2+3)*4", "20"),
        ("f(x) = x^2 + 3*x", "f(x) = x^2 + 3*x"),
        ("d/dx f(x)", "2*x + 3"),
        ("f(2)", "10"),
        ("f(y + 1)", "(y + 1)^2 + 3*(y + 1)"),
        ("g(a, b) = a*b", "g(a, b) = a*b"),
        ("g(3, 4)", "12"),
        ("d/da g(a, 2)", "2"),
        ("c = 5", "c = 5"),
        ("c*x", "5*x"),
        ("h(x) = d/dx x^3", "h(x) = d/dx(x^3)"),
        ("h(2)", "12"),
        ("d/d x^2", "2*x"),
        ("ln(e)", "1"),
        ("log(2, 8)", "3"),
        ("x - x", "0"),
        ("-x + 0", "-1*x"),
    ]
    for text, expected in test_cases:
        assert str(engine.run(text)) == expected


def test_engine_execute() -> None:
    """Assignments are registered and other expressions evaluated."""
    engine = ExecutionEngine()
    assignment = parse("f(x) = 2*x")
    assert engine.execute(assignment) is assignment
    assert engine.has_function("f")
    assert engine.execute(Invocation(Function("f"), [Constant(4)])) == Constant(8)
    assert engine.evaluate(Sum(one, one)) == two
    assert engine.run("(2+3)*4") == Constant(20)


def test_engine_redefinition() -> None:
    """Redefining a function replaces it."""
    engine = ExecutionEngine()
    engine.run("f(x) = x + 1")
    assert engine.run("f(1)") == two
    engine.run("f(x) = x*10")
    assert engine.run("f(1)") == Constant(10)


def test_engine_errors() -> None:
    """Errors leave the registry and the call stack unchanged."""
    engine = ExecutionEngine()
    engine.run("g(x, y) = x*y")
    engine.run("f(x) = f(x) + 1")
    engine.run("a = a*2")
    before = dict(engine.functions)

    test_cases = [
        ("g(1)", BindError),
        ("g(1, 2, 3)", BindError),
        ("k(1)", NotFoundError),
        ("d/d (x + y)", AmbiguousVariableError),
        ("d/d 2", DifferentiationError),
        ("f(1)", RecursionDepthError),
        ("d/dx f(x)", RecursionDepthError),
        ("a", RecursionDepthError),
        ("0^0", SimplificationError),
        ("1/0", SimplificationError),
        ("2^x^0^0", SimplificationError),
        ("x $ 1", LexError),
        ("x +", ParseError),
        ("e = 1", ParseError),
        ("(" * 5000 + "x" + ")" * 5000, ParseError),
    ]
    for text, error in test_cases:
        with raises(error):
            engine.run(text)
        assert engine.call_depth == 0
        assert engine.functions == before

    raises(
        AmbiguousVariableError,
        lambda: engine.execute(Differentiation(Sum(x, y))),
    )
    raises(EvaluationError, lambda: engine.evaluate(parse("f(x) = x")))

    for error in [LexError, ParseError, BindError, NotFoundError, EvaluationError]:
        assert issubclass(error, CalcSymError)
    assert issubclass(RecursionDepthError, EvaluationError)


def test_engine_failed_definition_keeps_registry() -> None:
    """A definition that fails to parse registers nothing."""
    engine = ExecutionEngine()
    engine.run("f(x) = x")
    raises(ParseError, lambda: engine.run("f(x, x) = 2"))
    assert engine.retrieve_function("f").parameters == ("x",)
    raises(ParseError, lambda: engine.run("g(x) = "))
    assert not engine.has_function("g")


def test_engine_logging(caplog) -> None:  # type: ignore[no-untyped-def]
    """Registration is logged at debug level."""
    engine = ExecutionEngine()
    with caplog.at_level(logging.DEBUG, logger="calcsym.repl.engine"):
        engine.run("f(x) = x")
        engine.run("f(x) = 2*x")
        engine.deregister_function("f")
    messages = [record.getMessage() for record in caplog.records]
    assert "Defining function f" in messages
    assert "Redefining function f" in messages
    assert "Removed function f" in messages
