import pytest

from isa import (Arithmetic, ArithmeticOperation, Constant, Direct, Indirect,
                 OperatorKind, Pop, Push, Segment, StaticVar,
                 addressing_strategy, operator_code)


@pytest.mark.parametrize("segment, expected", [
    (Segment.LOCAL, Indirect("LCL")),
    (Segment.ARGUMENT, Indirect("ARG")),
    (Segment.THIS, Indirect("THIS")),
    (Segment.THAT, Indirect("THAT")),
    (Segment.POINTER, Direct(3)),
    (Segment.TEMP, Direct(5)),
    (Segment.CONSTANT, Constant()),
    (Segment.STATIC, StaticVar("Main")),
])
def test_addressing_strategy(segment, expected):
    assert addressing_strategy(segment, "Main") == expected


def test_every_segment_has_a_strategy():
    for segment in Segment:
        addressing_strategy(segment, "Main")


def test_static_symbol_uses_namespace():
    assert StaticVar("Foo").symbol(3) == "Foo.3"


@pytest.mark.parametrize("operation, kind, symbol", [
    (ArithmeticOperation.ADD, OperatorKind.BINARY, "M+D"),
    (ArithmeticOperation.SUB, OperatorKind.BINARY, "M-D"),
    (ArithmeticOperation.AND, OperatorKind.BINARY, "M&D"),
    (ArithmeticOperation.OR, OperatorKind.BINARY, "M|D"),
    (ArithmeticOperation.NEG, OperatorKind.UNARY, "-M"),
    (ArithmeticOperation.NOT, OperatorKind.UNARY, "!M"),
    (ArithmeticOperation.EQ, OperatorKind.COMPARISON, "JEQ"),
    (ArithmeticOperation.GT, OperatorKind.COMPARISON, "JGT"),
    (ArithmeticOperation.LT, OperatorKind.COMPARISON, "JLT"),
])
def test_operator_code(operation, kind, symbol):
    code = operator_code(operation)
    assert code.kind == kind
    assert code.symbol == symbol


def test_vocabulary_sizes():
    assert len(Segment) == 8
    assert len(ArithmeticOperation) == 9


def test_command_text_form():
    assert str(Push(Segment.CONSTANT, 7)) == "push constant 7"
    assert str(Pop(Segment.STATIC, 2)) == "pop static 2"
    assert str(Arithmetic(ArithmeticOperation.AND)) == "and"


def test_commands_are_values():
    assert Push(Segment.LOCAL, 1) == Push(Segment.LOCAL, 1)
    assert Push(Segment.LOCAL, 1) != Pop(Segment.LOCAL, 1)
    with pytest.raises(AttributeError):
        Push(Segment.LOCAL, 1).index = 2
