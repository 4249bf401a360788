from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Union


class Segment(Enum):
    """
    Сегменты памяти виртуальной стековой машины.
    Значение элемента совпадает с написанием в исходном тексте.
    """

    LOCAL = "local"
    ARGUMENT = "argument"
    THIS = "this"
    THAT = "that"
    POINTER = "pointer"
    STATIC = "static"
    TEMP = "temp"
    CONSTANT = "constant"


class ArithmeticOperation(Enum):
    """Арифметические, логические операции и сравнения над вершиной стека."""

    ADD = "add"
    SUB = "sub"
    NEG = "neg"
    EQ = "eq"
    GT = "gt"
    LT = "lt"
    AND = "and"
    OR = "or"
    NOT = "not"


# --- Команды VM ---


@dataclass(frozen=True)
class Push:
    segment: Segment
    index: int

    def __str__(self) -> str:
        return f"push {self.segment.value} {self.index}"


@dataclass(frozen=True)
class Pop:
    segment: Segment
    index: int

    def __str__(self) -> str:
        return f"pop {self.segment.value} {self.index}"


@dataclass(frozen=True)
class Arithmetic:
    operation: ArithmeticOperation

    def __str__(self) -> str:
        return self.operation.value


Command = Union[Push, Pop, Arithmetic]


# --- Целевая платформа (Hack) ---

SP = "SP"  # Ячейка указателя стека, RAM[0]
POINTER_BASE = 3  # pointer 0/1 -> RAM[3]/RAM[4] (THIS/THAT)
TEMP_BASE = 5  # temp 0..7 -> RAM[5..12]
VARIABLE_BASE = 16  # Первый адрес для переменных ассемблера (в т.ч. static)

RAM_SIZE = 24577  # 16K данных + экран 8K + клавиатура
ROM_SIZE = 32768
MAX_CONSTANT = 0x7FFF  # Наибольшее значение A-инструкции
WORD_MASK = 0xFFFF

PREDEFINED_SYMBOLS: dict[str, int] = {
    "SP": 0,
    "LCL": 1,
    "ARG": 2,
    "THIS": 3,
    "THAT": 4,
    **{f"R{i}": i for i in range(16)},
    "SCREEN": 16384,
    "KBD": 24576,
}

# Сегменты с базовым указателем в памяти
SEGMENT_POINTERS: dict[Segment, str] = {
    Segment.LOCAL: "LCL",
    Segment.ARGUMENT: "ARG",
    Segment.THIS: "THIS",
    Segment.THAT: "THAT",
}


# --- Стратегии адресации ---


@dataclass(frozen=True)
class Indirect:
    """Адрес = RAM[base_pointer] + index."""

    base_pointer: str


@dataclass(frozen=True)
class Direct:
    """Адрес = base_address + index."""

    base_address: int


@dataclass(frozen=True)
class Constant:
    """Обращения к памяти нет, операнд - сам индекс."""


@dataclass(frozen=True)
class StaticVar:
    """Символический адрес '<namespace>.<index>'."""

    namespace: str

    def symbol(self, index: int) -> str:
        return f"{self.namespace}.{index}"


AddressingStrategy = Union[Indirect, Direct, Constant, StaticVar]


def addressing_strategy(segment: Segment, namespace: str) -> AddressingStrategy:
    """Определяет способ вычисления адреса для сегмента."""
    if segment in SEGMENT_POINTERS:
        return Indirect(SEGMENT_POINTERS[segment])
    if segment == Segment.POINTER:
        return Direct(POINTER_BASE)
    if segment == Segment.TEMP:
        return Direct(TEMP_BASE)
    if segment == Segment.CONSTANT:
        return Constant()
    if segment == Segment.STATIC:
        return StaticVar(namespace)
    raise ValueError(f"Unknown segment: {segment}")


# --- Таблица операций ---


class OperatorKind(Enum):
    BINARY = "binary"  # Двухместная, результат на место левого операнда
    UNARY = "unary"  # Одноместная, меняет вершину стека на месте
    COMPARISON = "comparison"  # Вычитание и условный переход


@dataclass(frozen=True)
class OperatorCode:
    """
    Способ трансляции операции.
    Для BINARY/UNARY `symbol` - вычисление (comp) целевой машины,
    для COMPARISON - мнемоника условного перехода.
    """

    kind: OperatorKind
    symbol: str


OPERATOR_CODES: dict[ArithmeticOperation, OperatorCode] = {
    ArithmeticOperation.ADD: OperatorCode(OperatorKind.BINARY, "M+D"),
    ArithmeticOperation.SUB: OperatorCode(OperatorKind.BINARY, "M-D"),
    ArithmeticOperation.AND: OperatorCode(OperatorKind.BINARY, "M&D"),
    ArithmeticOperation.OR: OperatorCode(OperatorKind.BINARY, "M|D"),
    ArithmeticOperation.NEG: OperatorCode(OperatorKind.UNARY, "-M"),
    ArithmeticOperation.NOT: OperatorCode(OperatorKind.UNARY, "!M"),
    ArithmeticOperation.EQ: OperatorCode(OperatorKind.COMPARISON, "JEQ"),
    ArithmeticOperation.GT: OperatorCode(OperatorKind.COMPARISON, "JGT"),
    ArithmeticOperation.LT: OperatorCode(OperatorKind.COMPARISON, "JLT"),
}


def operator_code(operation: ArithmeticOperation) -> OperatorCode:
    return OPERATOR_CODES[operation]
