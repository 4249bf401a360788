from __future__ import annotations
import logging
import os
import re
import sys
from typing import Iterator, Optional, Sequence

from isa import (SP, Arithmetic, ArithmeticOperation, Command, Constant,
                 Direct, Indirect, OperatorKind, Pop, Push, Segment,
                 StaticVar, addressing_strategy, operator_code)

INDEX_RE = re.compile(r"\+?[0-9]+")
COMMENT_MARKER = "//"


class VMSyntaxError(Exception):
    """
    Ошибка разбора исходного текста. Всегда привязана к номеру строки (с 1).
    Подклассы соответствуют видам ошибок.
    """

    def __init__(self, line_number: int):
        self.line_number = line_number
        super().__init__(line_number)

    def describe(self) -> str:
        return "Unable to parse"

    def __str__(self) -> str:
        return f"Syntax error on line {self.line_number}: {self.describe()}"


class UnknownSyntax(VMSyntaxError):
    pass


class UnrecognisedCommand(VMSyntaxError):
    def __init__(self, command: str, line_number: int):
        self.command = command
        super().__init__(line_number)

    def describe(self) -> str:
        return f"Unrecognised command '{self.command}'"


class InvalidArgumentCount(VMSyntaxError):
    def __init__(self, args: list[str], expected: int, line_number: int):
        self.arguments = list(args)
        self.expected = expected
        super().__init__(line_number)

    def describe(self) -> str:
        return f"Invalid number of arguments, expected {self.expected}, got {len(self.arguments)}"


class InvalidSegment(VMSyntaxError):
    def __init__(self, segment: str, line_number: int):
        self.segment = segment
        super().__init__(line_number)

    def describe(self) -> str:
        return f"Unrecognised segment '{self.segment}'"


class InvalidIndex(VMSyntaxError):
    def __init__(self, index: str, line_number: int):
        self.index = index
        super().__init__(line_number)

    def describe(self) -> str:
        return f"Invalid index '{self.index}'"


# --- Разбор ---


def sanitised_lines(text: str) -> Iterator[tuple[int, str]]:
    """
    Отбрасывает комментарии и пустые строки.
    Номера строк сохраняются, чтобы ошибки указывали на исходное место.
    """
    for number, raw in enumerate(text.splitlines(), start=1):
        line = raw.split(COMMENT_MARKER, 1)[0].strip()
        if line:
            yield number, line


def parse_line(line: str, line_number: int) -> Command:
    tokens = line.split()
    if not tokens:
        raise UnknownSyntax(line_number)

    head, tail = tokens[0], tokens[1:]
    if head in ("push", "pop"):
        if len(tail) != 2:
            raise InvalidArgumentCount(tail, 2, line_number)
        try:
            segment = Segment(tail[0])
        except ValueError:
            raise InvalidSegment(tail[0], line_number) from None
        if not INDEX_RE.fullmatch(tail[1]):
            raise InvalidIndex(tail[1], line_number)
        index = int(tail[1])
        return Push(segment, index) if head == "push" else Pop(segment, index)

    try:
        operation = ArithmeticOperation(head)
    except ValueError:
        raise UnrecognisedCommand(head, line_number) from None
    # Токены после мнемоники операции не проверяются
    return Arithmetic(operation)


def parse(text: str) -> list[Command]:
    """Разбирает весь текст; первая же ошибка прерывает разбор."""
    commands = [parse_line(line, number) for number, line in sanitised_lines(text)]
    logging.info(f"Parsed {len(commands)} commands")
    return commands


# --- Генерация кода ---

# Кладёт D на вершину стека и сдвигает SP
PUSH_EPILOGUE = [f"@{SP}", "A=M", "M=D", f"@{SP}", "M=M+1"]

# Уменьшает SP и загружает снятое значение в A
POP_PROLOGUE = [f"@{SP}", "M=M-1", "A=M", "A=M"]

# Обмен A <-> D без вспомогательных ячеек
SWAP_A_D = ["D=D+A", "A=D-A", "D=D-A"]


class CodeGenerator:
    """
    Генератор ассемблерного кода. Каждой команде соответствует один блок,
    блоки не объединяются и не оптимизируются.
    Единственное состояние - счётчик сравнений для уникальных меток.
    """

    TRUE_TAG = "_TRUE"
    CONTINUE_TAG = "_CONT"

    def __init__(self):
        self.branch_counter = 0

    def generate(self, commands: Sequence[Command], namespace: str) -> str:
        blocks = [self.translate(command, namespace) for command in commands]
        logging.info(f"Generated {len(blocks)} blocks for namespace '{namespace}'")
        if not blocks:
            return ""
        return "\n\n".join("\n".join(block) for block in blocks) + "\n"

    def translate(self, command: Command, namespace: str) -> list[str]:
        """Блок для одной команды: строка-комментарий и фиксированное раскрытие."""
        lines = [f"// {command}"]
        if isinstance(command, Push):
            lines += self.emit_push(command.segment, command.index, namespace)
        elif isinstance(command, Pop):
            lines += self.emit_pop(command.segment, command.index, namespace)
        elif isinstance(command, Arithmetic):
            lines += self.emit_arithmetic(command.operation)
        else:
            raise ValueError(f"Unknown command: {command!r}")
        return lines

    def emit_address(self, segment: Segment, index: int, namespace: str) -> list[str]:
        """Загружает в A адрес операнда (для constant - само значение)."""
        strategy = addressing_strategy(segment, namespace)
        if isinstance(strategy, Indirect):
            return [f"@{strategy.base_pointer}", "D=M", f"@{index}", "A=D+A"]
        if isinstance(strategy, Direct):
            return [f"@{strategy.base_address + index}"]
        if isinstance(strategy, Constant):
            return [f"@{index}"]
        if isinstance(strategy, StaticVar):
            return [f"@{strategy.symbol(index)}"]
        raise ValueError(f"Unknown addressing strategy: {strategy!r}")

    def emit_push(self, segment: Segment, index: int, namespace: str) -> list[str]:
        load = "D=A" if segment == Segment.CONSTANT else "D=M"
        return self.emit_address(segment, index, namespace) + [load] + PUSH_EPILOGUE

    def emit_pop(self, segment: Segment, index: int, namespace: str) -> list[str]:
        # pop constant N допускается и пишет в RAM[N]
        return (
            self.emit_address(segment, index, namespace)
            + ["D=A"]
            + POP_PROLOGUE
            + SWAP_A_D
            + ["M=D"]
        )

    def emit_arithmetic(self, operation: ArithmeticOperation) -> list[str]:
        code = operator_code(operation)
        if code.kind == OperatorKind.BINARY:
            return [f"@{SP}", "AM=M-1", "D=M", "A=A-1", f"M={code.symbol}"]
        if code.kind == OperatorKind.UNARY:
            return [f"@{SP}", "A=M-1", f"M={code.symbol}"]
        if code.kind == OperatorKind.COMPARISON:
            return self.emit_comparison(code.symbol)
        raise ValueError(f"Unknown operator kind: {code.kind}")

    def emit_comparison(self, jump: str) -> list[str]:
        """
        left - right, переход по условию на метку "истина".
        Ложь: 0 (все биты сброшены), истина: -1 (все биты установлены).
        """
        self.branch_counter += 1
        true_label = f"{self.TRUE_TAG}.{self.branch_counter}"
        continue_label = f"{self.CONTINUE_TAG}.{self.branch_counter}"
        logging.debug(f"Comparison {jump}: labels {true_label}, {continue_label}")
        return [
            f"@{SP}",
            "AM=M-1",
            "D=M",
            "A=A-1",
            "D=M-D",
            f"@{true_label}",
            f"D;{jump}",
            f"@{SP}",
            "A=M-1",
            "M=0",
            f"@{continue_label}",
            "0;JMP",
            f"({true_label})",
            f"@{SP}",
            "A=M-1",
            "M=-1",
            f"({continue_label})",
        ]


def translate(source: str, namespace: str) -> str:
    """Полный конвейер в памяти: текст VM -> текст ассемблера."""
    return CodeGenerator().generate(parse(source), namespace)


def namespace_for(source_file: str) -> str:
    """Имя файла без каталога и расширения."""
    return os.path.splitext(os.path.basename(source_file))[0]


def main(source_file: str, target_file: Optional[str] = None):
    """Главная функция. Ошибки ввода-вывода и разбора пробрасываются."""
    with open(source_file, 'r', encoding='utf-8') as f:
        source_code = f.read()

    if target_file is None:
        target_file = os.path.splitext(source_file)[0] + ".asm"

    commands = parse(source_code)
    code = CodeGenerator().generate(commands, namespace_for(source_file))

    with open(target_file, 'w', encoding='utf-8') as f:
        f.write(code)

    print(f"Successfully translated {source_file} to {target_file}")
    print(f"Total commands: {len(commands)}")


def cli(argv: Optional[list[str]] = None) -> int:
    """Точка входа командной строки; возвращает код завершения."""
    if argv is None:
        argv = sys.argv[1:]
    if len(argv) != 1:
        print("Usage: python translator.py <source_file.vm>")
        return 1

    logging.basicConfig(level=logging.INFO, format='%(levelname)-8s %(message)s')
    source_file = argv[0]
    try:
        main(source_file)
    except VMSyntaxError as e:
        logging.error(str(e))
        return 1
    except OSError as e:
        logging.critical(f"Error: cannot process '{source_file}': {e}")
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(cli())
