from __future__ import annotations
import logging
import re
import sys
from dataclasses import dataclass
from typing import Optional, Union

from isa import (MAX_CONSTANT, PREDEFINED_SYMBOLS, RAM_SIZE, ROM_SIZE,
                 VARIABLE_BASE, WORD_MASK)

STACK_BASE = 256
DEFAULT_LIMIT = 100000

# Начальное состояние RAM, как в стандартных тестовых сценариях платформы
DEFAULT_RAM: dict[int, int] = {
    0: STACK_BASE,  # SP
    1: 300,  # LCL
    2: 400,  # ARG
    3: 3000,  # THIS
    4: 3010,  # THAT
}

SYMBOL_RE = re.compile(r"[A-Za-z_.$:][A-Za-z0-9_.$:]*")
LABEL_RE = re.compile(r"\((" + SYMBOL_RE.pattern + r")\)")
JUMPS = ("JGT", "JEQ", "JGE", "JLT", "JNE", "JLE", "JMP")


def to_signed(word: int) -> int:
    """16-битное слово в знаковое число (дополнительный код)."""
    word &= WORD_MASK
    return word - 0x10000 if word & 0x8000 else word


@dataclass(frozen=True)
class AInstruction:
    """@value: загрузка адреса/константы в регистр A."""

    value: int
    line: int


@dataclass(frozen=True)
class CInstruction:
    """dest=comp;jump"""

    dest: str
    comp: str
    jump: str
    line: int


HackInstruction = Union[AInstruction, CInstruction]


def _parse_c_instruction(text: str, line: int) -> CInstruction:
    dest, comp, jump = "", text, ""
    if "=" in comp:
        dest, comp = comp.split("=", 1)
        if not dest or any(ch not in "AMD" for ch in dest) or len(set(dest)) != len(dest):
            raise ValueError(f"Line {line}: invalid destination '{dest}'")
    if ";" in comp:
        comp, jump = comp.split(";", 1)
        if jump not in JUMPS:
            raise ValueError(f"Line {line}: invalid jump '{jump}'")
    if not comp:
        raise ValueError(f"Line {line}: missing computation in '{text}'")
    return CInstruction(dest=dest, comp=comp, jump=jump, line=line)


def load_program(asm_text: str) -> list[HackInstruction]:
    """
    Двухпроходная загрузка ассемблерного текста.
    Проход 1: адреса меток в ROM. Проход 2: A/C-инструкции,
    неизвестные символы становятся переменными начиная с RAM[16].
    """
    symbols = dict(PREDEFINED_SYMBOLS)
    cleaned: list[tuple[int, str]] = []

    for number, raw in enumerate(asm_text.splitlines(), start=1):
        text = "".join(raw.split("//", 1)[0].split())
        if not text:
            continue
        if text.startswith("("):
            m = LABEL_RE.fullmatch(text)
            if not m:
                raise ValueError(f"Line {number}: invalid label declaration '{text}'")
            name = m.group(1)
            if name in symbols:
                raise ValueError(f"Line {number}: duplicate symbol '{name}'")
            symbols[name] = len(cleaned)
            continue
        cleaned.append((number, text))

    if len(cleaned) > ROM_SIZE:
        raise ValueError(f"Program too large: {len(cleaned)} instructions")

    program: list[HackInstruction] = []
    next_variable = VARIABLE_BASE
    for number, text in cleaned:
        if text.startswith("@"):
            operand = text[1:]
            if operand.isdigit():
                value = int(operand)
                if value > MAX_CONSTANT:
                    raise ValueError(f"Line {number}: constant {value} out of range")
            elif SYMBOL_RE.fullmatch(operand):
                if operand not in symbols:
                    symbols[operand] = next_variable
                    logging.debug(f"Variable '{operand}' allocated at RAM[{next_variable}]")
                    next_variable += 1
                value = symbols[operand]
            else:
                raise ValueError(f"Line {number}: invalid A-instruction '{text}'")
            program.append(AInstruction(value=value, line=number))
        else:
            program.append(_parse_c_instruction(text, number))
    return program


class DataPath:
    """
    Тракт данных: регистры A, D, PC и память данных.
    Все значения хранятся как 16-битные слова без знака.
    """

    def __init__(self, ram_size: int = RAM_SIZE, initial_ram: Optional[dict[int, int]] = None):
        self.ram = [0] * ram_size
        self.a = 0
        self.d = 0
        self.pc = 0
        for addr, value in (DEFAULT_RAM if initial_ram is None else initial_ram).items():
            self.write(addr, value)

    def read(self, addr: int) -> int:
        if not (0 <= addr < len(self.ram)):
            raise IndexError(f"Memory read out of bounds: {addr}")
        return self.ram[addr]

    def write(self, addr: int, value: int):
        if not (0 <= addr < len(self.ram)):
            raise IndexError(f"Memory write out of bounds: {addr}")
        self.ram[addr] = value & WORD_MASK

    def operand(self, name: str) -> int:
        if name == "A":
            return self.a
        if name == "D":
            return self.d
        if name == "M":
            return self.read(self.a)
        if name in ("0", "1"):
            return int(name)
        raise ValueError(f"Unknown ALU operand: {name}")

    def alu(self, comp: str) -> int:
        """Вычисление comp: X, !X, -X, X+Y, X-Y, X&Y, X|Y (X, Y из A, D, M, 0, 1)."""
        if len(comp) == 1:
            result = self.operand(comp)
        elif len(comp) == 2 and comp[0] == "!":
            result = ~self.operand(comp[1])
        elif len(comp) == 2 and comp[0] == "-":
            result = -self.operand(comp[1])
        elif len(comp) == 3:
            x, op, y = self.operand(comp[0]), comp[1], self.operand(comp[2])
            if op == "+":
                result = x + y
            elif op == "-":
                result = x - y
            elif op == "&":
                result = x & y
            elif op == "|":
                result = x | y
            else:
                raise ValueError(f"Unknown ALU operation: {comp}")
        else:
            raise ValueError(f"Unknown ALU operation: {comp}")
        return result & WORD_MASK

    @property
    def sp(self) -> int:
        return self.ram[PREDEFINED_SYMBOLS["SP"]]

    def stack(self) -> list[int]:
        """Содержимое стека от дна до вершины (знаковые значения)."""
        return [to_signed(word) for word in self.ram[STACK_BASE:self.sp]]


def jump_taken(jump: str, value: int) -> bool:
    v = to_signed(value)
    if jump == "":
        return False
    if jump == "JMP":
        return True
    if jump == "JGT":
        return v > 0
    if jump == "JEQ":
        return v == 0
    if jump == "JGE":
        return v >= 0
    if jump == "JLT":
        return v < 0
    if jump == "JNE":
        return v != 0
    if jump == "JLE":
        return v <= 0
    raise ValueError(f"Unknown jump: {jump}")


class ControlUnit:
    """Блок управления: выбирает инструкцию по PC и исполняет её за один такт."""

    def __init__(self, datapath: DataPath, program: list[HackInstruction]):
        self.datapath = datapath
        self.program = program
        self.tick_counter = 0

    @property
    def halted(self) -> bool:
        return not (0 <= self.datapath.pc < len(self.program))

    def tick(self):
        dp = self.datapath
        instr = self.program[dp.pc]
        self.tick_counter += 1

        if isinstance(instr, AInstruction):
            dp.a = instr.value
            dp.pc += 1
        else:
            # Запись в M идёт по старому значению A, переход тоже
            addr = dp.a
            out = dp.alu(instr.comp)
            if "M" in instr.dest:
                dp.write(addr, out)
            if "A" in instr.dest:
                dp.a = out
            if "D" in instr.dest:
                dp.d = out
            dp.pc = addr if jump_taken(instr.jump, out) else dp.pc + 1

        logging.debug(
            f"TICK: {self.tick_counter:5} | "
            f"LINE: {instr.line:5} | "
            f"PC: {dp.pc:5} | A: {dp.a:5} | D: {to_signed(dp.d):6} | "
            f"SP: {dp.sp}"
        )


def simulation(asm_text: str, limit: int = DEFAULT_LIMIT,
               initial_ram: Optional[dict[int, int]] = None) -> tuple[DataPath, int]:
    """
    Основной цикл симуляции. Останов - выход PC за конец программы.
    Возвращает (datapath, число тактов).
    """
    program = load_program(asm_text)
    print(f"Program size: {len(program)} instructions.")

    datapath = DataPath(initial_ram=initial_ram)
    control_unit = ControlUnit(datapath, program)

    logging.info("Starting simulation...")
    while not control_unit.halted and control_unit.tick_counter < limit:
        try:
            control_unit.tick()
        except (ValueError, IndexError) as e:
            logging.error(f"Error during simulation: {e}")
            break

    if control_unit.halted:
        logging.info("Simulation halted at end of program.")
    elif control_unit.tick_counter >= limit:
        logging.warning("Simulation limit reached.")

    logging.info(f"Simulation finished. Stack: {datapath.stack()}")
    return datapath, control_unit.tick_counter


def main(code_file: str) -> int:
    """Главная функция для запуска симулятора из командной строки."""
    logging.basicConfig(level=logging.INFO, format='%(levelname)-8s %(message)s')
    try:
        with open(code_file, 'r', encoding='utf-8') as f:
            asm_text = f.read()
    except OSError as e:
        logging.critical(f"Error: cannot read code file '{code_file}': {e}")
        return 1

    try:
        datapath, ticks = simulation(asm_text)
    except ValueError as e:
        logging.critical(f"Error: {e}")
        return 1

    print("-" * 40)
    print(f"Stack: {datapath.stack()}")
    print(f"Total ticks: {ticks}")
    print("-" * 40)
    return 0


def cli(argv: Optional[list[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    if len(argv) != 1:
        print("Usage: python machine.py <code_file.asm>")
        return 1
    return main(argv[0])


if __name__ == '__main__':
    sys.exit(cli())
