from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Callable, Dict, List, Optional, Tuple

from core.cpu import CPUState
from core.errors import InvalidCharacter


WORD_BASE = 100
MAX_CODE_POINT = 0x10FFFF
SURROGATE_FIRST = 0xD800
SURROGATE_LAST = 0xDFFF


class Opcode(IntEnum):
    HLT = 0
    ADD = 100
    SUB = 200
    STA = 300
    LDD = 400
    LDA = 500
    BRA = 600
    BRZ = 700
    BRP = 800
    IO = 900


class IOOperation(IntEnum):
    INP = 1
    OUT = 2
    PRT = 3


class OperandRule(Enum):
    REQUIRED = "required"
    OPTIONAL = "optional"
    IGNORED = "ignored"


@dataclass
class ExecResult:
    next_pc: int | None = None
    halt: bool = False
    output: str | None = None
    input_exhausted: bool = False
    invalid: bool = False


@dataclass(frozen=True)
class InstructionDef:
    mnemonic: str
    value: int
    summary: str
    syntax: str
    operand: OperandRule


Executor = Callable[[CPUState, int], ExecResult]


def decode(word: int) -> Tuple[int, int]:
    operand = word % WORD_BASE
    return word - operand, operand


def exec_hlt(cpu: CPUState, operand: int) -> ExecResult:
    return ExecResult(halt=True)


def exec_add(cpu: CPUState, operand: int) -> ExecResult:
    cpu.accumulator += cpu.read(operand)
    return ExecResult()


def exec_sub(cpu: CPUState, operand: int) -> ExecResult:
    cpu.accumulator -= cpu.read(operand)
    return ExecResult()


def exec_sta(cpu: CPUState, operand: int) -> ExecResult:
    cpu.write(operand, cpu.accumulator)
    return ExecResult()


def exec_ldd(cpu: CPUState, operand: int) -> ExecResult:
    cpu.accumulator = cpu.read(cpu.read(operand))
    return ExecResult()


def exec_lda(cpu: CPUState, operand: int) -> ExecResult:
    cpu.accumulator = cpu.read(operand)
    return ExecResult()


def exec_bra(cpu: CPUState, operand: int) -> ExecResult:
    return ExecResult(next_pc=operand)


def exec_brz(cpu: CPUState, operand: int) -> ExecResult:
    if cpu.accumulator == 0:
        return ExecResult(next_pc=operand)
    return ExecResult()


def exec_brp(cpu: CPUState, operand: int) -> ExecResult:
    if cpu.accumulator > 0:
        return ExecResult(next_pc=operand)
    return ExecResult()


def exec_inp(cpu: CPUState) -> ExecResult:
    value = cpu.next_input()
    if value is None:
        cpu.accumulator = 0
        return ExecResult(input_exhausted=True)
    cpu.accumulator = value
    return ExecResult()


def exec_out(cpu: CPUState) -> ExecResult:
    return ExecResult(output=str(cpu.accumulator))


def exec_prt(cpu: CPUState) -> ExecResult:
    value = cpu.accumulator
    # surrogate halves cannot be written to a text stream
    if not 0 <= value <= MAX_CODE_POINT or SURROGATE_FIRST <= value <= SURROGATE_LAST:
        raise InvalidCharacter(f"Accumulator value {value} is not a character code", text=str(value))
    return ExecResult(output=chr(value))


IO_EXECUTORS: Dict[IOOperation, Callable[[CPUState], ExecResult]] = {
    IOOperation.INP: exec_inp,
    IOOperation.OUT: exec_out,
    IOOperation.PRT: exec_prt,
}


def exec_io(cpu: CPUState, operand: int) -> ExecResult:
    try:
        io_op = IOOperation(operand)
    except ValueError:
        return ExecResult(invalid=True)
    return IO_EXECUTORS[io_op](cpu)


EXECUTORS: Dict[Opcode, Executor] = {
    Opcode.HLT: exec_hlt,
    Opcode.ADD: exec_add,
    Opcode.SUB: exec_sub,
    Opcode.STA: exec_sta,
    Opcode.LDD: exec_ldd,
    Opcode.LDA: exec_lda,
    Opcode.BRA: exec_bra,
    Opcode.BRZ: exec_brz,
    Opcode.BRP: exec_brp,
    Opcode.IO: exec_io,
}

_missing = set(Opcode) - set(EXECUTORS)
if _missing:
    raise RuntimeError(f"Opcodes without an executor: {sorted(op.name for op in _missing)}")
_missing_io = set(IOOperation) - set(IO_EXECUTORS)
if _missing_io:
    raise RuntimeError(f"I/O operations without an executor: {sorted(op.name for op in _missing_io)}")


def get_executor(opcode: int) -> Optional[Executor]:
    try:
        return EXECUTORS[Opcode(opcode)]
    except ValueError:
        return None


def execute(cpu: CPUState, word: int) -> ExecResult:
    opcode, operand = decode(word)
    executor = get_executor(opcode)
    if executor is None:
        return ExecResult(invalid=True)
    return executor(cpu, operand)


INSTRUCTION_DEFS: List[InstructionDef] = [
    InstructionDef("HLT", Opcode.HLT, "Halt the machine.", "HLT", OperandRule.IGNORED),
    InstructionDef("ADD", Opcode.ADD, "Add the word at LOC to the accumulator.", "ADD LOC", OperandRule.REQUIRED),
    InstructionDef(
        "SUB", Opcode.SUB, "Subtract the word at LOC from the accumulator.", "SUB LOC", OperandRule.REQUIRED
    ),
    InstructionDef("STA", Opcode.STA, "Store the accumulator at LOC.", "STA LOC", OperandRule.REQUIRED),
    InstructionDef(
        "LDD", Opcode.LDD, "Load the word whose address is stored at LOC.", "LDD LOC", OperandRule.REQUIRED
    ),
    InstructionDef("LDA", Opcode.LDA, "Load the word at LOC into the accumulator.", "LDA LOC", OperandRule.REQUIRED),
    InstructionDef("BRA", Opcode.BRA, "Branch to LOC.", "BRA LOC", OperandRule.REQUIRED),
    InstructionDef("BRZ", Opcode.BRZ, "Branch to LOC if the accumulator is zero.", "BRZ LOC", OperandRule.REQUIRED),
    InstructionDef(
        "BRP", Opcode.BRP, "Branch to LOC if the accumulator is positive.", "BRP LOC", OperandRule.REQUIRED
    ),
    InstructionDef(
        "INP", Opcode.IO + IOOperation.INP, "Read the next input into the accumulator.", "INP", OperandRule.IGNORED
    ),
    InstructionDef(
        "OUT", Opcode.IO + IOOperation.OUT, "Output the accumulator as a number.", "OUT", OperandRule.IGNORED
    ),
    InstructionDef(
        "PRT", Opcode.IO + IOOperation.PRT, "Output the accumulator as a character.", "PRT", OperandRule.IGNORED
    ),
    InstructionDef("DAT", 0, "Reserve a word holding VALUE (default 0).", "DAT [VALUE]", OperandRule.OPTIONAL),
]

INSTRUCTION_SET: Dict[str, InstructionDef] = {defn.mnemonic: defn for defn in INSTRUCTION_DEFS}


def get_instruction_defs() -> List[InstructionDef]:
    return list(INSTRUCTION_DEFS)


def mnemonic_for(word: int) -> Optional[str]:
    opcode, operand = decode(word)
    if opcode == Opcode.IO:
        for defn in INSTRUCTION_DEFS:
            if defn.value == word:
                return defn.mnemonic
        return None
    try:
        return Opcode(opcode).name
    except ValueError:
        return None
