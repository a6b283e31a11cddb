from __future__ import annotations

from typing import List

from core.cpu import CPUState
from core.instructions import IOOperation, Opcode, decode
from core.model import Program


def format_symbols(program: Program) -> List[str]:
    lines = ["Assembler Tokens:"]
    for entry in program.symbols:
        lines.append(f"{entry.key} => {entry.value}")
    return lines


def format_memory_layout(program: Program) -> List[str]:
    lines = ["Memory Layout:"]
    for addr in range(program.line_count):
        lines.append(f"{addr}> {program.memory[addr]}")
    return lines


def format_assembly_dump(program: Program) -> str:
    return "\n".join(format_symbols(program) + [""] + format_memory_layout(program) + ["", ""])


def format_trace(cpu: CPUState) -> str:
    pc = cpu.program_counter
    word = cpu.memory[pc]
    opcode, operand = decode(word)
    target = cpu.memory[operand] if cpu.in_bounds(operand) else 0
    return f"{pc}> REG: {cpu.accumulator} | OP: {opcode} | LOC: {operand} | MEM[LOC]: {target}"


def format_io(word: int, output: str | None, accumulator: int) -> str | None:
    opcode, operand = decode(word)
    if opcode != Opcode.IO:
        return None
    if operand == IOOperation.INP:
        return f"INP: {accumulator}"
    if operand == IOOperation.OUT and output is not None:
        return f"OUT: {output}"
    if operand == IOOperation.PRT and output is not None:
        return f"PRT: {output}"
    return None
