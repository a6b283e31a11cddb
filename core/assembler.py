from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import List, Optional

from core.errors import (
    MissingOperand,
    OperandOutOfRange,
    ProgramTooLarge,
    SourceNotFound,
    SourceUnreadable,
    UndefinedSymbol,
    UnknownMnemonic,
)
from core.instructions import INSTRUCTION_SET, WORD_BASE, InstructionDef, OperandRule
from core.lexer import Token, tokenize_line
from core.model import Program, SourceLine
from core.profile import MachineProfile
from core.symbols import SymbolKind, SymbolTable


logger = logging.getLogger(__name__)

INTEGER_RE = re.compile(r"[+-]?\d+")
WORD_LIMIT = 999


class Slot(IntEnum):
    LABEL = 0
    OP = 1
    DATA = 2


@dataclass
class _LineState:
    line_no: int
    text: str
    slot: int = Slot.LABEL
    label: Optional[str] = None
    instruction: Optional[InstructionDef] = None
    operand: Optional[str] = None


def parse_integer(text: str) -> Optional[int]:
    if INTEGER_RE.fullmatch(text):
        return int(text, 10)
    return None


class Assembler:
    """Two-pass assembler for the decimal machine.

    Pass 1 records every label declared in the first slot of a line. Pass 2
    walks the same source again and adds mnemonic and operand values into
    ``memory[line]``. A fresh symbol table is built for every call, so
    reassembling the same text always yields the same image.
    """

    def __init__(self, profile: Optional[MachineProfile] = None) -> None:
        self.profile = profile or MachineProfile()

    def assemble_file(self, path: Path | str) -> Program:
        try:
            with open(path, "r", encoding="utf-8") as handle:
                text = handle.read()
        except OSError as exc:
            raise SourceNotFound(f"No such file: {path}", text=str(path)) from exc
        except UnicodeDecodeError as exc:
            raise SourceUnreadable(f"Source is not valid UTF-8: {path}", text=str(path)) from exc
        return self.assemble(text)

    def assemble(self, text: str) -> Program:
        lines = text.split("\n")
        while lines and not lines[-1].strip():
            lines.pop()
        if len(lines) > self.profile.memory_size:
            raise ProgramTooLarge(
                f"Program has {len(lines)} lines but memory holds {self.profile.memory_size} words",
                self.profile.memory_size + 1,
                lines[self.profile.memory_size],
            )

        symbols = SymbolTable(self.profile.symbol_capacity)
        symbols.initialize()
        self._collect_labels(lines, symbols)

        memory = [0] * self.profile.memory_size
        source_lines = self._emit(lines, symbols, memory)
        logger.debug("assembled %d lines, %d labels", len(lines), len(symbols.labels()))
        return Program(memory=memory, symbols=symbols, lines=source_lines)

    def _collect_labels(self, lines: List[str], symbols: SymbolTable) -> None:
        for line_no, text in enumerate(lines):
            state = _LineState(line_no, text)
            tokenize_line(text, line_no, lambda token: self._collect_token(token, state, symbols))

    def _collect_token(self, token: Token, state: _LineState, symbols: SymbolTable) -> None:
        entry = symbols.lookup(token.text)
        if entry is not None:
            if entry.kind is SymbolKind.MNEMONIC:
                state.slot = Slot.OP
            elif state.slot == Slot.LABEL:
                logger.warning(
                    "line %d: duplicate label %s ignored, keeping address %d",
                    state.line_no + 1,
                    token.text,
                    entry.value,
                )
            state.slot += 1
            return
        if state.slot == Slot.LABEL:
            symbols.insert(SymbolKind.LABEL, token.text, state.line_no, state.line_no + 1)
        state.slot += 1

    def _emit(self, lines: List[str], symbols: SymbolTable, memory: List[int]) -> List[SourceLine]:
        source_lines: List[SourceLine] = []
        for line_no, text in enumerate(lines):
            state = _LineState(line_no, text)
            tokenize_line(text, line_no, lambda token: self._emit_token(token, state, symbols, memory))
            self._finish_line(state, memory)
            source_lines.append(
                SourceLine(
                    line_no=line_no + 1,
                    text=text,
                    mnemonic=state.instruction.mnemonic if state.instruction else None,
                    label=state.label,
                    operand=state.operand,
                )
            )
        return source_lines

    def _emit_token(self, token: Token, state: _LineState, symbols: SymbolTable, memory: List[int]) -> None:
        entry = symbols.lookup(token.text)
        line_no = state.line_no

        if state.slot == Slot.LABEL:
            if entry is not None and entry.kind is SymbolKind.LABEL:
                state.label = token.text
                state.slot += 1
                return
            if entry is not None and entry.kind is SymbolKind.MNEMONIC:
                state.slot = Slot.OP

        if state.slot == Slot.OP:
            if entry is None or entry.kind is not SymbolKind.MNEMONIC:
                raise UnknownMnemonic(f"Unknown mnemonic: {token.text}", line_no + 1, state.text)
            state.instruction = INSTRUCTION_SET[token.text]
            memory[line_no] += entry.value
            state.slot += 1
            return

        if state.slot == Slot.DATA:
            state.operand = token.text
            instruction = state.instruction
            if instruction is not None and instruction.operand is OperandRule.IGNORED:
                logger.warning("line %d: operand %s ignored for %s", line_no + 1, token.text, instruction.mnemonic)
            else:
                value = self._operand_value(token, entry, state)
                if instruction is not None and instruction.operand is OperandRule.REQUIRED:
                    self._check_address(value, token, state)
                memory[line_no] += value
            state.slot += 1
            return

        logger.warning("line %d: extra token %s ignored", line_no + 1, token.text)
        state.slot += 1

    def _operand_value(self, token: Token, entry, state: _LineState) -> int:
        if entry is not None:
            return entry.value
        value = parse_integer(token.text)
        if value is not None:
            return value
        if self.profile.on_undefined_symbol == "zero":
            logger.warning("line %d: undefined symbol %s assembled as 0", state.line_no + 1, token.text)
            return 0
        raise UndefinedSymbol(f"Undefined symbol: {token.text}", state.line_no + 1, state.text)

    def _check_address(self, value: int, token: Token, state: _LineState) -> None:
        if not 0 <= value < WORD_BASE:
            raise OperandOutOfRange(
                f"Address {token.text} = {value} does not fit in 0..{WORD_BASE - 1}",
                state.line_no + 1,
                state.text,
            )

    def _finish_line(self, state: _LineState, memory: List[int]) -> None:
        instruction = state.instruction
        if instruction is not None and instruction.operand is OperandRule.REQUIRED and state.operand is None:
            raise MissingOperand(f"Missing operand for {instruction.mnemonic}", state.line_no + 1, state.text)
        word = memory[state.line_no]
        if abs(word) > WORD_LIMIT:
            logger.warning("line %d: word %d does not fit in three digits", state.line_no + 1, word)


def assemble(text: str, profile: Optional[MachineProfile] = None) -> Program:
    return Assembler(profile).assemble(text)


def assemble_file(path: Path | str, profile: Optional[MachineProfile] = None) -> Program:
    return Assembler(profile).assemble_file(path)
