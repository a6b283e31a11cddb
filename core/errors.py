from __future__ import annotations

from typing import Optional


class MachineError(Exception):
    def __init__(self, message: str, line_no: Optional[int] = None, text: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.line_no = line_no
        self.text = text


class AssemblyError(MachineError):
    pass


class EmulationError(MachineError):
    pass


class SourceNotFound(AssemblyError):
    pass


class SourceUnreadable(AssemblyError):
    pass


class UndefinedSymbol(AssemblyError):
    pass


class OperandOutOfRange(AssemblyError):
    pass


class UnknownMnemonic(AssemblyError):
    pass


class MissingOperand(AssemblyError):
    pass


class SymbolTableFull(AssemblyError):
    pass


class MemoryOverflow(EmulationError):
    pass


class ProgramTooLarge(AssemblyError, MemoryOverflow):
    """Raised when the source has more lines than memory has words."""


class InvalidOpcode(EmulationError):
    pass


class InputExhausted(EmulationError):
    pass


class InvalidCharacter(EmulationError):
    pass
