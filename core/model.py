from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from core.symbols import SymbolTable


@dataclass(frozen=True)
class SourceLine:
    line_no: int
    text: str
    mnemonic: Optional[str] = None
    label: Optional[str] = None
    operand: Optional[str] = None


@dataclass
class Program:
    memory: List[int]
    symbols: SymbolTable
    lines: List[SourceLine] = field(default_factory=list)

    @property
    def line_count(self) -> int:
        return len(self.lines)

    @property
    def labels(self) -> Dict[str, int]:
        return {entry.name: entry.value for entry in self.symbols.labels()}

    def get_label(self, name: str) -> Optional[int]:
        return self.symbols.get_label(name)

    def line_for_address(self, addr: int) -> Optional[SourceLine]:
        if 0 <= addr < len(self.lines):
            return self.lines[addr]
        return None
