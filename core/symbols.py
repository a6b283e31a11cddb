from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional

from core.errors import SymbolTableFull
from core.instructions import INSTRUCTION_DEFS


logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 256

FNV_OFFSET_BASIS = 0x811C9DC5
FNV_PRIME = 0x01000193


def fnv1a_32(name: str) -> int:
    h = FNV_OFFSET_BASIS
    for byte in name.encode("utf-8"):
        h ^= byte
        h = (h * FNV_PRIME) & 0xFFFFFFFF
    return h


class SymbolKind(Enum):
    LABEL = "label"
    MNEMONIC = "mnemonic"


@dataclass(frozen=True)
class Symbol:
    kind: SymbolKind
    key: int
    name: str
    value: int


class SymbolTable:
    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        self.capacity = capacity
        self._entries: List[Symbol] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Symbol]:
        return iter(self._entries)

    def initialize(self) -> None:
        self._entries = []
        for defn in INSTRUCTION_DEFS:
            self.insert(SymbolKind.MNEMONIC, defn.mnemonic, int(defn.value))

    def lookup(self, name: str) -> Optional[Symbol]:
        key = fnv1a_32(name)
        for entry in self._entries:
            if entry.key == key and entry.name == name:
                return entry
        return None

    def insert(self, kind: SymbolKind, name: str, value: int, line_no: Optional[int] = None) -> Symbol:
        if len(self._entries) >= self.capacity:
            raise SymbolTableFull(
                f"Symbol table full ({self.capacity} entries), cannot add {name}",
                line_no,
                name,
            )
        entry = Symbol(kind=kind, key=fnv1a_32(name), name=name, value=value)
        self._entries.append(entry)
        logger.debug("symbol %s %s => %d", kind.value, name, value)
        return entry

    def labels(self) -> List[Symbol]:
        return [entry for entry in self._entries if entry.kind is SymbolKind.LABEL]

    def get_label(self, name: str) -> Optional[int]:
        entry = self.lookup(name)
        if entry is None or entry.kind is not SymbolKind.LABEL:
            return None
        return entry.value
