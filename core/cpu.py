from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from core.errors import MemoryOverflow


DEFAULT_MEMORY_SIZE = 100


@dataclass
class CPUState:
    memory_size: int = DEFAULT_MEMORY_SIZE
    memory: List[int] = field(default_factory=list)
    program_counter: int = 0
    accumulator: int = 0
    inputs: List[int] = field(default_factory=list)
    input_cursor: int = 0

    def __post_init__(self) -> None:
        if not self.memory:
            self.memory = [0] * self.memory_size
        elif len(self.memory) != self.memory_size:
            raise ValueError(f"memory has {len(self.memory)} words, expected {self.memory_size}")

    def reset(self) -> None:
        self.memory = [0] * self.memory_size
        self.program_counter = 0
        self.accumulator = 0
        self.input_cursor = 0

    def load_image(self, image: Iterable[int]) -> None:
        words = list(image)
        if len(words) > self.memory_size:
            raise MemoryOverflow(f"Image of {len(words)} words does not fit in {self.memory_size} words")
        self.memory = words + [0] * (self.memory_size - len(words))

    def set_inputs(self, values: Iterable[int]) -> None:
        self.inputs = [int(value) for value in values]
        self.input_cursor = 0

    def in_bounds(self, addr: int) -> bool:
        return 0 <= addr < self.memory_size

    def read(self, addr: int) -> int:
        if not self.in_bounds(addr):
            raise MemoryOverflow(f"Read outside memory: {addr}", text=str(addr))
        return self.memory[addr]

    def write(self, addr: int, value: int) -> None:
        if not self.in_bounds(addr):
            raise MemoryOverflow(f"Write outside memory: {addr}", text=str(addr))
        self.memory[addr] = value

    def next_input(self) -> Optional[int]:
        if self.input_cursor >= len(self.inputs):
            return None
        value = self.inputs[self.input_cursor]
        self.input_cursor += 1
        return value

    def remaining_inputs(self) -> int:
        return max(0, len(self.inputs) - self.input_cursor)
