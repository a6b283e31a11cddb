from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional

from core.cpu import CPUState
from core.errors import EmulationError, InputExhausted, InvalidOpcode, MemoryOverflow
from core.instructions import ExecResult, execute
from core.model import Program
from core.profile import MachineProfile


logger = logging.getLogger(__name__)


class MachineStatus(Enum):
    RUNNING = "Running"
    HALTED = "Halted"


@dataclass
class StepOutcome:
    halted: bool = False
    error: Optional[EmulationError] = None
    output: Optional[str] = None
    address: Optional[int] = None
    word: Optional[int] = None


@dataclass
class RunResult:
    steps: int = 0
    output: List[str] = field(default_factory=list)
    error: Optional[EmulationError] = None

    @property
    def text(self) -> str:
        return "".join(self.output)


class Emulator:
    def __init__(self, cpu: CPUState, profile: Optional[MachineProfile] = None) -> None:
        self.cpu = cpu
        self.profile = profile or MachineProfile(memory_size=cpu.memory_size)
        self.status = MachineStatus.RUNNING
        self.image: List[int] = list(cpu.memory)

    @classmethod
    def for_program(
        cls,
        program: Program,
        inputs: Iterable[int] = (),
        profile: Optional[MachineProfile] = None,
    ) -> "Emulator":
        cpu = CPUState(memory_size=len(program.memory))
        cpu.load_image(program.memory)
        cpu.set_inputs(inputs)
        return cls(cpu, profile)

    @property
    def halted(self) -> bool:
        return self.status is MachineStatus.HALTED

    def reset(self) -> None:
        inputs = list(self.cpu.inputs)
        self.cpu.reset()
        self.cpu.load_image(self.image)
        self.cpu.set_inputs(inputs)
        self.status = MachineStatus.RUNNING

    def step(self) -> StepOutcome:
        if self.halted:
            return StepOutcome(halted=True)

        cpu = self.cpu
        address = cpu.program_counter
        if not cpu.in_bounds(address):
            self.status = MachineStatus.HALTED
            error = MemoryOverflow(
                f"Program counter {address} ran past the end of memory ({cpu.memory_size} words)",
                text=str(address),
            )
            return StepOutcome(halted=True, error=error, address=address)

        word = cpu.memory[address]
        cpu.program_counter += 1
        try:
            result: ExecResult = execute(cpu, word)
            self._apply_policies(result, address, word)
        except EmulationError as exc:
            self.status = MachineStatus.HALTED
            if exc.line_no is None:
                exc.line_no = address + 1
            return StepOutcome(halted=True, error=exc, address=address, word=word)

        if result.next_pc is not None:
            cpu.program_counter = result.next_pc
        if result.halt:
            self.status = MachineStatus.HALTED
            logger.debug("halted at address %d", address)
            return StepOutcome(halted=True, output=result.output, address=address, word=word)
        return StepOutcome(output=result.output, address=address, word=word)

    def _apply_policies(self, result: ExecResult, address: int, word: int) -> None:
        if result.invalid:
            if self.profile.on_invalid_opcode == "error":
                raise InvalidOpcode(f"Invalid instruction {word} at address {address}", address + 1, str(word))
            logger.warning("address %d: invalid instruction %d treated as no-op", address, word)
        if result.input_exhausted:
            if self.profile.on_input_exhausted == "error":
                raise InputExhausted(f"No input left for INP at address {address}", address + 1, str(word))
            logger.warning("address %d: input exhausted, accumulator set to 0", address)

    def run(self, raise_on_error: bool = True) -> RunResult:
        result = RunResult()
        while not self.halted:
            outcome = self.step()
            result.steps += 1
            if outcome.output is not None:
                result.output.append(outcome.output)
            if outcome.error is not None:
                result.error = outcome.error
                if raise_on_error:
                    raise outcome.error
        return result


def run_program(
    program: Program,
    inputs: Iterable[int] = (),
    profile: Optional[MachineProfile] = None,
) -> RunResult:
    return Emulator.for_program(program, inputs, profile).run()
