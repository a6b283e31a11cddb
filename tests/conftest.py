from pathlib import Path

import pytest

from core.assembler import assemble
from core.emulator import Emulator
from core.profile import MachineProfile


@pytest.fixture
def profile() -> MachineProfile:
    return MachineProfile()


@pytest.fixture
def strict_profile() -> MachineProfile:
    return MachineProfile(on_input_exhausted="error", on_invalid_opcode="error")


@pytest.fixture
def machine():
    def _build(source: str, inputs=(), profile=None) -> Emulator:
        program = assemble(source, profile)
        return Emulator.for_program(program, inputs, profile)

    return _build


@pytest.fixture
def source_file(tmp_path: Path):
    def _write(text: str, name: str = "program.asm") -> Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return _write
