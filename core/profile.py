from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from core.cpu import DEFAULT_MEMORY_SIZE
from core.instructions import WORD_BASE
from core.symbols import DEFAULT_CAPACITY


MAX_MEMORY_SIZE = WORD_BASE
INPUT_EXHAUSTED_POLICIES = {"zero", "error"}
INVALID_OPCODE_POLICIES = {"ignore", "error"}
UNDEFINED_SYMBOL_POLICIES = {"error", "zero"}


@dataclass(frozen=True)
class MachineProfile:
    name: str = "Decimal Machine"
    description: str = ""
    memory_size: int = DEFAULT_MEMORY_SIZE
    symbol_capacity: int = DEFAULT_CAPACITY
    on_input_exhausted: str = "zero"
    on_invalid_opcode: str = "ignore"
    on_undefined_symbol: str = "error"
    schema_version: int = 1


class ProfileError(Exception):
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def _profiles_dir() -> Path:
    return Path(__file__).resolve().parent / "assets" / "profiles"


def default_profile_path() -> Path:
    return _profiles_dir() / "default.json"


def list_bundled() -> List[Path]:
    directory = _profiles_dir()
    if not directory.exists():
        return []
    return sorted(directory.glob("*.json"))


def load_default() -> MachineProfile:
    return load_profile(default_profile_path())


def load_profile(path: Path | str) -> MachineProfile:
    resolved = Path(path).expanduser().resolve()
    data = _load_json(resolved)
    return validate_profile(data)


def _load_json(path: Path) -> dict:
    if not path.exists():
        raise ProfileError(f"Profile not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except json.JSONDecodeError as exc:
        raise ProfileError(f"Invalid JSON in {path}: {exc}") from exc
    except OSError as exc:
        raise ProfileError(f"Failed to read profile: {exc}") from exc


def _int_field(data: dict, key: str, default: int, low: int, high: Optional[int] = None) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ProfileError(f"{key} must be an integer.")
    if value < low or (high is not None and value > high):
        bound = f"{low}..{high}" if high is not None else f">= {low}"
        raise ProfileError(f"{key} must be in range {bound}, got {value}.")
    return value


def _choice_field(data: dict, key: str, default: str, allowed: set[str]) -> str:
    value = data.get(key, default)
    if value not in allowed:
        choices = ", ".join(sorted(allowed))
        raise ProfileError(f"{key} must be one of: {choices}.")
    return value


def validate_profile(data: dict) -> MachineProfile:
    if not isinstance(data, dict):
        raise ProfileError("Profile must be a JSON object.")
    schema_version = data.get("schema_version")
    if not isinstance(schema_version, int):
        raise ProfileError("schema_version must be an integer.")
    if schema_version != 1:
        raise ProfileError(f"Unsupported schema_version: {schema_version}")
    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ProfileError("name is required and must be a string.")
    description = data.get("description") or ""
    if not isinstance(description, str):
        raise ProfileError("description must be a string if provided.")
    memory_size = _int_field(data, "memory_size", DEFAULT_MEMORY_SIZE, 1, MAX_MEMORY_SIZE)
    symbol_capacity = _int_field(data, "symbol_capacity", DEFAULT_CAPACITY, 1)
    return MachineProfile(
        name=name.strip(),
        description=description.strip(),
        memory_size=memory_size,
        symbol_capacity=symbol_capacity,
        on_input_exhausted=_choice_field(data, "on_input_exhausted", "zero", INPUT_EXHAUSTED_POLICIES),
        on_invalid_opcode=_choice_field(data, "on_invalid_opcode", "ignore", INVALID_OPCODE_POLICIES),
        on_undefined_symbol=_choice_field(data, "on_undefined_symbol", "error", UNDEFINED_SYMBOL_POLICIES),
        schema_version=schema_version,
    )
