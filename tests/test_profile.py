import json
from pathlib import Path

import pytest

from core.assembler import Assembler
from core.profile import MachineProfile, ProfileError, list_bundled, load_default, load_profile, validate_profile


def _write_profile(path: Path, data) -> Path:
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


def _base(**overrides) -> dict:
    data = {"schema_version": 1, "name": "Test"}
    data.update(overrides)
    return data


def test_default_profile_matches_builtin_defaults():
    profile = load_default()
    assert profile.name == "Decimal Machine"
    assert profile.memory_size == 100
    assert profile.symbol_capacity == 256
    assert profile.on_input_exhausted == "zero"
    assert profile.on_invalid_opcode == "ignore"
    assert profile.on_undefined_symbol == "error"


def test_bundled_profiles_load():
    names = {path.name for path in list_bundled()}
    assert {"default.json", "strict.json"} <= names
    for path in list_bundled():
        load_profile(path)


def test_missing_fields_take_defaults():
    profile = validate_profile(_base())
    assert profile == MachineProfile(name="Test")


def test_custom_memory_size_drives_assembler(tmp_path):
    path = _write_profile(tmp_path / "small.json", _base(memory_size=10))
    program = Assembler(load_profile(path)).assemble("HLT\n")
    assert len(program.memory) == 10


@pytest.mark.parametrize(
    ("data", "message"),
    [
        ([], "JSON object"),
        ({"name": "x"}, "schema_version"),
        (_base(schema_version=2), "Unsupported schema_version"),
        (_base(name=""), "name"),
        (_base(memory_size=0), "memory_size"),
        (_base(memory_size=101), "memory_size"),
        (_base(memory_size=True), "memory_size"),
        (_base(symbol_capacity="lots"), "symbol_capacity"),
        (_base(on_input_exhausted="crash"), "on_input_exhausted"),
        (_base(on_invalid_opcode="panic"), "on_invalid_opcode"),
        (_base(on_undefined_symbol="guess"), "on_undefined_symbol"),
    ],
)
def test_invalid_profiles_are_rejected(data, message):
    with pytest.raises(ProfileError) as exc:
        validate_profile(data)
    assert message in exc.value.message


def test_missing_profile_file(tmp_path):
    with pytest.raises(ProfileError) as exc:
        load_profile(tmp_path / "nope.json")
    assert "not found" in exc.value.message


def test_malformed_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{", encoding="utf-8")
    with pytest.raises(ProfileError) as exc:
        load_profile(path)
    assert "Invalid JSON" in exc.value.message


def test_memory_size_is_capped_at_addressable_words():
    profile = validate_profile(_base(memory_size=100))
    assert profile.memory_size == 100
    with pytest.raises(ProfileError) as exc:
        validate_profile(_base(memory_size=200))
    assert "memory_size" in exc.value.message
