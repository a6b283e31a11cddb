import pytest

from core.errors import SymbolTableFull
from core.symbols import SymbolKind, SymbolTable, fnv1a_32


MNEMONIC_VALUES = {
    "HLT": 0,
    "ADD": 100,
    "SUB": 200,
    "STA": 300,
    "LDD": 400,
    "LDA": 500,
    "BRA": 600,
    "BRZ": 700,
    "BRP": 800,
    "INP": 901,
    "OUT": 902,
    "PRT": 903,
    "DAT": 0,
}


def test_fnv1a_known_vectors():
    assert fnv1a_32("") == 0x811C9DC5
    assert fnv1a_32("a") == 0xE40C292C
    assert fnv1a_32("foobar") == 0xBF9CF968


def test_initialize_registers_every_mnemonic():
    table = SymbolTable()
    table.initialize()
    assert len(table) == len(MNEMONIC_VALUES)
    for name, value in MNEMONIC_VALUES.items():
        entry = table.lookup(name)
        assert entry is not None
        assert entry.kind is SymbolKind.MNEMONIC
        assert entry.value == value
        assert entry.key == fnv1a_32(name)


def test_mnemonic_keys_are_distinct():
    keys = {fnv1a_32(name) for name in MNEMONIC_VALUES}
    assert len(keys) == len(MNEMONIC_VALUES)


def test_lookup_is_case_sensitive_and_returns_none_for_unknown():
    table = SymbolTable()
    table.initialize()
    assert table.lookup("add") is None
    assert table.lookup("LOOP") is None


def test_insert_and_get_label():
    table = SymbolTable()
    table.initialize()
    table.insert(SymbolKind.LABEL, "LOOP", 4)
    assert table.get_label("LOOP") == 4
    assert table.get_label("ADD") is None
    assert [entry.name for entry in table.labels()] == ["LOOP"]


def test_similar_label_names_do_not_collide():
    table = SymbolTable()
    for index, name in enumerate(["ab", "ba", "AB", "a1", "1a", "LOOP", "POOL"]):
        table.insert(SymbolKind.LABEL, name, index)
    assert table.get_label("ba") == 1
    assert table.get_label("POOL") == 6


def test_capacity_is_enforced():
    table = SymbolTable(capacity=2)
    table.insert(SymbolKind.LABEL, "A", 0)
    table.insert(SymbolKind.LABEL, "B", 1)
    with pytest.raises(SymbolTableFull) as exc:
        table.insert(SymbolKind.LABEL, "C", 2, line_no=3)
    assert exc.value.line_no == 3
    assert exc.value.text == "C"
