import pytest

from core.assembler import Assembler, assemble, assemble_file, parse_integer
from core.errors import (
    MemoryOverflow,
    MissingOperand,
    OperandOutOfRange,
    ProgramTooLarge,
    SourceNotFound,
    SourceUnreadable,
    SymbolTableFull,
    UndefinedSymbol,
    UnknownMnemonic,
)
from core.profile import MachineProfile


COUNTDOWN = """\
     INP
LOOP SUB ONE
     OUT
     BRP LOOP
     HLT
ONE  DAT 1
"""


def test_scenario_a_memory_image():
    program = assemble("INP\nSTA 99\nLDA 99\nOUT\nHLT\n")
    assert program.memory[:5] == [901, 399, 599, 902, 0]
    assert program.line_count == 5
    assert all(word == 0 for word in program.memory[5:])


def test_labels_resolve_to_declaring_line():
    program = assemble(COUNTDOWN)
    assert program.labels == {"LOOP": 1, "ONE": 5}
    assert program.memory[:6] == [901, 205, 902, 801, 0, 1]


def test_forward_and_backward_references_agree():
    program = assemble("BRA END\nHLT\nEND HLT\nBRA END\n")
    assert program.get_label("END") == 2
    assert program.memory[0] == program.memory[3] == 602


def test_forward_reference_to_dat_line():
    program = assemble("BRA LOOP\nHLT\nLOOP DAT\n")
    assert program.memory[:3] == [602, 0, 0]


def test_reassembling_identical_source_is_idempotent():
    assembler = Assembler()
    first = assembler.assemble(COUNTDOWN)
    second = assembler.assemble(COUNTDOWN)
    assert first.memory == second.memory
    assert first.labels == second.labels


@pytest.mark.parametrize(
    ("source", "expected"),
    [
        ("DAT -5", -5),
        ("DAT +7", 7),
        ("DAT 42", 42),
        ("DAT", 0),
        ("DAT ADD", 100),
        ("LDA 5 6", 505),
        ("OUT 5", 902),
        ("HLT 12", 0),
        ("OUT FOO", 902),
        ("HLT LOOP", 0),
        ("INP Y", 901),
        ("SELF DAT SELF", 0),
    ],
)
def test_operand_values(source, expected):
    assert assemble(source).memory[0] == expected


def test_blank_lines_keep_their_address():
    program = assemble("HLT\n\nX DAT 3\n")
    assert program.get_label("X") == 2
    assert program.memory[:3] == [0, 0, 3]


def test_mnemonic_in_label_position_wins():
    program = assemble("ADD DAT 5\n")
    assert program.memory[0] == 100
    assert program.labels == {}


def test_duplicate_label_keeps_first_address():
    program = assemble("X DAT 1\nX DAT 2\nLDA X\n")
    assert program.memory[:3] == [1, 2, 500]


def test_source_lines_are_recorded():
    program = assemble(COUNTDOWN)
    line = program.line_for_address(1)
    assert line.line_no == 2
    assert line.label == "LOOP"
    assert line.mnemonic == "SUB"
    assert line.operand == "ONE"
    assert program.line_for_address(50) is None


def test_undefined_symbol_is_rejected():
    with pytest.raises(UndefinedSymbol) as exc:
        assemble("HLT\nADD FOO\n")
    assert exc.value.line_no == 2
    assert exc.value.text == "ADD FOO"
    assert "FOO" in exc.value.message


def test_undefined_symbol_can_assemble_as_zero():
    program = assemble("ADD FOO\n", MachineProfile(on_undefined_symbol="zero"))
    assert program.memory[0] == 100


def test_missing_operand_is_rejected():
    with pytest.raises(MissingOperand):
        assemble("ADD\n")


def test_unknown_mnemonic_is_rejected():
    with pytest.raises(UnknownMnemonic) as exc:
        assemble("X Y Z\n")
    assert exc.value.line_no == 1


def test_program_larger_than_memory_is_rejected():
    with pytest.raises(ProgramTooLarge) as exc:
        assemble("HLT\n" * 101)
    assert isinstance(exc.value, MemoryOverflow)
    assert exc.value.line_no == 101


def test_trailing_blank_lines_do_not_count_against_memory():
    program = assemble("HLT\nHLT\n\n\n", MachineProfile(memory_size=2))
    assert program.memory == [0, 0]


def test_symbol_capacity_is_enforced():
    with pytest.raises(SymbolTableFull):
        assemble("A DAT\nB DAT\n", MachineProfile(symbol_capacity=14))


def test_assemble_file_reads_source(source_file):
    path = source_file("INP\nOUT\nHLT\n")
    assert assemble_file(path).memory[:3] == [901, 902, 0]


def test_assemble_file_missing_source(tmp_path):
    with pytest.raises(SourceNotFound) as exc:
        assemble_file(tmp_path / "missing.asm")
    assert "No such file" in exc.value.message


@pytest.mark.parametrize(
    ("text", "expected"),
    [("12", 12), ("-3", -3), ("+4", 4), ("1_000", None), ("12abc", None), ("", None)],
)
def test_parse_integer(text, expected):
    assert parse_integer(text) == expected


def test_only_newlines_separate_source_lines():
    program = assemble("A\x0cB DAT 1\nX DAT 5\nC\x0bD LDA X\n")
    assert program.get_label("X") == 1
    assert program.get_label("A\x0cB") == 0
    assert program.memory[:3] == [1, 5, 501]


def test_carriage_returns_are_whitespace():
    program = assemble("X DAT 4\r\nLDA X\r\n")
    assert program.memory[:2] == [4, 500]


@pytest.mark.parametrize("source", ["LDA 150", "BRA -1", "ADD ADD", "STA 100"])
def test_address_operand_must_fit_two_digits(source):
    with pytest.raises(OperandOutOfRange) as exc:
        assemble(source)
    assert exc.value.line_no == 1
    assert exc.value.text == source


def test_highest_address_is_accepted():
    assert assemble("LDA 99\n").memory[0] == 599


def test_assemble_file_rejects_undecodable_source(tmp_path):
    path = tmp_path / "bad.asm"
    path.write_bytes(b"HLT \xff\n")
    with pytest.raises(SourceUnreadable) as exc:
        assemble_file(path)
    assert "bad.asm" in exc.value.text
