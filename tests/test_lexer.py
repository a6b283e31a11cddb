from core.lexer import Token, iter_tokens, split_tokens, tokenize_line


def test_tokens_report_span_line_and_slot():
    tokens = list(iter_tokens("LOOP  ADD\tONE\n", 4))
    assert tokens == [
        Token("LOOP", 0, 4, 4, 0),
        Token("ADD", 6, 9, 4, 1),
        Token("ONE", 10, 13, 4, 2),
    ]


def test_last_token_without_trailing_newline_is_reported():
    assert split_tokens("STA 99") == ["STA", "99"]


def test_blank_and_whitespace_lines_produce_no_tokens():
    seen = []
    assert tokenize_line("", 0, seen.append) == 0
    assert tokenize_line(" \t  \n", 1, seen.append) == 0
    assert seen == []


def test_slot_counter_increments_for_every_token():
    seen = []
    tokenize_line("  a b c d  ", 0, seen.append)
    assert [tok.slot for tok in seen] == [0, 1, 2, 3]
    assert all(tok.end > tok.start for tok in seen)


def test_carriage_returns_are_separators():
    assert split_tokens("HLT\r\n") == ["HLT"]
