from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterator, List


SEPARATORS = frozenset(" \t\n\r")


@dataclass(frozen=True)
class Token:
    text: str
    start: int
    end: int
    line_no: int
    slot: int


TokenVisitor = Callable[[Token], None]


def iter_tokens(line: str, line_no: int) -> Iterator[Token]:
    """Yield the whitespace-delimited tokens of one source line.

    ``line_no`` is the 0-based line index, which is also the address the line
    assembles to. ``slot`` counts tokens within the line, starting at 0.
    """
    slot = 0
    start = -1
    for index, ch in enumerate(line):
        if ch in SEPARATORS:
            if start != -1:
                yield Token(line[start:index], start, index, line_no, slot)
                slot += 1
                start = -1
            continue
        if start == -1:
            start = index
    if start != -1:
        yield Token(line[start:], start, len(line), line_no, slot)


def tokenize_line(line: str, line_no: int, visitor: TokenVisitor) -> int:
    count = 0
    for token in iter_tokens(line, line_no):
        visitor(token)
        count += 1
    return count


def split_tokens(line: str) -> List[str]:
    return [token.text for token in iter_tokens(line, 0)]
