"""
Immutable source buffer and source ranges.

All positions handled by soaproxy are character offsets into the original,
unmodified text of one translation unit. Ranges are half-open
(``begin`` inclusive, ``end`` exclusive). Nothing in this module mutates the
buffer; edits are collected by :mod:`soaproxy.rewriter` and realised once.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple


@dataclass(frozen=True, order=True)
class SourceRange:
    """Half-open character range ``[begin, end)`` in the original buffer."""

    begin: int
    end: int

    def __post_init__(self) -> None:
        if self.begin < 0 or self.end < self.begin:
            raise ValueError(f"Invalid source range [{self.begin}, {self.end})")

    def __len__(self) -> int:
        return self.end - self.begin

    @property
    def is_empty(self) -> bool:
        return self.begin == self.end

    def contains(self, offset: int) -> bool:
        return self.begin <= offset < self.end

    def encloses(self, other: "SourceRange") -> bool:
        return self.begin <= other.begin and other.end <= self.end

    def overlaps(self, other: "SourceRange") -> bool:
        return self.begin < other.end and other.begin < self.end

    def __str__(self) -> str:
        return f"[{self.begin}, {self.end})"


class SourceBuffer:
    """
    Read-only view of a source file with line/column translation.

    Lines and columns are 1-based, offsets are 0-based, matching what
    compilers print in diagnostics.
    """

    def __init__(self, text: str, path: str = "<memory>"):
        self._text = text
        self.path = path
        self._line_starts: List[int] = [0]
        for index, char in enumerate(text):
            if char == "\n":
                self._line_starts.append(index + 1)

    @property
    def text(self) -> str:
        return self._text

    def __len__(self) -> int:
        return len(self._text)

    @property
    def end(self) -> int:
        return len(self._text)

    def dump(self, source_range: SourceRange) -> str:
        """Verbatim text of a range."""
        return self._text[source_range.begin : source_range.end]

    def line_col(self, offset: int) -> Tuple[int, int]:
        line_index = bisect.bisect_right(self._line_starts, offset) - 1
        return line_index + 1, offset - self._line_starts[line_index] + 1

    def offset(self, line: int, column: int = 1) -> int:
        if line < 1 or line > len(self._line_starts):
            raise ValueError(f"Line {line} is outside of {self.path}")
        return min(self._line_starts[line - 1] + column - 1, len(self._text))

    def begin_of_line(self, offset: int) -> int:
        line, _ = self.line_col(offset)
        return self._line_starts[line - 1]

    def next_line(self, offset: int) -> int:
        """Offset of the first character of the line after ``offset``, or EOF."""
        line, _ = self.line_col(offset)
        if line < len(self._line_starts):
            return self._line_starts[line]
        return len(self._text)

    def end_of_line(self, offset: int) -> int:
        """Offset of the newline terminating the line of ``offset`` (or EOF)."""
        newline = self._text.find("\n", offset)
        return len(self._text) if newline < 0 else newline

    def leading_whitespace(self, offset: int) -> str:
        begin = self.begin_of_line(offset)
        line = self._text[begin : self.end_of_line(offset)]
        return line[: len(line) - len(line.lstrip(" \t"))]

    def only_whitespace_before(self, offset: int) -> bool:
        return self._text[self.begin_of_line(offset) : offset].strip(" \t") == ""

    def only_whitespace_after(self, offset: int) -> bool:
        return self._text[offset : self.end_of_line(offset)].strip(" \t\r") == ""

    def find(self, char: str, start: int, stop: Optional[int] = None) -> int:
        """First occurrence of ``char`` at or after ``start``; -1 if absent."""
        if stop is None:
            return self._text.find(char, start)
        return self._text.find(char, start, stop)

    def extend_through(self, source_range: SourceRange, char: str) -> SourceRange:
        """
        Extend a range so it ends right after the next ``char``.

        Only whitespace may separate the range end and the character; if
        anything else comes first the range is returned unchanged.
        """
        position = source_range.end
        while position < len(self._text) and self._text[position] in " \t\r\n":
            position += 1
        if position < len(self._text) and self._text[position] == char:
            return SourceRange(source_range.begin, position + 1)
        return source_range

    def extend_to_statement_end(self, source_range: SourceRange) -> SourceRange:
        """
        Extend a range through the first ``;`` outside brackets after it.

        This covers trailing declarators such as ``} g;`` or
        ``} table[2] = {...};``. The range is returned unchanged when a
        bracket of an enclosing scope closes first.
        """
        depth = 0
        for position in range(source_range.end, len(self._text)):
            char = self._text[position]
            if char in "([{":
                depth += 1
            elif char in ")]}":
                if depth == 0:
                    return source_range
                depth -= 1
            elif char == ";" and depth == 0:
                return SourceRange(source_range.begin, position + 1)
        return source_range

    def whole_lines(self, source_range: SourceRange) -> SourceRange:
        """Grow a range to full lines if it is alone on its lines."""
        if self.only_whitespace_before(source_range.begin) and self.only_whitespace_after(
            source_range.end
        ):
            return SourceRange(
                self.begin_of_line(source_range.begin), self.next_line(source_range.end)
            )
        return source_range

    def describe(self, offset: int) -> str:
        line, column = self.line_col(offset)
        return f"{self.path}:{line}:{column}"


class SourceRangeSet:
    """
    Ordered set of non-overlapping ranges.

    Inserting a range that overlaps existing members merges them, so the
    set stays sorted and disjoint regardless of insertion order.
    """

    def __init__(self) -> None:
        self._ranges: List[SourceRange] = []

    def add(self, source_range: SourceRange) -> None:
        begin, end = source_range.begin, source_range.end
        kept: List[SourceRange] = []
        for existing in self._ranges:
            if existing.overlaps(SourceRange(begin, end)) or (
                source_range.is_empty and existing.contains(begin)
            ):
                begin = min(begin, existing.begin)
                end = max(end, existing.end)
            else:
                kept.append(existing)
        bisect.insort(kept, SourceRange(begin, end))
        self._ranges = kept

    def __iter__(self) -> Iterator[SourceRange]:
        return iter(self._ranges)

    def __len__(self) -> int:
        return len(self._ranges)

    def __bool__(self) -> bool:
        return bool(self._ranges)

    def __contains__(self, source_range: object) -> bool:
        return source_range in self._ranges

    @property
    def first(self) -> Optional[SourceRange]:
        return self._ranges[0] if self._ranges else None

    @property
    def last(self) -> Optional[SourceRange]:
        return self._ranges[-1] if self._ranges else None

    def gaps(self) -> List[SourceRange]:
        """Non-empty regions strictly between consecutive members."""
        return [
            SourceRange(left.end, right.begin)
            for left, right in zip(self._ranges, self._ranges[1:])
            if right.begin > left.end
        ]
