"""
Deferred source rewriter.

Edits are recorded as positions in the original buffer and realised only by
:meth:`SourceRewriter.materialize`, so the order in which patches are
computed never shifts the offsets used by later patches.
"""

from __future__ import annotations

import bisect
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List

from .errors import RewriteConflictError
from .source import SourceBuffer, SourceRange

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Replacement:
    range: SourceRange
    text: str


class SourceRewriter:
    """
    Edit list over one immutable :class:`SourceBuffer`.

    Rules:
        - insertions at the same offset keep their relative order; an
          ``insert_after=False`` insertion goes in front of the ones already
          recorded there
        - replaced ranges may not overlap each other
        - an insertion may touch a replaced range at its boundaries but not
          fall strictly inside it
        - at a replacement's begin, insertions come first; at its end they
          come after the replacement text
    """

    def __init__(self, source: SourceBuffer):
        self.source = source
        self._inserts: Dict[int, List[str]] = defaultdict(list)
        self._replacements: List[Replacement] = []

    @property
    def has_edits(self) -> bool:
        return bool(self._inserts) or bool(self._replacements)

    @property
    def edit_count(self) -> int:
        return sum(len(texts) for texts in self._inserts.values()) + len(self._replacements)

    def insert(
        self,
        offset: int,
        text: str,
        insert_after: bool = True,
        indent_new_lines: bool = False,
    ) -> None:
        """
        Insert ``text`` at ``offset`` of the original buffer.

        With ``indent_new_lines`` every line of ``text`` after the first is
        prefixed with the leading whitespace of the line containing
        ``offset``.
        """
        if offset < 0 or offset > self.source.end:
            raise RewriteConflictError(
                f"Insert offset {offset} is outside of {self.source.path}"
            )
        for replacement in self._replacements:
            if replacement.range.begin < offset < replacement.range.end:
                raise RewriteConflictError(
                    f"Insert at {self.source.describe(offset)} falls inside replaced range "
                    f"{replacement.range}"
                )
        if indent_new_lines and "\n" in text:
            indent = self.source.leading_whitespace(offset)
            text = text.replace("\n", "\n" + indent)
        if insert_after:
            self._inserts[offset].append(text)
        else:
            self._inserts[offset].insert(0, text)

    def replace(self, source_range: SourceRange, text: str) -> None:
        """Replace ``source_range`` of the original buffer with ``text``."""
        if source_range.end > self.source.end:
            raise RewriteConflictError(
                f"Range {source_range} exceeds the end of {self.source.path}"
            )
        if source_range.is_empty:
            if text:
                self.insert(source_range.begin, text)
            return
        for replacement in self._replacements:
            if replacement.range.overlaps(source_range):
                raise RewriteConflictError(
                    f"Replacement {source_range} overlaps {replacement.range} "
                    f"in {self.source.path}"
                )
        for offset in self._inserts:
            if source_range.begin < offset < source_range.end:
                raise RewriteConflictError(
                    f"Replacement {source_range} swallows an insert at "
                    f"{self.source.describe(offset)}"
                )
        self._replacements.append(Replacement(source_range, text))
        self._replacements.sort(key=lambda item: item.range.begin)

    def remove(self, source_range: SourceRange) -> None:
        self.replace(source_range, "")

    def materialize(self) -> str:
        """Apply all edits to a copy of the original text."""
        text = self.source.text
        offsets = sorted(self._inserts)
        pieces: List[str] = []

        def copy_segment(begin: int, end: int) -> None:
            cursor = begin
            start = bisect.bisect_left(offsets, begin)
            stop = bisect.bisect_right(offsets, end)
            for offset in offsets[start:stop]:
                pieces.append(text[cursor:offset])
                pieces.extend(self._inserts[offset])
                cursor = offset
            pieces.append(text[cursor:end])

        position = 0
        for replacement in self._replacements:
            copy_segment(position, replacement.range.begin)
            pieces.append(replacement.text)
            position = replacement.range.end
        copy_segment(position, len(text))

        logger.debug("Materialized %d edits for %s", self.edit_count, self.source.path)
        return "".join(pieces)
