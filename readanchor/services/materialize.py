"""Map offsets in normalized document text back to raw text units."""

from __future__ import annotations

import math
from bisect import bisect_right
from dataclasses import dataclass
from typing import Any, Iterator, List, Sequence, Tuple

from ..models.anchor import TextRange
from ..utils.logging import anchors_logger
from .documents import DocumentProvider
from .normalize import normalize

LOGGER = anchors_logger("materialize")


@dataclass(slots=True)
class IndexedUnit:
    """A text unit with its position inside the normalized document text."""

    index: int
    unit: Any
    raw: str
    norm_start: int
    norm_end: int
    started: bool
    in_whitespace: bool


def _emissions(raw: str, started: bool, in_whitespace: bool) -> Iterator[Tuple[int, bool, bool, bool]]:
    """Yield ``(raw_index, emits, started, in_whitespace)`` for each character.

    A non-space character always emits one normalized character; a run of
    whitespace emits exactly one, and only after something was emitted.
    """

    for idx, char in enumerate(raw):
        if char.isspace():
            emits = started and not in_whitespace
            in_whitespace = True
        else:
            emits = True
            started = True
            in_whitespace = False
        yield idx, emits, started, in_whitespace


class TextIndex:
    """Snapshot of a document's units and their normalized offsets."""

    def __init__(self, units: Sequence[Tuple[Any, str]]) -> None:
        self.units: List[IndexedUnit] = []
        position = 0
        started = False
        in_whitespace = False
        for idx, (unit, raw) in enumerate(units):
            raw = raw or ""
            entry = IndexedUnit(
                index=idx,
                unit=unit,
                raw=raw,
                norm_start=position,
                norm_end=position,
                started=started,
                in_whitespace=in_whitespace,
            )
            for _, emits, started, in_whitespace in _emissions(raw, started, in_whitespace):
                if emits:
                    position += 1
            entry.norm_end = position
            self.units.append(entry)

        self.text = normalize("".join(entry.raw for entry in self.units))
        self._emitting = [entry for entry in self.units if entry.norm_end > entry.norm_start]
        self._starts = [entry.norm_start for entry in self._emitting]

    @classmethod
    def from_document(cls, document: DocumentProvider) -> "TextIndex":
        return cls(list(document.enumerate_text_units()))

    def __len__(self) -> int:
        return len(self.text)

    @property
    def is_empty(self) -> bool:
        return not self.text

    def unit_index_of(self, unit: Any) -> int | None:
        for entry in self.units:
            if entry.unit is unit:
                return entry.index
        for entry in self.units:
            if entry.unit == unit:
                return entry.index
        return None

    def _unit_for(self, offset: int) -> IndexedUnit | None:
        pos = bisect_right(self._starts, offset) - 1
        if pos < 0:
            return None
        entry = self._emitting[pos]
        if entry.norm_start <= offset < entry.norm_end:
            return entry
        return None

    def _locate(self, offset: int, *, end: bool) -> Tuple[int, int] | None:
        """Return ``(unit index, raw offset)`` for a normalized offset.

        Start positions land on the raw character that produced the
        normalized character; end positions land just after it.
        """

        target = offset - 1 if end else offset
        entry = self._unit_for(target)
        if entry is None:
            return None
        count = entry.norm_start
        for raw_idx, emits, _, _ in _emissions(entry.raw, entry.started, entry.in_whitespace):
            if not emits:
                continue
            if count == target:
                return entry.index, raw_idx + 1 if end else raw_idx
            count += 1
        return None

    def to_normalized(self, unit_index: int, raw_offset: int) -> int | None:
        """Return the normalized offset of a raw ``(unit, offset)`` position."""

        if not 0 <= unit_index < len(self.units):
            return None
        entry = self.units[unit_index]
        if not 0 <= raw_offset <= len(entry.raw):
            return None
        count = entry.norm_start
        for raw_idx, emits, _, _ in _emissions(entry.raw, entry.started, entry.in_whitespace):
            if raw_idx >= raw_offset:
                break
            if emits:
                count += 1
        return min(count, len(self.text))

    def raw_between(self, start_unit: int, start_offset: int, end_unit: int, end_offset: int) -> str:
        if start_unit == end_unit:
            return self.units[start_unit].raw[start_offset:end_offset]
        parts = [self.units[start_unit].raw[start_offset:]]
        parts.extend(entry.raw for entry in self.units[start_unit + 1 : end_unit])
        parts.append(self.units[end_unit].raw[:end_offset])
        return "".join(parts)

    def raw_context(self, text_range: TextRange, length: int) -> Tuple[str, str]:
        """Return up to ``length`` raw characters before and after a range."""

        before: list[str] = []
        remaining = length
        head = self.units[text_range.start_unit].raw[: text_range.start_offset]
        idx = text_range.start_unit
        while remaining > 0:
            piece = head[-remaining:] if head else ""
            before.insert(0, piece)
            remaining -= len(piece)
            idx -= 1
            if idx < 0:
                break
            head = self.units[idx].raw

        after: list[str] = []
        remaining = length
        tail = self.units[text_range.end_unit].raw[text_range.end_offset :]
        idx = text_range.end_unit
        while remaining > 0:
            piece = tail[:remaining]
            after.append(piece)
            remaining -= len(piece)
            idx += 1
            if idx >= len(self.units):
                break
            tail = self.units[idx].raw

        return "".join(before), "".join(after)

    def to_range(self, start: int, end: int) -> TextRange | None:
        """Convert a normalized ``[start, end)`` span to a raw text range."""

        total = len(self.text)
        if not self.units or total == 0:
            return None
        if start < 0 or end < start or end > total:
            return None

        if start == end:
            point = self._locate(start, end=False) if start < total else self._locate(total, end=True)
            if point is None:
                return None
            return TextRange(point[0], point[1], point[0], point[1], "")

        first = self._locate(start, end=False)
        last = self._locate(end, end=True)
        if first is None or last is None:
            return None
        text = self.raw_between(first[0], first[1], last[0], last[1])
        return TextRange(first[0], first[1], last[0], last[1], text)

    def offset_for_progression(self, progression: float) -> int:
        total = len(self.text)
        clamped = max(0.0, min(1.0, float(progression)))
        return min(total, int(math.floor(clamped * total)))


def materialize(
    document: DocumentProvider, index: TextIndex, start: int, end: int
) -> Tuple[Any, TextRange] | None:
    """Build a provider span for normalized offsets ``[start, end)``.

    Returns ``None`` when the offsets cannot be located or the provider
    refuses to build the span.
    """

    text_range = index.to_range(start, end)
    if text_range is None:
        LOGGER.debug("[anchors] Could not locate normalized span %s-%s", start, end)
        return None
    start_unit = index.units[text_range.start_unit].unit
    end_unit = index.units[text_range.end_unit].unit
    try:
        span = document.construct_span(
            start_unit, text_range.start_offset, end_unit, text_range.end_offset
        )
    except Exception as exc:
        LOGGER.warning("[anchors] Span construction failed: %s", exc)
        return None
    if span is None:
        return None
    return span, text_range


__all__ = ["IndexedUnit", "TextIndex", "materialize"]
