"""Result containers produced while anchoring a locator."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from ..utils.errors import AnchorFailure


class AnchorMethod(str, Enum):
    """Tier that produced a resolved span, most precise first."""

    STRUCTURAL = "structural"
    EXACT = "exact"
    FUZZY = "fuzzy"
    PROGRESSION = "progression"


@dataclass(slots=True, frozen=True)
class TextRange:
    """Span expressed as (unit index, raw offset) pairs into a document."""

    start_unit: int
    start_offset: int
    end_unit: int
    end_offset: int
    text: str = ""

    @property
    def collapsed(self) -> bool:
        return self.start_unit == self.end_unit and self.start_offset == self.end_offset


@dataclass(slots=True, frozen=True)
class MatchWindow:
    """Candidate window of normalized haystack text."""

    start: int
    end: int
    distance: int
    text: str


@dataclass(slots=True)
class ResolvedSpan:
    """Addressable span recovered for a locator.

    ``span`` is whatever the document provider built for the range,
    ``start``/``end`` are offsets into the document's normalized text.
    """

    span: Any
    range: TextRange
    method: AnchorMethod
    confidence: float
    start: int
    end: int
    distance: Optional[int] = None
    matched_text: Optional[str] = None

    @property
    def text(self) -> str:
        return self.range.text


@dataclass(slots=True)
class FuzzyMatchResult:
    span: Any
    range: TextRange
    confidence: float
    distance: int
    matched_text: str
    start: int
    end: int


@dataclass(slots=True)
class TierOutcome:
    """Result of a single anchoring tier: a span or the reason it declined."""

    resolved: Optional[ResolvedSpan] = None
    failure: Optional[AnchorFailure] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.resolved is not None

    @classmethod
    def success(cls, resolved: ResolvedSpan) -> "TierOutcome":
        return cls(resolved=resolved)

    @classmethod
    def fail(cls, failure: AnchorFailure, detail: str | None = None) -> "TierOutcome":
        return cls(failure=failure, detail=detail)


__all__ = [
    "AnchorMethod",
    "FuzzyMatchResult",
    "MatchWindow",
    "ResolvedSpan",
    "TextRange",
    "TierOutcome",
]
