"""Data models for locators and anchoring results."""

from .anchor import (
    AnchorMethod,
    FuzzyMatchResult,
    MatchWindow,
    ResolvedSpan,
    TextRange,
    TierOutcome,
)
from .locator import Locator, TextContext

__all__ = [
    "AnchorMethod",
    "FuzzyMatchResult",
    "Locator",
    "MatchWindow",
    "ResolvedSpan",
    "TextContext",
    "TextRange",
    "TierOutcome",
]
