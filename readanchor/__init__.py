"""Re-anchor saved reading positions in documents whose text has shifted."""

from __future__ import annotations

from .models import (
    AnchorMethod,
    FuzzyMatchResult,
    Locator,
    MatchWindow,
    ResolvedSpan,
    TextContext,
    TextRange,
)
from .services.addressing import UnitAddressResolver
from .services.batch import ReanchorDebouncer, ReanchorReport, reanchor_all, resolve_all
from .services.documents import DocumentProvider, TextDocument
from .services.fuzzy_search import find_best_match, fuzzy_anchor
from .services.levenshtein import levenshtein_distance, similarity
from .services.locator import to_locator
from .services.normalize import normalize
from .services.resolver import AnchorResolver, resolve

__version__ = "0.1.0"

__all__ = [
    "AnchorMethod",
    "AnchorResolver",
    "DocumentProvider",
    "FuzzyMatchResult",
    "Locator",
    "MatchWindow",
    "ReanchorDebouncer",
    "ReanchorReport",
    "ResolvedSpan",
    "TextContext",
    "TextDocument",
    "TextRange",
    "UnitAddressResolver",
    "__version__",
    "find_best_match",
    "fuzzy_anchor",
    "levenshtein_distance",
    "normalize",
    "reanchor_all",
    "resolve",
    "resolve_all",
    "similarity",
    "to_locator",
]
