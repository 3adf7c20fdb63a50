"""Resolve a locator to a live span through an ordered fallback chain.

Tiers, most precise first:

1. structural: the stored address, validated against the quoted text
2. exact: literal search for the quote with a little surrounding context
3. fuzzy: bounded edit-distance search with a shorter context
4. progression: fractional position, fixed low confidence

Each tier returns a :class:`TierOutcome`; the first successful one wins.
"""

from __future__ import annotations

import math
from typing import Callable, Tuple

from ..config import Settings, get_settings
from ..models.anchor import AnchorMethod, ResolvedSpan, TierOutcome
from ..models.locator import Locator
from ..utils.errors import AnchorFailure
from ..utils.logging import anchors_logger
from ..utils.trace import AnchorTracer
from .addressing import StructuralAddressResolver, UnitAddressResolver
from .documents import DocumentProvider
from .fuzzy_search import fuzzy_anchor_with_stats
from .levenshtein import levenshtein_distance
from .materialize import TextIndex, materialize
from .normalize import context_offsets, normalize, truncate_head, truncate_tail

LOGGER = anchors_logger("resolver")

STRUCTURAL_CONFIDENCE = 1.0

Tier = Callable[[Locator, DocumentProvider, TextIndex, str], TierOutcome]


def _describe(locator: Locator) -> str:
    if locator.structural_address:
        return locator.structural_address
    if locator.match:
        return repr(locator.match[:40])
    return f"progression={locator.progression:.3f}"


class AnchorResolver:
    """Anchor locators to spans of a document snapshot.

    The resolver holds no per-document state, so one instance can serve
    concurrent resolutions.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        address_resolver: StructuralAddressResolver | None = None,
        tracer: AnchorTracer | None = None,
    ) -> None:
        self.settings = settings if settings is not None else get_settings()
        self.address_resolver = (
            address_resolver if address_resolver is not None else UnitAddressResolver()
        )
        if tracer is None and self.settings.trace_enabled:
            tracer = AnchorTracer(out_dir=str(self.settings.trace_dir))
        self.tracer = tracer

    @property
    def tiers(self) -> Tuple[Tuple[AnchorMethod, Tier], ...]:
        return (
            (AnchorMethod.STRUCTURAL, self._structural),
            (AnchorMethod.EXACT, self._exact),
            (AnchorMethod.FUZZY, self._fuzzy),
            (AnchorMethod.PROGRESSION, self._progression),
        )

    def _ev(self, event_type: str, **data) -> None:
        if self.tracer is not None:
            self.tracer.ev(event_type, **data)

    def build_index(self, document: DocumentProvider) -> Tuple[TextIndex, str] | None:
        """Snapshot ``document`` once so all tiers see the same text."""

        try:
            index = TextIndex.from_document(document)
        except Exception as exc:
            LOGGER.warning("[anchors] Could not enumerate document text: %s", exc)
            return None
        if index.is_empty:
            return None

        try:
            provided = document.extract_normalized_text()
        except Exception as exc:
            LOGGER.debug("[anchors] extract_normalized_text failed, using unit text: %s", exc)
            provided = None
        if provided is not None and provided != index.text:
            LOGGER.debug(
                "[anchors] Provider text (%s chars) disagrees with unit text (%s chars); using unit text",
                len(provided),
                len(index.text),
            )
        return index, index.text

    def resolve(
        self,
        locator: Locator,
        document: DocumentProvider,
        *,
        index: TextIndex | None = None,
    ) -> ResolvedSpan | None:
        """Return the span for ``locator`` or ``None`` when nothing can be placed.

        Never raises; errors inside a tier count as that tier failing.
        """

        label = _describe(locator)
        self._ev("resolve_begin", locator=label)

        if index is not None and not index.is_empty:
            snapshot: Tuple[TextIndex, str] | None = (index, index.text)
        else:
            snapshot = self.build_index(document)
        if snapshot is None:
            LOGGER.debug("[anchors] %s: document has no addressable text", label)
            self._ev(
                "resolve_exhausted",
                locator=label,
                code=AnchorFailure.INVALID_DOCUMENT.value,
            )
            return None
        text_index, haystack = snapshot

        for method, tier in self.tiers:
            self._ev("tier_attempt", locator=label, method=method.value)
            try:
                outcome = tier(locator, document, text_index, haystack)
            except Exception as exc:
                LOGGER.warning("[anchors] %s: %s tier raised %s", label, method.value, exc)
                outcome = TierOutcome.fail(AnchorFailure.TIER_ERROR, str(exc))

            if outcome.ok and outcome.resolved is not None:
                resolved = outcome.resolved
                self._ev(
                    "anchor_resolved",
                    locator=label,
                    method=resolved.method.value,
                    confidence=resolved.confidence,
                    start=resolved.start,
                    end=resolved.end,
                )
                return resolved

            code = (outcome.failure or AnchorFailure.NOT_FOUND).value
            LOGGER.debug(
                "[anchors] %s: %s tier fell through (%s%s)",
                label,
                method.value,
                code,
                f": {outcome.detail}" if outcome.detail else "",
            )
            self._ev(
                "tier_failed",
                locator=label,
                method=method.value,
                code=code,
                detail=outcome.detail,
            )

        self._ev("resolve_exhausted", locator=label, code=AnchorFailure.NOT_FOUND.value)
        return None

    def _structural(
        self, locator: Locator, document: DocumentProvider, index: TextIndex, haystack: str
    ) -> TierOutcome:
        address = locator.structural_address
        if not address:
            return TierOutcome.fail(AnchorFailure.NOT_FOUND, "no structural address")
        if not self.address_resolver.is_valid_address(address):
            return TierOutcome.fail(AnchorFailure.MALFORMED_LOCATOR, "invalid structural address")

        position = self.address_resolver.resolve(address, document)
        if position is None:
            return TierOutcome.fail(AnchorFailure.NOT_FOUND, "address did not resolve")
        unit_index = index.unit_index_of(position.unit)
        if unit_index is None:
            return TierOutcome.fail(AnchorFailure.NOT_FOUND, "resolved unit not in document")
        start = index.to_normalized(unit_index, position.offset)
        if start is None:
            return TierOutcome.fail(AnchorFailure.NOT_FOUND, "resolved offset outside unit")

        match = locator.match
        if match is None:
            materialized = materialize(document, index, start, start)
            if materialized is None:
                return TierOutcome.fail(AnchorFailure.NOT_FOUND, "could not build span")
            span, text_range = materialized
            return TierOutcome.success(
                ResolvedSpan(
                    span=span,
                    range=text_range,
                    method=AnchorMethod.STRUCTURAL,
                    confidence=STRUCTURAL_CONFIDENCE,
                    start=start,
                    end=start,
                )
            )

        target = normalize(match)
        # a quote opening on whitespace resolves to the collapsed space before it
        if match[:1].isspace() and haystack[start : start + 1] == " ":
            start += 1
        end = min(len(index), start + len(target))
        materialized = materialize(document, index, start, end)
        if materialized is None:
            return TierOutcome.fail(AnchorFailure.NOT_FOUND, "could not build span")
        span, text_range = materialized

        live = normalize(text_range.text)
        distance = 0
        if live != target:
            tolerance = int(math.ceil(self.settings.structural_tolerance_percent * len(target)))
            distance = levenshtein_distance(
                live, target, length_guard=self.settings.length_guard_ratio
            )
            if distance > tolerance:
                LOGGER.warning(
                    "[anchors] %s resolved but text differs (distance %s > %s), trying text anchors",
                    address,
                    distance,
                    tolerance,
                )
                return TierOutcome.fail(AnchorFailure.NOT_FOUND, "text mismatch at address")

        return TierOutcome.success(
            ResolvedSpan(
                span=span,
                range=text_range,
                method=AnchorMethod.STRUCTURAL,
                confidence=STRUCTURAL_CONFIDENCE,
                start=start,
                end=end,
                distance=distance,
                matched_text=live,
            )
        )

    def _exact(
        self, locator: Locator, document: DocumentProvider, index: TextIndex, haystack: str
    ) -> TierOutcome:
        if locator.match is None or locator.text is None:
            return TierOutcome.fail(AnchorFailure.MALFORMED_LOCATOR, "no match text")

        length = self.settings.exact_context_length
        search, lead, trail = context_offsets(
            truncate_tail(locator.text.prefix, length),
            locator.text.match,
            truncate_head(locator.text.suffix, length),
        )
        found = haystack.find(search)
        if found == -1:
            return TierOutcome.fail(AnchorFailure.NOT_FOUND, "quote not found")

        start = found + lead
        end = max(start, found + len(search) - trail)
        materialized = materialize(document, index, start, end)
        if materialized is None:
            return TierOutcome.fail(AnchorFailure.NOT_FOUND, "could not build span")
        span, text_range = materialized
        return TierOutcome.success(
            ResolvedSpan(
                span=span,
                range=text_range,
                method=AnchorMethod.EXACT,
                confidence=self.settings.exact_confidence,
                start=start,
                end=end,
                distance=0,
                matched_text=haystack[start:end],
            )
        )

    def _fuzzy(
        self, locator: Locator, document: DocumentProvider, index: TextIndex, haystack: str
    ) -> TierOutcome:
        if locator.match is None or locator.text is None:
            return TierOutcome.fail(AnchorFailure.MALFORMED_LOCATOR, "no match text")

        result, search = fuzzy_anchor_with_stats(
            locator.text,
            document,
            settings=self.settings,
            index=index,
            haystack=haystack,
            tracer=self.tracer,
        )
        if result is None:
            if search is not None and search.budget_exhausted:
                return TierOutcome.fail(
                    AnchorFailure.BUDGET_EXCEEDED, f"{search.iterations} windows scored"
                )
            return TierOutcome.fail(AnchorFailure.NOT_FOUND, "no window within distance")

        return TierOutcome.success(
            ResolvedSpan(
                span=result.span,
                range=result.range,
                method=AnchorMethod.FUZZY,
                confidence=result.confidence,
                start=result.start,
                end=result.end,
                distance=result.distance,
                matched_text=result.matched_text,
            )
        )

    def _progression(
        self, locator: Locator, document: DocumentProvider, index: TextIndex, haystack: str
    ) -> TierOutcome:
        offset = index.offset_for_progression(locator.progression)
        materialized = materialize(document, index, offset, offset)
        if materialized is None:
            return TierOutcome.fail(AnchorFailure.INVALID_DOCUMENT, "no text at progression")
        span, text_range = materialized
        return TierOutcome.success(
            ResolvedSpan(
                span=span,
                range=text_range,
                method=AnchorMethod.PROGRESSION,
                confidence=self.settings.progression_confidence,
                start=offset,
                end=offset,
            )
        )


def resolve(
    locator: Locator,
    document: DocumentProvider,
    *,
    settings: Settings | None = None,
    address_resolver: StructuralAddressResolver | None = None,
) -> ResolvedSpan | None:
    """Resolve one locator with a throwaway :class:`AnchorResolver`."""

    return AnchorResolver(settings, address_resolver=address_resolver).resolve(locator, document)


__all__ = ["AnchorResolver", "STRUCTURAL_CONFIDENCE", "resolve"]
