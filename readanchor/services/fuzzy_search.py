"""Bounded approximate search for a quote inside normalized document text."""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from ..config import Settings, get_settings
from ..models.anchor import FuzzyMatchResult, MatchWindow
from ..models.locator import TextContext
from ..utils.logging import anchors_logger
from ..utils.trace import AnchorTracer
from .documents import DocumentProvider
from .levenshtein import DEFAULT_LENGTH_GUARD, levenshtein_distance
from .materialize import TextIndex, materialize
from .normalize import context_offsets, normalize, truncate_head, truncate_tail

LOGGER = anchors_logger("fuzzy")

DEFAULT_THRESHOLD_PERCENT = 0.1
MIN_CONTEXT_LENGTH = 10
MAX_ITERATIONS = 50000
EARLY_EXIT_DISTANCE = 2
WINDOW_DELTAS = (-1, 1, -2, 2)


@dataclass(slots=True)
class SearchResult:
    best: Optional[MatchWindow]
    iterations: int
    budget_exhausted: bool


def default_max_distance(text: str, threshold_percent: float = DEFAULT_THRESHOLD_PERCENT) -> int:
    return int(math.ceil(len(text) * threshold_percent))


def search_windows(
    haystack: str,
    needle: str,
    max_distance: int | None = None,
    *,
    max_iterations: int = MAX_ITERATIONS,
    early_exit: int = EARLY_EXIT_DISTANCE,
    length_guard: float | None = DEFAULT_LENGTH_GUARD,
) -> SearchResult:
    """Run the bounded search and report how much of the budget it used."""

    hay = normalize(haystack)
    target = normalize(needle)
    if not hay or not target:
        return SearchResult(best=None, iterations=0, budget_exhausted=False)

    window_size = len(target)
    exact_index = hay.find(target)
    if exact_index != -1:
        window = MatchWindow(
            start=exact_index,
            end=exact_index + window_size,
            distance=0,
            text=target,
        )
        return SearchResult(best=window, iterations=0, budget_exhausted=False)

    if max_distance is None:
        max_distance = default_max_distance(target)
    if max_distance < 0:
        return SearchResult(best=None, iterations=0, budget_exhausted=False)

    budget = max(1, max_iterations)
    best: MatchWindow | None = None
    iterations = 0

    def _scan(size: int, limit: int) -> None:
        nonlocal best, iterations
        positions = len(hay) - size + 1
        for start in range(0, max(0, min(positions, limit))):
            if iterations >= budget:
                return
            iterations += 1
            window = hay[start : start + size]
            distance = levenshtein_distance(
                window,
                target,
                length_guard=length_guard,
                score_cutoff=max_distance,
            )
            if distance > max_distance:
                continue
            if best is None or distance < best.distance:
                best = MatchWindow(start=start, end=start + size, distance=distance, text=window)
                LOGGER.trace(  # type: ignore[attr-defined]
                    "[anchors] window %s-%s distance %s", start, start + size, distance
                )
                if distance <= early_exit:
                    return

    _scan(window_size, budget)

    if (best is None or best.distance > early_exit) and iterations < budget:
        share = (budget - iterations) // len(WINDOW_DELTAS)
        for delta in WINDOW_DELTAS:
            size = window_size + delta
            if size <= 0:
                continue
            _scan(size, share)
            if best is not None and best.distance <= early_exit:
                break

    exhausted = iterations >= budget
    converged = best is not None and best.distance <= early_exit
    return SearchResult(best=best, iterations=iterations, budget_exhausted=exhausted and not converged)


def find_best_match(
    haystack: str,
    needle: str,
    max_distance: int | None = None,
    *,
    max_iterations: int = MAX_ITERATIONS,
    early_exit: int = EARLY_EXIT_DISTANCE,
) -> MatchWindow | None:
    """Return the best window of ``haystack`` within ``max_distance`` of ``needle``.

    An exact occurrence wins immediately with distance 0. Otherwise windows
    of the needle's length are scanned, then lengths one and two characters
    shorter/longer, until a window at most ``early_exit`` edits away is
    found or ``max_iterations`` windows have been scored. ``max_distance``
    defaults to 10% of the needle length, rounded up.
    """

    return search_windows(
        haystack,
        needle,
        max_distance,
        max_iterations=max_iterations,
        early_exit=early_exit,
    ).best


def build_fuzzy_needle(context: TextContext, context_length: int = MIN_CONTEXT_LENGTH) -> tuple[str, int, int]:
    prefix = truncate_tail(context.prefix, context_length)
    suffix = truncate_head(context.suffix, context_length)
    return context_offsets(prefix, context.match, suffix)


def fuzzy_anchor(
    context: TextContext,
    document: DocumentProvider,
    threshold_percent: float | None = None,
    *,
    settings: Settings | None = None,
    index: TextIndex | None = None,
    haystack: str | None = None,
    tracer: AnchorTracer | None = None,
) -> FuzzyMatchResult | None:
    """Locate ``context.match`` in ``document`` tolerating small edits.

    The search needle carries a short slice of the surrounding context; the
    returned range is narrowed back to the match itself.
    """

    result, _ = fuzzy_anchor_with_stats(
        context,
        document,
        threshold_percent,
        settings=settings,
        index=index,
        haystack=haystack,
        tracer=tracer,
    )
    return result


def fuzzy_anchor_with_stats(
    context: TextContext,
    document: DocumentProvider,
    threshold_percent: float | None = None,
    *,
    settings: Settings | None = None,
    index: TextIndex | None = None,
    haystack: str | None = None,
    tracer: AnchorTracer | None = None,
) -> tuple[FuzzyMatchResult | None, SearchResult | None]:
    if not context.has_match:
        return None, None
    settings = settings if settings is not None else get_settings()
    if threshold_percent is None:
        threshold_percent = settings.fuzzy_threshold_percent

    index = index if index is not None else TextIndex.from_document(document)
    if index.is_empty:
        return None, None
    hay = haystack if haystack is not None else index.text

    needle, lead, trail = build_fuzzy_needle(context, settings.fuzzy_context_length)
    match_len = len(normalize(context.match))
    max_distance = int(math.ceil(match_len * threshold_percent))

    result = search_windows(
        hay,
        needle,
        max_distance,
        max_iterations=settings.max_iterations,
        early_exit=settings.early_exit_distance,
        length_guard=settings.length_guard_ratio,
    )
    if tracer is not None:
        tracer.ev(
            "fuzzy_search",
            needle=needle,
            max_distance=max_distance,
            iterations=result.iterations,
            budget_exhausted=result.budget_exhausted,
            distance=result.best.distance if result.best else None,
        )
    if result.budget_exhausted:
        LOGGER.debug(
            "[anchors] Fuzzy search budget exhausted after %s windows", result.iterations
        )
    window = result.best
    if window is None:
        return None, result

    start = min(window.start + lead, window.end)
    end = max(start, window.end - trail)
    materialized = materialize(document, index, start, end)
    if materialized is None:
        return None, result
    span, text_range = materialized

    confidence = 1.0 - window.distance / match_len if match_len else 0.0
    match = FuzzyMatchResult(
        span=span,
        range=text_range,
        confidence=max(0.0, min(1.0, confidence)),
        distance=window.distance,
        matched_text=window.text,
        start=start,
        end=end,
    )
    return match, result


async def fuzzy_anchor_batch(
    contexts: Sequence[TextContext],
    document: DocumentProvider,
    *,
    settings: Settings | None = None,
) -> Dict[TextContext, FuzzyMatchResult | None]:
    """Fuzzy-anchor many quotes against one document concurrently."""

    settings = settings if settings is not None else get_settings()
    index = TextIndex.from_document(document)
    loop = asyncio.get_running_loop()

    async def _one(context: TextContext) -> FuzzyMatchResult | None:
        try:
            return await loop.run_in_executor(
                None,
                lambda: fuzzy_anchor(context, document, settings=settings, index=index),
            )
        except Exception as exc:
            LOGGER.warning("[anchors] Fuzzy anchor failed: %s", exc)
            return None

    outcomes = await asyncio.gather(*(_one(context) for context in contexts))
    return dict(zip(contexts, outcomes))


__all__ = [
    "DEFAULT_THRESHOLD_PERCENT",
    "MAX_ITERATIONS",
    "SearchResult",
    "build_fuzzy_needle",
    "default_max_distance",
    "find_best_match",
    "fuzzy_anchor",
    "fuzzy_anchor_batch",
    "fuzzy_anchor_with_stats",
    "search_windows",
]
