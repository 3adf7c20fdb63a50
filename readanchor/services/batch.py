"""Resolve and re-anchor many locators against one document snapshot."""

from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import partial
from typing import Callable, Dict, List, Sequence, Tuple

from ..config import Settings
from ..models.anchor import ResolvedSpan
from ..models.locator import Locator
from ..utils.logging import anchors_logger
from .documents import DocumentProvider
from .resolver import AnchorResolver

LOGGER = anchors_logger("batch")


@dataclass(slots=True)
class ReanchorReport:
    """Partition of a batch into trustworthy and untrustworthy placements."""

    succeeded: List[Locator] = field(default_factory=list)
    failed: List[Locator] = field(default_factory=list)
    results: Dict[Locator, ResolvedSpan | None] = field(default_factory=dict)


async def resolve_all(
    locators: Sequence[Locator],
    document: DocumentProvider,
    *,
    resolver: AnchorResolver | None = None,
    settings: Settings | None = None,
    timeout_s: float | None = None,
    max_workers: int | None = None,
) -> Dict[Locator, ResolvedSpan | None]:
    """Resolve every locator concurrently.

    A locator whose resolution raises, or that is still running when the
    optional wall-clock timeout expires, maps to ``None``; siblings are
    unaffected. Equal locators share one entry.
    """

    resolver = resolver if resolver is not None else AnchorResolver(settings)
    settings = resolver.settings
    timeout = timeout_s if timeout_s is not None else settings.batch_timeout_s
    workers = max_workers if max_workers is not None else settings.batch_max_workers
    if timeout is not None and timeout <= 0:
        timeout = None
    if workers is not None and workers <= 0:
        workers = None

    unique = list(dict.fromkeys(locators))
    results: Dict[Locator, ResolvedSpan | None] = {locator: None for locator in unique}
    if not unique:
        return results

    tracer = resolver.tracer
    if tracer is not None:
        tracer.ev("batch_begin", size=len(unique), timeout_s=timeout)

    snapshot = resolver.build_index(document)
    if snapshot is None:
        LOGGER.warning("[anchors] Batch of %s skipped: document has no addressable text", len(unique))
        if tracer is not None:
            tracer.ev("batch_end", resolved=0, unresolved=len(unique), timed_out=0)
        return results
    index, _ = snapshot

    loop = asyncio.get_running_loop()
    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="readanchor")

    async def _one(locator: Locator) -> Tuple[Locator, ResolvedSpan | None]:
        try:
            resolved = await loop.run_in_executor(
                executor, partial(resolver.resolve, locator, document, index=index)
            )
        except Exception as exc:
            LOGGER.warning("[anchors] Resolution failed for %s: %s", locator.structural_address, exc)
            resolved = None
        return locator, resolved

    tasks = [asyncio.ensure_future(_one(locator)) for locator in unique]
    try:
        done, pending = await asyncio.wait(tasks, timeout=timeout)
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    for task in pending:
        task.cancel()
    if pending:
        LOGGER.warning(
            "[anchors] %s of %s locators unresolved after %.2fs timeout",
            len(pending),
            len(unique),
            timeout or 0.0,
        )
    for task in done:
        locator, resolved = task.result()
        results[locator] = resolved

    if tracer is not None:
        tracer.ev(
            "batch_end",
            resolved=sum(1 for value in results.values() if value is not None),
            unresolved=sum(1 for value in results.values() if value is None),
            timed_out=len(pending),
        )
        if settings.trace_enabled:
            tracer.flush_jsonl()
    return results


async def reanchor_all(
    locators: Sequence[Locator],
    document: DocumentProvider,
    *,
    resolver: AnchorResolver | None = None,
    settings: Settings | None = None,
    timeout_s: float | None = None,
) -> ReanchorReport:
    """Split locators by whether their placement is precise enough to persist.

    Success needs ``confidence >= reanchor_min_confidence`` (0.5 by default),
    so progression-only placements count as failures.
    """

    resolver = resolver if resolver is not None else AnchorResolver(settings)
    results = await resolve_all(locators, document, resolver=resolver, timeout_s=timeout_s)
    threshold = resolver.settings.reanchor_min_confidence

    report = ReanchorReport(results=results)
    for locator in locators:
        resolved = results.get(locator)
        if resolved is not None and resolved.confidence >= threshold:
            report.succeeded.append(locator)
        else:
            report.failed.append(locator)
    return report


def resolve_all_sync(
    locators: Sequence[Locator], document: DocumentProvider, **kwargs
) -> Dict[Locator, ResolvedSpan | None]:
    return asyncio.run(resolve_all(locators, document, **kwargs))


def reanchor_all_sync(
    locators: Sequence[Locator], document: DocumentProvider, **kwargs
) -> ReanchorReport:
    return asyncio.run(reanchor_all(locators, document, **kwargs))


class ReanchorDebouncer:
    """Coalesce bursts of layout changes into a single re-anchor pass.

    Each :meth:`trigger` cancels the pass scheduled by the previous one, so
    only the last trigger of a burst runs once the delay has elapsed.
    """

    def __init__(
        self,
        resolver: AnchorResolver | None = None,
        *,
        delay_s: float | None = None,
        on_complete: Callable[[ReanchorReport], None] | None = None,
    ) -> None:
        self.resolver = resolver if resolver is not None else AnchorResolver()
        self.delay_s = delay_s if delay_s is not None else self.resolver.settings.reanchor_debounce_s
        self.on_complete = on_complete
        self.runs = 0
        self._task: asyncio.Task | None = None

    def trigger(self, locators: Sequence[Locator], document: DocumentProvider) -> asyncio.Task:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(list(locators), document))
        return self._task

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def _run(self, locators: List[Locator], document: DocumentProvider) -> ReanchorReport:
        await asyncio.sleep(self.delay_s)
        report = await reanchor_all(locators, document, resolver=self.resolver)
        self.runs += 1
        if self.on_complete is not None:
            self.on_complete(report)
        return report

    async def wait(self) -> ReanchorReport | None:
        """Wait for the most recently scheduled pass."""

        if self._task is None:
            return None
        try:
            return await self._task
        except asyncio.CancelledError:
            return None


__all__ = [
    "ReanchorDebouncer",
    "ReanchorReport",
    "reanchor_all",
    "reanchor_all_sync",
    "resolve_all",
    "resolve_all_sync",
]
