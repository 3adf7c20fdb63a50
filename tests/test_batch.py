"""Tests for batch resolution, re-anchoring and debouncing."""

from __future__ import annotations

import asyncio
import time

import pytest

from readanchor.config import Settings
from readanchor.models import AnchorMethod, Locator, TextContext
from readanchor.services.batch import (
    ReanchorDebouncer,
    reanchor_all,
    reanchor_all_sync,
    resolve_all,
    resolve_all_sync,
)
from readanchor.services.documents import TextDocument
from readanchor.services.resolver import AnchorResolver


@pytest.fixture()
def novel() -> TextDocument:
    return TextDocument.from_text(
        "Call me Ishmael. Some years ago, never mind how long precisely, "
        "having little or no money in my purse, I thought I would sail about a little."
    )


@pytest.fixture()
def locators() -> list[Locator]:
    return [
        Locator(progression=0.0, text=TextContext(prefix="Call me ", match="Ishmael", suffix=".")),
        Locator(progression=0.4, text=TextContext(prefix="no ", match="money in my purse")),
        Locator(progression=0.7, text=TextContext(match="a white whale surfaced")),
    ]


def test_reanchor_all_partitions_by_confidence(novel, locators):
    report = reanchor_all_sync(locators, novel)

    assert report.succeeded == locators[:2]
    assert report.failed == [locators[2]]
    assert report.results[locators[2]].method is AnchorMethod.PROGRESSION


def test_resolve_all_returns_entry_per_locator(novel, locators):
    results = resolve_all_sync(locators, novel)

    assert set(results) == set(locators)
    assert results[locators[0]].text == "Ishmael"
    assert results[locators[1]].text == "money in my purse"


def test_resolve_all_with_worker_pool(novel, locators):
    results = resolve_all_sync(locators, novel, max_workers=2)

    assert all(results[locator] is not None for locator in locators)


def test_duplicate_locators_are_reported_each_time(novel, locators):
    report = reanchor_all_sync([locators[0], locators[0]], novel)

    assert report.succeeded == [locators[0], locators[0]]
    assert len(report.results) == 1


def test_empty_batch(novel):
    assert resolve_all_sync([], novel) == {}
    report = reanchor_all_sync([], novel)
    assert report.succeeded == [] and report.failed == []


def test_empty_document_fails_every_locator(locators):
    report = reanchor_all_sync(locators, TextDocument.from_units([]))

    assert report.succeeded == []
    assert report.failed == locators
    assert all(value is None for value in report.results.values())


class _SelectiveResolver(AnchorResolver):
    def __init__(self, *, explode_on=None, stall_on=None, stall_s=0.5):
        super().__init__(Settings())
        self.explode_on = explode_on
        self.stall_on = stall_on
        self.stall_s = stall_s

    def resolve(self, locator, document, *, index=None):
        if locator == self.explode_on:
            raise RuntimeError("boom")
        if locator == self.stall_on:
            time.sleep(self.stall_s)
        return super().resolve(locator, document, index=index)


def test_failing_locator_does_not_abort_batch(novel, locators):
    resolver = _SelectiveResolver(explode_on=locators[1])

    results = resolve_all_sync(locators, novel, resolver=resolver)

    assert results[locators[1]] is None
    assert results[locators[0]] is not None
    assert results[locators[2]] is not None


def test_timeout_leaves_slow_locators_unresolved(novel, locators):
    resolver = _SelectiveResolver(stall_on=locators[0], stall_s=1.5)

    started = time.monotonic()
    results = resolve_all_sync(locators, novel, resolver=resolver, timeout_s=0.1)
    elapsed = time.monotonic() - started

    assert results[locators[0]] is None
    assert results[locators[1]] is not None
    assert elapsed < 1.0


def test_non_positive_batch_settings_mean_unset(monkeypatch, novel, locators):
    monkeypatch.setenv("ANCHOR_BATCH_TIMEOUT_S", "0")
    monkeypatch.setenv("ANCHOR_BATCH_MAX_WORKERS", "-2")

    resolver = AnchorResolver(Settings())
    results = resolve_all_sync(locators, novel, resolver=resolver)

    assert resolver.settings.batch_timeout_s is None
    assert resolver.settings.batch_max_workers is None
    assert results[locators[0]].method is AnchorMethod.EXACT


def test_explicit_non_positive_batch_arguments_are_ignored(novel, locators):
    results = resolve_all_sync(locators, novel, timeout_s=0, max_workers=0)

    assert all(results[locator] is not None for locator in locators)


def test_batch_writes_trace_when_enabled(monkeypatch, tmp_path, novel, locators):
    monkeypatch.setenv("ANCHOR_TRACE", "true")
    monkeypatch.setenv("ANCHOR_TRACE_DIR", str(tmp_path))
    resolver = AnchorResolver(Settings())

    resolve_all_sync(locators, novel, resolver=resolver)

    types = [event["type"] for event in resolver.tracer.as_list()]
    assert types[0] == "batch_begin"
    assert types[-1] == "batch_end"
    assert (tmp_path / f"{resolver.tracer.run_id}.jsonl").exists()
    assert (tmp_path / f"{resolver.tracer.run_id}.summary.json").exists()


def test_debouncer_coalesces_bursts(novel, locators):
    reports = []

    async def _burst():
        debouncer = ReanchorDebouncer(
            AnchorResolver(Settings()), delay_s=0.05, on_complete=reports.append
        )
        for _ in range(3):
            debouncer.trigger(locators, novel)
            await asyncio.sleep(0.01)
        report = await debouncer.wait()
        return debouncer, report

    debouncer, report = asyncio.run(_burst())

    assert debouncer.runs == 1
    assert len(reports) == 1
    assert report is reports[0]
    assert len(report.succeeded) == 2


def test_debouncer_wait_without_trigger():
    async def _idle():
        return await ReanchorDebouncer(delay_s=0).wait()

    assert asyncio.run(_idle()) is None


def test_reanchor_threshold_is_configurable(novel, locators):
    resolver = AnchorResolver(Settings(reanchor_min_confidence=0.2))

    report = asyncio.run(reanchor_all(locators, novel, resolver=resolver))

    assert len(report.succeeded) == 3


def test_resolve_all_coroutine(novel, locators):
    results = asyncio.run(resolve_all(locators[:1], novel))

    assert results[locators[0]].method is AnchorMethod.EXACT
