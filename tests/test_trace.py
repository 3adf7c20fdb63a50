"""Tests for the anchoring trace recorder."""

from __future__ import annotations

import json

from readanchor.utils.trace import AnchorTracer


def test_flush_writes_events_and_summary(tmp_path):
    tracer = AnchorTracer(run_id="run-1", out_dir=str(tmp_path / "nested"))
    tracer.ev("resolve_begin", locator="a")
    tracer.ev("tier_failed", locator="a", method="structural", code="not_found")
    tracer.ev("fuzzy_search", needle="x", budget_exhausted=True)
    tracer.ev("anchor_resolved", locator="a", method="fuzzy", confidence=0.9)
    tracer.ev("resolve_begin", locator="b")
    tracer.ev("resolve_exhausted", locator="b", code="not_found")

    path = tracer.flush_jsonl()

    lines = (tmp_path / "nested" / "run-1.jsonl").read_text(encoding="utf-8").splitlines()
    assert path == tracer.path
    assert len(lines) == 6
    assert json.loads(lines[1])["method"] == "structural"

    summary = json.loads((tmp_path / "nested" / "run-1.summary.json").read_text(encoding="utf-8"))
    assert summary["run_id"] == "run-1"
    assert summary["resolved_by_method"] == {"fuzzy": 1}
    assert summary["tier_failures"] == {"not_found": 1}
    assert summary["unresolved"] == 1
    assert summary["fuzzy_budget_exhausted"] == 1
    assert summary["event_count"] == 6


def test_tracer_generates_run_id():
    first = AnchorTracer()
    second = AnchorTracer()

    assert first.run_id != second.run_id
    assert first.as_list() == []
