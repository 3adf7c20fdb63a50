from __future__ import annotations

import json
import os
import time
import uuid
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .logging import anchors_logger


LOGGER = anchors_logger("trace")


@dataclass(slots=True)
class TraceEvent:
    t: float
    type: str
    data: Dict[str, Any]


class AnchorTracer:
    """Collect structured events describing anchoring decisions."""

    def __init__(
        self, run_id: Optional[str] = None, out_dir: str = "logs/anchors"
    ) -> None:
        self.run_id = run_id or str(uuid.uuid4())
        self.out_dir = str(out_dir)
        self.events: List[TraceEvent] = []
        self._path = os.path.join(self.out_dir, f"{self.run_id}.jsonl")
        self._summary_path = os.path.join(self.out_dir, f"{self.run_id}.summary.json")

    def ev(self, event_type: str, **data: Any) -> None:
        # shared by batch worker threads
        self.events.append(TraceEvent(t=time.time(), type=event_type, data=data))

    def flush_jsonl(self) -> str:
        os.makedirs(self.out_dir, exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as handle:
            for event in list(self.events):
                payload = {"t": event.t, "type": event.type, **event.data}
                handle.write(json.dumps(payload, ensure_ascii=False, default=str) + "\n")
        summary_payload = self._build_summary()
        with open(self._summary_path, "w", encoding="utf-8") as handle:
            json.dump(summary_payload, handle, ensure_ascii=False, indent=2, default=str)
        LOGGER.info("[anchors] Trace log saved: %s", self._path)
        LOGGER.info("[anchors] Trace summary saved: %s", self._summary_path)
        return self._path

    @property
    def path(self) -> str:
        return self._path

    @property
    def summary_path(self) -> str:
        return self._summary_path

    def as_list(self) -> List[Dict[str, Any]]:
        return [{"t": event.t, "type": event.type, **event.data} for event in list(self.events)]

    def _build_summary(self) -> Dict[str, Any]:
        events = self.as_list()
        methods: Counter[str] = Counter()
        failures: Counter[str] = Counter()
        exhausted = 0
        budget_hits = 0
        started: float | None = None
        finished: float | None = None

        for event in events:
            event_type = event.get("type")
            if started is None:
                started = event.get("t")
            finished = event.get("t")
            if event_type == "anchor_resolved":
                methods[str(event.get("method"))] += 1
            elif event_type == "tier_failed":
                failures[str(event.get("code"))] += 1
            elif event_type == "resolve_exhausted":
                exhausted += 1
            elif event_type == "fuzzy_search" and event.get("budget_exhausted"):
                budget_hits += 1

        elapsed = None
        if started is not None and finished is not None:
            elapsed = round(finished - started, 6)

        return {
            "run_id": self.run_id,
            "resolved_by_method": dict(methods),
            "tier_failures": dict(failures),
            "unresolved": exhausted,
            "fuzzy_budget_exhausted": budget_hits,
            "event_count": len(events),
            "elapsed_s": elapsed,
        }


__all__ = ["AnchorTracer", "TraceEvent"]
