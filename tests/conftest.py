"""Test configuration for readanchor."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Generator

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest  # noqa: E402

from readanchor.config import reset_settings_cache  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_environment(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> Generator[None, None, None]:
    """Provide isolated configuration for each test."""

    for key in list(os.environ):
        if key.startswith("ANCHOR_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("ANCHOR_TRACE_DIR", str(tmp_path / "anchors"))
    reset_settings_cache()
    yield
    reset_settings_cache()

