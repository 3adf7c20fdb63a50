"""Configuration utilities for readanchor."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator


def _env_flag(name: str, default: bool) -> bool:
    """Return a boolean flag derived from environment variables."""

    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_optional_float(name: str) -> float | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return float(raw)


def _env_optional_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return int(raw)


BASE_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = BASE_DIR.parent


def _load_environment() -> None:
    """Load environment variables from a ``.env`` file if present."""

    explicit_path = os.getenv("READANCHOR_ENV_FILE")
    candidates = []

    if explicit_path:
        candidates.append(Path(explicit_path))

    candidates.append(PROJECT_ROOT / ".env")

    for candidate in candidates:
        try_path = candidate.expanduser()
        if try_path.exists():
            load_dotenv(try_path, override=False)


_load_environment()


class Settings(BaseModel):
    """Anchoring thresholds and batch tuning loaded from environment variables."""

    model_config = ConfigDict(validate_default=True)

    context_length: int = Field(
        default_factory=lambda: int(os.getenv("ANCHOR_CONTEXT_LENGTH", "50"))
    )
    selector_context_length: int = Field(
        default_factory=lambda: int(os.getenv("ANCHOR_SELECTOR_CONTEXT_LENGTH", "32"))
    )
    exact_context_length: int = Field(
        default_factory=lambda: int(os.getenv("ANCHOR_EXACT_CONTEXT_LENGTH", "20"))
    )
    fuzzy_context_length: int = Field(
        default_factory=lambda: int(os.getenv("ANCHOR_FUZZY_CONTEXT_LENGTH", "10"))
    )
    fuzzy_threshold_percent: float = Field(
        default_factory=lambda: float(os.getenv("ANCHOR_FUZZY_THRESHOLD", "0.10"))
    )
    structural_tolerance_percent: float = Field(
        default_factory=lambda: float(os.getenv("ANCHOR_STRUCTURAL_TOLERANCE", "0.05"))
    )
    max_iterations: int = Field(
        default_factory=lambda: int(os.getenv("ANCHOR_MAX_ITERATIONS", "50000"))
    )
    early_exit_distance: int = Field(
        default_factory=lambda: int(os.getenv("ANCHOR_EARLY_EXIT_DISTANCE", "2"))
    )
    length_guard_ratio: float = Field(
        default_factory=lambda: float(os.getenv("ANCHOR_LENGTH_GUARD_RATIO", "0.5"))
    )
    exact_confidence: float = Field(
        default_factory=lambda: float(os.getenv("ANCHOR_EXACT_CONFIDENCE", "0.95"))
    )
    progression_confidence: float = Field(
        default_factory=lambda: float(os.getenv("ANCHOR_PROGRESSION_CONFIDENCE", "0.3"))
    )
    reanchor_min_confidence: float = Field(
        default_factory=lambda: float(os.getenv("ANCHOR_REANCHOR_MIN_CONFIDENCE", "0.5"))
    )
    batch_max_workers: int | None = Field(
        default_factory=lambda: _env_optional_int("ANCHOR_BATCH_MAX_WORKERS")
    )
    batch_timeout_s: float | None = Field(
        default_factory=lambda: _env_optional_float("ANCHOR_BATCH_TIMEOUT_S")
    )
    reanchor_debounce_s: float = Field(
        default_factory=lambda: float(os.getenv("ANCHOR_REANCHOR_DEBOUNCE_S", "0.25"))
    )
    trace_enabled: bool = Field(
        default_factory=lambda: _env_flag("ANCHOR_TRACE", False)
    )
    trace_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("ANCHOR_TRACE_DIR", "logs/anchors"))
    )

    @field_validator(
        "fuzzy_threshold_percent",
        "structural_tolerance_percent",
        "length_guard_ratio",
        "exact_confidence",
        "progression_confidence",
        "reanchor_min_confidence",
        mode="after",
    )
    @classmethod
    def _clamp_unit_interval(cls, value: float) -> float:
        return max(0.0, min(1.0, value))

    @field_validator(
        "context_length",
        "selector_context_length",
        "exact_context_length",
        "fuzzy_context_length",
        "early_exit_distance",
        mode="after",
    )
    @classmethod
    def _non_negative(cls, value: int) -> int:
        return max(0, value)

    @field_validator("max_iterations", mode="after")
    @classmethod
    def _positive_budget(cls, value: int) -> int:
        return max(1, value)

    @field_validator("batch_max_workers", mode="after")
    @classmethod
    def _normalise_workers(cls, value: int | None) -> int | None:
        if value is None or value <= 0:
            return None
        return value

    @field_validator("batch_timeout_s", mode="after")
    @classmethod
    def _normalise_timeout(cls, value: float | None) -> float | None:
        if value is None or value <= 0:
            return None
        return value

    @field_validator("reanchor_debounce_s", mode="after")
    @classmethod
    def _normalise_debounce(cls, value: float) -> float:
        return max(0.0, value)


@lru_cache()
def get_settings() -> Settings:
    """Return cached anchoring settings."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the cached settings so that subsequent calls reload from the environment."""

    get_settings.cache_clear()
