from __future__ import annotations

from enum import Enum
from typing import Any, Dict


class AnchorFailure(str, Enum):
    """Reasons an anchoring tier can decline to produce a span."""

    NOT_FOUND = "not_found"
    INVALID_DOCUMENT = "invalid_document"
    MALFORMED_LOCATOR = "malformed_locator"
    BUDGET_EXCEEDED = "budget_exceeded"
    TIER_ERROR = "tier_error"


class AnchoringError(Exception):
    """Base error for anchoring collaborators."""

    def __init__(self, code: str, message: str, extra: Dict[str, Any] | None = None):
        super().__init__(message)
        self.code = code
        self.extra = extra or {}


class MalformedAddressError(AnchoringError):
    """Raised when a structural address cannot be parsed."""

    def __init__(self, message: str, address: str | None = None, extra: Dict[str, Any] | None = None):
        super().__init__(AnchorFailure.MALFORMED_LOCATOR.value, message, extra)
        self.address = address


__all__ = [
    "AnchorFailure",
    "AnchoringError",
    "MalformedAddressError",
]
