from __future__ import annotations

import re

MULTISPACE_RE = re.compile(r"\s+")


def normalize(text: str | None) -> str:
    """Collapse whitespace runs to a single space and trim the ends."""

    if not text:
        return ""
    return MULTISPACE_RE.sub(" ", text).strip()


def truncate_tail(text: str | None, length: int) -> str:
    """Return at most ``length`` trailing characters of ``text``."""

    if not text or length <= 0:
        return ""
    return text[-length:]


def truncate_head(text: str | None, length: int) -> str:
    """Return at most ``length`` leading characters of ``text``."""

    if not text or length <= 0:
        return ""
    return text[:length]


def context_offsets(prefix: str, match: str, suffix: str) -> tuple[str, int, int]:
    """Return the normalized search text and the normalized lengths of its context.

    The lead/trail lengths are what must be trimmed from a hit on the
    returned text to narrow it to ``match`` alone.
    """

    combined = normalize(prefix + match + suffix)
    lead = len(combined) - len(normalize(match + suffix)) if prefix else 0
    trail = len(combined) - len(normalize(prefix + match)) if suffix else 0
    return combined, max(0, lead), max(0, trail)


__all__ = ["MULTISPACE_RE", "context_offsets", "normalize", "truncate_head", "truncate_tail"]
