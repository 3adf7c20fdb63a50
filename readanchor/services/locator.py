"""Build locators from spans of a live document."""

from __future__ import annotations

from typing import Any, Dict, Optional

from ..config import Settings, get_settings
from ..models.anchor import TextRange
from ..models.locator import Locator, TextContext
from .documents import DocumentProvider
from .materialize import TextIndex

UNIT_LOCATOR_LENGTH = 10


def _progression(index: TextIndex, text_range: TextRange) -> float:
    total = len(index)
    if total == 0:
        return 0.0
    offset = index.to_normalized(text_range.start_unit, text_range.start_offset) or 0
    return max(0.0, min(1.0, offset / total))


def _address(
    address_resolver: Any, document: DocumentProvider, index: TextIndex, text_range: TextRange
) -> Optional[str]:
    generate = getattr(address_resolver, "address_for", None)
    if generate is None:
        return None
    unit = index.units[text_range.start_unit].unit
    return generate(document, unit, text_range.start_offset)


def to_locator(
    document: DocumentProvider,
    text_range: TextRange,
    *,
    context_length: int | None = None,
    settings: Settings | None = None,
    address_resolver: Any = None,
    index: TextIndex | None = None,
    href: str | None = None,
    title: str | None = None,
) -> Locator:
    """Capture ``text_range`` as a locator.

    The match is the raw text of the range; prefix and suffix hold up to
    ``context_length`` raw characters on either side. Progression is the
    range start's share of the normalized document text so that the
    progression tier lands back on the same place.
    """

    settings = settings if settings is not None else get_settings()
    if context_length is None:
        context_length = settings.context_length
    index = index if index is not None else TextIndex.from_document(document)

    match = index.raw_between(
        text_range.start_unit, text_range.start_offset, text_range.end_unit, text_range.end_offset
    )
    prefix, suffix = index.raw_context(text_range, context_length)

    return Locator(
        progression=_progression(index, text_range),
        structural_address=_address(address_resolver, document, index, text_range),
        text=TextContext(prefix=prefix, match=match, suffix=suffix),
        href=href if href is not None else getattr(document, "href", None),
        title=title,
        position=getattr(document, "spine_index", None),
    )


def unit_locator(
    document: DocumentProvider,
    unit_index: int,
    *,
    length: int = UNIT_LOCATOR_LENGTH,
    settings: Settings | None = None,
    address_resolver: Any = None,
    index: TextIndex | None = None,
) -> Locator:
    """Locator for the first few characters of a unit, e.g. the first visible one.

    Falls back to a progression-only locator when the unit has no text.
    """

    index = index if index is not None else TextIndex.from_document(document)
    href = getattr(document, "href", None)
    position = getattr(document, "spine_index", None)
    if not 0 <= unit_index < len(index.units):
        return Locator(progression=0.0, href=href, position=position)

    entry = index.units[unit_index]
    start = len(entry.raw) - len(entry.raw.lstrip())
    if start >= len(entry.raw):
        total = len(index)
        progression = entry.norm_start / total if total else 0.0
        return Locator(progression=min(1.0, progression), href=href, position=position)

    end = min(len(entry.raw), start + max(1, length))
    text_range = TextRange(unit_index, start, unit_index, end, entry.raw[start:end])
    return to_locator(
        document,
        text_range,
        settings=settings,
        address_resolver=address_resolver,
        index=index,
    )


def to_quote_selector(locator: Locator, context_length: int | None = None) -> Dict[str, str] | None:
    """Export the locator's quote as a W3C ``TextQuoteSelector``."""

    if locator.text is None or not locator.text.has_match:
        return None
    if context_length is None:
        context_length = get_settings().selector_context_length
    selector = {"type": "TextQuoteSelector", "exact": locator.text.match}
    prefix = locator.text.prefix[-context_length:] if context_length > 0 else ""
    suffix = locator.text.suffix[:context_length] if context_length > 0 else ""
    if prefix:
        selector["prefix"] = prefix
    if suffix:
        selector["suffix"] = suffix
    return selector


def locator_from_quote_selector(
    selector: Dict[str, Any],
    *,
    progression: float = 0.0,
    structural_address: str | None = None,
) -> Locator:
    """Build a locator from a ``TextQuoteSelector`` dict."""

    if selector.get("type", "TextQuoteSelector") != "TextQuoteSelector":
        raise ValueError(f"Unsupported selector type: {selector.get('type')!r}")
    return Locator(
        progression=progression,
        structural_address=structural_address,
        text=TextContext(
            prefix=str(selector.get("prefix") or ""),
            match=str(selector.get("exact") or ""),
            suffix=str(selector.get("suffix") or ""),
        ),
    )


__all__ = [
    "locator_from_quote_selector",
    "to_locator",
    "to_quote_selector",
    "unit_locator",
]
