"""Structural addresses: collaborator contract and a CFI-style resolver.

Addresses follow the shape ``epubcfi(/6/<spine step>!/4/<unit step>:<offset>)``.
Steps are even numbers (``2 * (index + 1)``) and may carry an ``[id]``
assertion; the final content step selects the text unit.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Tuple, runtime_checkable

from ..utils.errors import MalformedAddressError
from .documents import DocumentProvider

ADDRESS_PREFIX = "epubcfi("
STEP_RE = re.compile(r"/(\d+)(?:\[([^\]]*)\])?")
OFFSET_RE = re.compile(r":(\d+)(?:\[([^\]]*)\])?")
PACKAGE_SPINE_STEP = 6
BODY_STEP = 4


@dataclass(slots=True, frozen=True)
class AddressStep:
    index: int
    assertion: Optional[str] = None

    def __str__(self) -> str:
        if self.assertion:
            return f"/{self.index}[{self.assertion}]"
        return f"/{self.index}"


@dataclass(slots=True, frozen=True)
class StructuralAddress:
    package_steps: Tuple[AddressStep, ...]
    content_steps: Tuple[AddressStep, ...]
    offset: Optional[int] = None

    def __str__(self) -> str:
        return format_address(self)

    @property
    def spine_index(self) -> int | None:
        if len(self.package_steps) >= 2 and self.package_steps[0].index == PACKAGE_SPINE_STEP:
            return self.package_steps[1].index // 2 - 1
        return None

    def sort_key(self) -> Tuple[Tuple[int, ...], Tuple[int, ...], int]:
        return (
            tuple(step.index for step in self.package_steps),
            tuple(step.index for step in self.content_steps),
            self.offset or 0,
        )


@dataclass(slots=True)
class StructuralPosition:
    unit: Any
    offset: int


@runtime_checkable
class StructuralAddressResolver(Protocol):
    def is_valid_address(self, address: str) -> bool: ...

    def resolve(self, address: str, document: DocumentProvider) -> StructuralPosition | None: ...


def _parse_steps(path: str, address: str) -> Tuple[Tuple[AddressStep, ...], str]:
    steps: list[AddressStep] = []
    cursor = 0
    while cursor < len(path) and path[cursor] == "/":
        match = STEP_RE.match(path, cursor)
        if match is None:
            raise MalformedAddressError(f"Invalid step at position {cursor}", address=address)
        steps.append(AddressStep(index=int(match.group(1)), assertion=match.group(2) or None))
        cursor = match.end()
    return tuple(steps), path[cursor:]


def parse_address(address: str) -> StructuralAddress:
    """Parse an address string, raising :class:`MalformedAddressError`."""

    if not address or not isinstance(address, str):
        raise MalformedAddressError("Empty structural address", address=address)
    value = address.strip()
    if not value.startswith(ADDRESS_PREFIX) or not value.endswith(")"):
        raise MalformedAddressError("Address must be wrapped in epubcfi(...)", address=address)
    body = value[len(ADDRESS_PREFIX) : -1]
    if not body.startswith("/"):
        raise MalformedAddressError("Address path must start with '/'", address=address)

    package_steps, rest = _parse_steps(body, address)
    content_steps: Tuple[AddressStep, ...] = ()
    if rest.startswith("!"):
        content_steps, rest = _parse_steps(rest[1:], address)
        if not content_steps:
            raise MalformedAddressError("Indirection without content steps", address=address)
    else:
        package_steps, content_steps = (), package_steps

    offset: int | None = None
    if rest:
        match = OFFSET_RE.fullmatch(rest)
        if match is None:
            raise MalformedAddressError(f"Unexpected trailing text {rest!r}", address=address)
        offset = int(match.group(1))

    if not content_steps:
        raise MalformedAddressError("Address has no steps", address=address)
    return StructuralAddress(package_steps=package_steps, content_steps=content_steps, offset=offset)


def format_address(address: StructuralAddress) -> str:
    path = "".join(str(step) for step in address.package_steps)
    if address.package_steps:
        path += "!"
    path += "".join(str(step) for step in address.content_steps)
    if address.offset is not None:
        path += f":{address.offset}"
    return f"{ADDRESS_PREFIX}{path})"


def is_valid_address(address: str | None) -> bool:
    try:
        parse_address(address or "")
    except MalformedAddressError:
        return False
    return True


def compare_addresses(a: str, b: str) -> int:
    """Order two addresses in document order; unparsable input compares equal."""

    try:
        key_a = parse_address(a).sort_key()
        key_b = parse_address(b).sort_key()
    except MalformedAddressError:
        return 0
    if key_a < key_b:
        return -1
    if key_a > key_b:
        return 1
    return 0


class UnitAddressResolver:
    """Resolve addresses whose last content step names a text unit."""

    def is_valid_address(self, address: str) -> bool:
        return is_valid_address(address)

    def resolve(self, address: str, document: DocumentProvider) -> StructuralPosition | None:
        try:
            parsed = parse_address(address)
        except MalformedAddressError:
            return None

        expected_spine = getattr(document, "spine_index", None)
        if (
            expected_spine is not None
            and parsed.spine_index is not None
            and parsed.spine_index != expected_spine
        ):
            return None

        units = list(document.enumerate_text_units())
        step = parsed.content_steps[-1]
        target = None
        if step.assertion:
            for unit, raw in units:
                if getattr(unit, "node_id", None) == step.assertion:
                    target = (unit, raw)
                    break
        if target is None:
            if step.index < 2 or step.index % 2:
                return None
            position = step.index // 2 - 1
            if position >= len(units):
                return None
            target = units[position]

        unit, raw = target
        offset = parsed.offset or 0
        if offset > len(raw):
            return None
        return StructuralPosition(unit=unit, offset=offset)

    def address_for(self, document: DocumentProvider, unit: Any, offset: int) -> str | None:
        units = list(document.enumerate_text_units())
        for idx, (candidate, _) in enumerate(units):
            if candidate is unit:
                break
        else:
            return None
        spine_index = getattr(document, "spine_index", None) or 0
        node_id = getattr(unit, "node_id", None)
        address = StructuralAddress(
            package_steps=(
                AddressStep(PACKAGE_SPINE_STEP),
                AddressStep((spine_index + 1) * 2),
            ),
            content_steps=(AddressStep(BODY_STEP), AddressStep((idx + 1) * 2, node_id)),
            offset=offset,
        )
        return format_address(address)


__all__ = [
    "AddressStep",
    "StructuralAddress",
    "StructuralAddressResolver",
    "StructuralPosition",
    "UnitAddressResolver",
    "compare_addresses",
    "format_address",
    "is_valid_address",
    "parse_address",
]
