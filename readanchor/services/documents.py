"""Document/text provider contract and an in-memory implementation."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from .normalize import normalize

BLANK_LINE_RE = re.compile(r"\n\s*\n")


@runtime_checkable
class DocumentProvider(Protocol):
    """What the anchoring core needs from a rendered document.

    ``extract_normalized_text`` must equal the normalized concatenation of
    the raw texts yielded by ``enumerate_text_units``.
    """

    def extract_normalized_text(self) -> str: ...

    def enumerate_text_units(self) -> Sequence[Tuple[Any, str]]: ...

    def construct_span(
        self, start_unit: Any, start_offset: int, end_unit: Any, end_offset: int
    ) -> Any | None: ...


@dataclass(slots=True, eq=False)
class TextNode:
    """Addressable text unit of a :class:`TextDocument`."""

    index: int
    text: str
    node_id: Optional[str] = None


@dataclass(slots=True)
class TextSpan:
    start_node: TextNode
    start_offset: int
    end_node: TextNode
    end_offset: int
    text: str


@dataclass(slots=True)
class TextDocument:
    """Plain text document split into ordered text units."""

    nodes: List[TextNode] = field(default_factory=list)
    spine_index: int = 0
    href: Optional[str] = None

    @classmethod
    def from_units(
        cls,
        units: Sequence[str],
        *,
        spine_index: int = 0,
        href: str | None = None,
        ids: Sequence[str | None] | None = None,
    ) -> "TextDocument":
        nodes = [
            TextNode(
                index=idx,
                text=text,
                node_id=(ids[idx] if ids is not None and idx < len(ids) else None),
            )
            for idx, text in enumerate(units)
        ]
        return cls(nodes=nodes, spine_index=spine_index, href=href)

    @classmethod
    def from_text(
        cls, text: str, *, spine_index: int = 0, href: str | None = None
    ) -> "TextDocument":
        """Split ``text`` into paragraph units on blank lines.

        Separators stay attached to the preceding unit so that the unit
        texts concatenate back to ``text``.
        """

        units: list[str] = []
        cursor = 0
        for match in BLANK_LINE_RE.finditer(text):
            units.append(text[cursor:match.end()])
            cursor = match.end()
        if cursor < len(text) or not units:
            units.append(text[cursor:])
        return cls.from_units(units, spine_index=spine_index, href=href)

    @property
    def raw_text(self) -> str:
        return "".join(node.text for node in self.nodes)

    def extract_normalized_text(self) -> str:
        return normalize(self.raw_text)

    def enumerate_text_units(self) -> Sequence[Tuple[TextNode, str]]:
        return [(node, node.text) for node in self.nodes]

    def node_by_id(self, node_id: str) -> TextNode | None:
        for node in self.nodes:
            if node.node_id == node_id:
                return node
        return None

    def construct_span(
        self,
        start_unit: TextNode,
        start_offset: int,
        end_unit: TextNode,
        end_offset: int,
    ) -> TextSpan | None:
        if start_unit not in self.nodes or end_unit not in self.nodes:
            return None
        if not 0 <= start_offset <= len(start_unit.text):
            return None
        if not 0 <= end_offset <= len(end_unit.text):
            return None
        if (end_unit.index, end_offset) < (start_unit.index, start_offset):
            return None

        if start_unit is end_unit:
            text = start_unit.text[start_offset:end_offset]
        else:
            parts = [start_unit.text[start_offset:]]
            parts.extend(
                node.text for node in self.nodes[start_unit.index + 1 : end_unit.index]
            )
            parts.append(end_unit.text[:end_offset])
            text = "".join(parts)
        return TextSpan(
            start_node=start_unit,
            start_offset=start_offset,
            end_node=end_unit,
            end_offset=end_offset,
            text=text,
        )


__all__ = ["DocumentProvider", "TextDocument", "TextNode", "TextSpan"]
