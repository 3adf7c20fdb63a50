"""Persisted position records used to re-anchor annotations."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class TextContext(BaseModel):
    """Quoted text of an anchored span plus the text around it."""

    model_config = ConfigDict(frozen=True)

    prefix: str = ""
    match: str = ""
    suffix: str = ""

    @property
    def has_match(self) -> bool:
        return bool(self.match and self.match.strip())


class Locator(BaseModel):
    """Format-agnostic description of a reading position.

    ``structural_address`` is the precise path handed to the structural
    collaborator, ``text`` carries the quote used by the text tiers and
    ``progression`` is the fractional position used as a last resort.
    Locators are immutable and hash by value, so they can key result maps.
    """

    model_config = ConfigDict(frozen=True)

    progression: float = Field(default=0.0, ge=0.0, le=1.0)
    structural_address: Optional[str] = None
    text: Optional[TextContext] = None
    href: Optional[str] = None
    title: Optional[str] = None
    position: Optional[int] = None
    total_progression: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    @property
    def match(self) -> str | None:
        if self.text is None or not self.text.has_match:
            return None
        return self.text.match

    @property
    def progression_only(self) -> bool:
        """True when neither a structural address nor quoted text is stored."""

        return not self.structural_address and self.match is None

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Locator":
        return cls.model_validate(payload)


__all__ = ["Locator", "TextContext"]
