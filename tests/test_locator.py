"""Tests for building and serializing locators."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from readanchor.models import Locator, TextContext, TextRange
from readanchor.services.addressing import UnitAddressResolver
from readanchor.services.documents import TextDocument
from readanchor.services.locator import (
    locator_from_quote_selector,
    to_locator,
    to_quote_selector,
    unit_locator,
)


@pytest.fixture()
def dickens() -> TextDocument:
    return TextDocument.from_units(
        ["It was the best of times, ", "it was the worst of times."],
        href="ch1.xhtml",
    )


def test_to_locator_captures_quote_context_and_address(dickens):
    locator = to_locator(
        dickens,
        TextRange(1, 11, 1, 16, "worst"),
        context_length=10,
        address_resolver=UnitAddressResolver(),
    )

    assert locator.text == TextContext(prefix="t was the ", match="worst", suffix=" of times.")
    assert locator.progression == pytest.approx(37 / 52)
    assert locator.structural_address == "epubcfi(/6/2!/4/4:11)"
    assert locator.href == "ch1.xhtml"
    assert locator.position == 0


def test_to_locator_without_resolver_has_no_address(dickens):
    locator = to_locator(dickens, TextRange(0, 0, 0, 2, "It"))

    assert locator.structural_address is None
    assert locator.progression == 0.0
    assert locator.text.prefix == ""


def test_locator_round_trips_through_dict(dickens):
    locator = to_locator(
        dickens, TextRange(1, 11, 1, 16, "worst"), address_resolver=UnitAddressResolver()
    )

    payload = locator.to_dict()

    assert all(value is not None for value in payload.values())
    assert "title" not in payload
    assert Locator.from_dict(json.loads(json.dumps(payload))) == locator


def test_locator_is_hashable_by_value():
    first = Locator(progression=0.25, text=TextContext(match="quote"))
    second = Locator(progression=0.25, text=TextContext(match="quote"))

    assert first == second
    assert len({first, second}) == 1


@pytest.mark.parametrize("progression", [-0.1, 1.5])
def test_locator_rejects_out_of_range_progression(progression):
    with pytest.raises(ValidationError):
        Locator(progression=progression)


def test_progression_only_locator():
    assert Locator(progression=0.4).progression_only
    assert Locator(progression=0.4, text=TextContext(match="   ")).progression_only
    assert not Locator(progression=0.4, text=TextContext(match="x")).progression_only


def test_unit_locator_quotes_start_of_unit(dickens):
    locator = unit_locator(dickens, 1, address_resolver=UnitAddressResolver())

    assert locator.match == "it was the"
    assert locator.structural_address == "epubcfi(/6/2!/4/4:0)"
    assert locator.progression == pytest.approx(26 / 52)


def test_unit_locator_falls_back_to_progression():
    document = TextDocument.from_units(["First unit. ", "   ", "Last."])

    blank = unit_locator(document, 1)
    missing = unit_locator(document, 9)

    assert blank.progression_only
    assert blank.progression == pytest.approx(12 / 17)
    assert missing.progression_only
    assert missing.progression == 0.0


def test_quote_selector_export_trims_context():
    locator = Locator(
        progression=0.5,
        text=TextContext(prefix="p" * 40, match="quoted words", suffix="s" * 40),
    )

    selector = to_quote_selector(locator)

    assert selector == {
        "type": "TextQuoteSelector",
        "exact": "quoted words",
        "prefix": "p" * 32,
        "suffix": "s" * 32,
    }
    assert to_quote_selector(Locator(progression=0.5)) is None


def test_quote_selector_import():
    selector = {"type": "TextQuoteSelector", "exact": "quoted", "prefix": "a "}

    locator = locator_from_quote_selector(selector, progression=0.2)

    assert locator.text == TextContext(prefix="a ", match="quoted", suffix="")
    assert locator.progression == 0.2

    with pytest.raises(ValueError):
        locator_from_quote_selector({"type": "TextPositionSelector", "start": 1})
