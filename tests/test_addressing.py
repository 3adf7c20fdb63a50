"""Tests for structural address parsing and unit resolution."""

from __future__ import annotations

import pytest

from readanchor.services.addressing import (
    AddressStep,
    UnitAddressResolver,
    compare_addresses,
    format_address,
    is_valid_address,
    parse_address,
)
from readanchor.services.documents import TextDocument
from readanchor.utils.errors import AnchorFailure, MalformedAddressError


def test_parse_full_address():
    parsed = parse_address("epubcfi(/6/4[chap01]!/4/2/22:268)")

    assert parsed.package_steps == (AddressStep(6), AddressStep(4, "chap01"))
    assert [step.index for step in parsed.content_steps] == [4, 2, 22]
    assert parsed.offset == 268
    assert parsed.spine_index == 1
    assert format_address(parsed) == "epubcfi(/6/4[chap01]!/4/2/22:268)"


def test_parse_address_without_indirection():
    parsed = parse_address("epubcfi(/4/6:3)")

    assert parsed.package_steps == ()
    assert [step.index for step in parsed.content_steps] == [4, 6]
    assert parsed.spine_index is None


@pytest.mark.parametrize(
    "address",
    ["", "foo", "epubcfi()", "epubcfi(6/4)", "epubcfi(/6/4!)", "epubcfi(/6/4:x)", "epubcfi(/6/a)"],
)
def test_malformed_addresses(address):
    assert is_valid_address(address) is False
    with pytest.raises(MalformedAddressError) as excinfo:
        parse_address(address)
    assert excinfo.value.code == AnchorFailure.MALFORMED_LOCATOR.value


def test_compare_addresses_follows_document_order():
    assert compare_addresses("epubcfi(/6/2!/4/2:5)", "epubcfi(/6/2!/4/4:0)") == -1
    assert compare_addresses("epubcfi(/6/4!/4/2:0)", "epubcfi(/6/2!/4/8:9)") == 1
    assert compare_addresses("epubcfi(/6/2!/4/4:3)", "epubcfi(/6/2!/4/4:3)") == 0
    assert compare_addresses("epubcfi(/6/2!/4/4:3)", "not an address") == 0


@pytest.fixture()
def chapter() -> TextDocument:
    return TextDocument.from_units(
        ["Intro paragraph. ", "Body paragraph here. ", "Closing."],
        ids=["intro", "body", None],
    )


def test_resolver_maps_steps_to_units(chapter):
    position = UnitAddressResolver().resolve("epubcfi(/6/2!/4/4:3)", chapter)

    assert position is not None
    assert position.unit is chapter.nodes[1]
    assert position.offset == 3


def test_resolver_prefers_id_assertion(chapter):
    position = UnitAddressResolver().resolve("epubcfi(/6/2!/4/10[body]:0)", chapter)

    assert position is not None
    assert position.unit is chapter.nodes[1]


@pytest.mark.parametrize(
    "address",
    [
        "epubcfi(/6/4!/4/2:0)",
        "epubcfi(/6/2!/4/3:0)",
        "epubcfi(/6/2!/4/20:0)",
        "epubcfi(/6/2!/4/6:99)",
        "garbage",
    ],
)
def test_resolver_rejects_unresolvable_addresses(chapter, address):
    assert UnitAddressResolver().resolve(address, chapter) is None


def test_generated_addresses_resolve_back(chapter):
    resolver = UnitAddressResolver()

    address = resolver.address_for(chapter, chapter.nodes[1], 5)

    assert address == "epubcfi(/6/2!/4/4[body]:5)"
    position = resolver.resolve(address, chapter)
    assert position.unit is chapter.nodes[1]
    assert position.offset == 5


def test_address_for_unknown_unit(chapter):
    other = TextDocument.from_units(["elsewhere"])

    assert UnitAddressResolver().address_for(chapter, other.nodes[0], 0) is None
