from __future__ import annotations

import pytest

from pricebook.units import UnitSpec, normalize_metadata, parse_unit_spec


@pytest.mark.parametrize(
    "text, expected",
    [
        ("200 sq ft", 200.0),
        ("12.5 ft", 12.5),
        ("covers 400 sq ft", 400.0),
        ("2 rolls of 50ft", 2.0),
        ("per roll", None),
        ("", None),
        (None, None),
        (200, None),
    ],
)
def test_parse_unit_spec_returns_first_number(text, expected) -> None:
    assert parse_unit_spec(text) == expected


def test_unit_spec_parse_splits_quantity_and_unit() -> None:
    spec = UnitSpec.parse("165 linear ft")

    assert spec.quantity == pytest.approx(165.0)
    assert spec.unit == "linear ft"
    assert str(spec) == "165 linear ft"


def test_unit_spec_without_number_keeps_text() -> None:
    spec = UnitSpec.parse("per bundle")

    assert spec.quantity is None
    assert spec.unit == "per bundle"


def test_unit_spec_from_structured_value() -> None:
    spec = UnitSpec.from_value({"quantity": "250", "unit": "sq ft"})

    assert spec is not None
    assert spec.quantity == pytest.approx(250.0)
    assert str(spec) == "250 sq ft"


def test_unit_spec_from_structured_text_only() -> None:
    spec = UnitSpec.from_value({"text": "1000 count"})

    assert spec is not None
    assert spec.quantity == pytest.approx(1000.0)


def test_unit_spec_from_number_and_blank() -> None:
    assert UnitSpec.from_value(80).quantity == pytest.approx(80.0)
    assert UnitSpec.from_value("   ") is None
    assert UnitSpec.from_value(None) is None


def test_normalize_metadata_structures_legacy_strings() -> None:
    metadata = normalize_metadata({"unitSpec": "200 sq ft", "brand": "GAF"})

    assert metadata["brand"] == "GAF"
    assert metadata["unitSpec"] == {"quantity": 200.0, "unit": "sq ft", "text": "200 sq ft"}


def test_normalize_metadata_drops_empty_spec() -> None:
    assert normalize_metadata({"unitSpec": ""}) == {}
    assert normalize_metadata(None) == {}
