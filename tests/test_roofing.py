from __future__ import annotations

import math

import pytest

from pricebook.estimators import EstimateValidationError, RoofingEstimator
from pricebook.lifecycle import CatalogSnapshot, ConfigurationManager
from pricebook.service import resolver_for, run_estimate

SCENARIO = {"area_sqft": 2000, "material": "Asphalt Shingles", "waste_factor": 10, "include_ice_shield": True}


def _items(estimate):
    return {item.label: item for item in estimate.line_items}


def test_reference_scenario_total() -> None:
    estimate = run_estimate("roofing", SCENARIO)

    assert [item.label for item in estimate.line_items] == [
        "Asphalt Shingles",
        "Ice & Water Shield",
        "Ridge Cap",
        "Drip Edge",
        "Nails & Fasteners",
    ]
    items = _items(estimate)
    assert items["Asphalt Shingles"].quantity == pytest.approx(22.0)
    assert items["Asphalt Shingles"].cost == pytest.approx(7700.0)
    assert items["Ice & Water Shield"].quantity == 10
    assert items["Ice & Water Shield"].cost == pytest.approx(700.0)
    assert items["Ridge Cap"].cost == pytest.approx(650.0)
    assert items["Drip Edge"].quantity == pytest.approx(math.sqrt(2000) * 4)
    assert items["Drip Edge"].cost == pytest.approx(447.2136, abs=1e-4)
    assert items["Nails & Fasteners"].cost == pytest.approx(704.0)
    assert estimate.total == pytest.approx(10201.21)


def test_seeded_catalog_matches_defaults(roofing_snapshot: CatalogSnapshot) -> None:
    estimate = run_estimate("roofing", SCENARIO, resolver_for(roofing_snapshot))

    assert estimate.total == pytest.approx(10201.21)


def test_catalog_price_edit_flows_into_estimate(
    manager: ConfigurationManager, roofing_snapshot: CatalogSnapshot
) -> None:
    ridge = next(m for m in roofing_snapshot.materials if m.name == "Ridge Cap")
    manager.catalog.update_material(ridge.id, price=5.0)
    snapshot = manager.open_catalog(roofing_snapshot.configuration.owner_id, "roofing").data

    estimate = run_estimate("roofing", SCENARIO, resolver_for(snapshot))

    assert _items(estimate)["Ridge Cap"].cost == pytest.approx(1000.0)
    assert estimate.total == pytest.approx(10551.21)
    assert any("Ridge Cap" in a.message for a in estimate.assumptions)


def test_ice_shield_roll_size_comes_from_unit_spec(
    manager: ConfigurationManager, roofing_snapshot: CatalogSnapshot
) -> None:
    shield = next(m for m in roofing_snapshot.materials if m.name == "Ice & Water Shield")
    manager.catalog.update_material(shield.id, metadata={"unitSpec": "100 sq ft"})
    snapshot = manager.open_catalog(roofing_snapshot.configuration.owner_id, "roofing").data

    estimate = run_estimate("roofing", SCENARIO, resolver_for(snapshot))

    assert _items(estimate)["Ice & Water Shield"].quantity == 20


def test_optional_lines_follow_rule_order() -> None:
    estimate = run_estimate(
        "roofing",
        {
            **SCENARIO,
            "include_underlayment": True,
            "old_layers": 2,
            "skylights": 3,
            "include_ventilation": True,
            "include_warranty": True,
        },
    )

    items = _items(estimate)
    assert [item.label for item in estimate.line_items] == [
        "Asphalt Shingles",
        "Standard Underlayment",
        "Ice & Water Shield",
        "Ridge Cap",
        "Drip Edge",
        "Nails & Fasteners",
        "Debris Disposal (2 layers)",
        "Skylight Flashing",
        "Ventilation System",
        "Extended Warranty",
    ]
    assert items["Standard Underlayment"].cost == pytest.approx(572.0)
    assert items["Debris Disposal (2 layers)"].cost == pytest.approx(1408.0)
    assert items["Skylight Flashing"].cost == pytest.approx(255.0)
    assert items["Ventilation System"].cost == pytest.approx(625.0)
    assert items["Extended Warranty"].cost == pytest.approx(594.0)
    assert estimate.total == pytest.approx(10201.21 + 572 + 1408 + 255 + 625 + 594)


def test_custom_pricing_replaces_primary_line() -> None:
    estimate = run_estimate(
        "roofing",
        {**SCENARIO, "custom_pricing": True, "custom_name": "Cedar Shake", "custom_price": 700},
    )

    primary = estimate.line_items[0]
    assert primary.label == "Cedar Shake"
    assert primary.cost == pytest.approx(15400.0)


def test_ice_shield_can_be_excluded() -> None:
    estimate = run_estimate("roofing", {**SCENARIO, "include_ice_shield": False})

    assert "Ice & Water Shield" not in _items(estimate)
    assert estimate.total == pytest.approx(10201.21 - 700)


@pytest.mark.parametrize("field, low, high", [("area_sqft", 2000, 2600), ("waste_factor", 5, 20)])
def test_total_is_monotonic(field: str, low: float, high: float) -> None:
    smaller = run_estimate("roofing", {**SCENARIO, field: low})
    larger = run_estimate("roofing", {**SCENARIO, field: high})

    assert larger.total > smaller.total


@pytest.mark.parametrize(
    "overrides",
    [
        {"area_sqft": 0},
        {"area_sqft": -50},
        {"area_sqft": None},
        {"waste_factor": 150},
        {"custom_pricing": True, "custom_name": "", "custom_price": 100},
        {"old_layers": -1},
    ],
)
def test_invalid_inputs_never_reach_the_calculator(monkeypatch, overrides) -> None:
    def fail(*args, **kwargs):
        raise AssertionError("estimate() must not run for invalid input")

    monkeypatch.setattr(RoofingEstimator, "estimate", fail)

    with pytest.raises(EstimateValidationError):
        run_estimate("roofing", {**SCENARIO, **overrides})


def test_non_numeric_area_is_a_validation_error() -> None:
    with pytest.raises(ValueError) as excinfo:
        run_estimate("roofing", {**SCENARIO, "area_sqft": "lots"})

    assert isinstance(excinfo.value, EstimateValidationError)
    assert any("area_sqft" in error for error in excinfo.value.errors)


def test_estimate_serializes_rounded_values() -> None:
    payload = run_estimate("roofing", SCENARIO).to_dict()

    assert payload["trade"] == "roofing"
    assert payload["total"] == 10201.21
    drip = next(item for item in payload["line_items"] if item["label"] == "Drip Edge")
    assert drip["cost"] == 447.21
    assert payload["assumptions"]
