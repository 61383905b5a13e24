from __future__ import annotations

import math

import pytest

from pricebook.catalog import CatalogStore
from pricebook.models import CONFIGURATIONS
from pricebook.storage import MemoryRecordStore, StorageError


@pytest.fixture
def config_id(store: MemoryRecordStore) -> str:
    return store.insert(CONFIGURATIONS, {"owner_id": "user-1", "trade": "roofing", "is_configured": False})["id"]


@pytest.fixture
def catalog(store: MemoryRecordStore) -> CatalogStore:
    return CatalogStore(store)


def test_add_material_assigns_next_sort_order(catalog: CatalogStore, config_id: str) -> None:
    first = catalog.add_material(config_id, category="components", name="Ridge Cap", price=3.25)
    second = catalog.add_material(config_id, category="components", name="Drip Edge", price=2.5)

    assert first and second
    assert first.data.sort_order == 0
    assert second.data.sort_order == 1
    assert [m.name for m in catalog.list_materials(config_id).data] == ["Ridge Cap", "Drip Edge"]


def test_add_material_structures_unit_spec(catalog: CatalogStore, config_id: str) -> None:
    added = catalog.add_material(
        config_id,
        category="underlayment",
        name="Ice & Water Shield",
        price=70,
        unit="roll",
        metadata={"unitSpec": "200 sq ft"},
    )

    assert added
    assert added.data.unit_spec.quantity == pytest.approx(200.0)
    assert added.data.metadata["unitSpec"]["text"] == "200 sq ft"


@pytest.mark.parametrize(
    "fields, message",
    [
        ({"name": "  ", "price": 1}, "name is required"),
        ({"name": "Nails", "price": -1}, "cannot be negative"),
        ({"name": "Nails", "price": "abc"}, "must be a number"),
        ({"name": "Nails", "price": True}, "must be a number"),
        ({"name": "Nails", "price": math.nan}, "finite"),
    ],
)
def test_add_material_rejects_invalid_input(catalog: CatalogStore, config_id: str, fields, message) -> None:
    result = catalog.add_material(config_id, category="components", **fields)

    assert not result
    assert message in result.error
    assert catalog.list_materials(config_id).data == []


def test_duplicate_active_name_is_rejected_case_insensitively(catalog: CatalogStore, config_id: str) -> None:
    assert catalog.add_material(config_id, category="components", name="Ridge Cap", price=3.25)

    duplicate = catalog.add_material(config_id, category="components", name="ridge cap", price=5)

    assert not duplicate
    assert "already exists" in duplicate.error


def test_same_name_allowed_in_other_category(catalog: CatalogStore, config_id: str) -> None:
    assert catalog.add_material(config_id, category="components", name="Nails", price=32)
    assert catalog.add_material(config_id, category="accessories", name="Nails", price=30)


def test_archived_name_can_be_reused_but_not_restored(catalog: CatalogStore, config_id: str) -> None:
    original = catalog.add_material(config_id, category="components", name="Ridge Cap", price=3.25).data
    assert catalog.archive_material(original.id)

    replacement = catalog.add_material(config_id, category="components", name="Ridge Cap", price=5.0)
    assert replacement

    restored = catalog.unarchive_material(original.id)
    assert not restored
    assert "already exists" in restored.error


def test_update_material_changes_price_and_checks_duplicates(catalog: CatalogStore, config_id: str) -> None:
    ridge = catalog.add_material(config_id, category="components", name="Ridge Cap", price=3.25).data
    catalog.add_material(config_id, category="components", name="Drip Edge", price=2.5)

    updated = catalog.update_material(ridge.id, price=5)
    assert updated
    assert updated.data.price == pytest.approx(5.0)

    renamed = catalog.update_material(ridge.id, name="DRIP EDGE")
    assert not renamed
    assert "already exists" in renamed.error


def test_update_material_rejects_unknown_fields(catalog: CatalogStore, config_id: str) -> None:
    ridge = catalog.add_material(config_id, category="components", name="Ridge Cap", price=3.25).data

    result = catalog.update_material(ridge.id, config_id="other")

    assert not result
    assert "config_id" in result.error


def test_update_missing_material_reports_storage_failure(catalog: CatalogStore) -> None:
    result = catalog.update_material("missing", price=1)

    assert not result
    assert isinstance(result.cause, StorageError)


def test_delete_material_removes_it(catalog: CatalogStore, config_id: str) -> None:
    ridge = catalog.add_material(config_id, category="components", name="Ridge Cap", price=3.25).data

    assert catalog.delete_material(ridge.id)
    assert catalog.list_materials(config_id).data == []
    assert not catalog.delete_material(ridge.id)


def test_materials_by_category_skips_archived(catalog: CatalogStore, config_id: str) -> None:
    ridge = catalog.add_material(config_id, category="components", name="Ridge Cap", price=3.25).data
    catalog.add_material(config_id, category="components", name="Drip Edge", price=2.5)
    catalog.add_material(config_id, category="shingles", name="Asphalt Shingles", price=350)
    catalog.archive_material(ridge.id)

    listed = catalog.materials_by_category(config_id, "components")

    assert [m.name for m in listed.data] == ["Drip Edge"]


def test_pricing_override_upsert_keeps_one_row(catalog: CatalogStore, config_id: str) -> None:
    assert catalog.set_pricing_override(config_id, "painting_supplies_set", 25)
    assert catalog.set_pricing_override(config_id, "painting_supplies_set", 30)

    overrides = catalog.get_pricing_overrides(config_id).data

    assert len(overrides) == 1
    assert catalog.pricing_override_map(config_id).data == {"painting_supplies_set": 30.0}


def test_pricing_override_validation(catalog: CatalogStore, config_id: str) -> None:
    assert not catalog.set_pricing_override(config_id, "", 10)
    assert not catalog.set_pricing_override(config_id, "fasteners_per_square", -5)


def test_bulk_deletes_report_counts(catalog: CatalogStore, config_id: str) -> None:
    catalog.add_material(config_id, category="components", name="Ridge Cap", price=3.25)
    catalog.add_material(config_id, category="components", name="Drip Edge", price=2.5)
    catalog.set_pricing_overrides(config_id, {"a": 1, "b": 2})

    assert catalog.delete_all_materials(config_id).data == 2
    assert catalog.delete_all_pricing_overrides(config_id).data == 2


class _BrokenStore(MemoryRecordStore):
    def fetch(self, table, filters=None, *, order_by=None):
        raise StorageError("connection lost")


def test_storage_failure_is_returned_not_raised(caplog) -> None:
    catalog = CatalogStore(_BrokenStore())

    with caplog.at_level("WARNING", logger="pricebook.catalog"):
        result = catalog.list_materials("cfg")

    assert not result
    assert result.error == "connection lost"
    assert "Failed to list materials" in caplog.text


@pytest.mark.parametrize(
    "fields, message",
    [
        ({"category": "   "}, "category is required"),
        ({"category": None}, "category is required"),
        ({"sort_order": "last"}, "whole number"),
        ({"sort_order": 1.5}, "whole number"),
        ({"sort_order": True}, "whole number"),
    ],
)
def test_update_material_rejects_invalid_fields_before_writing(
    catalog: CatalogStore, config_id: str, fields, message
) -> None:
    ridge = catalog.add_material(config_id, category="components", name="Ridge Cap", price=3.25).data

    result = catalog.update_material(ridge.id, **fields)

    assert not result
    assert message in result.error
    stored = catalog.list_materials(config_id).data[0]
    assert (stored.category, stored.sort_order) == ("components", 0)


def test_update_material_normalizes_category_and_sort_order(catalog: CatalogStore, config_id: str) -> None:
    ridge = catalog.add_material(config_id, category="components", name="Ridge Cap", price=3.25).data

    updated = catalog.update_material(ridge.id, category="  accessories ", sort_order="7")

    assert updated
    assert updated.data.category == "accessories"
    assert updated.data.sort_order == 7
    assert catalog.find_material(config_id, "ridge cap", "accessories").data.id == ridge.id


def test_add_material_rejects_non_integer_sort_order(catalog: CatalogStore, config_id: str) -> None:
    result = catalog.add_material(config_id, category="components", name="Ridge Cap", price=3.25, sort_order="first")

    assert not result
    assert catalog.list_materials(config_id).data == []


def test_find_material(catalog: CatalogStore, config_id: str) -> None:
    ridge = catalog.add_material(config_id, category="components", name="Ridge Cap", price=3.25).data
    shingle = catalog.add_material(config_id, category="shingles", name="Ridge Cap", price=4.0).data
    drip = catalog.add_material(config_id, category="components", name="Drip Edge", price=2.5).data
    catalog.archive_material(drip.id)

    assert catalog.find_material(config_id, "RIDGE CAP", "components").data.id == ridge.id
    assert catalog.find_material(config_id, "ridge cap", "shingles").data.id == shingle.id
    assert catalog.find_material(config_id, "Ridge Cap").data.id == ridge.id
    assert catalog.find_material(config_id, "Drip Edge", "components").data is None
    assert catalog.find_material(config_id, "Valley Metal").data is None
    assert catalog.find_material(config_id, "Ridge Cap", "underlayment").data is None


def test_find_material_reports_storage_failure() -> None:
    class _Down(MemoryRecordStore):
        def fetch(self, table, filters=None, *, order_by=None):
            raise StorageError("database unavailable")

    result = CatalogStore(_Down()).find_material("config-1", "Ridge Cap")

    assert not result
    assert isinstance(result.cause, StorageError)
