"""Material and pricing override persistence for a single configuration."""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Mapping, Optional

from .models import MATERIALS, PRICING_OVERRIDES, Material, PricingOverride, Result
from .storage.base import RecordStore, StorageError
from .units import normalize_metadata

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = {"name", "price", "unit", "category", "metadata", "sort_order"}


class CatalogStore:
    """CRUD over materials and flat pricing overrides.

    Every method returns a :class:`~pricebook.models.Result`; storage failures
    are logged and reported, never raised.
    """

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    # --- Materials -----------------------------------------------------------------

    def list_materials(self, config_id: str) -> Result[List[Material]]:
        try:
            rows = self.store.fetch(MATERIALS, {"config_id": config_id}, order_by=["sort_order"])
        except StorageError as exc:
            return _failed("list materials", exc)
        return Result.success([Material.from_record(row) for row in rows])

    def materials_by_category(self, config_id: str, category: str) -> Result[List[Material]]:
        listed = self.list_materials(config_id)
        if not listed:
            return listed
        return Result.success(
            [m for m in listed.data or [] if m.category == category and not m.is_archived]
        )

    def find_material(
        self, config_id: str, name: str, category: Optional[str] = None
    ) -> Result[Optional[Material]]:
        listed = self.list_materials(config_id)
        if not listed:
            return listed.forward("Failed to list materials")
        match = next((m for m in listed.data or [] if m.matches(name, category)), None)
        return Result.success(match)

    def add_material(
        self,
        config_id: str,
        *,
        category: str,
        name: str,
        price: Any,
        unit: str = "",
        metadata: Optional[Dict[str, Any]] = None,
        sort_order: Optional[int] = None,
    ) -> Result[Material]:
        problem = _validate_material(name=name, category=category, price=price)
        if problem:
            return Result.failure(problem)
        if sort_order is not None:
            sort_order = _coerce_sort_order(sort_order)
            if sort_order is None:
                return Result.failure("Sort order must be a whole number")

        try:
            existing = [
                Material.from_record(row)
                for row in self.store.fetch(MATERIALS, {"config_id": config_id}, order_by=["sort_order"])
            ]
            duplicate = _find_active_duplicate(existing, name=name, category=category)
            if duplicate is not None:
                return Result.failure(
                    f"An active material named '{duplicate.name}' already exists in '{category}'"
                )
            if sort_order is None:
                sort_order = max((m.sort_order for m in existing), default=-1) + 1
            row = self.store.insert(
                MATERIALS,
                {
                    "config_id": config_id,
                    "category": category.strip(),
                    "name": name.strip(),
                    "price": float(price),
                    "unit": unit or "",
                    "is_archived": False,
                    "sort_order": int(sort_order),
                    "metadata": normalize_metadata(metadata),
                },
            )
        except StorageError as exc:
            return _failed("add material", exc)
        return Result.success(Material.from_record(row))

    def update_material(self, material_id: str, **fields: Any) -> Result[Material]:
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            return Result.failure(f"Cannot update material fields: {', '.join(sorted(unknown))}")

        changes = dict(fields)
        if "name" in changes:
            if not str(changes["name"] or "").strip():
                return Result.failure("Material name is required")
            changes["name"] = str(changes["name"]).strip()
        if "category" in changes:
            if not str(changes["category"] or "").strip():
                return Result.failure("Material category is required")
            changes["category"] = str(changes["category"]).strip()
        if "sort_order" in changes:
            sort_order = _coerce_sort_order(changes["sort_order"])
            if sort_order is None:
                return Result.failure("Sort order must be a whole number")
            changes["sort_order"] = sort_order
        if "price" in changes:
            problem = _validate_price(changes["price"])
            if problem:
                return Result.failure(problem)
            changes["price"] = float(changes["price"])
        if "metadata" in changes:
            changes["metadata"] = normalize_metadata(changes["metadata"])

        try:
            if "name" in changes or "category" in changes:
                current = self.store.fetch_one(MATERIALS, {"id": material_id})
                if current is not None and not current.get("is_archived"):
                    conflict = self._conflict_for(current, changes)
                    if conflict:
                        return Result.failure(conflict)
            row = self.store.update(MATERIALS, material_id, changes)
        except StorageError as exc:
            return _failed("update material", exc)
        return Result.success(Material.from_record(row))

    def archive_material(self, material_id: str) -> Result[Material]:
        try:
            row = self.store.update(MATERIALS, material_id, {"is_archived": True})
        except StorageError as exc:
            return _failed("archive material", exc)
        return Result.success(Material.from_record(row))

    def unarchive_material(self, material_id: str) -> Result[Material]:
        try:
            current = self.store.fetch_one(MATERIALS, {"id": material_id})
            if current is not None and current.get("is_archived"):
                conflict = self._conflict_for(current, {})
                if conflict:
                    return Result.failure(conflict)
            row = self.store.update(MATERIALS, material_id, {"is_archived": False})
        except StorageError as exc:
            return _failed("restore material", exc)
        return Result.success(Material.from_record(row))

    def delete_material(self, material_id: str) -> Result[None]:
        try:
            self.store.delete(MATERIALS, material_id)
        except StorageError as exc:
            return _failed("delete material", exc)
        return Result.success()

    def delete_all_materials(self, config_id: str) -> Result[int]:
        try:
            removed = self.store.delete_where(MATERIALS, {"config_id": config_id})
        except StorageError as exc:
            return _failed("delete materials", exc)
        return Result.success(removed)

    # --- Pricing overrides -----------------------------------------------------------

    def get_pricing_overrides(self, config_id: str) -> Result[List[PricingOverride]]:
        try:
            rows = self.store.fetch(PRICING_OVERRIDES, {"config_id": config_id}, order_by=["component_key"])
        except StorageError as exc:
            return _failed("load pricing overrides", exc)
        return Result.success([PricingOverride.from_record(row) for row in rows])

    def pricing_override_map(self, config_id: str) -> Result[Dict[str, float]]:
        overrides = self.get_pricing_overrides(config_id)
        if not overrides:
            return overrides.forward("Failed to load pricing overrides")
        return Result.success({o.component_key: o.value for o in overrides.data or []})

    def set_pricing_override(self, config_id: str, component_key: str, value: Any) -> Result[PricingOverride]:
        if not (component_key or "").strip():
            return Result.failure("Component key is required")
        problem = _validate_price(value, label="Override value")
        if problem:
            return Result.failure(problem)
        try:
            row = self.store.upsert(
                PRICING_OVERRIDES,
                {"config_id": config_id, "component_key": component_key.strip(), "value": float(value)},
                conflict_keys=("config_id", "component_key"),
            )
        except StorageError as exc:
            return _failed("save pricing override", exc)
        return Result.success(PricingOverride.from_record(row))

    def set_pricing_overrides(self, config_id: str, values: Mapping[str, Any]) -> Result[List[PricingOverride]]:
        saved: List[PricingOverride] = []
        for key, value in values.items():
            result = self.set_pricing_override(config_id, key, value)
            if not result:
                return result.forward(f"Failed to save pricing override '{key}'")
            saved.append(result.data)
        return Result.success(saved)

    def delete_all_pricing_overrides(self, config_id: str) -> Result[int]:
        try:
            removed = self.store.delete_where(PRICING_OVERRIDES, {"config_id": config_id})
        except StorageError as exc:
            return _failed("delete pricing overrides", exc)
        return Result.success(removed)

    def _conflict_for(self, current: Dict[str, Any], changes: Mapping[str, Any]) -> Optional[str]:
        name = str(changes.get("name", current["name"]))
        category = str(changes.get("category", current["category"]))
        siblings = [
            Material.from_record(row)
            for row in self.store.fetch(MATERIALS, {"config_id": current["config_id"]})
            if row["id"] != current["id"]
        ]
        duplicate = _find_active_duplicate(siblings, name=name, category=category)
        if duplicate is None:
            return None
        return f"An active material named '{duplicate.name}' already exists in '{category}'"


def _find_active_duplicate(materials: List[Material], *, name: str, category: str) -> Optional[Material]:
    return next((m for m in materials if m.matches(name.strip(), category.strip())), None)


def _validate_material(*, name: Any, category: Any, price: Any) -> Optional[str]:
    if not str(name or "").strip():
        return "Material name is required"
    if not str(category or "").strip():
        return "Material category is required"
    return _validate_price(price)


def _validate_price(value: Any, *, label: str = "Price") -> Optional[str]:
    if isinstance(value, bool):
        return f"{label} must be a number"
    try:
        number = float(value)
    except (TypeError, ValueError):
        return f"{label} must be a number"
    if math.isnan(number) or math.isinf(number):
        return f"{label} must be a finite number"
    if number < 0:
        return f"{label} cannot be negative"
    return None


def _coerce_sort_order(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _failed(action: str, exc: StorageError) -> Result[Any]:
    logger.warning("Failed to %s: %s", action, exc)
    return Result.failure(str(exc), cause=exc)
