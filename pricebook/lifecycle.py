"""Configuration lifecycle: lazy creation, default cloning and reset."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .catalog import CatalogStore
from .models import CONFIGURATIONS, Configuration, Material, Result
from .storage.base import RecordStore, StorageError, UniqueViolation
from .trades import DefaultMaterial, TradeCatalog, TradeSchema, load_trade_catalog

logger = logging.getLogger(__name__)


@dataclass
class CatalogSnapshot:
    """Catalog state loaded once per session and reused for every estimate run."""

    configuration: Configuration
    materials: List[Material]
    overrides: Dict[str, float] = field(default_factory=dict)

    @property
    def active_materials(self) -> List[Material]:
        return [material for material in self.materials if not material.is_archived]

    def material(self, material_id: str) -> Optional[Material]:
        return next((m for m in self.materials if m.id == material_id), None)


@dataclass
class DefaultRow:
    """A baseline entry paired with the catalog row that currently prices it."""

    default: DefaultMaterial
    material: Optional[Material]

    @property
    def price(self) -> float:
        return self.material.price if self.material else self.default.price

    @property
    def unit(self) -> str:
        return self.material.unit if self.material else self.default.unit

    @property
    def is_overridden(self) -> bool:
        return self.material is not None and (
            self.material.price != self.default.price or self.material.unit != self.default.unit
        )


@dataclass
class CategoryView:
    key: str
    label: str
    defaults: List[DefaultRow]
    custom: List[Material]
    archived: List[Material]


@dataclass
class CatalogView:
    """Default vs custom split rendered by every trade's configuration screen."""

    trade: str
    label: str
    configuration: Configuration
    categories: List[CategoryView]
    unit_options: List[Dict[str, str]]
    overrides: Dict[str, float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trade": self.trade,
            "label": self.label,
            "configuration": self.configuration.to_dict(),
            "categories": [
                {
                    "key": category.key,
                    "label": category.label,
                    "defaults": [
                        {
                            "name": row.default.name,
                            "price": row.price,
                            "unit": row.unit,
                            "default_price": row.default.price,
                            "overridden": row.is_overridden,
                            "material_id": row.material.id if row.material else None,
                        }
                        for row in category.defaults
                    ],
                    "custom": [material.to_dict() for material in category.custom],
                    "archived": [material.to_dict() for material in category.archived],
                }
                for category in self.categories
            ],
            "unit_options": list(self.unit_options),
            "overrides": dict(self.overrides),
        }


class ConfigurationManager:
    """Owns the (user, trade) configuration record and its catalog baseline."""

    def __init__(self, store: RecordStore, trades: Optional[TradeCatalog] = None) -> None:
        self.store = store
        self.catalog = CatalogStore(store)
        self.trades = trades or load_trade_catalog()

    def schema(self, trade: str) -> TradeSchema:
        return self.trades.get(trade)

    def get_or_create_configuration(self, user_id: str, trade: str) -> Result[Configuration]:
        if not (user_id or "").strip():
            return Result.failure("User not authenticated")
        if trade not in self.trades:
            return Result.failure(f"Unknown trade '{trade}'")

        key = {"owner_id": user_id, "trade": trade.lower()}
        try:
            existing = self.store.fetch_one(CONFIGURATIONS, key)
            if existing is not None:
                return Result.success(Configuration.from_record(existing))

            try:
                created = self.store.insert(CONFIGURATIONS, {**key, "is_configured": False})
            except UniqueViolation:
                # Another request created it between our read and insert.
                logger.info("Configuration for %s/%s created concurrently; re-reading", user_id, trade)
                winner = self.store.fetch_one(CONFIGURATIONS, key)
                if winner is None:
                    return Result.failure(f"Configuration for '{trade}' vanished after a conflicting insert")
                return Result.success(Configuration.from_record(winner))
        except StorageError as exc:
            logger.warning("Failed to load configuration for %s/%s: %s", user_id, trade, exc)
            return Result.failure(str(exc), cause=exc)

        logger.info("Created %s configuration %s for user %s", trade, created["id"], user_id)
        return Result.success(Configuration.from_record(created))

    def get_configuration(self, config_id: str) -> Result[Configuration]:
        try:
            row = self.store.fetch_one(CONFIGURATIONS, {"id": config_id})
        except StorageError as exc:
            return Result.failure(str(exc), cause=exc)
        if row is None:
            return Result.failure(f"No configuration with id {config_id}")
        return Result.success(Configuration.from_record(row))

    def mark_configured(self, config_id: str, configured: bool = True) -> Result[Configuration]:
        try:
            row = self.store.update(CONFIGURATIONS, config_id, {"is_configured": configured})
        except StorageError as exc:
            logger.warning("Failed to flag configuration %s: %s", config_id, exc)
            return Result.failure(str(exc), cause=exc)
        return Result.success(Configuration.from_record(row))

    def add_material(self, configuration: Configuration, **fields: Any) -> Result[Material]:
        """Insert a material, then flag the configuration on its first insertion."""

        added = self.catalog.add_material(configuration.id, **fields)
        if not added or configuration.is_configured:
            return added
        flagged = self.mark_configured(configuration.id)
        if not flagged:
            return flagged.forward("Failed to mark configuration as configured")
        configuration.is_configured = True
        return added

    def clone_defaults(self, config_id: str, trade: str) -> Result[List[Material]]:
        """Copy the trade's baseline into the catalog, skipping defaults already present."""

        schema = self.schema(trade)
        listed = self.catalog.list_materials(config_id)
        if not listed:
            return listed.forward("Failed to load materials")
        present = {(m.category, m.name.lower()) for m in listed.data or []}

        cloned: List[Material] = []
        for position, default in enumerate(schema.default_materials):
            if (default.category, default.name.lower()) in present:
                continue
            added = self.catalog.add_material(
                config_id,
                category=default.category,
                name=default.name,
                price=default.price,
                unit=default.unit,
                metadata=default.metadata(),
                sort_order=position,
            )
            if not added:
                return added.forward(f"Failed to add default '{default.name}'")
            cloned.append(added.data)

        if schema.pricing_overrides:
            saved = self.catalog.set_pricing_overrides(config_id, schema.pricing_overrides)
            if not saved:
                return saved.forward("Failed to save default pricing")

        flagged = self.mark_configured(config_id)
        if not flagged:
            return flagged.forward("Failed to mark configuration as configured")
        logger.info("Cloned %d %s defaults into configuration %s", len(cloned), trade, config_id)
        return Result.success(cloned)

    def reset_configuration(self, config_id: str) -> Result[None]:
        materials = self.catalog.delete_all_materials(config_id)
        if not materials:
            return materials.forward("Failed to delete materials")
        overrides = self.catalog.delete_all_pricing_overrides(config_id)
        if not overrides:
            return overrides.forward("Failed to delete pricing overrides")
        flagged = self.mark_configured(config_id, configured=False)
        if not flagged:
            return flagged.forward("Failed to reset configuration flag")
        logger.info(
            "Reset configuration %s (%s materials, %s overrides removed)",
            config_id,
            materials.data,
            overrides.data,
        )
        return Result.success()

    def restore_defaults(self, config_id: str, trade: str) -> Result[List[Material]]:
        reset = self.reset_configuration(config_id)
        if not reset:
            return reset.forward("Failed to reset configuration")
        return self.clone_defaults(config_id, trade)

    def open_catalog(self, user_id: str, trade: str) -> Result[CatalogSnapshot]:
        """Resolve the configuration, seed it on first touch and load its catalog."""

        configured = self.get_or_create_configuration(user_id, trade)
        if not configured:
            return configured.forward("Failed to load configuration")
        configuration = configured.data

        materials = self.catalog.list_materials(configuration.id)
        if not materials:
            return materials.forward("Failed to load materials")

        if not configuration.is_configured:
            cloned = self.clone_defaults(configuration.id, trade)
            if not cloned:
                configuration = self._seeded_elsewhere(configuration.id)
                if configuration is None:
                    return cloned.forward("Failed to clone defaults")
                logger.info("Defaults for %s/%s were cloned by a concurrent request", user_id, trade)
            configuration.is_configured = True
            materials = self.catalog.list_materials(configuration.id)
            if not materials:
                return materials.forward("Failed to load materials")

        overrides = self.catalog.pricing_override_map(configuration.id)
        if not overrides:
            return overrides.forward("Failed to load pricing overrides")

        return Result.success(
            CatalogSnapshot(configuration=configuration, materials=materials.data or [], overrides=overrides.data or {})
        )

    def _seeded_elsewhere(self, config_id: str) -> Optional[Configuration]:
        current = self.get_configuration(config_id)
        if current and current.data.is_configured:
            return current.data
        return None

    def catalog_view(self, snapshot: CatalogSnapshot) -> CatalogView:
        schema = self.schema(snapshot.configuration.trade)
        categories: List[CategoryView] = []
        known = {category.key for category in schema.categories}

        for category in schema.categories:
            in_category = [m for m in snapshot.materials if m.category == category.key]
            active = [m for m in in_category if not m.is_archived]
            default_names = {d.name.lower() for d in category.defaults}
            rows = [
                DefaultRow(default=d, material=next((m for m in active if m.matches(d.name, d.category)), None))
                for d in category.defaults
            ]
            categories.append(
                CategoryView(
                    key=category.key,
                    label=category.label,
                    defaults=rows,
                    custom=[m for m in active if m.name.lower() not in default_names],
                    archived=[m for m in in_category if m.is_archived],
                )
            )

        stray = [m for m in snapshot.materials if m.category not in known]
        if stray:
            categories.append(
                CategoryView(
                    key="other",
                    label="Other",
                    defaults=[],
                    custom=[m for m in stray if not m.is_archived],
                    archived=[m for m in stray if m.is_archived],
                )
            )

        return CatalogView(
            trade=schema.trade,
            label=schema.label,
            configuration=snapshot.configuration,
            categories=categories,
            unit_options=[{"value": value, "label": label} for value, label in schema.unit_options],
            overrides=dict(snapshot.overrides),
        )
