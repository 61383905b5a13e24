"""Pick the effective price and package size for a material from a catalog snapshot."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from .assumptions import AssumptionLog
from .models import Material

logger = logging.getLogger(__name__)


def find_active_material(
    materials: Iterable[Material], name: str, category: Optional[str] = None
) -> Optional[Material]:
    """First non-archived material whose name matches case-insensitively.

    ``category=None`` matches any category. When several rows match, the first
    one in catalog order wins.
    """

    return next((material for material in materials if material.matches(name, category)), None)


def resolve_effective_price(
    materials: Iterable[Material], name: str, category: Optional[str], default_price: float
) -> float:
    material = find_active_material(materials, name, category)
    return material.price if material is not None else default_price


def resolve_unit_quantity(
    materials: Iterable[Material], name: str, category: Optional[str], default_quantity: float
) -> float:
    material = find_active_material(materials, name, category)
    if material is None:
        return default_quantity
    spec = material.unit_spec
    if spec is None or spec.quantity is None:
        return default_quantity
    return spec.quantity


class MaterialResolver:
    """Catalog lookups used by estimators, backed by a loaded snapshot."""

    def __init__(
        self,
        materials: Iterable[Material] = (),
        overrides: Optional[Dict[str, float]] = None,
        *,
        assumptions: Optional[AssumptionLog] = None,
    ) -> None:
        self.materials: List[Material] = list(materials)
        self.overrides: Dict[str, float] = dict(overrides or {})
        self.assumptions = assumptions if assumptions is not None else AssumptionLog()

    def find(self, name: str, category: Optional[str] = None) -> Optional[Material]:
        return find_active_material(self.materials, name, category)

    def price(self, name: str, category: Optional[str], default_price: float) -> float:
        price = resolve_effective_price(self.materials, name, category, default_price)
        if price != default_price:
            self.assumptions.add(f"Using catalog price {price:.2f} for {name} (default {default_price:.2f}).")
        else:
            logger.debug("Price for %s resolved to %.2f", name, price)
        return price

    def unit_quantity(self, name: str, category: Optional[str], default_quantity: float) -> float:
        quantity = resolve_unit_quantity(self.materials, name, category, default_quantity)
        if quantity <= 0:
            self.assumptions.add(
                f"Catalog package size for {name} is {quantity:g}; using default {default_quantity:g}.",
                severity="warning",
            )
            return default_quantity
        if quantity != default_quantity:
            self.assumptions.add(f"Using catalog package size {quantity:g} for {name} (default {default_quantity:g}).")
        return quantity

    def override(self, key: str, default: float) -> float:
        value = self.overrides.get(key)
        if value is None:
            return default
        if value != default:
            self.assumptions.add(f"Using custom value {value:g} for {key} (default {default:g}).")
        return value
