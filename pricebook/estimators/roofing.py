"""Roofing trade estimator."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional

from ..resolver import MaterialResolver
from .base import (
    BaseTradeEstimator,
    Estimate,
    EstimateInputs,
    EstimateValidationError,
    LineItemRule,
    build_line_items,
)

SQFT_PER_SQUARE = 100.0

# Ridge length and eave perimeter are not measured; these ratios approximate
# them from the plan area and must be kept as-is for estimates to stay comparable.
RIDGE_CAP_LF_PER_SQFT = 0.1
DRIP_EDGE_PERIMETER_FACTOR = 4.0

ICE_SHIELD_SQFT_PER_ROLL = 200.0


class RoofingInputs(EstimateInputs):
    area_sqft: Optional[float] = None
    material: str = "Asphalt Shingles"
    custom_pricing: bool = False
    custom_name: str = ""
    custom_price: Optional[float] = None
    waste_factor: float = 10.0
    include_underlayment: bool = False
    include_ice_shield: bool = True
    old_layers: int = 0
    skylights: int = 0
    include_ventilation: bool = False
    include_warranty: bool = False


@dataclass
class RoofTakeoff:
    inputs: RoofingInputs
    area: float
    squares: float


class RoofingEstimator(BaseTradeEstimator):
    trade_name = "roofing"
    input_model = RoofingInputs

    def validate(self, inputs: RoofingInputs) -> None:
        problems: List[str] = []
        if inputs.area_sqft is None or inputs.area_sqft <= 0:
            problems.append("Please enter a roof area greater than 0 square feet.")
        if not 0 <= inputs.waste_factor <= 100:
            problems.append("Waste factor must be between 0 and 100 percent.")
        if inputs.old_layers < 0:
            problems.append("Old layer count cannot be negative.")
        if inputs.skylights < 0:
            problems.append("Skylight count cannot be negative.")
        if inputs.custom_pricing:
            if not inputs.custom_name.strip():
                problems.append("Enter a name for the custom roofing material.")
            if inputs.custom_price is None or inputs.custom_price < 0:
                problems.append("Enter a non-negative price per square for the custom material.")
        elif not inputs.material.strip():
            problems.append("Select a roofing material.")
        if problems:
            raise EstimateValidationError(" ".join(problems), errors=problems)

    def estimate(self, inputs: RoofingInputs, resolver: MaterialResolver) -> Estimate:
        area = float(inputs.area_sqft or 0.0)
        squares = area / SQFT_PER_SQUARE * (1 + inputs.waste_factor / 100)
        takeoff = RoofTakeoff(inputs=inputs, area=area, squares=squares)

        if inputs.custom_pricing:
            primary_name = inputs.custom_name.strip()
            primary_default = float(inputs.custom_price or 0.0)
        else:
            primary_name = inputs.material.strip()
            primary_default = self.selection_price(resolver, primary_name, "shingles")

        resolver.assumptions.add(
            "Ridge cap length estimated as 10% of roof area and drip edge as 4 x sqrt(area); "
            "neither is measured."
        )

        rules = [
            LineItemRule(
                label=primary_name,
                material=primary_name,
                category="shingles",
                default_price=primary_default,
                unit="squares",
                quantity=lambda t, _: t.squares,
                price=lambda t: t.inputs.custom_price if t.inputs.custom_pricing else None,
            ),
            LineItemRule(
                label="Standard Underlayment",
                material="Standard Underlayment",
                category="underlayment",
                default_price=self.fallback_price("Standard Underlayment", "underlayment", 26.0),
                unit="squares",
                quantity=lambda t, _: t.squares,
                include=lambda t: t.inputs.include_underlayment,
            ),
            LineItemRule(
                label="Ice & Water Shield",
                material="Ice & Water Shield",
                category="underlayment",
                default_price=self.fallback_price("Ice & Water Shield", "underlayment", 70.0),
                unit="rolls",
                package_size=ICE_SHIELD_SQFT_PER_ROLL,
                quantity=lambda t, per_roll: math.ceil(t.area / per_roll),
                include=lambda t: t.inputs.include_ice_shield,
            ),
            LineItemRule(
                label="Ridge Cap",
                material="Ridge Cap",
                category="components",
                default_price=self.fallback_price("Ridge Cap", "components", 3.25),
                unit="linear feet",
                quantity=lambda t, _: t.area * RIDGE_CAP_LF_PER_SQFT,
            ),
            LineItemRule(
                label="Drip Edge",
                material="Drip Edge",
                category="components",
                default_price=self.fallback_price("Drip Edge", "components", 2.50),
                unit="linear feet",
                quantity=lambda t, _: math.sqrt(t.area) * DRIP_EDGE_PERIMETER_FACTOR,
            ),
            LineItemRule(
                label="Nails & Fasteners",
                material="Nails & Fasteners",
                category="components",
                default_price=self.fallback_price("Nails & Fasteners", "components", 32.0),
                unit="squares",
                quantity=lambda t, _: t.squares,
            ),
            LineItemRule(
                label=lambda t: f"Debris Disposal ({t.inputs.old_layers} layer{'s' if t.inputs.old_layers > 1 else ''})",
                material="Debris Disposal",
                category="components",
                default_price=self.fallback_price("Debris Disposal", "components", 32.0),
                unit="squares",
                quantity=lambda t, _: t.squares * t.inputs.old_layers,
                include=lambda t: t.inputs.old_layers > 0,
            ),
            LineItemRule(
                label="Skylight Flashing",
                material="Skylight Flashing",
                category="components",
                default_price=self.fallback_price("Skylight Flashing", "components", 85.0),
                unit="units",
                quantity=lambda t, _: t.inputs.skylights,
                include=lambda t: t.inputs.skylights > 0,
            ),
            LineItemRule(
                label="Ventilation System",
                material="Ventilation System",
                category="components",
                default_price=self.fallback_price("Ventilation System", "components", 625.0),
                unit="system",
                quantity=lambda t, _: 1,
                include=lambda t: t.inputs.include_ventilation,
            ),
            LineItemRule(
                label="Extended Warranty",
                material="Extended Warranty",
                category="components",
                default_price=self.fallback_price("Extended Warranty", "components", 27.0),
                unit="squares",
                quantity=lambda t, _: t.squares,
                include=lambda t: t.inputs.include_warranty,
            ),
        ]

        return self._finish(build_line_items(rules, takeoff, resolver), resolver)
