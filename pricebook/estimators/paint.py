"""Paint trade estimator."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field

from ..resolver import MaterialResolver
from .base import (
    BaseTradeEstimator,
    Estimate,
    EstimateInputs,
    EstimateValidationError,
    LineItemRule,
    build_line_items,
)

PRIMER_COVERAGE_SQFT = 400.0
SUPPLY_SET_COVERAGE_SQFT = 400.0
DEFAULT_SUPPLY_SET_PRICE = 25.0

# Rough surfaces soak up more paint, so a gallon covers less.
CONDITION_FACTORS: Dict[str, float] = {"good": 1.0, "fair": 0.9, "poor": 0.8}

DEFAULT_COVERAGE = {"interior": 400.0, "exterior": 350.0}


class Surface(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    length: float = Field(ge=0)
    height: float = Field(ge=0)
    condition: Literal["good", "fair", "poor"] = "good"

    @property
    def area(self) -> float:
        return self.length * self.height


class Opening(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    width: float = Field(ge=0)
    height: float = Field(ge=0)

    @property
    def area(self) -> float:
        return self.width * self.height


class PaintInputs(EstimateInputs):
    location: Literal["interior", "exterior"] = "interior"
    tier: Literal["economy", "standard", "premium"] = "standard"
    finish: Literal["flat", "eggshell", "satin", "semi-gloss"] = "eggshell"
    surfaces: List[Surface] = Field(default_factory=list)
    doors: List[Opening] = Field(default_factory=list)
    windows: List[Opening] = Field(default_factory=list)
    coats: int = 2
    include_primer: bool = False
    include_waste: bool = True
    waste_factor: float = 10.0

    @property
    def paint_name(self) -> str:
        return f"{self.location.title()} Paint - {self.tier.title()}"

    @property
    def primer_name(self) -> str:
        return f"{self.location.title()} Primer"


@dataclass
class PaintJob:
    inputs: PaintInputs
    net_area: float
    area_with_waste: float
    condition_factor: float


class PaintEstimator(BaseTradeEstimator):
    trade_name = "paint"
    input_model = PaintInputs

    def validate(self, inputs: PaintInputs) -> None:
        problems: List[str] = []
        if not inputs.surfaces:
            problems.append("Add at least one surface to paint.")
        elif not any(surface.area > 0 for surface in inputs.surfaces):
            problems.append("Surfaces need a length and height greater than 0.")
        if inputs.coats not in (1, 2):
            problems.append("Choose one or two coats.")
        if not 0 <= inputs.waste_factor <= 100:
            problems.append("Waste factor must be between 0 and 100 percent.")

        openings = sum(o.area for o in inputs.doors) + sum(o.area for o in inputs.windows)
        if inputs.surfaces and openings >= sum(surface.area for surface in inputs.surfaces):
            problems.append("Doors and windows cover the whole painted area.")
        if problems:
            raise EstimateValidationError(" ".join(problems), errors=problems)

    def estimate(self, inputs: PaintInputs, resolver: MaterialResolver) -> Estimate:
        gross = sum(surface.area for surface in inputs.surfaces)
        openings = sum(o.area for o in inputs.doors) + sum(o.area for o in inputs.windows)
        net_area = gross - openings
        area_with_waste = net_area * (1 + inputs.waste_factor / 100) if inputs.include_waste else net_area
        condition = sum(CONDITION_FACTORS[s.condition] for s in inputs.surfaces) / len(inputs.surfaces)
        job = PaintJob(
            inputs=inputs,
            net_area=net_area,
            area_with_waste=area_with_waste,
            condition_factor=condition,
        )

        if condition < 1:
            resolver.assumptions.add(f"Coverage reduced to {condition:.0%} for surface condition.")
        supply_price = resolver.override("painting_supplies_set", DEFAULT_SUPPLY_SET_PRICE)

        rules = [
            LineItemRule(
                label=f"Paint ({inputs.tier}, {inputs.finish})",
                material=inputs.paint_name,
                category="paint",
                default_price=self.default_price(inputs.paint_name, "paint"),
                unit="gallons",
                package_size=DEFAULT_COVERAGE[inputs.location],
                quantity=lambda j, coverage: math.ceil(
                    j.area_with_waste * j.inputs.coats / (coverage * j.condition_factor)
                ),
            ),
            LineItemRule(
                label="Primer",
                material=inputs.primer_name,
                category="primer",
                default_price=self.default_price(inputs.primer_name, "primer"),
                unit="gallons",
                package_size=PRIMER_COVERAGE_SQFT,
                quantity=lambda j, coverage: math.ceil(j.area_with_waste / coverage),
                include=lambda j: j.inputs.include_primer,
            ),
            LineItemRule(
                label="Painting Supplies",
                material="Painting Supplies",
                category="supplies",
                default_price=supply_price,
                unit="sets",
                quantity=lambda j, _: math.ceil(j.net_area / SUPPLY_SET_COVERAGE_SQFT),
                price=lambda j: supply_price,
            ),
        ]

        return self._finish(build_line_items(rules, job, resolver), resolver)
