"""Stone and brick veneer estimator."""

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

DEFAULT_MORTAR_COVERAGE = 35.0


class VeneerInputs(EstimateInputs):
    length_ft: Optional[float] = None
    height_ft: Optional[float] = None
    veneer_name: str = "Manufactured Stone Veneer"
    custom_price: Optional[float] = None
    include_mortar: bool = True


@dataclass
class VeneerArea:
    inputs: VeneerInputs
    sqft: float


class VeneerEstimator(BaseTradeEstimator):
    trade_name = "veneer"
    input_model = VeneerInputs

    def validate(self, inputs: VeneerInputs) -> None:
        problems: List[str] = []
        if inputs.length_ft is None or inputs.length_ft <= 0:
            problems.append("Please enter a length greater than 0 feet.")
        if inputs.height_ft is None or inputs.height_ft <= 0:
            problems.append("Please enter a height greater than 0 feet.")
        if inputs.custom_price is not None and inputs.custom_price < 0:
            problems.append("Custom price per square foot cannot be negative.")
        if inputs.custom_price is None and not inputs.veneer_name.strip():
            problems.append("Select a veneer product.")
        if problems:
            raise EstimateValidationError(" ".join(problems), errors=problems)

    def estimate(self, inputs: VeneerInputs, resolver: MaterialResolver) -> Estimate:
        area = VeneerArea(inputs=inputs, sqft=float(inputs.length_ft or 0) * float(inputs.height_ft or 0))
        coverage = resolver.override("mortar_coverage_sqft_per_bag", DEFAULT_MORTAR_COVERAGE)
        if coverage <= 0:
            resolver.assumptions.add(
                f"Mortar coverage of {coverage:g} sq ft per bag is unusable; using {DEFAULT_MORTAR_COVERAGE:g}.",
                severity="warning",
            )
            coverage = DEFAULT_MORTAR_COVERAGE

        name = inputs.veneer_name.strip() or "Custom Veneer"
        if inputs.custom_price is not None:
            primary_default = float(inputs.custom_price)
        else:
            primary_default = self.selection_price(resolver, name, "veneer")

        rules = [
            LineItemRule(
                label=name,
                material=name,
                category="veneer",
                default_price=primary_default,
                unit="square feet",
                quantity=lambda a, _: a.sqft,
                price=lambda a: a.inputs.custom_price,
            ),
            LineItemRule(
                label="Mortar Mix",
                material="Mortar Mix",
                category="adhesive",
                default_price=self.fallback_price("Mortar Mix", "adhesive", 8.98),
                unit="bags",
                quantity=lambda a, _: math.ceil(a.sqft / coverage),
                include=lambda a: a.inputs.include_mortar,
            ),
        ]

        return self._finish(build_line_items(rules, area, resolver), resolver)
