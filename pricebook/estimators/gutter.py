"""Gutter trade estimator."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Literal, Optional

from ..resolver import MaterialResolver
from .base import (
    BaseTradeEstimator,
    Estimate,
    EstimateInputs,
    EstimateValidationError,
    LineItemRule,
    build_line_items,
)

FEET_PER_VALLEY = 5.0
GUTTER_FEET_PER_DOWNSPOUT = 35.0
DOWNSPOUT_LENGTH_FT = 15.0
GUTTER_FEET_PER_SECTION = 50.0
HANGER_SPACING_FT = 2.0

GutterMaterial = Literal["aluminum", "vinyl", "galvanized", "copper"]


class GutterInputs(EstimateInputs):
    roof_length_ft: Optional[float] = None
    roof_pitch: float = 0.0
    valley_count: int = 0
    gutter_size: Literal["5", "6"] = "5"
    gutter_material: GutterMaterial = "aluminum"
    custom_gutter_price: Optional[float] = None
    downspout_size: Literal["2x3", "3x4"] = "2x3"
    include_endcaps: bool = True
    include_corners: bool = False
    corner_count: int = 0
    include_leaf_guards: bool = False
    include_heat_tape: bool = False
    heat_tape_length: float = 0.0


@dataclass
class GutterRun:
    inputs: GutterInputs
    length: float

    @property
    def downspouts(self) -> int:
        return math.ceil(self.length / GUTTER_FEET_PER_DOWNSPOUT)

    @property
    def variant(self) -> str:
        return "Copper" if self.inputs.gutter_material == "copper" else "Standard"


def gutter_name(size: str, material: str) -> str:
    return f'{size}" K-Style {material.title()}'


def downspout_name(size: str) -> str:
    return f'{size}" Downspout'


class GutterEstimator(BaseTradeEstimator):
    trade_name = "gutter"
    input_model = GutterInputs

    def validate(self, inputs: GutterInputs) -> None:
        problems: List[str] = []
        if inputs.roof_length_ft is None or inputs.roof_length_ft <= 0:
            problems.append("Please enter a roof edge length greater than 0 feet.")
        if inputs.roof_pitch < 0:
            problems.append("Roof pitch cannot be negative.")
        if inputs.valley_count < 0:
            problems.append("Valley count cannot be negative.")
        if inputs.custom_gutter_price is not None and inputs.custom_gutter_price < 0:
            problems.append("Custom gutter price cannot be negative.")
        if inputs.include_corners and inputs.corner_count < 0:
            problems.append("Corner count cannot be negative.")
        if inputs.include_heat_tape and inputs.heat_tape_length <= 0:
            problems.append("Enter a heat tape length greater than 0 feet.")
        if problems:
            raise EstimateValidationError(" ".join(problems), errors=problems)

    def estimate(self, inputs: GutterInputs, resolver: MaterialResolver) -> Estimate:
        length = float(inputs.roof_length_ft or 0.0) * (1 + inputs.roof_pitch / 12)
        length += inputs.valley_count * FEET_PER_VALLEY
        run = GutterRun(inputs=inputs, length=length)

        gutter = gutter_name(inputs.gutter_size, inputs.gutter_material)
        downspout = downspout_name(inputs.downspout_size)
        if inputs.valley_count:
            resolver.assumptions.add(f"Each valley adds {FEET_PER_VALLEY:g} ft of gutter.")
        resolver.assumptions.add(
            f"One downspout of {DOWNSPOUT_LENGTH_FT:g} ft per {GUTTER_FEET_PER_DOWNSPOUT:g} ft of gutter."
        )

        rules = [
            LineItemRule(
                label=f'{inputs.gutter_size}" {inputs.gutter_material.title()} Gutters',
                material=gutter,
                category="gutters",
                default_price=self.default_price(gutter, "gutters"),
                unit="linear feet",
                quantity=lambda r, _: r.length,
                price=lambda r: r.inputs.custom_gutter_price,
            ),
            LineItemRule(
                label=lambda r: f"{r.inputs.downspout_size} Downspouts ({r.downspouts} x {DOWNSPOUT_LENGTH_FT:g} ft)",
                material=downspout,
                category="downspouts",
                default_price=self.default_price(downspout, "downspouts"),
                unit="linear feet",
                quantity=lambda r, _: r.downspouts * DOWNSPOUT_LENGTH_FT,
            ),
            self._accessory(
                "Endcaps",
                "Endcap",
                run,
                unit="pieces",
                quantity=lambda r, _: math.ceil(r.length / GUTTER_FEET_PER_SECTION) * 2,
                include=lambda r: r.inputs.include_endcaps,
            ),
            self._accessory(
                "Corners",
                "Corner",
                run,
                unit="pieces",
                quantity=lambda r, _: r.inputs.corner_count,
                include=lambda r: r.inputs.include_corners and r.inputs.corner_count > 0,
            ),
            self._accessory(
                "Leaf Guards",
                "Leaf Guard",
                run,
                unit="linear feet",
                quantity=lambda r, _: r.length,
                include=lambda r: r.inputs.include_leaf_guards,
            ),
            LineItemRule(
                label="Heat Tape",
                material="Heat Tape",
                category="accessories",
                default_price=self.default_price("Heat Tape", "accessories"),
                unit="linear feet",
                quantity=lambda r, _: r.inputs.heat_tape_length,
                include=lambda r: r.inputs.include_heat_tape,
            ),
            self._accessory(
                "Hangers & Hardware",
                "Hanger",
                run,
                unit="pieces",
                quantity=lambda r, _: math.ceil(r.length / HANGER_SPACING_FT),
            ),
        ]

        return self._finish(build_line_items(rules, run, resolver), resolver)

    def _accessory(self, label, base_name, run: GutterRun, *, unit, quantity, include=None) -> LineItemRule:
        """Accessories come in a standard and a copper variant, chosen by gutter material."""

        name = f"{base_name} ({run.variant})"
        return LineItemRule(
            label=label,
            material=name,
            category="accessories",
            default_price=self.default_price(name, "accessories"),
            unit=unit,
            quantity=quantity,
            include=include,
        )
