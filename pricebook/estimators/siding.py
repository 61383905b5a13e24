"""Siding trade estimator."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional

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

SQFT_PER_SQUARE = 100.0
DEFAULT_FASTENERS_PER_SQUARE = 250.0
CORNERS_PER_HOUSE = 4


class WallOpening(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    width: float = Field(ge=0)
    height: float = Field(ge=0)
    kind: str = "window"

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def perimeter(self) -> float:
        return 2 * (self.width + self.height)


class Wall(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    length: float = Field(ge=0)
    height: float = Field(ge=0)
    gable_height: Optional[float] = Field(default=None, ge=0)
    openings: List[WallOpening] = Field(default_factory=list)

    @property
    def gross_area(self) -> float:
        area = self.length * self.height
        if self.gable_height:
            area += self.length * self.gable_height / 2
        return area

    @property
    def net_area(self) -> float:
        return self.gross_area - sum(opening.area for opening in self.openings)

    @property
    def perimeter(self) -> float:
        return 2 * (self.length + self.height)


class SidingInputs(EstimateInputs):
    walls: List[Wall] = Field(default_factory=list)
    siding_name: str = "Vinyl Siding - Traditional Lap"
    waste_factor: float = 15.0
    include_house_wrap: bool = True
    include_insulation: bool = False
    include_starter: bool = True
    include_j_channel: bool = True
    include_corners: bool = True
    include_trim: bool = True
    trim_name: str = "Vinyl Trim"


@dataclass
class SidingTakeoff:
    inputs: SidingInputs
    area: float
    perimeter: float
    openings_perimeter: float
    max_height: float

    @property
    def area_with_waste(self) -> float:
        return self.area * (1 + self.inputs.waste_factor / 100)


class SidingEstimator(BaseTradeEstimator):
    trade_name = "siding"
    input_model = SidingInputs

    def validate(self, inputs: SidingInputs) -> None:
        problems: List[str] = []
        if not inputs.walls:
            problems.append("Add at least one wall.")
        for idx, wall in enumerate(inputs.walls, start=1):
            if wall.length <= 0 or wall.height <= 0:
                problems.append(f"Wall {idx} needs a length and height greater than 0.")
            elif wall.net_area <= 0:
                problems.append(f"Openings on wall {idx} cover the whole wall.")
        if not 0 <= inputs.waste_factor <= 100:
            problems.append("Waste factor must be between 0 and 100 percent.")
        if not inputs.siding_name.strip():
            problems.append("Select a siding product.")
        if inputs.include_trim and not inputs.trim_name.strip():
            problems.append("Select a trim product.")
        if problems:
            raise EstimateValidationError(" ".join(problems), errors=problems)

    def estimate(self, inputs: SidingInputs, resolver: MaterialResolver) -> Estimate:
        takeoff = SidingTakeoff(
            inputs=inputs,
            area=sum(wall.net_area for wall in inputs.walls),
            perimeter=sum(wall.perimeter for wall in inputs.walls),
            openings_perimeter=sum(o.perimeter for wall in inputs.walls for o in wall.openings),
            max_height=max(wall.height for wall in inputs.walls),
        )
        fasteners_per_square = resolver.override("fasteners_per_square", DEFAULT_FASTENERS_PER_SQUARE)
        if inputs.include_corners:
            resolver.assumptions.add(f"Corner posts assume {CORNERS_PER_HOUSE} outside corners at the tallest wall height.")

        siding = inputs.siding_name.strip()
        trim = inputs.trim_name.strip()
        rules = [
            LineItemRule(
                label=siding,
                material=siding,
                category="siding",
                default_price=self.selection_price(resolver, siding, "siding"),
                unit="squares",
                package_size=SQFT_PER_SQUARE,
                quantity=lambda t, per_square: math.ceil(t.area_with_waste / per_square),
            ),
            self._piece(
                "House Wrap",
                "rolls",
                1000.0,
                lambda t, size: math.ceil(t.area / size),
                lambda t: t.inputs.include_house_wrap,
            ),
            self._piece(
                "House Wrap Tape",
                "rolls",
                165.0,
                lambda t, size: math.ceil(t.perimeter / size),
                lambda t: t.inputs.include_house_wrap,
            ),
            self._piece(
                "Foam Insulation",
                "bundles",
                100.0,
                lambda t, size: math.ceil(t.area / size),
                lambda t: t.inputs.include_insulation,
            ),
            self._piece(
                "Starter Strip",
                "pieces",
                12.0,
                lambda t, size: math.ceil(t.perimeter / size),
                lambda t: t.inputs.include_starter,
            ),
            self._piece(
                "J-Channel",
                "pieces",
                12.5,
                lambda t, size: math.ceil((t.openings_perimeter + t.perimeter) / size),
                lambda t: t.inputs.include_j_channel,
            ),
            self._piece(
                "Corner Posts",
                "pieces",
                10.0,
                lambda t, size: math.ceil(t.max_height * CORNERS_PER_HOUSE / size),
                lambda t: t.inputs.include_corners,
            ),
            LineItemRule(
                label=trim,
                material=trim,
                category="trim",
                default_price=self.selection_price(resolver, trim, "trim") if inputs.include_trim else 0.0,
                unit="pieces",
                package_size=16.0,
                quantity=lambda t, size: math.ceil(t.openings_perimeter / size),
                include=lambda t: t.inputs.include_trim,
            ),
            LineItemRule(
                label="Siding Fasteners",
                material="Siding Fasteners",
                category="accessories",
                default_price=self.default_price("Siding Fasteners", "accessories"),
                unit="boxes",
                package_size=1000.0,
                quantity=lambda t, per_box: math.ceil(
                    math.ceil(t.area_with_waste / SQFT_PER_SQUARE) * fasteners_per_square / per_box
                ),
            ),
        ]

        return self._finish(build_line_items(rules, takeoff, resolver), resolver)

    def _piece(self, name, unit, size, quantity, include) -> LineItemRule:
        return LineItemRule(
            label=name,
            material=name,
            category="accessories",
            default_price=self.default_price(name, "accessories"),
            unit=unit,
            package_size=size,
            quantity=quantity,
            include=include,
        )
