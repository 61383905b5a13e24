"""Trade estimator registry."""

from __future__ import annotations

from typing import Dict, Type

from .base import BaseTradeEstimator, Estimate, EstimateValidationError, LineItem
from .gutter import GutterEstimator
from .paint import PaintEstimator
from .roofing import RoofingEstimator
from .siding import SidingEstimator
from .veneer import VeneerEstimator

TRADE_REGISTRY: Dict[str, Type[BaseTradeEstimator]] = {
    RoofingEstimator.trade_name: RoofingEstimator,
    GutterEstimator.trade_name: GutterEstimator,
    PaintEstimator.trade_name: PaintEstimator,
    SidingEstimator.trade_name: SidingEstimator,
    VeneerEstimator.trade_name: VeneerEstimator,
}

__all__ = [
    "BaseTradeEstimator",
    "Estimate",
    "EstimateValidationError",
    "GutterEstimator",
    "LineItem",
    "PaintEstimator",
    "RoofingEstimator",
    "SidingEstimator",
    "TRADE_REGISTRY",
    "VeneerEstimator",
]
