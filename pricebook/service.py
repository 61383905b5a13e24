"""High-level helpers for running estimates programmatically."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from .assumptions import AssumptionLog
from .estimators import TRADE_REGISTRY, BaseTradeEstimator, Estimate
from .estimators.base import EstimateInputs
from .lifecycle import CatalogSnapshot, ConfigurationManager
from .resolver import MaterialResolver
from .storage import StorageError
from .trades import TradeCatalog, load_trade_catalog

logger = logging.getLogger(__name__)

Inputs = Union[EstimateInputs, Mapping[str, Any]]


class CatalogUnavailable(RuntimeError):
    """The user's catalog could not be loaded from the record store."""


@dataclass
class EstimateRun:
    """Container describing the result of an estimate execution."""

    estimate: Estimate
    trade: str
    configuration_id: Optional[str] = None
    material_count: int = 0


def supported_trades() -> list[str]:
    return sorted(TRADE_REGISTRY)


def get_estimator(trade: str, trades: Optional[TradeCatalog] = None) -> BaseTradeEstimator:
    trade_key = (trade or "").lower()
    if trade_key not in TRADE_REGISTRY:
        available = ", ".join(supported_trades())
        raise ValueError(f"Unsupported trade '{trade}'. Available trades: {available}")

    trades = trades or load_trade_catalog()
    try:
        schema = trades.get(trade_key)
    except KeyError as exc:
        raise ValueError(str(exc.args[0])) from exc
    return TRADE_REGISTRY[trade_key](schema)


def resolver_for(snapshot: CatalogSnapshot) -> MaterialResolver:
    return MaterialResolver(snapshot.materials, snapshot.overrides, assumptions=AssumptionLog())


def run_estimate(
    trade: str,
    inputs: Inputs,
    resolver: Optional[MaterialResolver] = None,
    *,
    trades: Optional[TradeCatalog] = None,
) -> Estimate:
    """Validate ``inputs`` for ``trade`` and build the estimate.

    Raises :class:`~pricebook.estimators.EstimateValidationError` (a ``ValueError``)
    before any line item is computed when the inputs are rejected. Without a
    resolver the trade's default prices are used.
    """

    estimator = get_estimator(trade, trades)
    parsed = estimator.parse_inputs(inputs)
    estimator.validate(parsed)
    resolver = resolver or MaterialResolver()
    estimate = estimator.estimate(parsed, resolver)
    logger.debug("Estimated %s: %d line items, total %.2f", trade, len(estimate.line_items), estimate.total)
    return estimate


def estimate_for_user(
    manager: ConfigurationManager,
    user_id: str,
    trade: str,
    inputs: Inputs,
) -> EstimateRun:
    """Open the user's catalog for ``trade`` and estimate against it."""

    # Reject unknown trades before a configuration gets created for them.
    get_estimator(trade, manager.trades)

    opened = manager.open_catalog(user_id, trade)
    if not opened:
        message = opened.error or f"Failed to load the {trade} catalog"
        if isinstance(opened.cause, StorageError):
            raise CatalogUnavailable(message) from opened.cause
        raise ValueError(message)
    snapshot = opened.data

    estimate = run_estimate(trade, inputs, resolver_for(snapshot), trades=manager.trades)
    return EstimateRun(
        estimate=estimate,
        trade=trade.lower(),
        configuration_id=snapshot.configuration.id,
        material_count=len(snapshot.active_materials),
    )
