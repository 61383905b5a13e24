"""Declarative per-trade default catalogs."""

from __future__ import annotations

import json
import logging
import pathlib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_TRADES_PATH = pathlib.Path(__file__).parent / "data" / "trades.json"

_CACHE: Dict[pathlib.Path, Tuple[float, "TradeCatalog"]] = {}


@dataclass(frozen=True)
class DefaultMaterial:
    """One entry of a trade's hard-coded baseline catalog."""

    category: str
    name: str
    price: float
    unit: str
    unit_spec: str = ""

    def metadata(self) -> Dict[str, Any]:
        return {"unitSpec": self.unit_spec} if self.unit_spec else {}


@dataclass(frozen=True)
class TradeCategory:
    key: str
    label: str
    defaults: Tuple[DefaultMaterial, ...] = ()


@dataclass(frozen=True)
class TradeSchema:
    """Everything the generic configuration screen needs to know about a trade."""

    trade: str
    label: str
    categories: Tuple[TradeCategory, ...]
    unit_options: Tuple[Tuple[str, str], ...] = ()
    pricing_overrides: Dict[str, float] = field(default_factory=dict)

    @property
    def default_materials(self) -> List[DefaultMaterial]:
        return [material for category in self.categories for material in category.defaults]

    def default_for(self, name: str, category: Optional[str] = None) -> Optional[DefaultMaterial]:
        lowered = name.lower()
        for material in self.default_materials:
            if material.name.lower() != lowered:
                continue
            if category is None or material.category == category:
                return material
        return None


@dataclass(frozen=True)
class TradeCatalog:
    version: str
    schemas: Dict[str, TradeSchema]

    @property
    def trades(self) -> List[str]:
        return sorted(self.schemas)

    def get(self, trade: str) -> TradeSchema:
        key = (trade or "").lower()
        if key not in self.schemas:
            available = ", ".join(self.trades)
            raise KeyError(f"Unknown trade '{trade}'. Available trades: {available}")
        return self.schemas[key]

    def __contains__(self, trade: object) -> bool:
        return isinstance(trade, str) and trade.lower() in self.schemas


def load_trade_catalog(path: Optional[pathlib.Path] = None) -> TradeCatalog:
    """Load trade schemas from JSON, reusing the parsed copy until the file changes."""

    source = pathlib.Path(path or DEFAULT_TRADES_PATH)
    try:
        mtime = source.stat().st_mtime
    except OSError as exc:
        raise ValueError(f"Trade catalog not found at {source}: {exc}") from exc

    cached = _CACHE.get(source)
    if cached and cached[0] == mtime:
        return cached[1]

    try:
        raw = json.loads(source.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Failed to parse trade catalog {source}: {exc}") from exc

    catalog = parse_trade_catalog(raw, source=str(source))
    _CACHE[source] = (mtime, catalog)
    logger.debug("Loaded %d trade schemas from %s", len(catalog.schemas), source)
    return catalog


def parse_trade_catalog(raw: Dict[str, Any], *, source: str = "<memory>") -> TradeCatalog:
    trades = raw.get("trades")
    if not isinstance(trades, dict) or not trades:
        raise ValueError(f"Trade catalog {source} has no 'trades' mapping")

    schemas = {
        key.lower(): _parse_schema(key.lower(), payload, source=source)
        for key, payload in trades.items()
    }
    return TradeCatalog(version=str(raw.get("version", "0.0.0")), schemas=schemas)


def _parse_schema(trade: str, payload: Dict[str, Any], *, source: str) -> TradeSchema:
    categories = []
    for entry in payload.get("categories", []):
        key = entry.get("key")
        if not key:
            raise ValueError(f"Category without a key for trade '{trade}' in {source}")
        defaults = tuple(
            DefaultMaterial(
                category=key,
                name=str(item["name"]),
                price=float(item["price"]),
                unit=str(item.get("unit", "")),
                unit_spec=str(item.get("unitSpec", "")),
            )
            for item in entry.get("defaults", [])
        )
        categories.append(TradeCategory(key=key, label=entry.get("label", key.title()), defaults=defaults))

    unit_options = tuple(
        (str(option["value"]), str(option.get("label", option["value"])))
        for option in payload.get("unit_options", [])
    )
    overrides = {str(key): float(value) for key, value in payload.get("pricing_overrides", {}).items()}
    return TradeSchema(
        trade=trade,
        label=payload.get("label", trade.title()),
        categories=tuple(categories),
        unit_options=unit_options,
        pricing_overrides=overrides,
    )
