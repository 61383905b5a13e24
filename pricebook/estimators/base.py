"""Base classes and utilities for trade estimators."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Dict, List, Mapping, Optional, Sequence, Type, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from ..assumptions import Assumption
from ..resolver import MaterialResolver
from ..trades import TradeSchema


class EstimateValidationError(ValueError):
    """Project inputs were rejected before any line item was computed."""

    def __init__(self, message: str, *, errors: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.errors = errors or [message]


@dataclass
class LineItem:
    """Row in the resulting estimate."""

    label: str
    quantity: float
    unit: str
    unit_price: float

    @property
    def cost(self) -> float:
        return self.quantity * self.unit_price

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "quantity": round(self.quantity, 4),
            "unit": self.unit,
            "unit_price": round(self.unit_price, 4),
            "cost": round(self.cost, 2),
        }


@dataclass
class Estimate:
    """Complete result of an estimator run."""

    trade: str
    line_items: List[LineItem]
    assumptions: List[Assumption] = field(default_factory=list)

    @property
    def total(self) -> float:
        return round(sum(item.cost for item in self.line_items), 2)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trade": self.trade,
            "line_items": [item.to_dict() for item in self.line_items],
            "total": self.total,
            "assumptions": [assumption.to_dict() for assumption in self.assumptions],
        }


Context = Any
Dynamic = Union[str, float, Callable[[Context], Any]]


@dataclass(frozen=True)
class LineItemRule:
    """Declarative description of one estimate row.

    ``quantity`` receives the context and the resolved package size (``None``
    for rules without ``package_size``). ``label``, ``material`` and
    ``default_price`` may be callables of the context.
    """

    label: Dynamic
    material: Dynamic
    category: str
    default_price: Dynamic
    unit: str
    quantity: Callable[[Context, Optional[float]], float]
    package_size: Optional[float] = None
    include: Optional[Callable[[Context], bool]] = None
    price: Optional[Callable[[Context], Optional[float]]] = None


def build_line_items(
    rules: Sequence[LineItemRule], context: Context, resolver: MaterialResolver
) -> List[LineItem]:
    """Turn rules into line items, in rule order, pricing each through the resolver."""

    items: List[LineItem] = []
    for rule in rules:
        if rule.include is not None and not rule.include(context):
            continue

        material = str(_value(rule.material, context))
        fixed_price = rule.price(context) if rule.price is not None else None
        if fixed_price is not None:
            unit_price = float(fixed_price)
        else:
            default_price = float(_value(rule.default_price, context))
            unit_price = resolver.price(material, rule.category, default_price)

        package_size = None
        if rule.package_size is not None:
            package_size = resolver.unit_quantity(material, rule.category, rule.package_size)

        items.append(
            LineItem(
                label=str(_value(rule.label, context)),
                quantity=float(rule.quantity(context, package_size)),
                unit=rule.unit,
                unit_price=unit_price,
            )
        )
    return items


def _value(value: Dynamic, context: Context) -> Any:
    return value(context) if callable(value) else value


class EstimateInputs(BaseModel):
    """Base for per-trade input models."""

    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)


class BaseTradeEstimator:
    """Common interface for all trade estimators."""

    trade_name: ClassVar[str]
    input_model: ClassVar[Type[EstimateInputs]] = EstimateInputs

    def __init__(self, schema: TradeSchema) -> None:
        self.schema = schema

    def parse_inputs(self, data: Union[EstimateInputs, Mapping[str, Any]]) -> EstimateInputs:
        if isinstance(data, self.input_model):
            return data
        try:
            return self.input_model.model_validate(dict(data))
        except ValidationError as exc:
            messages = [_format_error(error) for error in exc.errors()]
            raise EstimateValidationError("; ".join(messages), errors=messages) from exc

    def validate(self, inputs: EstimateInputs) -> None:
        """Raise :class:`EstimateValidationError` when inputs cannot be estimated."""

    def estimate(self, inputs: EstimateInputs, resolver: MaterialResolver) -> Estimate:
        raise NotImplementedError

    def default_price(self, name: str, category: str) -> float:
        default = self.schema.default_for(name, category)
        if default is None:
            raise EstimateValidationError(f"No default price for '{name}' in {self.schema.label} {category}")
        return default.price

    def fallback_price(self, name: str, category: str, fallback: float) -> float:
        default = self.schema.default_for(name, category)
        return default.price if default is not None else fallback

    def selection_price(self, resolver: MaterialResolver, name: str, category: str) -> float:
        """Price of a user-selected material, which may exist only in the user's catalog."""

        material = resolver.find(name, category)
        if material is not None:
            return material.price
        return self.default_price(name, category)

    def _finish(self, line_items: List[LineItem], resolver: MaterialResolver) -> Estimate:
        return Estimate(trade=self.trade_name, line_items=line_items, assumptions=resolver.assumptions.items)


def _format_error(error: Mapping[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    message = error.get("msg", "invalid value")
    return f"{location}: {message}" if location else str(message)
