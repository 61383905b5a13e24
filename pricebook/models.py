"""Records exchanged with the record store."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, Generic, Optional, TypeVar

from .units import UnitSpec

T = TypeVar("T")

CONFIGURATIONS = "configurations"
MATERIALS = "materials"
PRICING_OVERRIDES = "pricing_overrides"


@dataclass
class Configuration:
    """Root record owning one user's catalog for one trade."""

    id: str
    owner_id: str
    trade: str
    is_configured: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Configuration":
        return cls(
            id=str(record["id"]),
            owner_id=str(record["owner_id"]),
            trade=str(record["trade"]),
            is_configured=bool(record.get("is_configured", False)),
            created_at=record.get("created_at"),
            updated_at=record.get("updated_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Material:
    """Priced catalog entry, either a cloned default or user-added."""

    id: str
    config_id: str
    category: str
    name: str
    price: float
    unit: str
    is_archived: bool = False
    sort_order: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Material":
        return cls(
            id=str(record["id"]),
            config_id=str(record["config_id"]),
            category=str(record["category"]),
            name=str(record["name"]),
            price=float(record["price"]),
            unit=str(record.get("unit") or ""),
            is_archived=bool(record.get("is_archived", False)),
            sort_order=int(record.get("sort_order") or 0),
            metadata=dict(record.get("metadata") or {}),
            created_at=record.get("created_at"),
            updated_at=record.get("updated_at"),
        )

    @property
    def unit_spec(self) -> Optional[UnitSpec]:
        return UnitSpec.from_value(self.metadata.get("unitSpec"))

    def matches(self, name: str, category: Optional[str] = None) -> bool:
        if self.is_archived:
            return False
        if category is not None and self.category != category:
            return False
        return self.name.lower() == name.lower()

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        spec = self.unit_spec
        data["unit_spec"] = str(spec) if spec else None
        return data


@dataclass
class PricingOverride:
    """Flat price for a cost component that is not a full material."""

    id: str
    config_id: str
    component_key: str
    value: float
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "PricingOverride":
        return cls(
            id=str(record["id"]),
            config_id=str(record["config_id"]),
            component_key=str(record["component_key"]),
            value=float(record["value"]),
            created_at=record.get("created_at"),
            updated_at=record.get("updated_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Result(Generic[T]):
    """Outcome of a catalog operation. Failures carry a message instead of raising."""

    ok: bool
    data: Optional[T] = None
    error: Optional[str] = None
    cause: Optional[BaseException] = None

    @classmethod
    def success(cls, data: Optional[T] = None) -> "Result[T]":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: str, *, cause: Optional[BaseException] = None) -> "Result[T]":
        return cls(ok=False, error=error, cause=cause)

    def forward(self, message: str) -> "Result[Any]":
        """Carry this failure into another operation's result, keeping its cause."""

        return Result(ok=False, error=self.error or message, cause=self.cause)

    def __bool__(self) -> bool:
        return self.ok
