"""Parsing helpers for free-text unit specifications."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

_NUMBER_PATTERN = re.compile(r"(\d+(?:\.\d+)?)")


def parse_unit_spec(text: Any) -> Optional[float]:
    """Return the first number embedded in ``text`` or ``None``.

    ``"200 sq ft"`` yields ``200.0`` and ``"2 rolls of 50ft"`` yields ``2.0``:
    only the first number is used, so callers control the input format.
    """

    if not isinstance(text, str) or not text:
        return None
    match = _NUMBER_PATTERN.search(text)
    if match is None:
        return None
    return float(match.group(1))


@dataclass(frozen=True)
class UnitSpec:
    """How much base quantity one priced unit covers (e.g. 200 sq ft per roll)."""

    quantity: Optional[float]
    unit: str = ""
    text: str = ""

    @classmethod
    def parse(cls, text: Optional[str]) -> "UnitSpec":
        """Convert legacy free text into a structured spec."""

        raw = (text or "").strip()
        quantity = parse_unit_spec(raw)
        unit = raw
        if quantity is not None:
            unit = _NUMBER_PATTERN.sub("", raw, count=1).strip()
        return cls(quantity=quantity, unit=unit, text=raw)

    @classmethod
    def from_value(cls, value: Any) -> Optional["UnitSpec"]:
        if value is None:
            return None
        if isinstance(value, UnitSpec):
            return value
        if isinstance(value, str):
            return cls.parse(value) if value.strip() else None
        if isinstance(value, dict):
            quantity = value.get("quantity")
            try:
                quantity = float(quantity) if quantity is not None else None
            except (TypeError, ValueError):
                quantity = None
            unit = str(value.get("unit") or "")
            text = str(value.get("text") or "")
            if quantity is None and text:
                quantity = parse_unit_spec(text)
            return cls(quantity=quantity, unit=unit, text=text or _join(quantity, unit))
        if isinstance(value, (int, float)):
            return cls(quantity=float(value), text=_join(float(value), ""))
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {"quantity": self.quantity, "unit": self.unit, "text": self.text}

    def __str__(self) -> str:
        return self.text or _join(self.quantity, self.unit)


def normalize_metadata(metadata: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Store ``unitSpec`` as a structured dict, dropping empty specs."""

    if not metadata:
        return {}
    normalized = dict(metadata)
    if "unitSpec" in normalized:
        spec = UnitSpec.from_value(normalized["unitSpec"])
        if spec is None:
            normalized.pop("unitSpec")
        else:
            normalized["unitSpec"] = spec.to_dict()
    return normalized


def _join(quantity: Optional[float], unit: str) -> str:
    if quantity is None:
        return unit
    number = f"{quantity:g}"
    return f"{number} {unit}".strip()
