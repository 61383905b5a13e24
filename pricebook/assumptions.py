"""Notes an estimate carries about approximations and catalog substitutions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List


@dataclass
class Assumption:
    """Something about an estimate the contractor should be able to double-check."""

    message: str
    severity: str = "info"  # "info" or "warning".

    def to_dict(self) -> Dict[str, str]:
        return {"message": self.message, "severity": self.severity}


class AssumptionLog:
    """Accumulates assumptions while an estimate is built. Repeated messages are kept once."""

    def __init__(self) -> None:
        self._items: List[Assumption] = []

    def add(self, message: str, severity: str = "info") -> None:
        if any(item.message == message for item in self._items):
            return
        self._items.append(Assumption(message=message, severity=severity))

    @property
    def items(self) -> List[Assumption]:
        return list(self._items)
