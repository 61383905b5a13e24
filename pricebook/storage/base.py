"""Interface of the record store the catalog is persisted in."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

Record = Dict[str, Any]


class StorageError(Exception):
    """The record store could not complete an operation."""

    def __init__(self, message: str, *, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class UniqueViolation(StorageError):
    """An insert collided with a uniqueness constraint."""


class RecordNotFound(StorageError):
    """No record exists with the requested identifier."""


class RecordStore:
    """Keyed record store with filtered fetch, insert, update, upsert and delete.

    Implementations assign identifiers and ``created_at``/``updated_at``
    timestamps, enforce uniqueness constraints, and raise :class:`StorageError`
    (or a subclass) on failure.
    """

    def fetch(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        *,
        order_by: Optional[Sequence[str]] = None,
    ) -> List[Record]:
        raise NotImplementedError

    def fetch_one(self, table: str, filters: Mapping[str, Any]) -> Optional[Record]:
        rows = self.fetch(table, filters)
        return rows[0] if rows else None

    def insert(self, table: str, values: Mapping[str, Any]) -> Record:
        raise NotImplementedError

    def update(self, table: str, record_id: str, values: Mapping[str, Any]) -> Record:
        raise NotImplementedError

    def upsert(self, table: str, values: Mapping[str, Any], conflict_keys: Sequence[str]) -> Record:
        raise NotImplementedError

    def delete(self, table: str, record_id: str) -> None:
        raise NotImplementedError

    def delete_where(self, table: str, filters: Mapping[str, Any]) -> int:
        raise NotImplementedError


def utcnow() -> datetime:
    """Naive UTC timestamp, the format every backend stores."""

    return datetime.now(timezone.utc).replace(tzinfo=None)
