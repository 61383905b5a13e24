"""In-process record store used by tests and the ``memory://`` setting."""

from __future__ import annotations

import copy
import itertools
import threading
import uuid
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..models import CONFIGURATIONS, MATERIALS, PRICING_OVERRIDES
from .base import Record, RecordNotFound, RecordStore, StorageError, UniqueViolation, utcnow

DEFAULT_UNIQUE_KEYS: Dict[str, List[Tuple[str, ...]]] = {
    CONFIGURATIONS: [("owner_id", "trade")],
    MATERIALS: [],
    PRICING_OVERRIDES: [("config_id", "component_key")],
}


class MemoryRecordStore(RecordStore):
    """Dict-backed tables with declared uniqueness constraints."""

    def __init__(self, unique_keys: Optional[Dict[str, List[Tuple[str, ...]]]] = None) -> None:
        self.unique_keys = dict(DEFAULT_UNIQUE_KEYS if unique_keys is None else unique_keys)
        self._tables: Dict[str, Dict[str, Record]] = {}
        self._sequence = itertools.count()
        self._order: Dict[str, int] = {}
        self._lock = threading.RLock()

    def fetch(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        *,
        order_by: Optional[Sequence[str]] = None,
    ) -> List[Record]:
        with self._lock:
            rows = [row for row in self._table(table).values() if _matches(row, filters)]
            keys = list(order_by or [])
            rows.sort(key=lambda row: tuple(row.get(key) for key in keys) + (self._order[row["id"]],))
            return [copy.deepcopy(row) for row in rows]

    def insert(self, table: str, values: Mapping[str, Any]) -> Record:
        with self._lock:
            now = utcnow()
            record = dict(copy.deepcopy(values))
            record["id"] = uuid.uuid4().hex
            record["created_at"] = now
            record["updated_at"] = now
            self._check_unique(table, record)
            self._table(table)[record["id"]] = record
            self._order[record["id"]] = next(self._sequence)
            return copy.deepcopy(record)

    def update(self, table: str, record_id: str, values: Mapping[str, Any]) -> Record:
        with self._lock:
            rows = self._table(table)
            if record_id not in rows:
                raise RecordNotFound(f"No {table} record with id {record_id}")
            candidate = dict(rows[record_id])
            candidate.update(copy.deepcopy(dict(values)))
            candidate["id"] = record_id
            candidate["updated_at"] = utcnow()
            self._check_unique(table, candidate)
            rows[record_id] = candidate
            return copy.deepcopy(candidate)

    def upsert(self, table: str, values: Mapping[str, Any], conflict_keys: Sequence[str]) -> Record:
        with self._lock:
            missing = [key for key in conflict_keys if key not in values]
            if missing:
                raise StorageError(f"Upsert into {table} is missing conflict keys {missing}")
            existing = self.fetch_one(table, {key: values[key] for key in conflict_keys})
            if existing is None:
                return self.insert(table, values)
            return self.update(table, existing["id"], values)

    def delete(self, table: str, record_id: str) -> None:
        with self._lock:
            rows = self._table(table)
            if record_id not in rows:
                raise RecordNotFound(f"No {table} record with id {record_id}")
            del rows[record_id]
            self._order.pop(record_id, None)

    def delete_where(self, table: str, filters: Mapping[str, Any]) -> int:
        with self._lock:
            rows = self._table(table)
            doomed = [record_id for record_id, row in rows.items() if _matches(row, filters)]
            for record_id in doomed:
                del rows[record_id]
                self._order.pop(record_id, None)
            return len(doomed)

    def _table(self, table: str) -> Dict[str, Record]:
        if table not in self.unique_keys:
            raise StorageError(f"Unknown table '{table}'")
        return self._tables.setdefault(table, {})

    def _check_unique(self, table: str, record: Record) -> None:
        for columns in self.unique_keys.get(table, []):
            key = tuple(record.get(column) for column in columns)
            for other in self._table(table).values():
                if other["id"] == record["id"]:
                    continue
                if tuple(other.get(column) for column in columns) == key:
                    raise UniqueViolation(
                        f"Duplicate {table} record for {dict(zip(columns, key))}"
                    )


def _matches(row: Record, filters: Optional[Mapping[str, Any]]) -> bool:
    if not filters:
        return True
    return all(row.get(key) == value for key, value in filters.items())
