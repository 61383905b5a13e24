"""Record store backends."""

from __future__ import annotations

from .base import RecordNotFound, RecordStore, StorageError, UniqueViolation
from .memory import MemoryRecordStore

__all__ = [
    "MemoryRecordStore",
    "RecordNotFound",
    "RecordStore",
    "StorageError",
    "UniqueViolation",
]
