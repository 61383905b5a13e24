"""SQLAlchemy-backed record store."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    UniqueConstraint,
    create_engine,
    delete,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import StaticPool

from ..models import CONFIGURATIONS, MATERIALS, PRICING_OVERRIDES
from .base import Record, RecordNotFound, RecordStore, StorageError, UniqueViolation, utcnow

logger = logging.getLogger(__name__)

metadata = MetaData()

configurations_table = Table(
    CONFIGURATIONS,
    metadata,
    Column("id", String(32), primary_key=True),
    Column("owner_id", String(255), nullable=False, index=True),
    Column("trade", String(64), nullable=False),
    Column("is_configured", Boolean, nullable=False, default=False),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
    UniqueConstraint("owner_id", "trade", name="uq_configuration_owner_trade"),
)

materials_table = Table(
    MATERIALS,
    metadata,
    Column("id", String(32), primary_key=True),
    Column("config_id", String(32), ForeignKey(f"{CONFIGURATIONS}.id"), nullable=False, index=True),
    Column("category", String(64), nullable=False),
    Column("name", String(255), nullable=False),
    Column("price", Float, nullable=False),
    Column("unit", String(64), nullable=False, default=""),
    Column("is_archived", Boolean, nullable=False, default=False),
    Column("sort_order", Integer, nullable=False, default=0),
    Column("metadata", JSON, nullable=False, default=dict),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
)

pricing_overrides_table = Table(
    PRICING_OVERRIDES,
    metadata,
    Column("id", String(32), primary_key=True),
    Column("config_id", String(32), ForeignKey(f"{CONFIGURATIONS}.id"), nullable=False, index=True),
    Column("component_key", String(128), nullable=False),
    Column("value", Float, nullable=False),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
    UniqueConstraint("config_id", "component_key", name="uq_pricing_override_component"),
)

TABLES: Dict[str, Table] = {
    CONFIGURATIONS: configurations_table,
    MATERIALS: materials_table,
    PRICING_OVERRIDES: pricing_overrides_table,
}


class SqlRecordStore(RecordStore):
    """Record store on any SQLAlchemy-supported database (SQLite by default)."""

    def __init__(self, url: str = "sqlite:///pricebook.db", *, engine: Optional[Engine] = None) -> None:
        self.engine = engine or _create_engine(url)
        try:
            metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to initialise database schema: {exc}", cause=exc) from exc

    def fetch(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        *,
        order_by: Optional[Sequence[str]] = None,
    ) -> List[Record]:
        sql_table = self._table(table)
        statement = select(sql_table)
        for key, value in (filters or {}).items():
            statement = statement.where(sql_table.c[key] == value)
        for key in order_by or []:
            statement = statement.order_by(sql_table.c[key])
        statement = statement.order_by(sql_table.c.created_at, sql_table.c.id)
        try:
            with self.engine.connect() as connection:
                return [dict(row._mapping) for row in connection.execute(statement)]
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to read {table}: {exc}", cause=exc) from exc

    def insert(self, table: str, values: Mapping[str, Any]) -> Record:
        sql_table = self._table(table)
        now = utcnow()
        record = dict(values)
        record.update(id=uuid.uuid4().hex, created_at=now, updated_at=now)
        try:
            with self.engine.begin() as connection:
                connection.execute(insert(sql_table).values(**record))
        except IntegrityError as exc:
            raise _integrity_error(table, exc) from exc
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to insert into {table}: {exc}", cause=exc) from exc
        return record

    def update(self, table: str, record_id: str, values: Mapping[str, Any]) -> Record:
        sql_table = self._table(table)
        changes = {key: value for key, value in values.items() if key not in {"id", "created_at"}}
        changes["updated_at"] = utcnow()
        try:
            with self.engine.begin() as connection:
                result = connection.execute(
                    update(sql_table).where(sql_table.c.id == record_id).values(**changes)
                )
                if result.rowcount == 0:
                    raise RecordNotFound(f"No {table} record with id {record_id}")
                row = connection.execute(select(sql_table).where(sql_table.c.id == record_id)).one()
        except IntegrityError as exc:
            raise _integrity_error(table, exc) from exc
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to update {table}: {exc}", cause=exc) from exc
        return dict(row._mapping)

    def upsert(self, table: str, values: Mapping[str, Any], conflict_keys: Sequence[str]) -> Record:
        missing = [key for key in conflict_keys if key not in values]
        if missing:
            raise StorageError(f"Upsert into {table} is missing conflict keys {missing}")
        existing = self.fetch_one(table, {key: values[key] for key in conflict_keys})
        if existing is not None:
            return self.update(table, existing["id"], values)
        try:
            return self.insert(table, values)
        except UniqueViolation:
            logger.debug("Concurrent upsert into %s; updating the winning row", table)
            existing = self.fetch_one(table, {key: values[key] for key in conflict_keys})
            if existing is None:
                raise
            return self.update(table, existing["id"], values)

    def delete(self, table: str, record_id: str) -> None:
        sql_table = self._table(table)
        try:
            with self.engine.begin() as connection:
                result = connection.execute(delete(sql_table).where(sql_table.c.id == record_id))
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to delete from {table}: {exc}", cause=exc) from exc
        if result.rowcount == 0:
            raise RecordNotFound(f"No {table} record with id {record_id}")

    def delete_where(self, table: str, filters: Mapping[str, Any]) -> int:
        sql_table = self._table(table)
        statement = delete(sql_table)
        for key, value in filters.items():
            statement = statement.where(sql_table.c[key] == value)
        try:
            with self.engine.begin() as connection:
                return connection.execute(statement).rowcount
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to delete from {table}: {exc}", cause=exc) from exc

    def _table(self, table: str) -> Table:
        try:
            return TABLES[table]
        except KeyError:
            raise StorageError(f"Unknown table '{table}'") from None


def _create_engine(url: str) -> Engine:
    if url.startswith("sqlite") and (":memory:" in url or url.rstrip("/") == "sqlite:"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url)


def _integrity_error(table: str, exc: IntegrityError) -> StorageError:
    message = str(exc.orig) if exc.orig is not None else str(exc)
    if "unique" in message.lower() or "duplicate" in message.lower():
        return UniqueViolation(f"Duplicate {table} record: {message}", cause=exc)
    return StorageError(f"Integrity error on {table}: {message}", cause=exc)
