from __future__ import annotations

from typing import Iterator

import pytest

from pricebook.lifecycle import CatalogSnapshot, ConfigurationManager
from pricebook.storage import MemoryRecordStore
from pricebook.storage.sql import SqlRecordStore
from pricebook.trades import TradeCatalog, load_trade_catalog

USER_ID = "user-1"


@pytest.fixture
def trades() -> TradeCatalog:
    return load_trade_catalog()


@pytest.fixture
def store() -> MemoryRecordStore:
    return MemoryRecordStore()


@pytest.fixture
def manager(store: MemoryRecordStore, trades: TradeCatalog) -> ConfigurationManager:
    return ConfigurationManager(store, trades)


@pytest.fixture
def roofing_snapshot(manager: ConfigurationManager) -> CatalogSnapshot:
    """A roofing catalog seeded with the default materials."""

    opened = manager.open_catalog(USER_ID, "roofing")
    assert opened, opened.error
    return opened.data


@pytest.fixture
def sql_store() -> Iterator[SqlRecordStore]:
    store = SqlRecordStore("sqlite:///:memory:")
    yield store
    store.engine.dispose()
