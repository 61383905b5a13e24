"""Runtime settings read from the environment."""

from __future__ import annotations

import os
import pathlib
from dataclasses import dataclass
from typing import Mapping, Optional

from .storage import MemoryRecordStore, RecordStore
from .trades import TradeCatalog, load_trade_catalog

MEMORY_URL = "memory://"


@dataclass
class Settings:
    database_url: str = "sqlite:///pricebook.db"
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    trades_file: Optional[pathlib.Path] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        trades_file = env.get("PRICEBOOK_TRADES_FILE")
        port = env.get("PRICEBOOK_PORT", "8000")
        try:
            port_number = int(port)
        except ValueError as exc:
            raise ValueError(f"PRICEBOOK_PORT must be an integer, got '{port}'") from exc
        return cls(
            database_url=env.get("PRICEBOOK_DATABASE_URL", cls.database_url),
            host=env.get("PRICEBOOK_HOST", cls.host),
            port=port_number,
            log_level=env.get("PRICEBOOK_LOG_LEVEL", cls.log_level).upper(),
            trades_file=pathlib.Path(trades_file).expanduser() if trades_file else None,
        )

    def load_trades(self) -> TradeCatalog:
        return load_trade_catalog(self.trades_file)


def build_store(settings: Settings) -> RecordStore:
    """Pick the record store backend named by ``settings.database_url``."""

    if settings.database_url == MEMORY_URL:
        return MemoryRecordStore()

    # SQLAlchemy is only needed for database URLs.
    from .storage.sql import SqlRecordStore

    return SqlRecordStore(settings.database_url)
