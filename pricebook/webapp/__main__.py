"""Entry point for running the pricebook web application."""

from __future__ import annotations

import logging

import uvicorn

from ..settings import Settings
from .app import create_app


def main() -> None:
    settings = Settings.from_env()
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
    uvicorn.run(create_app(), host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":  # pragma: no cover
    main()
