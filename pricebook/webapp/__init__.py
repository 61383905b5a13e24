"""Web interface for the pricebook engine."""

from .app import create_app

__all__ = ["create_app"]
