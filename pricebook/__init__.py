"""Per-user material pricing configuration and trade estimation."""

from .lifecycle import CatalogSnapshot, ConfigurationManager
from .service import EstimateRun, estimate_for_user, run_estimate

__all__ = [
    "CatalogSnapshot",
    "ConfigurationManager",
    "EstimateRun",
    "estimate_for_user",
    "run_estimate",
]
