"""
Stockpool configuration.

Usage in settings.py:
    STOCKPOOL = {
        "RESERVATION_TTL_MINUTES": 30,
        "EXPIRED_BATCH_SIZE": 200,
        "MAX_CAS_RETRIES": 5,
        "CATALOG_VALIDATOR": "catalog.adapters.CatalogProductValidator",
        "VALIDATE_PRODUCTS": True,
    }
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings


@dataclass
class StockpoolSettings:
    """Stockpool configuration settings."""

    # Default reservation TTL in minutes
    RESERVATION_TTL_MINUTES: int = 30

    # Batch size for the expiry sweeper
    EXPIRED_BATCH_SIZE: int = 200

    # Seconds between sweeps when the sweeper runs as a loop
    SWEEP_INTERVAL_SECONDS: int = 60

    # Compare-and-swap attempts before ConcurrencyConflictError surfaces
    MAX_CAS_RETRIES: int = 5

    # Defaults for records created on first stock entry
    DEFAULT_LOW_STOCK_THRESHOLD: int = 5
    DEFAULT_REORDER_POINT: int = 10
    DEFAULT_REORDER_QUANTITY: int = 50

    # Catalog validation backend (dotted path)
    CATALOG_VALIDATOR: str = ""

    # Validate products via the catalog backend before stock operations
    VALIDATE_PRODUCTS: bool = False


def get_stockpool_settings() -> StockpoolSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "STOCKPOOL", {})
    return StockpoolSettings(**{
        k: v for k, v in user_settings.items()
        if k in StockpoolSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_stockpool_settings(), name)


stockpool_settings = _LazySettings()
