"""
Stockpool Adapters.

Implementations of protocols for external systems.
"""

from stockpool.adapters.catalog import (
    check_products,
    get_catalog_validator,
    reset_catalog_validator,
)

__all__ = [
    "check_products",
    "get_catalog_validator",
    "reset_catalog_validator",
]
