"""
Stockpool Protocols.

Defines interfaces for external system integration.
"""

from stockpool.protocols.catalog import (
    CatalogValidator,
    ProductValidationResult,
)

__all__ = [
    "CatalogValidator",
    "ProductValidationResult",
]
