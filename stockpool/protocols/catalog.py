"""
Catalog Validation Protocol — Interface for product/variant validation.

Stockpool defines this protocol, the catalog system implements it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class ProductValidationResult:
    """Result of product validation."""

    valid: bool
    product_id: str
    variant_id: str = ''
    sku: str | None = None
    message: str | None = None
    is_active: bool = True
    error_code: str | None = None  # "not_found", "inactive", etc.


@runtime_checkable
class CatalogValidator(Protocol):
    """
    Protocol for product validation.

    Implementations should tell whether a (product, variant) pair exists
    and may be stocked, and provide its SKU when known.
    """

    def validate_product(self, product_id: str, variant_id: str = '') -> ProductValidationResult:
        """
        Validate if a product/variant exists and is active.

        Args:
            product_id: Catalog product identifier
            variant_id: Catalog variant identifier ('' = no variant)

        Returns:
            ProductValidationResult with status and details
        """
        ...

    def validate_products(
        self, pairs: list[tuple[str, str]],
    ) -> dict[tuple[str, str], ProductValidationResult]:
        """
        Validate multiple (product_id, variant_id) pairs at once.

        Returns:
            Dict[(product_id, variant_id), ProductValidationResult]
        """
        ...
