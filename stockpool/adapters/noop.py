"""
Noop Catalog Validator — Stub adapter for development and testing.

Every product is valid. Usage in settings.py:
    STOCKPOOL = {
        "CATALOG_VALIDATOR": "stockpool.adapters.noop.NoopCatalogValidator",
    }

WARNING: Do NOT use in production. It accepts any product id, including
nonexistent or discontinued ones.
"""

from __future__ import annotations

from stockpool.protocols.catalog import ProductValidationResult


class NoopCatalogValidator:
    """
    No-operation catalog validator.

    Implements the ``CatalogValidator`` protocol without any external
    dependencies, for local development, tests, and CI pipelines where
    the catalog service is unavailable.
    """

    def validate_product(self, product_id: str, variant_id: str = '') -> ProductValidationResult:
        return ProductValidationResult(
            valid=True,
            product_id=product_id,
            variant_id=variant_id,
            sku=product_id,
            is_active=True,
        )

    def validate_products(
        self, pairs: list[tuple[str, str]],
    ) -> dict[tuple[str, str], ProductValidationResult]:
        return {pair: self.validate_product(*pair) for pair in pairs}
