"""
Catalog adapter — loads the configured CatalogValidator from settings.

Usage:
    from stockpool.adapters import get_catalog_validator

    validator = get_catalog_validator()
    result = validator.validate_product("sku-1", "blue-m")

Settings:
    STOCKPOOL = {
        "CATALOG_VALIDATOR": "catalog.adapters.CatalogProductValidator",
        "VALIDATE_PRODUCTS": True,
    }

If VALIDATE_PRODUCTS is on and CATALOG_VALIDATOR is not configured,
get_catalog_validator() raises ImproperlyConfigured.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from stockpool.conf import stockpool_settings
from stockpool.exceptions import ValidationError
from stockpool.protocols.catalog import CatalogValidator

logger = logging.getLogger(__name__)


# Cached validator instance
_lock = threading.Lock()
_catalog_validator: CatalogValidator | None = None


def get_catalog_validator() -> CatalogValidator:
    """
    Return the configured catalog validator.

    Raises:
        ImproperlyConfigured: If CATALOG_VALIDATOR is not configured or import fails
    """
    global _catalog_validator

    if _catalog_validator is None:
        with _lock:
            if _catalog_validator is None:  # double-checked
                validator_path = stockpool_settings.CATALOG_VALIDATOR

                if not validator_path:
                    raise ImproperlyConfigured(
                        "STOCKPOOL['CATALOG_VALIDATOR'] must be configured when "
                        "VALIDATE_PRODUCTS is on. "
                        "Example: 'stockpool.adapters.noop.NoopCatalogValidator'"
                    )

                try:
                    validator_class = import_string(validator_path)
                    _catalog_validator = validator_class()
                    logger.debug("Loaded catalog validator: %s", validator_path)
                except ImportError as e:
                    raise ImproperlyConfigured(
                        f"Failed to import catalog validator '{validator_path}': {e}"
                    ) from e

    return _catalog_validator


def reset_catalog_validator() -> None:
    """Reset the cached validator. Useful for testing."""
    global _catalog_validator
    _catalog_validator = None


def check_products(pairs: Iterable[tuple[str, str]]) -> None:
    """
    Reject unknown or inactive products before any mutation.

    No-op unless STOCKPOOL['VALIDATE_PRODUCTS'] is on.

    Raises:
        ValidationError('UNKNOWN_PRODUCT'): For the first invalid pair
    """
    if not stockpool_settings.VALIDATE_PRODUCTS:
        return

    unique = list(dict.fromkeys((p, v or '') for p, v in pairs))
    results = get_catalog_validator().validate_products(unique)
    for pair in unique:
        result = results.get(pair)
        if result is None or not result.valid or not result.is_active:
            raise ValidationError(
                'UNKNOWN_PRODUCT',
                product_id=pair[0],
                variant_id=pair[1],
                reason=getattr(result, 'error_code', None) or 'not_found',
            )
