"""
Stock queries — read-only operations.

All methods are classmethods and use no locking.
"""

from django.db.models import F, Sum
from django.db.models.functions import Coalesce

from stockpool.models.movement import Movement
from stockpool.models.record import StockRecord
from stockpool.types import location_code


class StockQueries:
    """Read-only stock query methods."""

    @classmethod
    def records(cls, product_id: str | None = None, variant_id: str | None = None,
                location=None, include_empty: bool = False, sku: str | None = None):
        """List stock records with filters."""
        qs = StockRecord.objects.select_related('location')

        if product_id is not None:
            qs = qs.filter(product_id=product_id)

        if sku is not None:
            qs = qs.filter(sku=sku)

        if variant_id is not None:
            qs = qs.filter(variant_id=variant_id)

        if location is not None:
            qs = qs.at_location(location)

        if not include_empty:
            qs = qs.filter(quantity_on_hand__gt=0)

        return qs.order_by('product_id', 'variant_id', 'location__priority', 'location__code')

    @classmethod
    def available(cls, product_id: str, variant_id: str = '', location=None) -> int:
        """
        Units free to reserve.

        available = on_hand - reserved

        Args:
            product_id: Product identifier
            variant_id: Variant ('' = no variant)
            location: Location or code (None = all active locations)
        """
        qs = StockRecord.objects.for_product(product_id, variant_id)
        if location is not None:
            qs = qs.at_location(location)
        else:
            qs = qs.filter(location__is_active=True)

        return qs.aggregate(
            t=Coalesce(Sum(F('quantity_on_hand') - F('reserved_quantity')), 0)
        )['t']

    @classmethod
    def availability(cls, product_id: str, variant_id: str = '') -> dict[str, int]:
        """Available units per active location code (only locations holding some)."""
        rows = (
            StockRecord.objects.for_product(product_id, variant_id)
            .filter(location__is_active=True)
            .with_available()
            .order_by('location__priority', 'location__code')
            .values_list('location__code', 'quantity_on_hand', 'reserved_quantity')
        )
        return {code: on_hand - reserved for code, on_hand, reserved in rows}

    @classmethod
    def is_available(cls, product_id: str, quantity: int, variant_id: str = '',
                     location=None) -> bool:
        return cls.available(product_id, variant_id, location) >= quantity

    @classmethod
    def on_hand(cls, product_id: str, variant_id: str = '') -> int:
        """Total on-hand units across all locations."""
        return StockRecord.objects.for_product(product_id, variant_id).aggregate(
            t=Coalesce(Sum('quantity_on_hand'), 0)
        )['t']

    @classmethod
    def low_stock(cls, location=None):
        """Records at or below their low-stock threshold, out of stock included."""
        qs = StockRecord.objects.low_stock().select_related('location')
        if location is not None:
            qs = qs.at_location(location)
        return qs.order_by(F('quantity_on_hand') - F('reserved_quantity'), 'product_id')

    @classmethod
    def out_of_stock(cls, location=None):
        qs = StockRecord.objects.out_of_stock().select_related('location')
        if location is not None:
            qs = qs.at_location(location)
        return qs.order_by('product_id', 'variant_id')

    @classmethod
    def needs_reorder(cls, location=None):
        """Records whose on_hand dropped to the reorder point."""
        qs = StockRecord.objects.needs_reorder().select_related('location')
        if location is not None:
            qs = qs.at_location(location)
        return qs.order_by('product_id', 'variant_id')

    @classmethod
    def movements(cls, product_id: str | None = None, location=None,
                  reference_id: str | None = None, limit: int | None = None):
        """Movement history, newest first."""
        qs = Movement.objects.select_related('stock_record__location')
        if product_id is not None:
            qs = qs.filter(stock_record__product_id=product_id)
        if location is not None:
            qs = qs.filter(stock_record__location__code=location_code(location))
        if reference_id is not None:
            qs = qs.filter(reference_id=reference_id)
        qs = qs.order_by('-timestamp', '-pk')
        return qs[:limit] if limit else qs
