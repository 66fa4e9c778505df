"""
StockRecord model — on-hand and reserved counters for one product variant at one location.
"""

from django.db import models
from django.db.models import F, Q
from django.utils.translation import gettext_lazy as _


class StockRecordQuerySet(models.QuerySet):
    """QuerySet with helper filters for StockRecord queries."""

    def for_product(self, product_id: str, variant_id: str = ''):
        return self.filter(product_id=product_id, variant_id=variant_id or '')

    def at_location(self, location):
        if isinstance(location, str):
            return self.filter(location__code=location)
        return self.filter(location=location)

    def with_available(self):
        """Only records with available_quantity > 0."""
        return self.filter(quantity_on_hand__gt=F('reserved_quantity'))

    def low_stock(self):
        """available <= low_stock_threshold (out of stock included)."""
        return self.filter(
            quantity_on_hand__lte=F('reserved_quantity') + F('low_stock_threshold')
        )

    def out_of_stock(self):
        return self.filter(quantity_on_hand__lte=F('reserved_quantity'))

    def needs_reorder(self):
        return self.filter(quantity_on_hand__lte=F('reorder_point'))


class StockRecord(models.Model):
    """
    Quantity of a product variant at a location.

    Identity: (product_id, variant_id, location). variant_id='' means the
    product has no variant.

    Counters:
    - quantity_on_hand: units physically present
    - reserved_quantity: units held by active reservations
    - available_quantity (derived) = on_hand - reserved

    Counters change ONLY through StockLedger, via compare-and-swap on
    `version`. The check constraints are the last line of defence for
    0 <= reserved <= on_hand.
    """

    product_id = models.CharField(
        max_length=64,
        db_index=True,
        verbose_name=_('Product'),
    )
    variant_id = models.CharField(
        max_length=64,
        blank=True,
        default='',
        verbose_name=_('Variant'),
    )
    location = models.ForeignKey(
        'stockpool.Location',
        on_delete=models.PROTECT,
        related_name='records',
        verbose_name=_('Location'),
    )
    sku = models.CharField(
        max_length=64,
        blank=True,
        default='',
        verbose_name=_('SKU'),
    )

    quantity_on_hand = models.IntegerField(default=0, verbose_name=_('On hand'))
    reserved_quantity = models.IntegerField(default=0, verbose_name=_('Reserved'))

    reorder_point = models.IntegerField(default=10, verbose_name=_('Reorder point'))
    reorder_quantity = models.IntegerField(default=50, verbose_name=_('Reorder quantity'))
    low_stock_threshold = models.IntegerField(default=5, verbose_name=_('Low stock threshold'))
    last_restock_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Last restock'))

    # Optimistic concurrency stamp, bumped by every ledger mutation
    version = models.PositiveIntegerField(default=0, editable=False)

    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StockRecordQuerySet.as_manager()

    class Meta:
        verbose_name = _('Stock record')
        verbose_name_plural = _('Stock records')
        constraints = [
            models.UniqueConstraint(
                fields=['product_id', 'variant_id', 'location'],
                name='unique_stock_record_key',
            ),
            models.CheckConstraint(
                condition=Q(reserved_quantity__gte=0),
                name='stock_record_reserved_non_negative',
            ),
            models.CheckConstraint(
                condition=Q(reserved_quantity__lte=F('quantity_on_hand')),
                name='stock_record_reserved_within_on_hand',
            ),
        ]
        indexes = [
            models.Index(fields=['product_id', 'variant_id'], name='stock_record_product_idx'),
        ]

    # ══════════════════════════════════════════════════════════════
    # PROPERTIES
    # ══════════════════════════════════════════════════════════════

    @property
    def available_quantity(self) -> int:
        return self.quantity_on_hand - self.reserved_quantity

    @property
    def is_in_stock(self) -> bool:
        return self.available_quantity > 0

    @property
    def is_low_stock(self) -> bool:
        return self.available_quantity <= self.low_stock_threshold

    @property
    def is_out_of_stock(self) -> bool:
        return self.available_quantity <= 0

    @property
    def needs_reorder(self) -> bool:
        return self.quantity_on_hand <= self.reorder_point

    @property
    def key(self):
        from stockpool.types import StockKey
        return StockKey(self.product_id, self.variant_id, self.location.code)

    # ══════════════════════════════════════════════════════════════
    # METHODS
    # ══════════════════════════════════════════════════════════════

    def held_by_active_reservations(self) -> int:
        """
        Sum of quantities held by ACTIVE reservations on this record.

        Always equals reserved_quantity; use for integrity audits.
        """
        from django.db.models import Sum
        from django.db.models.functions import Coalesce

        from stockpool.models.enums import ReservationStatus

        return self.reservation_lines.filter(
            reservation__status=ReservationStatus.ACTIVE,
        ).aggregate(t=Coalesce(Sum('quantity'), 0))['t']

    def __str__(self) -> str:
        variant = f"/{self.variant_id}" if self.variant_id else ""
        return (
            f"{self.product_id}{variant} [{self.location.code}]: "
            f"{self.quantity_on_hand} on hand, {self.reserved_quantity} reserved"
        )
