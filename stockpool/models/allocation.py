"""
Allocation models — audit record of one pool allocation attempt.
"""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from stockpool.models.enums import AllocationStatus, AllocationStrategy


class Allocation(models.Model):
    """
    Persisted result of PoolAllocator.allocate().

    The reservations it produced point back here (Reservation.allocation),
    so the whole set can be released with one call.
    """

    pool = models.ForeignKey(
        'stockpool.Pool',
        on_delete=models.PROTECT,
        related_name='allocations',
        verbose_name=_('Pool'),
    )
    reference_id = models.CharField(max_length=64, db_index=True, verbose_name=_('Reference'))
    strategy = models.CharField(
        max_length=20,
        choices=AllocationStrategy.choices,
        verbose_name=_('Strategy'),
    )
    status = models.CharField(
        max_length=20,
        choices=AllocationStatus.choices,
        default=AllocationStatus.RESERVED,
        db_index=True,
        verbose_name=_('Status'),
    )
    customer_latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    customer_longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    released_at = models.DateTimeField(null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        verbose_name = _('Allocation')
        verbose_name_plural = _('Allocations')
        ordering = ['-created_at']

    @property
    def fully_allocated(self) -> bool:
        return not self.lines.filter(shortfall__gt=0).exists()

    def __str__(self) -> str:
        return f"Allocation #{self.pk} {self.reference_id} ({self.strategy}, {self.status})"


class AllocationLine(models.Model):
    """Per requested line: where the units came from and what is missing."""

    allocation = models.ForeignKey(
        Allocation,
        on_delete=models.CASCADE,
        related_name='lines',
    )
    product_id = models.CharField(max_length=64)
    variant_id = models.CharField(max_length=64, blank=True, default='')
    requested = models.PositiveIntegerField()
    allocated = models.PositiveIntegerField(default=0)
    shortfall = models.PositiveIntegerField(default=0)
    # [{"location": "<code>", "quantity": n}, ...] in allocation order
    sources = models.JSONField(default=list, blank=True)

    class Meta:
        verbose_name = _('Allocation line')
        verbose_name_plural = _('Allocation lines')

    def __str__(self) -> str:
        return f"{self.product_id}: {self.allocated}/{self.requested}"
