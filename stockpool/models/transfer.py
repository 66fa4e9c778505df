"""
Transfer models — on-hand stock moved between two locations.
"""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from stockpool.models.enums import TransferStatus


class Transfer(models.Model):
    """
    One transfer request from source to destination.

    Terminal once every line was processed. Each line is an independent
    withdraw/deposit pair; see TransferCoordinator.
    """

    source = models.ForeignKey(
        'stockpool.Location',
        on_delete=models.PROTECT,
        related_name='outgoing_transfers',
        verbose_name=_('Source'),
    )
    destination = models.ForeignKey(
        'stockpool.Location',
        on_delete=models.PROTECT,
        related_name='incoming_transfers',
        verbose_name=_('Destination'),
    )
    reason = models.CharField(max_length=255, verbose_name=_('Reason'))
    reference_id = models.CharField(max_length=64, blank=True, default='', verbose_name=_('Reference'))
    status = models.CharField(
        max_length=20,
        choices=TransferStatus.choices,
        default=TransferStatus.PENDING,
        db_index=True,
        verbose_name=_('Status'),
    )
    performed_by = models.CharField(max_length=150, blank=True, default='system')
    created_at = models.DateTimeField(default=timezone.now)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = _('Transfer')
        verbose_name_plural = _('Transfers')
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"Transfer #{self.pk} {self.source.code} → {self.destination.code} ({self.status})"


class TransferLine(models.Model):
    transfer = models.ForeignKey(
        Transfer,
        on_delete=models.CASCADE,
        related_name='lines',
    )
    product_id = models.CharField(max_length=64)
    variant_id = models.CharField(max_length=64, blank=True, default='')
    requested = models.PositiveIntegerField()
    transferred = models.PositiveIntegerField(default=0)
    success = models.BooleanField(default=False)
    error_code = models.CharField(max_length=40, blank=True, default='')

    class Meta:
        verbose_name = _('Transfer line')
        verbose_name_plural = _('Transfer lines')

    def __str__(self) -> str:
        return f"{self.product_id}: {self.transferred}/{self.requested}"
