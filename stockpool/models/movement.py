"""
Movement model — Immutable ledger of on-hand changes.
"""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from stockpool.models.enums import MovementKind


class Movement(models.Model):
    """
    Immutable record of an on-hand change.

    Rules:
    - NEVER update() or delete()
    - Corrections are new Movements with inverse delta
    - Written by StockLedger in the same transaction as the counter change

    Reservations do not produce movements: they only move units between
    available and reserved, on_hand stays the same.
    """

    stock_record = models.ForeignKey(
        'stockpool.StockRecord',
        on_delete=models.PROTECT,
        related_name='movements',
        verbose_name=_('Stock record'),
    )
    kind = models.CharField(
        max_length=20,
        choices=MovementKind.choices,
        verbose_name=_('Kind'),
    )
    delta = models.IntegerField(
        verbose_name=_('Delta'),
        help_text=_('Positive = in, negative = out'),
    )
    previous_quantity = models.IntegerField(verbose_name=_('Previous on hand'))
    new_quantity = models.IntegerField(verbose_name=_('New on hand'))

    reason = models.CharField(
        max_length=255,
        verbose_name=_('Reason'),
        help_text=_('Required. E.g. "Cycle count", "Order #123"'),
    )
    reference_id = models.CharField(
        max_length=64,
        blank=True,
        default='',
        db_index=True,
        verbose_name=_('Reference'),
    )
    transfer = models.ForeignKey(
        'stockpool.Transfer',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='movements',
        verbose_name=_('Transfer'),
    )
    performed_by = models.CharField(
        max_length=150,
        blank=True,
        default='system',
        verbose_name=_('Performed by'),
    )
    metadata = models.JSONField(default=dict, blank=True, verbose_name=_('Metadata'))

    timestamp = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Timestamp'))

    class Meta:
        verbose_name = _('Movement')
        verbose_name_plural = _('Movements')
        ordering = ['timestamp', 'pk']
        indexes = [
            models.Index(fields=['stock_record', 'timestamp'], name='movement_record_time_idx'),
        ]

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValueError(
                "Movements are immutable. "
                "To correct one, record a new Movement with the inverse delta."
            )
        if not self.reason:
            raise ValueError("Reason is required")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError(
            "Movements are immutable. "
            "To reverse one, record a new Movement with the inverse delta."
        )

    def __str__(self) -> str:
        signal = '+' if self.delta > 0 else ''
        return f"{signal}{self.delta} | {self.reason}"
