"""
Reservation model — Time-bounded hold against available stock.
"""

from django.db import models
from django.db.models import Sum
from django.db.models.functions import Coalesce
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from stockpool.models.enums import ReservationStatus


class ReservationQuerySet(models.QuerySet):
    """Custom QuerySet for Reservation with lifecycle filters."""

    def active(self):
        return self.filter(status=ReservationStatus.ACTIVE)

    def expired(self, now=None):
        """Still ACTIVE but past expires_at (waiting for the sweeper)."""
        now = now or timezone.now()
        return self.active().filter(expires_at__isnull=False, expires_at__lt=now)

    def for_reference(self, reference_id: str):
        return self.filter(reference_id=reference_id)


class Reservation(models.Model):
    """
    Hold on available stock for an order (reference).

    LIFECYCLE:

        ┌────────┐   release()   ┌──────────┐
        │ ACTIVE │ ────────────► │ RELEASED │
        └────────┘               └──────────┘
            │   sweep()          ┌──────────┐
            ├──────────────────► │ EXPIRED  │
            │   fulfill()        └──────────┘
            │                    ┌───────────┐
            └──────────────────► │ FULFILLED │
                                 └───────────┘

    Transitions only leave ACTIVE, never return to it. They are applied
    with a conditional UPDATE ... WHERE status='active', so when the
    sweeper and a caller race for the same reservation exactly one of them
    wins and releases the stock.

    A reservation holds one ReservationLine per stock record. The held
    quantity of a line never changes after creation; the whole reservation
    is either released (stock back to available) or fulfilled (stock
    consumed).
    """

    reference_id = models.CharField(
        max_length=64,
        db_index=True,
        verbose_name=_('Reference'),
        help_text=_('Order or checkout identifier'),
    )
    status = models.CharField(
        max_length=20,
        choices=ReservationStatus.choices,
        default=ReservationStatus.ACTIVE,
        db_index=True,
        verbose_name=_('Status'),
    )
    allocation = models.ForeignKey(
        'stockpool.Allocation',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='reservations',
        verbose_name=_('Allocation'),
    )
    expires_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name=_('Expires at'),
        help_text=_('Released automatically by the sweeper after this moment'),
    )
    created_at = models.DateTimeField(default=timezone.now)
    resolved_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_('Resolved at'),
    )
    release_reason = models.CharField(
        max_length=20,
        blank=True,
        default='',
        verbose_name=_('Release reason'),
    )
    metadata = models.JSONField(default=dict, blank=True)

    objects = ReservationQuerySet.as_manager()

    class Meta:
        verbose_name = _('Reservation')
        verbose_name_plural = _('Reservations')
        indexes = [
            models.Index(fields=['status', 'expires_at'], name='reservation_status_expiry_idx'),
        ]

    @property
    def is_active(self) -> bool:
        return self.status == ReservationStatus.ACTIVE

    @property
    def is_terminal(self) -> bool:
        return self.status in ReservationStatus.terminal()

    @property
    def is_expired(self) -> bool:
        """Past its expiry moment (whatever the status says)."""
        if self.expires_at is None:
            return False
        return timezone.now() > self.expires_at

    @property
    def total_quantity(self) -> int:
        return self.lines.aggregate(t=Coalesce(Sum('quantity'), 0))['t']

    def __str__(self) -> str:
        return f"Reservation #{self.pk} {self.reference_id} ({self.status})"


class ReservationLine(models.Model):
    """One hold: `quantity` units of one stock record."""

    reservation = models.ForeignKey(
        Reservation,
        on_delete=models.CASCADE,
        related_name='lines',
        verbose_name=_('Reservation'),
    )
    stock_record = models.ForeignKey(
        'stockpool.StockRecord',
        on_delete=models.PROTECT,
        related_name='reservation_lines',
        verbose_name=_('Stock record'),
    )
    requested = models.PositiveIntegerField(verbose_name=_('Requested'))
    quantity = models.PositiveIntegerField(verbose_name=_('Held'))

    class Meta:
        verbose_name = _('Reservation line')
        verbose_name_plural = _('Reservation lines')
        indexes = [
            models.Index(fields=['stock_record', 'reservation'], name='reservation_line_record_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.quantity}x {self.stock_record_id} (requested {self.requested})"
