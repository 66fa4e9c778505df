"""
Enums for Stockpool models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class LocationKind(models.TextChoices):
    """Type of stock location."""
    WAREHOUSE = 'warehouse', _('Warehouse')
    STORE = 'store', _('Store')
    SUPPLIER = 'supplier', _('Supplier')


class MovementKind(models.TextChoices):
    """What caused an on-hand change."""
    INBOUND = 'inbound', _('Inbound')
    OUTBOUND = 'outbound', _('Outbound')
    ADJUSTMENT = 'adjustment', _('Adjustment')
    TRANSFER_IN = 'transfer_in', _('Transfer in')
    TRANSFER_OUT = 'transfer_out', _('Transfer out')
    FULFILLMENT = 'fulfillment', _('Fulfillment')


class ReservationStatus(models.TextChoices):
    """
    Reservation lifecycle status.

    ACTIVE is the only non-terminal state:

        ACTIVE ──release()──► RELEASED
           │
           ├──sweep()──────► EXPIRED
           │
           └──fulfill()────► FULFILLED
    """
    ACTIVE = 'active', _('Active')
    RELEASED = 'released', _('Released')
    EXPIRED = 'expired', _('Expired')
    FULFILLED = 'fulfilled', _('Fulfilled')

    @classmethod
    def terminal(cls):
        return [cls.RELEASED, cls.EXPIRED, cls.FULFILLED]


class ReleaseReason(models.TextChoices):
    """Why a reservation left the ACTIVE state."""
    RELEASED = 'released', _('Released')
    CANCELLED = 'cancelled', _('Cancelled')
    EXPIRED = 'expired', _('Expired')
    FULFILLED = 'fulfilled', _('Fulfilled')

    @property
    def target_status(self) -> str:
        if self == ReleaseReason.EXPIRED:
            return ReservationStatus.EXPIRED
        if self == ReleaseReason.FULFILLED:
            return ReservationStatus.FULFILLED
        return ReservationStatus.RELEASED


class AllocationStrategy(models.TextChoices):
    """Rule used to choose which pool locations satisfy a request."""
    FIFO = 'fifo', _('Oldest stock first')
    NEAREST = 'nearest', _('Nearest location first')
    PRIORITY = 'priority', _('Location priority')
    EVEN_SPLIT = 'even_split', _('Proportional split')


class ReservationPolicy(models.TextChoices):
    """Whether an allocation holds stock right away."""
    IMMEDIATE = 'immediate', _('Reserve immediately')
    DEFERRED = 'deferred', _('Plan only, reserve on commit')


class AllocationStatus(models.TextChoices):
    PLANNED = 'planned', _('Planned')
    RESERVED = 'reserved', _('Reserved')
    RELEASED = 'released', _('Released')


class TransferStatus(models.TextChoices):
    PENDING = 'pending', _('Pending')
    COMPLETED = 'completed', _('Completed')
    PARTIAL = 'partial', _('Partially completed')
    FAILED = 'failed', _('Failed')
