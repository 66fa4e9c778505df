"""
Stock ledger — the only code that changes StockRecord counters.

Every primitive is a compare-and-swap on StockRecord.version:

    UPDATE stockrecord SET ..., version = version + 1
     WHERE id = %s AND version = %s

The new values are computed from the row that was read; if another
writer got there first the UPDATE matches no row and the step is
retried against a fresh read. After MAX_CAS_RETRIES the conflict
surfaces as ConcurrencyConflictError. No lock is ever held on more than
one record, so callers can chain ledger steps over different keys
without deadlocking.
"""

import copy
import logging

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from stockpool.adapters.catalog import check_products
from stockpool.conf import stockpool_settings
from stockpool.exceptions import (
    ConcurrencyConflictError,
    InsufficientStockError,
    LocationNotFoundError,
    NegativeQuantityError,
    StockRecordNotFoundError,
    ValidationError,
)
from stockpool.models.enums import MovementKind
from stockpool.models.location import Location
from stockpool.models.movement import Movement
from stockpool.models.record import StockRecord
from stockpool.services.monitor import ThresholdMonitor
from stockpool.types import StockKey, validate_quantity

logger = logging.getLogger('stockpool')

# Fields a caller may set on a record created by its first stock entry
RECORD_DEFAULT_FIELDS = ('sku', 'reorder_point', 'reorder_quantity', 'low_stock_threshold', 'metadata')


def _record_defaults(overrides: dict) -> dict:
    unknown = set(overrides) - set(RECORD_DEFAULT_FIELDS)
    if unknown:
        raise ValidationError('INVALID_REQUEST', unknown_fields=sorted(unknown))
    defaults = {
        'reorder_point': stockpool_settings.DEFAULT_REORDER_POINT,
        'reorder_quantity': stockpool_settings.DEFAULT_REORDER_QUANTITY,
        'low_stock_threshold': stockpool_settings.DEFAULT_LOW_STOCK_THRESHOLD,
    }
    defaults.update(overrides)
    return defaults


class StockLedger:
    """Atomic mutation primitives on one StockRecord."""

    # ══════════════════════════════════════════════════════════════
    # LOOKUPS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def get_location(cls, location) -> Location:
        """Resolve a Location instance or code."""
        if isinstance(location, Location):
            return location
        try:
            return Location.objects.get(code=location)
        except Location.DoesNotExist:
            raise LocationNotFoundError(location=location) from None

    @classmethod
    def get_record(cls, key: StockKey) -> StockRecord | None:
        return (
            StockRecord.objects.select_related('location')
            .filter(product_id=key.product_id, variant_id=key.variant_id, location__code=key.location)
            .first()
        )

    @classmethod
    def _require_record(cls, key: StockKey) -> StockRecord:
        record = cls.get_record(key)
        if record is None:
            raise StockRecordNotFoundError(key=str(key))
        return record

    @classmethod
    def _get_or_create_record(cls, key: StockKey, defaults: dict) -> StockRecord:
        record = cls.get_record(key)
        if record is not None:
            return record

        location = cls.get_location(key.location)
        check_products([(key.product_id, key.variant_id)])
        record, created = StockRecord.objects.get_or_create(
            product_id=key.product_id,
            variant_id=key.variant_id,
            location=location,
            defaults=defaults,
        )
        if created:
            logger.info(
                "stock.record.created",
                extra={"key": str(key), "record_id": record.pk},
            )
        return record

    # ══════════════════════════════════════════════════════════════
    # COMPARE-AND-SWAP
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def _swap(cls, record: StockRecord, fields: dict) -> StockRecord | None:
        """
        Apply `fields` only if nobody wrote the record since it was read.

        Returns:
            A snapshot of the record after the write, or None on conflict.
        """
        now = timezone.now()
        updated = StockRecord.objects.filter(pk=record.pk, version=record.version).update(
            version=F('version') + 1,
            updated_at=now,
            **fields,
        )
        if updated != 1:
            return None

        after = copy.copy(record)
        for name, value in fields.items():
            setattr(after, name, value)
        after.version = record.version + 1
        after.updated_at = now
        return after

    @classmethod
    def _mutate(cls, key: StockKey, plan, *, load=None):
        """
        Read → plan → swap, retried on conflict.

        `plan(record)` returns (fields, result). Empty fields mean there is
        nothing to write (e.g. nothing available to reserve). It may raise
        to reject the operation; the rejection is based on the row it was
        given, which is the current one unless a retry follows.

        Returns:
            (before, after, result); after is None when nothing was written.
        """
        load = load or cls._require_record
        attempts = max(1, stockpool_settings.MAX_CAS_RETRIES)

        for attempt in range(attempts):
            record = load(key)
            fields, result = plan(record)
            if not fields:
                return record, None, result

            after = cls._swap(record, fields)
            if after is not None:
                return record, after, result

            logger.debug(
                "stock.cas.retry",
                extra={"key": str(key), "attempt": attempt + 1, "version": record.version},
            )

        logger.warning(
            "stock.cas.exhausted",
            extra={"key": str(key), "attempts": attempts},
        )
        raise ConcurrencyConflictError(key=str(key), attempts=attempts)

    @classmethod
    def _record_movement(cls, before, after, kind, reason, reference_id='',
                         transfer=None, performed_by='', metadata=None) -> Movement:
        return Movement.objects.create(
            stock_record=after,
            kind=kind,
            delta=after.quantity_on_hand - before.quantity_on_hand,
            previous_quantity=before.quantity_on_hand,
            new_quantity=after.quantity_on_hand,
            reason=reason,
            reference_id=reference_id or '',
            transfer=transfer,
            performed_by=performed_by or 'system',
            metadata=metadata or {},
        )

    # ══════════════════════════════════════════════════════════════
    # ON-HAND
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def adjust(cls, key: StockKey, delta: int, reason: str, reference_id: str = '',
               kind: str | None = None, transfer=None, performed_by: str = '',
               **record_defaults) -> int:
        """
        Change quantity_on_hand by `delta`.

        Creates the record on first positive entry at a location.

        Returns:
            New quantity_on_hand

        Raises:
            ValidationError('REASON_REQUIRED'): If reason is empty
            ValidationError('INVALID_QUANTITY'): If delta is zero or not an int
            NegativeQuantityError: If on_hand would drop below reserved
            StockRecordNotFoundError: If delta < 0 and the record doesn't exist
        """
        if not reason:
            raise ValidationError('REASON_REQUIRED')
        if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
            raise ValidationError('INVALID_QUANTITY', field='delta', value=delta)

        if kind is None:
            kind = MovementKind.INBOUND if delta > 0 else MovementKind.ADJUSTMENT

        defaults = _record_defaults(record_defaults)
        load = (lambda k: cls._get_or_create_record(k, defaults)) if delta > 0 else None

        def plan(record):
            new_on_hand = record.quantity_on_hand + delta
            if new_on_hand < record.reserved_quantity:
                raise NegativeQuantityError(
                    key=str(key),
                    on_hand=record.quantity_on_hand,
                    reserved=record.reserved_quantity,
                    delta=delta,
                )
            fields = {'quantity_on_hand': new_on_hand}
            if delta > 0:
                fields['last_restock_at'] = timezone.now()
            return fields, new_on_hand

        with transaction.atomic():
            before, after, new_on_hand = cls._mutate(key, plan, load=load)
            cls._record_movement(before, after, kind, reason, reference_id,
                                 transfer=transfer, performed_by=performed_by)
            ThresholdMonitor.observe(before, after, reference_id)

        logger.info(
            "stock.adjust",
            extra={
                "key": str(key),
                "delta": str(delta),
                "on_hand": str(new_on_hand),
                "reason": reason,
                "kind": kind,
            },
        )
        return new_on_hand

    @classmethod
    def receive(cls, key: StockKey, quantity: int, reason: str = 'Inbound',
                reference_id: str = '', performed_by: str = '', **record_defaults) -> int:
        """
        Stock entry. Shortcut for adjust() with a positive delta.

        Returns:
            New quantity_on_hand
        """
        validate_quantity(quantity)
        return cls.adjust(key, quantity, reason, reference_id=reference_id,
                          kind=MovementKind.INBOUND, performed_by=performed_by,
                          **record_defaults)

    @classmethod
    def withdraw(cls, key: StockKey, quantity: int, reason: str, reference_id: str = '',
                 kind: str = MovementKind.OUTBOUND, transfer=None, performed_by: str = '') -> int:
        """
        Remove up to `quantity` AVAILABLE units from on_hand.

        Reserved units are never touched. A missing record withdraws nothing.

        Returns:
            Units actually removed: min(quantity, available), possibly 0
        """
        validate_quantity(quantity)
        if not reason:
            raise ValidationError('REASON_REQUIRED')

        def plan(record):
            if record is None:
                return None, 0
            taken = min(quantity, record.available_quantity)
            if taken <= 0:
                return None, 0
            return {'quantity_on_hand': record.quantity_on_hand - taken}, taken

        with transaction.atomic():
            before, after, taken = cls._mutate(key, plan, load=cls.get_record)
            if after is not None:
                cls._record_movement(before, after, kind, reason, reference_id,
                                     transfer=transfer, performed_by=performed_by)
                ThresholdMonitor.observe(before, after, reference_id)

        logger.info(
            "stock.withdraw",
            extra={"key": str(key), "requested": str(quantity), "taken": str(taken)},
        )
        return taken

    # ══════════════════════════════════════════════════════════════
    # RESERVED
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def reserve(cls, key: StockKey, quantity: int, reference_id: str = '') -> int:
        """
        Hold up to `quantity` available units.

        Partial reservation is allowed and reported, never rejected:
        reserving 8 with 5 available reserves 5. A missing record reserves 0.

        Returns:
            Units actually reserved: min(quantity, available)
        """
        granted, _record = cls.reserve_available(key, quantity, reference_id)
        return granted

    @classmethod
    def reserve_available(cls, key: StockKey, quantity: int,
                          reference_id: str = '') -> tuple[int, StockRecord | None]:
        """
        reserve() that also returns the record as this step left it.

        Returns:
            (units reserved, record snapshot or None if there is no record)
        """
        validate_quantity(quantity)

        def plan(record):
            if record is None:
                return None, 0
            granted = min(quantity, record.available_quantity)
            if granted <= 0:
                return None, 0
            return {'reserved_quantity': record.reserved_quantity + granted}, granted

        with transaction.atomic():
            before, after, granted = cls._mutate(key, plan, load=cls.get_record)
            if after is not None:
                ThresholdMonitor.observe(before, after, reference_id)

        logger.info(
            "stock.reserve",
            extra={"key": str(key), "requested": str(quantity), "reserved": str(granted),
                   "reference_id": reference_id},
        )
        return granted, (after if after is not None else before)

    @classmethod
    def release(cls, key: StockKey, quantity: int, reference_id: str = '') -> int:
        """
        Give back `quantity` reserved units, floored at zero.

        Returns:
            Units actually released
        """
        validate_quantity(quantity)

        def plan(record):
            released = min(quantity, record.reserved_quantity)
            if released <= 0:
                return None, 0
            return {'reserved_quantity': record.reserved_quantity - released}, released

        with transaction.atomic():
            before, after, released = cls._mutate(key, plan)
            if after is not None:
                ThresholdMonitor.observe(before, after, reference_id)

        if released < quantity:
            logger.warning(
                "stock.release.floored",
                extra={"key": str(key), "requested": str(quantity), "released": str(released)},
            )
        logger.info(
            "stock.release",
            extra={"key": str(key), "released": str(released), "reference_id": reference_id},
        )
        return released

    @classmethod
    def fulfill(cls, key: StockKey, quantity: int, reference_id: str = '',
                reason: str = 'Fulfillment', performed_by: str = '') -> int:
        """
        Consume reserved units: on_hand and reserved both drop by `quantity`.

        Returns:
            New quantity_on_hand

        Raises:
            InsufficientStockError('INSUFFICIENT_RESERVED'): If fewer than
                `quantity` units are reserved
        """
        validate_quantity(quantity)

        def plan(record):
            if record.reserved_quantity < quantity:
                raise InsufficientStockError(
                    'INSUFFICIENT_RESERVED',
                    key=str(key),
                    reserved=record.reserved_quantity,
                    requested=quantity,
                )
            return {
                'quantity_on_hand': record.quantity_on_hand - quantity,
                'reserved_quantity': record.reserved_quantity - quantity,
            }, record.quantity_on_hand - quantity

        with transaction.atomic():
            before, after, new_on_hand = cls._mutate(key, plan)
            cls._record_movement(before, after, MovementKind.FULFILLMENT, reason,
                                 reference_id, performed_by=performed_by)
            ThresholdMonitor.observe(before, after, reference_id)

        logger.info(
            "stock.fulfill",
            extra={"key": str(key), "qty": str(quantity), "on_hand": str(new_on_hand),
                   "reference_id": reference_id},
        )
        return new_on_hand
