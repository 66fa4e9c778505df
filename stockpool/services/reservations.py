"""
Reservation manager — time-bounded holds against the stock ledger.

A reservation is opened ACTIVE and leaves that state exactly once, through
a conditional UPDATE ... WHERE status='active'. Whoever wins that update
(a caller, or the expiry sweeper) moves the stock; everyone else gets a
no-op. This makes release idempotent by construction. The transition and
the stock movements of all lines commit in one transaction: if a line
cannot be released or consumed, the reservation stays ACTIVE.

Lines are independent: one line coming up short never undoes another.
Each line is its own transaction holding the ledger reserve together
with the ReservationLine that records it.
"""

import logging
from datetime import timedelta

from django.db import transaction
from django.utils import timezone

from stockpool import events
from stockpool.adapters.catalog import check_products
from stockpool.conf import stockpool_settings
from stockpool.exceptions import (
    ConcurrencyConflictError,
    InventoryError,
    LocationInactiveError,
    LocationNotFoundError,
    ReservationNotActiveError,
    ReservationNotFoundError,
    ValidationError,
)
from stockpool.models.enums import ReleaseReason, ReservationStatus
from stockpool.models.location import Location
from stockpool.models.reservation import Reservation, ReservationLine
from stockpool.services.ledger import StockLedger
from stockpool.types import ReservationLineResult, ReservationResult, StockKey, coerce_lines

logger = logging.getLogger('stockpool')


def resolve_ttl(ttl) -> timedelta:
    """Accept a timedelta or a number of minutes; None means the configured default."""
    if ttl is None:
        ttl = stockpool_settings.RESERVATION_TTL_MINUTES
    if not isinstance(ttl, timedelta):
        if isinstance(ttl, bool) or not isinstance(ttl, (int, float)):
            raise ValidationError('INVALID_REQUEST', field='ttl', value=ttl)
        ttl = timedelta(minutes=ttl)
    if ttl <= timedelta(0):
        raise ValidationError('INVALID_REQUEST', field='ttl', value=str(ttl))
    return ttl


def resolve_locations(lines) -> dict:
    """
    Map each line to the Location it reserves at.

    Lines without a preferred location use the default location.

    Raises:
        LocationNotFoundError: Unknown preferred location or no default location
        LocationInactiveError: Location is not active
    """
    codes = {line.location for line in lines if line.location}
    found = {loc.code: loc for loc in Location.objects.filter(code__in=codes)}
    default = None
    if any(not line.location for line in lines):
        default = Location.objects.default()
        if default is None:
            raise LocationNotFoundError(location='<default>')

    resolved = {}
    for index, line in enumerate(lines):
        location = found.get(line.location) if line.location else default
        if location is None:
            raise LocationNotFoundError(location=line.location)
        if not location.is_active:
            raise LocationInactiveError(location=location.code)
        resolved[index] = location
    return resolved


class ReservationManager:
    """Reservation lifecycle: reserve, extend, release, fulfill."""

    # ══════════════════════════════════════════════════════════════
    # LOOKUPS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def get(cls, reservation_id) -> Reservation:
        if isinstance(reservation_id, Reservation):
            reservation_id = reservation_id.pk
        try:
            return Reservation.objects.get(pk=reservation_id)
        except (Reservation.DoesNotExist, ValueError, TypeError):
            raise ReservationNotFoundError(reservation_id=reservation_id) from None

    @classmethod
    def for_reference(cls, reference_id: str):
        return Reservation.objects.for_reference(reference_id).order_by('created_at', 'pk')

    # ══════════════════════════════════════════════════════════════
    # BUILDING BLOCKS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def open(cls, reference_id: str, ttl=None, allocation=None, **metadata) -> Reservation:
        """Create an empty ACTIVE reservation expiring after `ttl`."""
        if not reference_id or not isinstance(reference_id, str):
            raise ValidationError('INVALID_REQUEST', field='reference_id')
        expires_at = timezone.now() + resolve_ttl(ttl)
        return Reservation.objects.create(
            reference_id=reference_id,
            allocation=allocation,
            expires_at=expires_at,
            metadata=metadata,
        )

    @classmethod
    def hold(cls, reservation: Reservation, key: StockKey, quantity: int,
             requested: int | None = None) -> ReservationLineResult:
        """
        Reserve up to `quantity` units of one key into `reservation`.

        The ledger reserve and the ReservationLine insert commit together.
        The reservation row is locked for the duration, so a concurrent
        release or expiry either sees this line or happens before it.

        Raises:
            ReservationNotActiveError: If the reservation already left ACTIVE
        """
        with transaction.atomic():
            active = (
                Reservation.objects.select_for_update()
                .filter(pk=reservation.pk, status=ReservationStatus.ACTIVE)
                .first()
            )
            if active is None:
                raise ReservationNotActiveError(reservation_id=reservation.pk)

            granted, record = StockLedger.reserve_available(key, quantity, reservation.reference_id)
            if granted:
                ReservationLine.objects.create(
                    reservation=reservation,
                    stock_record=record,
                    requested=requested or quantity,
                    quantity=granted,
                )
                events.emit(
                    events.RESERVED,
                    product_id=key.product_id,
                    variant_id=key.variant_id,
                    location=key.location,
                    quantity=granted,
                    reference_id=reservation.reference_id,
                )

        return ReservationLineResult(
            product_id=key.product_id,
            variant_id=key.variant_id,
            location=key.location,
            requested=requested or quantity,
            reserved=granted,
            available=record.available_quantity if record is not None else 0,
        )

    # ══════════════════════════════════════════════════════════════
    # RESERVE / EXTEND
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def reserve(cls, reference_id: str, items, ttl=None) -> ReservationResult:
        """
        Reserve every requested line for an order.

        Args:
            reference_id: Order or checkout identifier
            items: LineRequest, mapping or (product_id, variant_id, quantity[, location])
            ttl: timedelta or minutes (default RESERVATION_TTL_MINUTES)

        Returns:
            ReservationResult. Short lines are reported, not raised:
            reserving 8 with 5 available gives reserved=5, is_fully_reserved=False.

        Raises:
            ValidationError: Malformed request (nothing reserved)
            LocationNotFoundError / LocationInactiveError: Bad location (nothing reserved)
        """
        if not reference_id or not isinstance(reference_id, str):
            raise ValidationError('INVALID_REQUEST', field='reference_id')
        lines = coerce_lines(items)
        resolve_ttl(ttl)
        locations = resolve_locations(lines)
        check_products((line.product_id, line.variant_id) for line in lines)

        reservation = cls.open(reference_id, ttl)

        results = []
        for index, line in enumerate(lines):
            key = StockKey(line.product_id, line.variant_id, locations[index])
            try:
                result = cls.hold(reservation, key, line.quantity)
            except ConcurrencyConflictError as e:
                logger.warning(
                    "reservation.line.conflict",
                    extra={"reservation_id": reservation.pk, "key": str(key), "error": e.code},
                )
                result = ReservationLineResult(
                    product_id=key.product_id,
                    variant_id=key.variant_id,
                    location=key.location,
                    requested=line.quantity,
                    reserved=0,
                    available=0,
                )
            results.append(result)

        reservation_result = ReservationResult(
            reservation_id=reservation.pk,
            reference_id=reference_id,
            expires_at=reservation.expires_at,
            lines=tuple(results),
        )
        logger.info(
            "reservation.created",
            extra={
                "reservation_id": reservation.pk,
                "reference_id": reference_id,
                "lines": len(results),
                "reserved": str(reservation_result.total_reserved),
                "all_reserved": reservation_result.all_reserved,
            },
        )
        return reservation_result

    @classmethod
    def extend(cls, reservation_id, ttl) -> Reservation:
        """
        Push expires_at to now + ttl.

        Raises:
            ReservationNotActiveError: If the reservation is terminal
        """
        ttl = resolve_ttl(ttl)
        reservation = cls.get(reservation_id)
        expires_at = timezone.now() + ttl

        updated = Reservation.objects.filter(
            pk=reservation.pk, status=ReservationStatus.ACTIVE,
        ).update(expires_at=expires_at)
        if not updated:
            reservation.refresh_from_db(fields=['status'])
            raise ReservationNotActiveError(
                reservation_id=reservation.pk,
                status=reservation.status,
            )

        reservation.expires_at = expires_at
        logger.info(
            "reservation.extended",
            extra={"reservation_id": reservation.pk, "expires_at": expires_at.isoformat()},
        )
        return reservation

    # ══════════════════════════════════════════════════════════════
    # TRANSITIONS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def _transition(cls, reservation: Reservation, status: str, reason: str) -> bool:
        """Move ACTIVE → status. True only for the single caller that won."""
        now = timezone.now()
        won = Reservation.objects.filter(
            pk=reservation.pk, status=ReservationStatus.ACTIVE,
        ).update(status=status, resolved_at=now, release_reason=reason)
        if won:
            reservation.status = status
            reservation.resolved_at = now
            reservation.release_reason = reason
        else:
            reservation.refresh_from_db(fields=['status', 'resolved_at', 'release_reason'])
        return bool(won)

    @classmethod
    def _resolve(cls, reservation: Reservation, status: str, reason: str, apply):
        """
        Win the ACTIVE → status transition and run `apply(reservation)`.

        Both commit together. If `apply` raises, the transition is rolled
        back and the reservation stays ACTIVE, so a later release, fulfill
        or sweep can finish the job.

        Returns:
            What `apply` returned, or None if another caller resolved it first.
        """
        try:
            with transaction.atomic():
                if not cls._transition(reservation, status, reason):
                    return None
                return apply(reservation)
        except Exception:
            reservation.refresh_from_db(fields=['status', 'resolved_at', 'release_reason'])
            raise

    @classmethod
    def _lines(cls, reservation: Reservation):
        # Every resolution locks stock records in the same order.
        return reservation.lines.select_related('stock_record__location').order_by('stock_record_id', 'pk')

    @classmethod
    def _release_lines(cls, reservation: Reservation) -> int:
        """Give every held line back to the ledger."""
        released_total = 0
        for line in cls._lines(reservation):
            key = line.stock_record.key
            try:
                released = StockLedger.release(key, line.quantity, reservation.reference_id)
            except InventoryError as e:
                logger.error(
                    "reservation.release.line_failed",
                    extra={"reservation_id": reservation.pk, "key": str(key), "error": e.code},
                )
                raise
            if released > 0:
                events.emit(
                    events.RELEASED,
                    product_id=key.product_id,
                    variant_id=key.variant_id,
                    location=key.location,
                    quantity=released,
                    reference_id=reservation.reference_id,
                )
            released_total += released
        return released_total

    @classmethod
    def release(cls, reservation_id=None, reference_id: str | None = None,
                reason: str = ReleaseReason.RELEASED) -> list[Reservation]:
        """
        Release a reservation, or every active reservation of a reference.

        Idempotent: a terminal reservation is left as is and no stock moves.
        A reservation whose stock cannot be returned stays ACTIVE and the
        error is raised.

        Args:
            reason: released | cancelled | expired | fulfilled.
                'fulfilled' consumes the stock instead (see fulfill()),
                'expired' ends in EXPIRED, anything else in RELEASED.

        Returns:
            Reservations that this call moved out of ACTIVE
        """
        if reason not in ReleaseReason.values:
            raise ValidationError('INVALID_REQUEST', field='reason', value=reason)
        reason = ReleaseReason(reason)

        if reservation_id is not None:
            targets = [cls.get(reservation_id)]
        elif reference_id:
            targets = list(cls.for_reference(reference_id).active())
        else:
            raise ValidationError('INVALID_REQUEST', field='reservation_id')

        done = []
        for reservation in targets:
            if reason == ReleaseReason.FULFILLED:
                if cls._fulfill(reservation):
                    done.append(reservation)
                continue

            released = cls._resolve(reservation, reason.target_status, reason, cls._release_lines)
            if released is None:
                logger.debug(
                    "reservation.release.noop",
                    extra={"reservation_id": reservation.pk, "status": reservation.status},
                )
                continue

            logger.info(
                "reservation.released",
                extra={
                    "reservation_id": reservation.pk,
                    "reference_id": reservation.reference_id,
                    "reason": str(reason),
                    "qty": str(released),
                },
            )
            done.append(reservation)
        return done

    @classmethod
    def _consume_lines(cls, reservation: Reservation) -> int:
        consumed = 0
        for line in cls._lines(reservation):
            StockLedger.fulfill(
                line.stock_record.key,
                line.quantity,
                reference_id=reservation.reference_id,
                reason=f"Fulfillment of {reservation.reference_id}",
            )
            consumed += line.quantity
        return consumed

    @classmethod
    def _fulfill(cls, reservation: Reservation) -> bool:
        consumed = cls._resolve(reservation, ReservationStatus.FULFILLED, ReleaseReason.FULFILLED,
                                cls._consume_lines)
        if consumed is None:
            return False

        logger.info(
            "reservation.fulfilled",
            extra={
                "reservation_id": reservation.pk,
                "reference_id": reservation.reference_id,
                "qty": str(consumed),
            },
        )
        return True

    @classmethod
    def fulfill(cls, reservation_id, reference_id: str = '') -> Reservation:
        """
        Consume the held stock (order shipped / payment captured).

        Already FULFILLED is a no-op.

        Raises:
            ReservationNotActiveError: If the reservation was released or expired
        """
        reservation = cls.get(reservation_id)
        if reference_id and reservation.reference_id != reference_id:
            raise ReservationNotFoundError(reservation_id=reservation.pk, reference_id=reference_id)

        if not cls._fulfill(reservation) and reservation.status != ReservationStatus.FULFILLED:
            raise ReservationNotActiveError(
                reservation_id=reservation.pk,
                status=reservation.status,
            )
        return reservation
