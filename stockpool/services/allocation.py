"""
Pool allocator — satisfies a request from several locations at once.

    result = PoolAllocator.allocate('south', 'order-42', [('sku-1', '', 5)])
    result.lines[0].sources   # (AllocationSource('sp-01', 3), AllocationSource('rj-01', 2))
    result.shortfall          # 0

Every chosen share is a separate single-key ledger step taken through the
ReservationManager; the allocation as a whole is not atomic. What was
obtained is persisted as an Allocation so release() can undo it as a set.
"""

import logging
from decimal import Decimal

from django.utils import timezone

from stockpool import strategies
from stockpool.adapters.catalog import check_products
from stockpool.exceptions import (
    AllocationNotFoundError,
    ConcurrencyConflictError,
    PoolInactiveError,
    PoolNotFoundError,
    StateError,
    ValidationError,
)
from stockpool.models.allocation import Allocation, AllocationLine
from stockpool.models.enums import (
    AllocationStatus,
    AllocationStrategy,
    ReleaseReason,
    ReservationPolicy,
)
from stockpool.models.pool import Pool, PoolMember
from stockpool.models.record import StockRecord
from stockpool.services.reservations import ReservationManager, resolve_ttl
from stockpool.strategies import Candidate
from stockpool.types import (
    AllocationLineResult,
    AllocationResult,
    AllocationSource,
    StockKey,
    coerce_lines,
)

logger = logging.getLogger('stockpool')


def _parse_origin(customer_location) -> tuple[float, float] | None:
    """Accept (lat, lon), {'latitude': .., 'longitude': ..} or an object with .coordinates."""
    if customer_location is None:
        return None
    if hasattr(customer_location, 'coordinates'):
        customer_location = customer_location.coordinates
        if customer_location is None:
            return None
    if isinstance(customer_location, dict):
        customer_location = (customer_location.get('latitude'), customer_location.get('longitude'))
    try:
        lat, lon = (float(v) for v in customer_location)
    except (TypeError, ValueError):
        raise ValidationError('INVALID_REQUEST', field='customer_location') from None
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        raise ValidationError('INVALID_REQUEST', field='customer_location', value=(lat, lon))
    return lat, lon


def _coordinate(value: float | None) -> Decimal | None:
    return None if value is None else Decimal(str(round(value, 6)))


class PoolAllocator:
    """Allocation over a pool of locations."""

    # ══════════════════════════════════════════════════════════════
    # LOOKUPS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def get_pool(cls, pool) -> Pool:
        """
        Resolve a Pool instance or code, refusing inactive pools.

        Raises:
            PoolNotFoundError: Unknown pool
            PoolInactiveError: Pool is not active
        """
        if not isinstance(pool, Pool):
            try:
                pool = Pool.objects.get(code=pool)
            except Pool.DoesNotExist:
                raise PoolNotFoundError(pool=pool) from None
        if not pool.is_active:
            raise PoolInactiveError(pool=pool.code)
        return pool

    @classmethod
    def get(cls, allocation_id) -> Allocation:
        try:
            return Allocation.objects.select_related('pool').get(pk=allocation_id)
        except (Allocation.DoesNotExist, ValueError, TypeError):
            raise AllocationNotFoundError(allocation_id=allocation_id) from None

    @classmethod
    def candidates(cls, pool: Pool, product_id: str, variant_id: str = '') -> list[Candidate]:
        """Active member locations holding available stock of the product."""
        priorities = dict(
            PoolMember.objects.filter(pool=pool, location__is_active=True)
            .values_list('location_id', 'priority')
        )
        records = (
            StockRecord.objects.for_product(product_id, variant_id)
            .with_available()
            .filter(location_id__in=priorities)
            .select_related('location')
        )
        candidates = []
        for record in records:
            coordinates = record.location.coordinates or (None, None)
            candidates.append(Candidate(
                location=record.location.code,
                available=record.available_quantity,
                created_at=record.created_at,
                priority=priorities[record.location_id],
                latitude=coordinates[0],
                longitude=coordinates[1],
                record_id=record.pk,
            ))
        return candidates

    # ══════════════════════════════════════════════════════════════
    # ALLOCATE
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def allocate(cls, pool, reference_id: str, items, strategy: str | None = None,
                 customer_location=None, ttl=None) -> AllocationResult:
        """
        Distribute each requested line over the pool's locations.

        Args:
            pool: Pool instance or code
            reference_id: Order or checkout identifier
            items: Requested lines; a line's location is its preferred location
            strategy: fifo | priority | nearest | even_split (default: the pool's)
            customer_location: (latitude, longitude), required by nearest
            ttl: Reservation TTL (timedelta or minutes)

        Returns:
            AllocationResult. Unmet quantity is reported as shortfall.

        Raises:
            PoolNotFoundError / PoolInactiveError: Before anything else
            ValidationError: Malformed request (nothing persisted)
        """
        pool = cls.get_pool(pool)

        if not reference_id or not isinstance(reference_id, str):
            raise ValidationError('INVALID_REQUEST', field='reference_id')
        lines = coerce_lines(items)
        strategy = strategy or pool.allocation_strategy
        if strategy not in AllocationStrategy.values:
            raise ValidationError('INVALID_REQUEST', field='strategy', value=strategy)
        origin = _parse_origin(customer_location)
        if strategy == AllocationStrategy.NEAREST and origin is None:
            raise ValidationError('INVALID_REQUEST', field='customer_location',
                                  reason='required by the nearest strategy')
        resolve_ttl(ttl)
        check_products((line.product_id, line.variant_id) for line in lines)

        immediate = pool.reservation_policy == ReservationPolicy.IMMEDIATE
        allocation = Allocation.objects.create(
            pool=pool,
            reference_id=reference_id,
            strategy=strategy,
            status=AllocationStatus.RESERVED if immediate else AllocationStatus.PLANNED,
            customer_latitude=_coordinate(origin[0]) if origin else None,
            customer_longitude=_coordinate(origin[1]) if origin else None,
        )
        reservation = ReservationManager.open(reference_id, ttl, allocation=allocation) if immediate else None

        for line in lines:
            candidates = cls.candidates(pool, line.product_id, line.variant_id)
            if immediate:
                sources = cls._reserve_line(reservation, strategy, line, candidates, origin)
            else:
                sources = [
                    AllocationSource(candidate.location, quantity)
                    for candidate, quantity in strategies.plan(
                        strategy, candidates, line.quantity,
                        preferred=line.location, origin=origin,
                    )
                ]
            cls._save_line(allocation, line, sources)

        result = cls.result(allocation)
        logger.info(
            "allocation.created",
            extra={
                "allocation_id": allocation.pk,
                "pool": pool.code,
                "strategy": strategy,
                "policy": pool.reservation_policy,
                "reference_id": reference_id,
                "shortfall": str(result.shortfall),
            },
        )
        return result

    @classmethod
    def _hold(cls, reservation, line, location: str, quantity: int) -> int:
        key = StockKey(line.product_id, line.variant_id, location)
        try:
            return ReservationManager.hold(reservation, key, quantity).reserved
        except ConcurrencyConflictError as e:
            logger.warning(
                "allocation.share.conflict",
                extra={"reservation_id": reservation.pk, "key": str(key), "error": e.code},
            )
            return 0

    @classmethod
    def _reserve_line(cls, reservation, strategy, line, candidates, origin) -> list[AllocationSource]:
        """
        Reserve one line against live stock.

        Greedy strategies move on to the next candidate when a location
        yields less than it showed (someone reserved in between). even_split
        reports such a deficit as shortfall.
        """
        sources = []
        if strategy == AllocationStrategy.EVEN_SPLIT:
            for candidate, share in strategies.even_split(candidates, line.quantity):
                got = cls._hold(reservation, line, candidate.location, share)
                if got:
                    sources.append(AllocationSource(candidate.location, got))
            return sources

        ordered = strategies.ORDERINGS[strategy](candidates, preferred=line.location, origin=origin)
        remaining = line.quantity
        for candidate in ordered:
            if remaining <= 0:
                break
            got = cls._hold(reservation, line, candidate.location, remaining)
            if got:
                sources.append(AllocationSource(candidate.location, got))
                remaining -= got
        return sources

    @classmethod
    def _save_line(cls, allocation, line, sources) -> AllocationLine:
        allocated = sum(source.quantity for source in sources)
        return AllocationLine.objects.create(
            allocation=allocation,
            product_id=line.product_id,
            variant_id=line.variant_id,
            requested=line.quantity,
            allocated=allocated,
            shortfall=max(0, line.quantity - allocated),
            sources=[source.as_dict() for source in sources],
        )

    @classmethod
    def result(cls, allocation) -> AllocationResult:
        """Rebuild the AllocationResult of a persisted allocation."""
        if not isinstance(allocation, Allocation):
            allocation = cls.get(allocation)
        reservation = allocation.reservations.order_by('pk').first()
        return AllocationResult(
            allocation_id=allocation.pk,
            reference_id=allocation.reference_id,
            pool=allocation.pool.code,
            strategy=allocation.strategy,
            policy=allocation.pool.reservation_policy,
            lines=tuple(
                AllocationLineResult(
                    product_id=line.product_id,
                    variant_id=line.variant_id,
                    requested=line.requested,
                    sources=tuple(
                        AllocationSource(source['location'], source['quantity'])
                        for source in line.sources
                    ),
                )
                for line in allocation.lines.order_by('pk')
            ),
            reservation_id=reservation.pk if reservation else None,
        )

    # ══════════════════════════════════════════════════════════════
    # DEFERRED POLICY
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def commit(cls, allocation_id, ttl=None) -> AllocationResult:
        """
        Reserve the sources of a PLANNED allocation.

        The plan was made against a snapshot; what cannot be reserved now
        is reported as shortfall. Committing an already reserved
        allocation returns it unchanged.

        Raises:
            StateError: If the allocation was released
            PoolInactiveError: If the pool was deactivated since planning
        """
        allocation = cls.get(allocation_id)
        resolve_ttl(ttl)
        cls.get_pool(allocation.pool)

        won = Allocation.objects.filter(
            pk=allocation.pk, status=AllocationStatus.PLANNED,
        ).update(status=AllocationStatus.RESERVED)
        if not won:
            allocation.refresh_from_db(fields=['status'])
            if allocation.status == AllocationStatus.RESERVED:
                return cls.result(allocation)
            raise StateError(allocation_id=allocation.pk, status=allocation.status)
        allocation.status = AllocationStatus.RESERVED

        reservation = ReservationManager.open(allocation.reference_id, ttl, allocation=allocation)
        for line in allocation.lines.order_by('pk'):
            sources = []
            for planned in line.sources:
                got = cls._hold(reservation, line, planned['location'], planned['quantity'])
                if got:
                    sources.append(AllocationSource(planned['location'], got))
            line.allocated = sum(source.quantity for source in sources)
            line.shortfall = max(0, line.requested - line.allocated)
            line.sources = [source.as_dict() for source in sources]
            line.save(update_fields=['allocated', 'shortfall', 'sources'])

        result = cls.result(allocation)
        logger.info(
            "allocation.committed",
            extra={
                "allocation_id": allocation.pk,
                "reservation_id": reservation.pk,
                "shortfall": str(result.shortfall),
            },
        )
        return result

    # ══════════════════════════════════════════════════════════════
    # RELEASE
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def release(cls, allocation_id, reason: str = ReleaseReason.RELEASED) -> Allocation:
        """
        Release every reservation the allocation produced.

        Idempotent: a released allocation is returned as is.
        """
        allocation = cls.get(allocation_id)

        Allocation.objects.filter(pk=allocation.pk).exclude(
            status=AllocationStatus.RELEASED,
        ).update(status=AllocationStatus.RELEASED, released_at=timezone.now())

        released = []
        for reservation in allocation.reservations.active().order_by('pk'):
            released.extend(ReservationManager.release(reservation.pk, reason=reason))

        allocation.refresh_from_db(fields=['status', 'released_at'])
        logger.info(
            "allocation.released",
            extra={
                "allocation_id": allocation.pk,
                "reservations": len(released),
                "reason": str(reason),
            },
        )
        return allocation
