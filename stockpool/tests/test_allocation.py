"""
Tests for PoolAllocator.
"""

import pytest

from stockpool.exceptions import (
    PoolInactiveError,
    PoolNotFoundError,
    StateError,
    ValidationError,
)
from stockpool.models import (
    Allocation,
    AllocationStatus,
    AllocationStrategy,
    Location,
    Reservation,
    ReservationPolicy,
    ReservationStatus,
    StockRecord,
)
from stockpool.services.allocation import PoolAllocator
from stockpool.services.ledger import StockLedger
from stockpool.types import LineRequest, LineStatus, StockKey


pytestmark = pytest.mark.django_db

RIO = (-22.9068, -43.1729)


def sources(line):
    return [(s.location, s.quantity) for s in line.sources]


def assert_invariants():
    for rec in StockRecord.objects.all():
        assert 0 <= rec.reserved_quantity <= rec.quantity_on_hand
        assert rec.reserved_quantity == rec.held_by_active_reservations()


class TestPoolChecks:
    """Pool lookup happens before anything else."""

    def test_unknown_pool(self, db):
        with pytest.raises(PoolNotFoundError) as exc:
            PoolAllocator.allocate('ghost', 'O1', [('sku-1', '', 1)])

        assert exc.value.code == 'POOL_NOT_FOUND'
        assert not Allocation.objects.exists()

    def test_inactive_pool(self, main, make_pool):
        make_pool('south', {main: 1}, is_active=False)

        with pytest.raises(PoolInactiveError):
            PoolAllocator.allocate('south', 'O1', [('sku-1', '', 1)])

        assert not Allocation.objects.exists()

    def test_pool_checked_before_items(self, db):
        """An unknown pool wins over malformed items."""
        with pytest.raises(PoolNotFoundError):
            PoolAllocator.allocate('ghost', 'O1', [])

    def test_malformed_items(self, main, make_pool):
        make_pool('south', {main: 1})

        with pytest.raises(ValidationError):
            PoolAllocator.allocate('south', 'O1', [('sku-1', '', -1)])

        assert not Allocation.objects.exists()

    def test_unknown_strategy(self, main, make_pool):
        make_pool('south', {main: 1})

        with pytest.raises(ValidationError):
            PoolAllocator.allocate('south', 'O1', [('sku-1', '', 1)], strategy='random')

    def test_nearest_needs_customer_location(self, main, make_pool):
        make_pool('south', {main: 1}, strategy=AllocationStrategy.NEAREST)

        with pytest.raises(ValidationError):
            PoolAllocator.allocate('south', 'O1', [('sku-1', '', 1)])


class TestImmediateAllocation:
    """reservation_policy=immediate: shares are reserved right away."""

    def test_scenario_c_priority_with_preferred(self, main, store, stock, record, make_pool):
        """L1(3, prio 2), L2(10, prio 1), preferred L2 → 5 from L2, L1 untouched."""
        stock('sku-1', 'main', 3)
        stock('sku-1', 'rio', 10)
        make_pool('south', {main: 2, store: 1}, strategy=AllocationStrategy.PRIORITY)

        result = PoolAllocator.allocate('south', 'O1', [LineRequest('sku-1', 5, location='rio')])

        assert result.fully_allocated
        assert sources(result.lines[0]) == [('rio', 5)]
        assert record('sku-1', 'rio').reserved_quantity == 5
        assert record('sku-1', 'main').reserved_quantity == 0
        assert_invariants()

    def test_priority_spills_over(self, main, store, stock, make_pool):
        stock('sku-1', 'main', 3)
        stock('sku-1', 'rio', 4)
        make_pool('south', {main: 1, store: 2}, strategy=AllocationStrategy.PRIORITY)

        result = PoolAllocator.allocate('south', 'O1', [('sku-1', '', 5)])

        assert sources(result.lines[0]) == [('main', 3), ('rio', 2)]

    def test_fifo_oldest_record_first(self, main, store, stock, make_pool):
        stock('sku-1', 'rio', 4)
        stock('sku-1', 'main', 4)
        make_pool('south', {main: 1, store: 2}, strategy=AllocationStrategy.FIFO)

        result = PoolAllocator.allocate('south', 'O1', [('sku-1', '', 6)])

        assert sources(result.lines[0]) == [('rio', 4), ('main', 2)]

    def test_nearest(self, main, store, outlet, stock, make_pool):
        """Customer in Rio: Rio, then São Paulo, then Curitiba."""
        stock('sku-1', 'main', 4)
        stock('sku-1', 'rio', 2)
        stock('sku-1', 'cwb', 10)
        make_pool('all', {main: 1, store: 1, outlet: 1}, strategy=AllocationStrategy.NEAREST)

        result = PoolAllocator.allocate('all', 'O1', [('sku-1', '', 7)], customer_location=RIO)

        assert sources(result.lines[0]) == [('rio', 2), ('main', 4), ('cwb', 1)]
        allocation = Allocation.objects.get()
        assert float(allocation.customer_latitude) == pytest.approx(RIO[0])

    def test_nearest_location_without_coordinates_last(self, main, stock, make_pool):
        depot = Location.objects.create(code='depot', name='Depot')
        stock('sku-1', 'depot', 10)
        stock('sku-1', 'main', 1)
        make_pool('south', {main: 1, depot: 1}, strategy=AllocationStrategy.NEAREST)

        result = PoolAllocator.allocate(
            'south', 'O1', [('sku-1', '', 3)],
            customer_location={'latitude': -23.0, 'longitude': -46.0},
        )

        assert sources(result.lines[0]) == [('main', 1), ('depot', 2)]

    def test_even_split(self, main, store, stock, record, make_pool):
        stock('sku-1', 'main', 30)
        stock('sku-1', 'rio', 10)
        make_pool('south', {main: 1, store: 1}, strategy=AllocationStrategy.EVEN_SPLIT)

        result = PoolAllocator.allocate('south', 'O1', [('sku-1', '', 10)])

        assert sources(result.lines[0]) == [('main', 8), ('rio', 2)]
        assert record('sku-1', 'main').reserved_quantity == 8
        assert record('sku-1', 'rio').reserved_quantity == 2
        assert_invariants()

    def test_strategy_override(self, main, store, stock, make_pool):
        stock('sku-1', 'main', 30)
        stock('sku-1', 'rio', 10)
        make_pool('south', {main: 1, store: 2}, strategy=AllocationStrategy.EVEN_SPLIT)

        result = PoolAllocator.allocate('south', 'O1', [('sku-1', '', 10)],
                                        strategy=AllocationStrategy.PRIORITY)

        assert result.strategy == AllocationStrategy.PRIORITY
        assert sources(result.lines[0]) == [('main', 10)]

    def test_shortfall_reported(self, main, store, stock, make_pool):
        stock('sku-1', 'main', 2)
        stock('sku-1', 'rio', 1)
        make_pool('south', {main: 1, store: 2})

        result = PoolAllocator.allocate('south', 'O1', [('sku-1', '', 5), ('sku-9', '', 1)])

        assert not result.fully_allocated
        assert result.lines[0].allocated == 3
        assert result.lines[0].shortfall == 2
        assert result.lines[0].status == LineStatus.PARTIAL
        assert result.lines[1].status == LineStatus.FAILED
        assert result.shortfall == 3

    def test_non_members_and_inactive_locations_ignored(self, main, store, outlet, stock, make_pool):
        stock('sku-1', 'main', 2)
        stock('sku-1', 'rio', 5)
        stock('sku-1', 'cwb', 5)
        outlet.is_active = False
        outlet.save()
        make_pool('south', {main: 1, outlet: 2})

        result = PoolAllocator.allocate('south', 'O1', [('sku-1', '', 5)])

        assert sources(result.lines[0]) == [('main', 2)]

    def test_one_reservation_per_allocation(self, main, store, stock, make_pool):
        stock('sku-1', 'main', 2)
        stock('sku-1', 'rio', 5)
        make_pool('south', {main: 1, store: 2}, strategy=AllocationStrategy.PRIORITY)

        result = PoolAllocator.allocate('south', 'O1', [('sku-1', '', 4)])

        reservation = Reservation.objects.get()
        assert result.reservation_id == reservation.pk
        assert reservation.allocation_id == result.allocation_id
        assert reservation.lines.count() == 2
        assert reservation.total_quantity == 4

    def test_lost_race_moves_to_next_candidate(self, main, store, stock, record, make_pool, monkeypatch):
        """A location that yields less than it showed is topped up from the next one."""
        stock('sku-1', 'main', 5)
        stock('sku-1', 'rio', 5)
        make_pool('south', {main: 1, store: 2}, strategy=AllocationStrategy.PRIORITY)
        original = PoolAllocator.candidates

        def stale_candidates(pool, product_id, variant_id=''):
            found = original(pool, product_id, variant_id)
            # Someone else reserves 3 at main after the snapshot
            StockLedger.reserve(StockKey('sku-1', '', 'main'), 3)
            return found

        monkeypatch.setattr(PoolAllocator, 'candidates', stale_candidates)

        result = PoolAllocator.allocate('south', 'O1', [('sku-1', '', 4)])

        assert sources(result.lines[0]) == [('main', 2), ('rio', 2)]
        assert result.fully_allocated


class TestDeferredAllocation:
    """reservation_policy=deferred: plan first, reserve on commit."""

    def test_plan_holds_nothing(self, main, store, stock, record, make_pool):
        stock('sku-1', 'main', 5)
        make_pool('south', {main: 1}, policy=ReservationPolicy.DEFERRED)

        result = PoolAllocator.allocate('south', 'O1', [('sku-1', '', 3)])

        assert result.policy == ReservationPolicy.DEFERRED
        assert result.reservation_id is None
        assert sources(result.lines[0]) == [('main', 3)]
        assert Allocation.objects.get().status == AllocationStatus.PLANNED
        assert record('sku-1', 'main').reserved_quantity == 0

    def test_commit_reserves_plan(self, main, stock, record, make_pool):
        stock('sku-1', 'main', 5)
        make_pool('south', {main: 1}, policy=ReservationPolicy.DEFERRED)
        planned = PoolAllocator.allocate('south', 'O1', [('sku-1', '', 3)])

        result = PoolAllocator.commit(planned.allocation_id)

        assert result.fully_allocated
        assert result.reservation_id is not None
        assert Allocation.objects.get().status == AllocationStatus.RESERVED
        assert record('sku-1', 'main').reserved_quantity == 3
        assert_invariants()

    def test_commit_reports_new_shortfall(self, main, stock, make_pool):
        stock('sku-1', 'main', 5)
        make_pool('south', {main: 1}, policy=ReservationPolicy.DEFERRED)
        planned = PoolAllocator.allocate('south', 'O1', [('sku-1', '', 4)])
        StockLedger.reserve(StockKey('sku-1', '', 'main'), 3)

        result = PoolAllocator.commit(planned.allocation_id)

        assert result.lines[0].allocated == 2
        assert result.lines[0].shortfall == 2

    def test_commit_twice_returns_same(self, main, stock, record, make_pool):
        stock('sku-1', 'main', 5)
        make_pool('south', {main: 1}, policy=ReservationPolicy.DEFERRED)
        planned = PoolAllocator.allocate('south', 'O1', [('sku-1', '', 3)])
        first = PoolAllocator.commit(planned.allocation_id)

        second = PoolAllocator.commit(planned.allocation_id)

        assert second == first
        assert record('sku-1', 'main').reserved_quantity == 3

    def test_commit_released_fails(self, main, stock, make_pool):
        stock('sku-1', 'main', 5)
        make_pool('south', {main: 1}, policy=ReservationPolicy.DEFERRED)
        planned = PoolAllocator.allocate('south', 'O1', [('sku-1', '', 3)])
        PoolAllocator.release(planned.allocation_id)

        with pytest.raises(StateError):
            PoolAllocator.commit(planned.allocation_id)


class TestAllocationRelease:
    """release(allocation_id) undoes the whole set."""

    def test_release_set(self, main, store, stock, record, make_pool):
        stock('sku-1', 'main', 2)
        stock('sku-1', 'rio', 5)
        make_pool('south', {main: 1, store: 2}, strategy=AllocationStrategy.PRIORITY)
        result = PoolAllocator.allocate('south', 'O1', [('sku-1', '', 4)])

        allocation = PoolAllocator.release(result.allocation_id)

        assert allocation.status == AllocationStatus.RELEASED
        assert allocation.released_at is not None
        assert Reservation.objects.get().status == ReservationStatus.RELEASED
        assert record('sku-1', 'main').reserved_quantity == 0
        assert record('sku-1', 'rio').reserved_quantity == 0
        assert_invariants()

    def test_release_is_idempotent(self, main, stock, record, make_pool):
        stock('sku-1', 'main', 5)
        make_pool('south', {main: 1})
        result = PoolAllocator.allocate('south', 'O1', [('sku-1', '', 4)])
        PoolAllocator.release(result.allocation_id)
        version = record('sku-1', 'main').version

        PoolAllocator.release(result.allocation_id)

        assert record('sku-1', 'main').version == version
