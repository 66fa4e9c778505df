"""
Tests for TransferCoordinator.
"""

import pytest

from stockpool.exceptions import (
    ConcurrencyConflictError,
    LocationInactiveError,
    LocationNotFoundError,
    ValidationError,
)
from stockpool.models import Movement, MovementKind, Transfer, TransferStatus
from stockpool.services.ledger import StockLedger
from stockpool.services.transfers import TransferCoordinator
from stockpool.types import StockKey


pytestmark = pytest.mark.django_db


class TestTransfer:
    """Tests for transfer()."""

    def test_scenario_d_partial_transfer(self, main, store, stock, record):
        """10 requested from L1(available=4): 4 moved, line not successful."""
        stock('sku-1', 'main', 4)
        stock('sku-1', 'rio', 1)

        result = TransferCoordinator.transfer('main', 'rio', [('sku-1', '', 10)], reason='Rebalance')

        line = result.lines[0]
        assert result.transferred_quantity == 4
        assert line.transferred == 4
        assert not line.success
        assert line.shortfall == 6
        assert not result.all_transferred
        assert result.status == TransferStatus.PARTIAL
        assert record('sku-1', 'main').available_quantity == 0
        assert record('sku-1', 'rio').quantity_on_hand == 5

    def test_full_transfer_creates_destination(self, main, store, stock, record):
        stock('sku-1', 'main', 10, low_stock_threshold=2, reorder_point=3)

        result = TransferCoordinator.transfer(main, store, [('sku-1', '', 6)], reason='Restock store')

        assert result.all_transferred
        assert result.status == TransferStatus.COMPLETED
        destination = record('sku-1', 'rio')
        assert destination.quantity_on_hand == 6
        assert destination.low_stock_threshold == 2
        assert destination.reorder_point == 3

    def test_reserved_stock_never_moves(self, main, store, stock, record):
        stock('sku-1', 'main', 10)
        StockLedger.reserve(StockKey('sku-1', '', 'main'), 7)

        result = TransferCoordinator.transfer('main', 'rio', [('sku-1', '', 10)], reason='Rebalance')

        assert result.lines[0].transferred == 3
        source = record('sku-1', 'main')
        assert source.quantity_on_hand == 7
        assert source.reserved_quantity == 7

    def test_lines_are_independent(self, main, store, stock, record):
        """A line with nothing to move fails; the others still run."""
        stock('sku-1', 'main', 5)

        result = TransferCoordinator.transfer(
            'main', 'rio', [('sku-2', '', 3), ('sku-1', '', 5)], reason='Rebalance',
        )

        failed, moved = result.lines
        assert failed.transferred == 0
        assert failed.error_code == 'INSUFFICIENT_STOCK'
        assert moved.success
        assert result.status == TransferStatus.PARTIAL
        assert record('sku-1', 'rio').quantity_on_hand == 5

    def test_nothing_moved_is_failed(self, main, store):
        result = TransferCoordinator.transfer('main', 'rio', [('sku-1', '', 3)], reason='Rebalance')

        assert result.status == TransferStatus.FAILED
        assert Transfer.objects.get().status == TransferStatus.FAILED

    def test_movements_carry_transfer(self, main, store, stock):
        stock('sku-1', 'main', 5)

        result = TransferCoordinator.transfer(
            'main', 'rio', [('sku-1', '', 2)], reason='Rebalance', reference_id='T-1',
        )

        transfer = Transfer.objects.get(pk=result.transfer_id)
        kinds = sorted(m.kind for m in transfer.movements.all())
        assert kinds == [MovementKind.TRANSFER_IN, MovementKind.TRANSFER_OUT]
        assert transfer.lines.get().transferred == 2
        assert transfer.completed_at is not None
        assert set(transfer.movements.values_list('reference_id', flat=True)) == {'T-1'}

    def test_failed_deposit_is_compensated(self, main, store, stock, record, monkeypatch):
        """If the destination step fails, the units go back to the source."""
        stock('sku-1', 'main', 5)
        original = StockLedger.adjust

        def failing_adjust(key, delta, reason, **kwargs):
            if kwargs.get('kind') == MovementKind.TRANSFER_IN:
                raise ConcurrencyConflictError(key=str(key))
            return original(key, delta, reason, **kwargs)

        monkeypatch.setattr(StockLedger, 'adjust', failing_adjust)

        result = TransferCoordinator.transfer('main', 'rio', [('sku-1', '', 3)], reason='Rebalance')

        line = result.lines[0]
        assert line.transferred == 0
        assert line.error_code == 'CONCURRENT_MODIFICATION'
        assert result.status == TransferStatus.FAILED
        assert record('sku-1', 'main').quantity_on_hand == 5
        assert record('sku-1', 'rio') is None
        compensation = Movement.objects.filter(transfer_id=result.transfer_id, kind=MovementKind.ADJUSTMENT)
        assert compensation.get().delta == 3


class TestTransferValidation:
    """Rejected before any mutation."""

    def test_same_location(self, main, stock):
        stock('sku-1', 'main', 5)

        with pytest.raises(ValidationError) as exc:
            TransferCoordinator.transfer('main', main, [('sku-1', '', 1)], reason='Loop')

        assert exc.value.code == 'SAME_LOCATION'
        assert not Transfer.objects.exists()

    def test_unknown_location(self, main):
        with pytest.raises(LocationNotFoundError):
            TransferCoordinator.transfer('main', 'nowhere', [('sku-1', '', 1)], reason='Move')

    def test_inactive_destination(self, main, store, stock, record):
        stock('sku-1', 'main', 5)
        store.is_active = False
        store.save()

        with pytest.raises(LocationInactiveError):
            TransferCoordinator.transfer('main', 'rio', [('sku-1', '', 1)], reason='Move')

        assert record('sku-1', 'main').quantity_on_hand == 5

    def test_reason_required(self, main, store):
        with pytest.raises(ValidationError) as exc:
            TransferCoordinator.transfer('main', 'rio', [('sku-1', '', 1)], reason='')

        assert exc.value.code == 'REASON_REQUIRED'

    def test_malformed_items(self, main, store):
        with pytest.raises(ValidationError):
            TransferCoordinator.transfer('main', 'rio', [('sku-1', '', 0)], reason='Move')

        assert not Transfer.objects.exists()
