"""
Inventory — the single public interface for all stock operations.

Usage:
    from stockpool import inventory, StockKey

    key = StockKey('sku-1', 'blue-m', 'sp-01')
    inventory.receive(key, 10, reason='PO 881')
    result = inventory.reserve('order-42', [('sku-1', 'blue-m', 4, 'sp-01')])
    inventory.available('sku-1', 'blue-m')          # 6
    inventory.fulfill(result.reservation_id)
"""

from stockpool.services.allocation import PoolAllocator
from stockpool.services.ledger import StockLedger
from stockpool.services.monitor import ThresholdMonitor
from stockpool.services.queries import StockQueries
from stockpool.services.reservations import ReservationManager
from stockpool.services.sweeper import ExpirySweeper
from stockpool.services.transfers import TransferCoordinator


class Inventory:
    """
    Single interface for all inventory operations.

    Every method delegates to the component that owns the operation.
    State-changing methods are per-key atomic; multi-line calls report
    each line independently (see the component docstrings).
    """

    # ══════════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════════

    available = staticmethod(StockQueries.available)
    availability = staticmethod(StockQueries.availability)
    is_available = staticmethod(StockQueries.is_available)
    on_hand = staticmethod(StockQueries.on_hand)
    records = staticmethod(StockQueries.records)
    low_stock = staticmethod(StockQueries.low_stock)
    out_of_stock = staticmethod(StockQueries.out_of_stock)
    needs_reorder = staticmethod(StockQueries.needs_reorder)
    movements = staticmethod(StockQueries.movements)
    get_record = staticmethod(StockLedger.get_record)

    # ══════════════════════════════════════════════════════════════
    # LEDGER
    # ══════════════════════════════════════════════════════════════

    adjust = staticmethod(StockLedger.adjust)
    receive = staticmethod(StockLedger.receive)
    withdraw = staticmethod(StockLedger.withdraw)

    # ══════════════════════════════════════════════════════════════
    # RESERVATIONS
    # ══════════════════════════════════════════════════════════════

    reserve = staticmethod(ReservationManager.reserve)
    release = staticmethod(ReservationManager.release)
    fulfill = staticmethod(ReservationManager.fulfill)
    extend = staticmethod(ReservationManager.extend)
    get_reservation = staticmethod(ReservationManager.get)

    # ══════════════════════════════════════════════════════════════
    # POOLS / TRANSFERS
    # ══════════════════════════════════════════════════════════════

    allocate = staticmethod(PoolAllocator.allocate)
    commit_allocation = staticmethod(PoolAllocator.commit)
    release_allocation = staticmethod(PoolAllocator.release)
    transfer = staticmethod(TransferCoordinator.transfer)

    # ══════════════════════════════════════════════════════════════
    # BACKGROUND
    # ══════════════════════════════════════════════════════════════

    release_expired = staticmethod(ExpirySweeper.sweep)
    check_thresholds = staticmethod(ThresholdMonitor.scan)
