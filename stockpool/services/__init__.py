"""
Stockpool services — one class per component.

    from stockpool.services import StockLedger, ReservationManager, PoolAllocator
"""

from stockpool.services.allocation import PoolAllocator
from stockpool.services.ledger import StockLedger
from stockpool.services.monitor import ThresholdMonitor
from stockpool.services.queries import StockQueries
from stockpool.services.reservations import ReservationManager
from stockpool.services.sweeper import ExpirySweeper
from stockpool.services.transfers import TransferCoordinator

__all__ = [
    'StockLedger',
    'StockQueries',
    'ReservationManager',
    'PoolAllocator',
    'TransferCoordinator',
    'ExpirySweeper',
    'ThresholdMonitor',
]
