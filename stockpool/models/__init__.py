"""
Stockpool Models.

Core models for inventory reservation and allocation:
- Location: Where stock exists
- StockRecord: On-hand / reserved counters per (product, variant, location)
- Movement: Immutable ledger of on-hand changes
- Reservation / ReservationLine: Time-bounded holds
- Pool / PoolMember: Locations treated as one fulfillment source
- Allocation / AllocationLine: Audit of pool allocations
- Transfer / TransferLine: Stock moved between locations
"""

from stockpool.models.allocation import Allocation, AllocationLine
from stockpool.models.enums import (
    AllocationStatus,
    AllocationStrategy,
    LocationKind,
    MovementKind,
    ReleaseReason,
    ReservationPolicy,
    ReservationStatus,
    TransferStatus,
)
from stockpool.models.location import Location
from stockpool.models.movement import Movement
from stockpool.models.pool import Pool, PoolMember
from stockpool.models.record import StockRecord
from stockpool.models.reservation import Reservation, ReservationLine
from stockpool.models.transfer import Transfer, TransferLine

__all__ = [
    'AllocationStatus',
    'AllocationStrategy',
    'LocationKind',
    'MovementKind',
    'ReleaseReason',
    'ReservationPolicy',
    'ReservationStatus',
    'TransferStatus',
    'Location',
    'StockRecord',
    'Movement',
    'Reservation',
    'ReservationLine',
    'Pool',
    'PoolMember',
    'Allocation',
    'AllocationLine',
    'Transfer',
    'TransferLine',
]
