"""
Exceptions for Stockpool.

Every error is an InventoryError with a structured code for programmatic
handling. Partial reservations, allocations and transfers are NOT errors:
they come back as per-line results with a shortfall.
"""

from typing import Any


class InventoryError(Exception):
    """
    Structured exception for inventory operations.

    Usage:
        try:
            inventory.adjust(key, -10, reason='Damaged')
        except InventoryError as e:
            if e.code == 'NEGATIVE_QUANTITY':
                print(f"Only {e.data['on_hand']} on hand")

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    default_code = 'INVENTORY_ERROR'

    _default_messages = {
        'INVENTORY_ERROR': 'Inventory operation failed',
        'INVALID_REQUEST': 'Malformed request',
        'INVALID_QUANTITY': 'Invalid quantity (must be a positive integer)',
        'REASON_REQUIRED': 'A reason is required',
        'SAME_LOCATION': 'Source and destination must differ',
        'UNKNOWN_PRODUCT': 'Product is unknown or inactive in the catalog',
        'NOT_FOUND': 'Object not found',
        'LOCATION_NOT_FOUND': 'Location not found',
        'STOCK_RECORD_NOT_FOUND': 'Stock record not found',
        'POOL_NOT_FOUND': 'Pool not found',
        'RESERVATION_NOT_FOUND': 'Reservation not found',
        'ALLOCATION_NOT_FOUND': 'Allocation not found',
        'INVALID_STATE': 'Invalid state for this operation',
        'RESERVATION_NOT_ACTIVE': 'Reservation is not active',
        'POOL_INACTIVE': 'Pool is inactive',
        'LOCATION_INACTIVE': 'Location is inactive',
        'CONCURRENT_MODIFICATION': 'Concurrent modification detected',
        'NEGATIVE_QUANTITY': 'On-hand quantity would drop below reserved quantity',
        'INSUFFICIENT_STOCK': 'No available stock',
        'INSUFFICIENT_RESERVED': 'Not enough reserved stock to fulfill',
    }

    def __init__(self, code: str | None = None, message: str | None = None, **data):
        self.code = code or self.default_code
        self.message = message or self._default_messages.get(self.code, self.code)
        self.data = data
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.data:
            return f"[{self.code}] {self.message} {self.data}"
        return f"[{self.code}] {self.message}"

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': {
                k: v if isinstance(v, (int, float, bool, type(None))) else str(v)
                for k, v in self.data.items()
            },
        }


class ValidationError(InventoryError):
    """Malformed input, rejected before any mutation."""

    default_code = 'INVALID_REQUEST'


class NotFoundError(InventoryError):
    default_code = 'NOT_FOUND'


class LocationNotFoundError(NotFoundError):
    default_code = 'LOCATION_NOT_FOUND'


class StockRecordNotFoundError(NotFoundError):
    default_code = 'STOCK_RECORD_NOT_FOUND'


class PoolNotFoundError(NotFoundError):
    default_code = 'POOL_NOT_FOUND'


class ReservationNotFoundError(NotFoundError):
    default_code = 'RESERVATION_NOT_FOUND'


class AllocationNotFoundError(NotFoundError):
    default_code = 'ALLOCATION_NOT_FOUND'


class StateError(InventoryError):
    """Operation on a terminal reservation or an inactive pool/location."""

    default_code = 'INVALID_STATE'


class ReservationNotActiveError(StateError):
    default_code = 'RESERVATION_NOT_ACTIVE'


class PoolInactiveError(StateError):
    default_code = 'POOL_INACTIVE'


class LocationInactiveError(StateError):
    default_code = 'LOCATION_INACTIVE'


class ConcurrencyConflictError(InventoryError):
    """A version check kept failing after the bounded retries."""

    default_code = 'CONCURRENT_MODIFICATION'


class NegativeQuantityError(InventoryError):
    default_code = 'NEGATIVE_QUANTITY'

    @property
    def on_hand(self) -> int:
        """Shortcut for data['on_hand']."""
        return self.data.get('on_hand', 0)

    @property
    def reserved(self) -> int:
        """Shortcut for data['reserved']."""
        return self.data.get('reserved', 0)


class InsufficientStockError(InventoryError):
    default_code = 'INSUFFICIENT_STOCK'

    @property
    def available(self) -> int:
        """Shortcut for data['available']."""
        return self.data.get('available', 0)

    @property
    def requested(self) -> int:
        """Shortcut for data['requested']."""
        return self.data.get('requested', 0)
