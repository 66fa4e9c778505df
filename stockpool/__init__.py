"""
Django Stockpool — inventory reservation and allocation engine.

Tracks on-hand and reserved units per (product, variant, location), holds
stock for in-flight orders without ever overselling, and spreads a request
across a pool of locations.

Usage:
    from stockpool import inventory, InventoryError

    inventory.receive(StockKey('sku-1', '', 'main'), 10, reason='Inbound')
    result = inventory.reserve('order-42', [{'product_id': 'sku-1', 'quantity': 4}])
    result.all_reserved  # True
    inventory.release(reference_id='order-42')
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'inventory':
        from stockpool.service import Inventory
        return Inventory
    elif name == 'InventoryError':
        from stockpool.exceptions import InventoryError
        return InventoryError
    elif name == 'StockKey':
        from stockpool.types import StockKey
        return StockKey
    elif name == 'LineRequest':
        from stockpool.types import LineRequest
        return LineRequest
    elif name == 'Location':
        from stockpool.models.location import Location
        return Location
    elif name == 'StockRecord':
        from stockpool.models.record import StockRecord
        return StockRecord
    elif name == 'Movement':
        from stockpool.models.movement import Movement
        return Movement
    elif name == 'Reservation':
        from stockpool.models.reservation import Reservation
        return Reservation
    elif name == 'ReservationStatus':
        from stockpool.models.enums import ReservationStatus
        return ReservationStatus
    elif name == 'Pool':
        from stockpool.models.pool import Pool
        return Pool
    elif name == 'Transfer':
        from stockpool.models.transfer import Transfer
        return Transfer
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'inventory',
    'InventoryError',
    'StockKey',
    'LineRequest',
    'Location',
    'StockRecord',
    'Movement',
    'Reservation',
    'ReservationStatus',
    'Pool',
    'Transfer',
]

__version__ = '0.1.0'
