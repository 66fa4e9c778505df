"""
Domain events — inventory.reserved, inventory.released, inventory.low, inventory.out_of_stock.

Events are Django signals sent after the surrounding transaction commits,
so receivers never see stock that was rolled back. Delivery is
at-least-once from the consumer's point of view: receivers must be
idempotent and can deduplicate on `event.event_id`.

Usage:
    from stockpool.events import inventory_low

    @receiver(inventory_low)
    def notify_buyer(sender, event, **kwargs):
        send_mail(..., f"{event.product_id} is running low at {event.location}")
"""

import logging
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime

from django.db import transaction
from django.dispatch import Signal
from django.utils import timezone

logger = logging.getLogger('stockpool')

RESERVED = 'inventory.reserved'
RELEASED = 'inventory.released'
LOW = 'inventory.low'
OUT_OF_STOCK = 'inventory.out_of_stock'

inventory_reserved = Signal()
inventory_released = Signal()
inventory_low = Signal()
inventory_out_of_stock = Signal()

SIGNALS = {
    RESERVED: inventory_reserved,
    RELEASED: inventory_released,
    LOW: inventory_low,
    OUT_OF_STOCK: inventory_out_of_stock,
}


@dataclass(frozen=True)
class InventoryEvent:
    """Payload carried by every inventory signal."""

    name: str
    product_id: str
    location: str
    quantity: int
    variant_id: str = ''
    reference_id: str = ''
    event_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    occurred_at: datetime = field(default_factory=timezone.now)

    def as_dict(self) -> dict:
        data = asdict(self)
        data['occurred_at'] = self.occurred_at.isoformat()
        return data


def emit(name: str, *, product_id: str, location: str, quantity: int,
         variant_id: str = '', reference_id: str = '') -> InventoryEvent:
    """
    Queue an event for dispatch once the current transaction commits.

    Outside a transaction the signal is sent immediately.
    """
    signal = SIGNALS[name]
    event = InventoryEvent(
        name=name,
        product_id=product_id,
        variant_id=variant_id or '',
        location=location,
        quantity=quantity,
        reference_id=reference_id or '',
    )
    transaction.on_commit(lambda: _dispatch(signal, event))
    return event


def _dispatch(signal: Signal, event: InventoryEvent) -> None:
    responses = signal.send_robust(sender=InventoryEvent, event=event)
    for receiver, response in responses:
        if isinstance(response, Exception):
            logger.error(
                "event.receiver.failed",
                exc_info=(type(response), response, response.__traceback__),
                extra={
                    "event": event.name,
                    "event_id": event.event_id,
                    "receiver": getattr(receiver, '__qualname__', repr(receiver)),
                },
            )
    logger.debug(
        event.name,
        extra={"event_id": event.event_id, "product_id": event.product_id,
               "location": event.location, "qty": str(event.quantity)},
    )
