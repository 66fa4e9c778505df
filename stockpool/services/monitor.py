"""
Threshold monitor — low-stock / out-of-stock signals derived from ledger mutations.

Usage:
    from stockpool.services.monitor import ThresholdMonitor

    # Called by StockLedger after every mutation
    ThresholdMonitor.observe(before, after, reference_id='order-42')

    # Periodic report (celery beat, cron)
    for record, level in ThresholdMonitor.scan():
        ...
"""

import logging

from stockpool import events
from stockpool.models.record import StockRecord

logger = logging.getLogger('stockpool')

OK = 'ok'
LOW = 'low'
OUT = 'out'


class ThresholdMonitor:
    """Read-only with respect to stock: its only side effect is emitting events."""

    @staticmethod
    def level(record) -> str:
        available = record.quantity_on_hand - record.reserved_quantity
        if available <= 0:
            return OUT
        if available <= record.low_stock_threshold:
            return LOW
        return OK

    @classmethod
    def observe(cls, before, after, reference_id: str = '') -> str | None:
        """
        Compare two snapshots of ONE linearized ledger step.

        Emits when the level moves into LOW or OUT, so each crossing is
        reported once: a record already low that drops further stays quiet
        until it hits zero, and it must climb back above the threshold
        before another low-stock event can fire.

        Returns:
            The emitted event name, or None
        """
        old = cls.level(before) if before is not None else OK
        new = cls.level(after)
        if new == old or new == OK:
            return None

        name = events.OUT_OF_STOCK if new == OUT else events.LOW
        available = after.quantity_on_hand - after.reserved_quantity
        events.emit(
            name,
            product_id=after.product_id,
            variant_id=after.variant_id,
            location=after.location.code,
            quantity=available,
            reference_id=reference_id,
        )
        logger.warning(
            "stock.threshold.crossed",
            extra={
                "event": name,
                "product_id": after.product_id,
                "variant_id": after.variant_id,
                "location": after.location.code,
                "available": str(available),
                "threshold": str(after.low_stock_threshold),
            },
        )
        return name

    @classmethod
    def scan(cls, product_id: str | None = None) -> list[tuple[StockRecord, str]]:
        """
        Records currently at or below their low-stock threshold.

        Does not emit: crossings are reported by observe() as they happen.

        Returns:
            List of (record, level) tuples, out-of-stock first.
        """
        qs = StockRecord.objects.low_stock().select_related('location')
        if product_id is not None:
            qs = qs.filter(product_id=product_id)

        found = [(record, cls.level(record)) for record in qs]
        found.sort(key=lambda pair: (pair[1] != OUT, pair[0].available_quantity))
        return found
