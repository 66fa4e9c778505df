"""
Expiry sweeper — releases ACTIVE reservations past their expires_at.

Run it from cron / celery beat (`manage.py release_expired_reservations`)
or as a long-lived loop (`--loop`). Several sweepers, and ordinary
release/fulfill calls, may run at the same time: a reservation is only
released by whoever wins its ACTIVE → EXPIRED transition.
"""

import logging
import threading

from django.db import DatabaseError
from django.utils import timezone

from stockpool.conf import stockpool_settings
from stockpool.exceptions import InventoryError
from stockpool.models.enums import ReleaseReason
from stockpool.models.reservation import Reservation
from stockpool.services.reservations import ReservationManager

logger = logging.getLogger('stockpool')


class ExpirySweeper:
    """Batch expiry of reservations."""

    @classmethod
    def pending(cls, now=None) -> int:
        """Number of reservations a sweep at `now` would expire."""
        return Reservation.objects.expired(now or timezone.now()).count()

    @classmethod
    def sweep(cls, now=None, batch_size: int | None = None) -> int:
        """
        Expire every ACTIVE reservation with expires_at < now.

        A reservation that fails to release is logged and skipped; the
        next sweep picks it up again.

        Returns:
            Number of reservations this sweep expired
        """
        now = now or timezone.now()
        batch_size = batch_size or stockpool_settings.EXPIRED_BATCH_SIZE
        expired = 0
        failed = 0
        last_pk = 0

        while True:
            batch = list(
                Reservation.objects.expired(now)
                .filter(pk__gt=last_pk)
                .order_by('pk')
                .values_list('pk', flat=True)[:batch_size]
            )
            if not batch:
                break

            for pk in batch:
                try:
                    if ReservationManager.release(pk, reason=ReleaseReason.EXPIRED):
                        expired += 1
                except (InventoryError, DatabaseError):
                    failed += 1
                    logger.exception(
                        "reservation.expire.failed",
                        extra={"reservation_id": pk},
                    )
            last_pk = batch[-1]

        if expired or failed:
            logger.info(
                "reservation.expired_released",
                extra={"released": expired, "failed": failed},
            )
        return expired

    @classmethod
    def run(cls, interval: float | None = None, stop_event: threading.Event | None = None,
            max_sweeps: int | None = None) -> int:
        """
        Sweep every `interval` seconds until stopped.

        Args:
            interval: Seconds between sweeps (default SWEEP_INTERVAL_SECONDS)
            stop_event: Set it to stop the loop between sweeps
            max_sweeps: Stop after this many sweeps

        Returns:
            Total reservations expired
        """
        if interval is None:
            interval = stockpool_settings.SWEEP_INTERVAL_SECONDS
        stop_event = stop_event or threading.Event()
        total = 0
        sweeps = 0

        logger.info("sweeper.started", extra={"interval": interval})
        while not stop_event.is_set():
            total += cls.sweep()
            sweeps += 1
            if max_sweeps is not None and sweeps >= max_sweeps:
                break
            stop_event.wait(interval)

        logger.info("sweeper.stopped", extra={"sweeps": sweeps, "released": total})
        return total
