"""
Transfer coordinator — moves available stock between two locations.

Each line is two single-key ledger steps: withdraw at the source, then
deposit at the destination. The steps are not one transaction, so a
failed deposit is compensated by putting the units back at the source.
Reserved stock never moves.
"""

import logging

from django.utils import timezone

from stockpool.adapters.catalog import check_products
from stockpool.exceptions import (
    InventoryError,
    LocationInactiveError,
    ValidationError,
)
from stockpool.models.enums import MovementKind, TransferStatus
from stockpool.models.transfer import Transfer, TransferLine
from stockpool.services.ledger import StockLedger
from stockpool.types import StockKey, TransferLineResult, TransferResult, coerce_lines

logger = logging.getLogger('stockpool')

INHERITED_FIELDS = ('sku', 'reorder_point', 'reorder_quantity', 'low_stock_threshold')


class TransferCoordinator:
    """Location-to-location transfers."""

    @classmethod
    def transfer(cls, source, destination, items, reason: str,
                 reference_id: str = '', performed_by: str = '') -> TransferResult:
        """
        Move up to the requested quantity of each line from source to destination.

        A line moves min(requested, available at source). A line with
        nothing available fails with INSUFFICIENT_STOCK and the other
        lines still run.

        Returns:
            TransferResult with one TransferLineResult per line

        Raises:
            ValidationError: Same location, empty reason or malformed items
            LocationNotFoundError: Unknown source or destination
            LocationInactiveError: Destination is inactive
        """
        if not reason:
            raise ValidationError('REASON_REQUIRED')
        source = StockLedger.get_location(source)
        destination = StockLedger.get_location(destination)
        if source.pk == destination.pk:
            raise ValidationError('SAME_LOCATION', location=source.code)
        if not destination.is_active:
            raise LocationInactiveError(location=destination.code)
        lines = coerce_lines(items)
        check_products((line.product_id, line.variant_id) for line in lines)

        transfer = Transfer.objects.create(
            source=source,
            destination=destination,
            reason=reason,
            reference_id=reference_id or '',
            performed_by=performed_by or 'system',
        )

        results = [cls._move_line(transfer, line) for line in lines]

        moved = sum(result.transferred for result in results)
        if all(result.success for result in results):
            status = TransferStatus.COMPLETED
        elif moved > 0:
            status = TransferStatus.PARTIAL
        else:
            status = TransferStatus.FAILED

        transfer.status = status
        transfer.completed_at = timezone.now()
        transfer.save(update_fields=['status', 'completed_at'])

        logger.info(
            "transfer.completed",
            extra={
                "transfer_id": transfer.pk,
                "source": source.code,
                "destination": destination.code,
                "status": status,
                "qty": str(moved),
            },
        )
        return TransferResult(transfer_id=transfer.pk, status=status, lines=tuple(results))

    @classmethod
    def _move_line(cls, transfer: Transfer, line) -> TransferLineResult:
        source_key = StockKey(line.product_id, line.variant_id, transfer.source.code)
        destination_key = StockKey(line.product_id, line.variant_id, transfer.destination.code)
        reason = f"Transfer #{transfer.pk}: {transfer.reason}"

        taken = 0
        error_code = None
        try:
            taken = StockLedger.withdraw(
                source_key, line.quantity, reason,
                reference_id=transfer.reference_id,
                kind=MovementKind.TRANSFER_OUT,
                transfer=transfer,
                performed_by=transfer.performed_by,
            )
            if taken <= 0:
                error_code = 'INSUFFICIENT_STOCK'
        except InventoryError as e:
            error_code = e.code

        if taken > 0:
            try:
                StockLedger.adjust(
                    destination_key, taken, reason,
                    reference_id=transfer.reference_id,
                    kind=MovementKind.TRANSFER_IN,
                    transfer=transfer,
                    performed_by=transfer.performed_by,
                    **cls._inherited_defaults(source_key),
                )
            except InventoryError as e:
                error_code = e.code
                cls._compensate(transfer, source_key, taken, e)
                taken = 0

        if error_code:
            logger.warning(
                "transfer.line.failed",
                extra={
                    "transfer_id": transfer.pk,
                    "key": str(source_key),
                    "requested": str(line.quantity),
                    "error": error_code,
                },
            )

        result = TransferLineResult(
            product_id=line.product_id,
            variant_id=line.variant_id,
            requested=line.quantity,
            transferred=taken,
            error_code=error_code,
        )
        TransferLine.objects.create(
            transfer=transfer,
            product_id=line.product_id,
            variant_id=line.variant_id,
            requested=line.quantity,
            transferred=taken,
            success=result.success,
            error_code=error_code or '',
        )
        return result

    @classmethod
    def _inherited_defaults(cls, source_key: StockKey) -> dict:
        """Thresholds for a destination record created by this transfer."""
        record = StockLedger.get_record(source_key)
        if record is None:
            return {}
        return {name: getattr(record, name) for name in INHERITED_FIELDS}

    @classmethod
    def _compensate(cls, transfer, source_key: StockKey, quantity: int, error) -> None:
        logger.warning(
            "transfer.compensate",
            extra={
                "transfer_id": transfer.pk,
                "key": str(source_key),
                "qty": str(quantity),
                "error": error.code,
            },
        )
        StockLedger.adjust(
            source_key, quantity,
            f"Transfer #{transfer.pk} rolled back: {error.code}",
            reference_id=transfer.reference_id,
            kind=MovementKind.ADJUSTMENT,
            transfer=transfer,
            performed_by=transfer.performed_by,
        )
