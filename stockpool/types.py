"""
Value types shared by the services.

Requests come in as LineRequest (or anything LineRequest.coerce accepts),
results go out as frozen dataclasses. A short line is reported through
its status and shortfall, never raised.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from stockpool.exceptions import ValidationError


def location_code(location) -> str:
    """Return the code of a Location instance, or the value itself if already a code."""
    if location is None:
        return ''
    return getattr(location, 'code', location)


def validate_quantity(quantity, field_name: str = 'quantity') -> int:
    """Reject anything that is not a positive integer."""
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError('INVALID_QUANTITY', field=field_name, value=quantity)
    return quantity


@dataclass(frozen=True)
class StockKey:
    """Identity of one StockRecord: (product, variant, location)."""

    product_id: str
    variant_id: str = ''
    location: str = ''

    def __post_init__(self):
        object.__setattr__(self, 'variant_id', self.variant_id or '')
        object.__setattr__(self, 'location', location_code(self.location))
        if not self.product_id:
            raise ValidationError('INVALID_REQUEST', field='product_id')
        if not self.location:
            raise ValidationError('INVALID_REQUEST', field='location')

    def __str__(self) -> str:
        variant = f"/{self.variant_id}" if self.variant_id else ""
        return f"{self.product_id}{variant}@{self.location}"


@dataclass(frozen=True)
class LineRequest:
    """One requested line: quantity of a product/variant, optionally at a preferred location."""

    product_id: str
    quantity: int
    variant_id: str = ''
    location: str | None = None

    @classmethod
    def coerce(cls, item) -> LineRequest:
        """
        Build a LineRequest from a LineRequest, a mapping or a tuple.

        Tuples follow (product_id, variant_id, quantity[, location]).
        """
        if isinstance(item, cls):
            line = item
        elif isinstance(item, Mapping):
            unknown = set(item) - {'product_id', 'quantity', 'variant_id', 'location'}
            if unknown:
                raise ValidationError('INVALID_REQUEST', unknown_fields=sorted(unknown))
            try:
                line = cls(
                    product_id=item['product_id'],
                    quantity=item['quantity'],
                    variant_id=item.get('variant_id') or '',
                    location=location_code(item.get('location')) or None,
                )
            except KeyError as e:
                raise ValidationError('INVALID_REQUEST', missing=e.args[0]) from None
        elif isinstance(item, tuple) and len(item) in (3, 4):
            product_id, variant_id, quantity, *rest = item
            line = cls(
                product_id=product_id,
                quantity=quantity,
                variant_id=variant_id or '',
                location=location_code(rest[0]) if rest and rest[0] else None,
            )
        else:
            raise ValidationError('INVALID_REQUEST', item=repr(item))

        if not line.product_id or not isinstance(line.product_id, str):
            raise ValidationError('INVALID_REQUEST', field='product_id')
        validate_quantity(line.quantity)
        return line


def coerce_lines(items: Iterable) -> list[LineRequest]:
    """Validate a whole request up front, before any mutation."""
    if items is None or isinstance(items, (str, bytes, Mapping)):
        raise ValidationError('INVALID_REQUEST', field='items')
    lines = [LineRequest.coerce(item) for item in items]
    if not lines:
        raise ValidationError('INVALID_REQUEST', field='items', reason='empty')
    return lines


class LineStatus(str, Enum):
    """Tagged outcome of one line of a multi-line call."""

    SUCCEEDED = 'succeeded'
    PARTIAL = 'partial'
    FAILED = 'failed'

    @classmethod
    def of(cls, requested: int, satisfied: int) -> LineStatus:
        if satisfied >= requested:
            return cls.SUCCEEDED
        if satisfied > 0:
            return cls.PARTIAL
        return cls.FAILED


# ══════════════════════════════════════════════════════════════
# RESERVATIONS
# ══════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ReservationLineResult:
    product_id: str
    variant_id: str
    location: str
    requested: int
    reserved: int
    available: int  # available at the location after this line

    @property
    def is_fully_reserved(self) -> bool:
        return self.reserved >= self.requested

    @property
    def shortfall(self) -> int:
        return self.requested - self.reserved

    @property
    def status(self) -> LineStatus:
        return LineStatus.of(self.requested, self.reserved)


@dataclass(frozen=True)
class ReservationResult:
    reservation_id: int
    reference_id: str
    expires_at: datetime | None
    lines: tuple[ReservationLineResult, ...] = ()

    @property
    def all_reserved(self) -> bool:
        return all(line.is_fully_reserved for line in self.lines)

    @property
    def total_reserved(self) -> int:
        return sum(line.reserved for line in self.lines)


# ══════════════════════════════════════════════════════════════
# ALLOCATIONS
# ══════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class AllocationSource:
    location: str
    quantity: int

    def as_dict(self) -> dict:
        return {'location': self.location, 'quantity': self.quantity}


@dataclass(frozen=True)
class AllocationLineResult:
    product_id: str
    variant_id: str
    requested: int
    sources: tuple[AllocationSource, ...] = ()

    @property
    def allocated(self) -> int:
        return sum(source.quantity for source in self.sources)

    @property
    def shortfall(self) -> int:
        return self.requested - self.allocated

    @property
    def status(self) -> LineStatus:
        return LineStatus.of(self.requested, self.allocated)


@dataclass(frozen=True)
class AllocationResult:
    allocation_id: int
    reference_id: str
    pool: str
    strategy: str
    policy: str
    lines: tuple[AllocationLineResult, ...] = ()
    reservation_id: int | None = None

    @property
    def fully_allocated(self) -> bool:
        return all(line.shortfall == 0 for line in self.lines)

    @property
    def shortfall(self) -> int:
        return sum(line.shortfall for line in self.lines)


# ══════════════════════════════════════════════════════════════
# TRANSFERS
# ══════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class TransferLineResult:
    product_id: str
    variant_id: str
    requested: int
    transferred: int
    error_code: str | None = None

    @property
    def success(self) -> bool:
        return self.error_code is None and self.transferred >= self.requested

    @property
    def shortfall(self) -> int:
        return self.requested - self.transferred

    @property
    def status(self) -> LineStatus:
        return LineStatus.of(self.requested, self.transferred)


@dataclass(frozen=True)
class TransferResult:
    transfer_id: int
    status: str
    lines: tuple[TransferLineResult, ...] = field(default_factory=tuple)

    @property
    def all_transferred(self) -> bool:
        return all(line.success for line in self.lines)

    @property
    def transferred_quantity(self) -> int:
        return sum(line.transferred for line in self.lines)
