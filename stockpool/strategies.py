"""
Allocation strategies — isolated, testable, reusable.

Decides which pool locations satisfy a requested quantity.

fifo, priority and nearest are orderings: candidates are sorted and then
drained greedily, first candidate first. even_split is a distribution:
every candidate gets a share proportional to what it has available.

Examples:
    - fifo: stock received first leaves first
    - priority: the order's preferred location, then PoolMember.priority
    - nearest: great-circle distance from the customer
    - even_split: 10 units over 30 / 10 available → 8 / 2
"""

import math
from dataclasses import dataclass
from datetime import datetime

from stockpool.models.enums import AllocationStrategy

# Mean earth radius (IUGG)
EARTH_RADIUS_KM = 6371.0088


@dataclass(frozen=True)
class Candidate:
    """A pool member location holding available stock of the requested product."""

    location: str
    available: int
    created_at: datetime | None = None
    priority: int = 0
    latitude: float | None = None
    longitude: float | None = None
    record_id: int = 0

    @property
    def coordinates(self) -> tuple[float, float] | None:
        if self.latitude is None or self.longitude is None:
            return None
        return self.latitude, self.longitude


def haversine_km(origin: tuple[float, float], target: tuple[float, float]) -> float:
    """
    Great-circle distance between two (latitude, longitude) points in degrees.

    Returns:
        Distance in kilometres
    """
    lat1, lon1 = map(math.radians, origin)
    lat2, lon2 = map(math.radians, target)
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(h)))


# ══════════════════════════════════════════════════════════════
# ORDERINGS
# ══════════════════════════════════════════════════════════════


def _fifo_key(candidate: Candidate):
    # Candidates without a creation time sort last
    created = candidate.created_at
    return (created is None, created.timestamp() if created else 0.0, candidate.record_id)


def order_fifo(candidates, **context) -> list[Candidate]:
    """Oldest stock record first."""
    return sorted(candidates, key=_fifo_key)


def order_priority(candidates, preferred: str | None = None, **context) -> list[Candidate]:
    """Preferred location first, then ascending member priority, then location code."""
    return sorted(
        candidates,
        key=lambda c: (c.location != preferred, c.priority, c.location),
    )


def order_nearest(candidates, origin: tuple[float, float] | None = None,
                  **context) -> list[Candidate]:
    """
    Closest location to `origin` first (haversine).

    Locations without coordinates sort last, oldest stock first among them.
    """
    def key(candidate):
        coordinates = candidate.coordinates
        if origin is None or coordinates is None:
            return (1, 0.0) + _fifo_key(candidate)
        return (0, haversine_km(origin, coordinates)) + _fifo_key(candidate)

    return sorted(candidates, key=key)


ORDERINGS = {
    AllocationStrategy.FIFO: order_fifo,
    AllocationStrategy.PRIORITY: order_priority,
    AllocationStrategy.NEAREST: order_nearest,
}


def drain(ordered, requested: int) -> list[tuple[Candidate, int]]:
    """Take from each candidate in turn until `requested` is covered or candidates run out."""
    plan = []
    remaining = requested
    for candidate in ordered:
        if remaining <= 0:
            break
        take = min(remaining, candidate.available)
        if take > 0:
            plan.append((candidate, take))
            remaining -= take
    return plan


# ══════════════════════════════════════════════════════════════
# DISTRIBUTION
# ══════════════════════════════════════════════════════════════


def even_split(candidates, requested: int) -> list[tuple[Candidate, int]]:
    """
    Split `requested` across candidates in proportion to their availability.

    Each candidate gets floor(requested * available / total). The units
    left over go one each to the largest fractional remainders; ties go
    to the larger availability, then to the lower location code. When
    total availability does not cover the request every candidate is
    drained. A share never exceeds the candidate's availability.

    Returns:
        (candidate, quantity) for every candidate with a non-zero share,
        in location code order
    """
    pool = [c for c in candidates if c.available > 0]
    total = sum(c.available for c in pool)
    if requested <= 0 or total <= 0:
        return []

    if total <= requested:
        shares = {c.location: c.available for c in pool}
    else:
        shares = {}
        remainders = []
        for candidate in pool:
            whole, remainder = divmod(requested * candidate.available, total)
            shares[candidate.location] = whole
            remainders.append((remainder, candidate))

        leftover = requested - sum(shares.values())
        remainders.sort(key=lambda pair: (-pair[0], -pair[1].available, pair[1].location))
        for _remainder, candidate in remainders[:leftover]:
            shares[candidate.location] += 1

    return [
        (candidate, shares[candidate.location])
        for candidate in sorted(pool, key=lambda c: c.location)
        if shares[candidate.location] > 0
    ]


def plan(strategy: str, candidates, requested: int, preferred: str | None = None,
         origin: tuple[float, float] | None = None) -> list[tuple[Candidate, int]]:
    """Plan a line against a snapshot of candidates, without touching stock."""
    if strategy == AllocationStrategy.EVEN_SPLIT:
        return even_split(candidates, requested)
    ordered = ORDERINGS[strategy](candidates, preferred=preferred, origin=origin)
    return drain(ordered, requested)
