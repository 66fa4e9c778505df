"""
Pytest fixtures for Stockpool tests.
"""

import pytest

from stockpool.adapters.catalog import reset_catalog_validator
from stockpool.models import (
    AllocationStrategy,
    Location,
    LocationKind,
    Pool,
    PoolMember,
    ReservationPolicy,
)
from stockpool.services.ledger import StockLedger
from stockpool.types import StockKey


@pytest.fixture(autouse=True)
def _fresh_catalog_validator():
    reset_catalog_validator()
    yield
    reset_catalog_validator()


@pytest.fixture
def main(db):
    """Default warehouse (São Paulo)."""
    return Location.objects.create(
        code='main',
        name='Main DC',
        is_default=True,
        latitude=-23.5505,
        longitude=-46.6333,
    )


@pytest.fixture
def store(db):
    """Store in Rio de Janeiro."""
    return Location.objects.create(
        code='rio',
        name='Rio Store',
        kind=LocationKind.STORE,
        priority=1,
        latitude=-22.9068,
        longitude=-43.1729,
    )


@pytest.fixture
def outlet(db):
    """Store in Curitiba."""
    return Location.objects.create(
        code='cwb',
        name='Curitiba Outlet',
        kind=LocationKind.STORE,
        priority=2,
        latitude=-25.4284,
        longitude=-49.2733,
    )


@pytest.fixture
def stock(db):
    """
    Seed stock: stock('sku-1', 'main', 10) creates/increments a record.

    Returns the record, refreshed from the database.
    """
    def _stock(product_id, location, quantity, variant_id='', **defaults):
        key = StockKey(product_id, variant_id, location)
        StockLedger.receive(key, quantity, reason='Seed', **defaults)
        return StockLedger.get_record(key)
    return _stock


@pytest.fixture
def make_pool(db):
    """make_pool('south', {main: 2, store: 1}, strategy=...)"""
    def _make_pool(code, members, strategy=AllocationStrategy.FIFO,
                   policy=ReservationPolicy.IMMEDIATE, is_active=True):
        pool = Pool.objects.create(
            code=code,
            name=code.title(),
            allocation_strategy=strategy,
            reservation_policy=policy,
            is_active=is_active,
        )
        for location, priority in members.items():
            PoolMember.objects.create(pool=pool, location=location, priority=priority)
        return pool
    return _make_pool


@pytest.fixture
def record(db):
    """record('sku-1', 'main') -> fresh StockRecord (None if absent)."""
    def _record(product_id, location, variant_id=''):
        return StockLedger.get_record(StockKey(product_id, variant_id, location))
    return _record
