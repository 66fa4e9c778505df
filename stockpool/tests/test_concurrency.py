"""
Concurrent reservations against one record.

Needs a database that allows concurrent writers (PostgreSQL); SQLite
serializes connections and is skipped.
"""

import threading

import pytest
from django.db import connection, connections

from stockpool.services.ledger import StockLedger
from stockpool.services.reservations import ReservationManager
from stockpool.types import StockKey


pytestmark = [
    pytest.mark.django_db(transaction=True),
    pytest.mark.skipif(connection.vendor == 'sqlite', reason='needs concurrent writers'),
]


def run_concurrently(target, count):
    barrier = threading.Barrier(count)
    results = []
    errors = []

    def worker(i):
        try:
            barrier.wait()
            results.append(target(i))
        except Exception as e:
            errors.append(e)
        finally:
            connections.close_all()

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results, errors


def test_last_unit_reserved_once(main, stock, record, settings):
    """N buyers, 1 unit: exactly one gets it."""
    settings.STOCKPOOL = {'MAX_CAS_RETRIES': 50}
    stock('sku-1', 'main', 1)
    key = StockKey('sku-1', '', 'main')

    results, errors = run_concurrently(lambda i: StockLedger.reserve(key, 1), 8)

    assert not errors
    assert sorted(results) == [0] * 7 + [1]
    rec = record('sku-1', 'main')
    assert rec.reserved_quantity == 1
    assert rec.quantity_on_hand == 1


def test_reservations_never_oversell(main, stock, record, settings):
    settings.STOCKPOOL = {'MAX_CAS_RETRIES': 50}
    stock('sku-1', 'main', 10)

    results, errors = run_concurrently(
        lambda i: ReservationManager.reserve(f'order-{i}', [('sku-1', '', 3)]).total_reserved,
        6,
    )

    assert not errors
    assert sum(results) == 10
    rec = record('sku-1', 'main')
    assert rec.reserved_quantity == 10
    assert rec.reserved_quantity <= rec.quantity_on_hand
