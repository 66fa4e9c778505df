"""
Tests for StockQueries, catalog validation and the Inventory facade.
"""

import pytest
from django.core.exceptions import ImproperlyConfigured

from stockpool import inventory
from stockpool.adapters.catalog import check_products, reset_catalog_validator
from stockpool.exceptions import ValidationError
from stockpool.models import ReservationStatus, StockRecord
from stockpool.protocols.catalog import ProductValidationResult
from stockpool.services.queries import StockQueries
from stockpool.types import StockKey


pytestmark = pytest.mark.django_db


class DiscontinuedValidator:
    """Rejects any product id starting with 'old-'."""

    def validate_product(self, product_id, variant_id=''):
        if product_id.startswith('old-'):
            return ProductValidationResult(
                valid=True, product_id=product_id, variant_id=variant_id,
                is_active=False, error_code='inactive',
            )
        return ProductValidationResult(valid=True, product_id=product_id, variant_id=variant_id)

    def validate_products(self, pairs):
        return {pair: self.validate_product(*pair) for pair in pairs}


class TestAvailability:

    def test_available_sums_active_locations(self, main, store, outlet, stock):
        stock('sku-1', 'main', 10)
        stock('sku-1', 'rio', 4)
        stock('sku-1', 'cwb', 7)
        inventory.reserve('order-1', [('sku-1', '', 3, 'main')])
        outlet.is_active = False
        outlet.save()

        assert StockQueries.available('sku-1') == 11
        assert StockQueries.available('sku-1', location='cwb') == 7
        assert StockQueries.availability('sku-1') == {'rio': 4, 'main': 7}

    def test_variants_are_separate(self, main, stock):
        stock('sku-1', 'main', 10, variant_id='blue')
        stock('sku-1', 'main', 2)

        assert StockQueries.available('sku-1', 'blue') == 10
        assert StockQueries.available('sku-1') == 2

    def test_unknown_product(self, main):
        assert StockQueries.available('ghost') == 0
        assert StockQueries.on_hand('ghost') == 0
        assert not StockQueries.is_available('ghost', 1)

    def test_on_hand_includes_reserved(self, main, stock):
        stock('sku-1', 'main', 10)
        inventory.reserve('order-1', [('sku-1', '', 6)])

        assert StockQueries.on_hand('sku-1') == 10
        assert StockQueries.is_available('sku-1', 4)
        assert not StockQueries.is_available('sku-1', 5)


class TestReports:

    def test_low_out_reorder(self, main, stock):
        stock('sku-1', 'main', 100)
        stock('sku-2', 'main', 4)
        stock('sku-3', 'main', 1)
        inventory.reserve('order-1', [('sku-3', '', 1)])

        assert [r.product_id for r in StockQueries.low_stock()] == ['sku-3', 'sku-2']
        assert [r.product_id for r in StockQueries.out_of_stock()] == ['sku-3']
        assert [r.product_id for r in StockQueries.needs_reorder()] == ['sku-2', 'sku-3']

    def test_records_hides_empty(self, main, stock):
        stock('sku-1', 'main', 2)
        inventory.adjust(StockKey('sku-1', '', 'main'), -2, reason='Damaged')

        assert not StockQueries.records(product_id='sku-1').exists()
        assert StockQueries.records(product_id='sku-1', include_empty=True).count() == 1

    def test_records_by_sku(self, main, store, stock):
        stock('sku-1', 'main', 2, sku='TSHIRT-BLUE-M')
        stock('sku-1', 'rio', 3, sku='TSHIRT-BLUE-M')
        stock('sku-2', 'main', 4, sku='MUG-WHITE')

        found = StockQueries.records(sku='TSHIRT-BLUE-M')

        assert [(r.product_id, r.location.code) for r in found] == [('sku-1', 'main'), ('sku-1', 'rio')]
        assert not StockQueries.records(sku='UNKNOWN').exists()

    def test_movements_newest_first(self, main, stock):
        stock('sku-1', 'main', 5)
        inventory.withdraw(StockKey('sku-1', '', 'main'), 2, reason='Sample', reference_id='R-1')

        history = list(StockQueries.movements(product_id='sku-1'))

        assert [m.delta for m in history] == [-2, 5]
        assert [m.delta for m in StockQueries.movements(reference_id='R-1')] == [-2]
        assert len(StockQueries.movements(location='main', limit=1)) == 1


class TestCatalogValidation:

    def test_off_by_default(self, main, settings):
        settings.STOCKPOOL = {}

        check_products([('anything', '')])

    def test_noop_accepts(self, main, settings):
        settings.STOCKPOOL = {
            'VALIDATE_PRODUCTS': True,
            'CATALOG_VALIDATOR': 'stockpool.adapters.noop.NoopCatalogValidator',
        }

        inventory.receive(StockKey('sku-1', '', 'main'), 3)

        assert StockQueries.on_hand('sku-1') == 3

    def test_inactive_product_rejected_before_mutation(self, main, stock, settings):
        stock('old-1', 'main', 5)
        settings.STOCKPOOL = {
            'VALIDATE_PRODUCTS': True,
            'CATALOG_VALIDATOR': f'{__name__}.DiscontinuedValidator',
        }
        reset_catalog_validator()

        with pytest.raises(ValidationError) as exc:
            inventory.reserve('order-1', [('sku-1', '', 1), ('old-1', '', 1)])

        assert exc.value.code == 'UNKNOWN_PRODUCT'
        assert exc.value.data['reason'] == 'inactive'
        assert not inventory.get_record(StockKey('old-1', '', 'main')).reserved_quantity
        assert not StockRecord.objects.filter(product_id='sku-1').exists()

    def test_validator_required_when_enabled(self, settings):
        settings.STOCKPOOL = {'VALIDATE_PRODUCTS': True}

        with pytest.raises(ImproperlyConfigured):
            check_products([('sku-1', '')])


class TestFacade:
    """End to end through the public interface."""

    def test_lifecycle(self, main, stock):
        key = StockKey('sku-1', 'blue-m', 'main')
        inventory.receive(key, 10, reason='PO 881')

        result = inventory.reserve('order-42', [('sku-1', 'blue-m', 4, 'main')])
        assert result.all_reserved
        assert inventory.available('sku-1', 'blue-m') == 6

        reservation = inventory.fulfill(result.reservation_id)
        assert reservation.status == ReservationStatus.FULFILLED
        assert inventory.on_hand('sku-1', 'blue-m') == 6
        assert inventory.get_record(key).reserved_quantity == 0

    def test_release_by_reference(self, main, stock):
        stock('sku-1', 'main', 10)
        inventory.reserve('order-7', [{'product_id': 'sku-1', 'quantity': 4}])

        released = inventory.release(reference_id='order-7')

        assert len(released) == 1
        assert inventory.available('sku-1') == 10

    def test_exported_facade_is_the_class(self):
        import stockpool
        from stockpool.service import Inventory

        assert inventory is Inventory
        assert stockpool.inventory is Inventory
