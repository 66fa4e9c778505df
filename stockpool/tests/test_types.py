"""
Tests for request/result value types and structured errors.
"""

import pytest

from stockpool.exceptions import (
    InventoryError,
    LocationNotFoundError,
    NegativeQuantityError,
    NotFoundError,
    ReservationNotActiveError,
    StateError,
    ValidationError,
)
from stockpool.types import (
    AllocationLineResult,
    AllocationSource,
    LineRequest,
    LineStatus,
    StockKey,
    TransferLineResult,
    coerce_lines,
)


class TestStockKey:

    def test_str(self):
        assert str(StockKey('sku-1', '', 'main')) == 'sku-1@main'
        assert str(StockKey('sku-1', 'blue', 'main')) == 'sku-1/blue@main'

    def test_variant_none_normalized(self):
        assert StockKey('sku-1', None, 'main') == StockKey('sku-1', '', 'main')

    def test_accepts_location_instance(self):
        class Loc:
            code = 'rio'

        assert StockKey('sku-1', '', Loc()).location == 'rio'

    @pytest.mark.parametrize('product_id, location', [('', 'main'), ('sku-1', ''), ('sku-1', None)])
    def test_incomplete(self, product_id, location):
        with pytest.raises(ValidationError):
            StockKey(product_id, '', location)


class TestLineRequest:

    def test_from_tuple(self):
        line = LineRequest.coerce(('sku-1', 'blue', 3))

        assert line == LineRequest(product_id='sku-1', variant_id='blue', quantity=3)
        assert line.location is None

    def test_from_tuple_with_location(self):
        assert LineRequest.coerce(('sku-1', '', 3, 'rio')).location == 'rio'

    def test_from_mapping(self):
        line = LineRequest.coerce({'product_id': 'sku-1', 'quantity': 2, 'location': 'main'})

        assert line.variant_id == ''
        assert line.location == 'main'

    def test_mapping_unknown_field(self):
        with pytest.raises(ValidationError) as exc:
            LineRequest.coerce({'product_id': 'sku-1', 'quantity': 2, 'qty': 2})

        assert exc.value.data['unknown_fields'] == ['qty']

    def test_mapping_missing_field(self):
        with pytest.raises(ValidationError) as exc:
            LineRequest.coerce({'product_id': 'sku-1'})

        assert exc.value.data['missing'] == 'quantity'

    @pytest.mark.parametrize('item', [
        ('sku-1', '', 0),
        ('sku-1', '', -2),
        ('sku-1', '', 2.0),
        ('', '', 1),
        (None, '', 1),
        ('sku-1', 1),
        'sku-1',
        42,
    ])
    def test_rejected(self, item):
        with pytest.raises(ValidationError):
            LineRequest.coerce(item)

    @pytest.mark.parametrize('items', [None, [], 'sku-1', {'product_id': 'sku-1', 'quantity': 1}])
    def test_coerce_lines_rejects(self, items):
        with pytest.raises(ValidationError) as exc:
            coerce_lines(items)

        assert exc.value.code == 'INVALID_REQUEST'

    def test_coerce_lines_all_or_nothing(self):
        with pytest.raises(ValidationError) as exc:
            coerce_lines([('sku-1', '', 1), ('sku-2', '', 0)])

        assert exc.value.code == 'INVALID_QUANTITY'


class TestResults:

    def test_line_status(self):
        assert LineStatus.of(5, 5) == LineStatus.SUCCEEDED
        assert LineStatus.of(5, 2) == LineStatus.PARTIAL
        assert LineStatus.of(5, 0) == LineStatus.FAILED

    def test_allocation_line(self):
        line = AllocationLineResult(
            product_id='sku-1', variant_id='', requested=10,
            sources=(AllocationSource('l1', 3), AllocationSource('l2', 5)),
        )

        assert line.allocated == 8
        assert line.shortfall == 2
        assert line.status == LineStatus.PARTIAL
        assert line.sources[0].as_dict() == {'location': 'l1', 'quantity': 3}

    def test_transfer_line_with_error_fails(self):
        line = TransferLineResult('sku-1', '', requested=2, transferred=0, error_code='INSUFFICIENT_STOCK')

        assert not line.success
        assert line.status == LineStatus.FAILED


class TestErrors:

    def test_default_codes_and_messages(self):
        error = LocationNotFoundError(location='nowhere')

        assert error.code == 'LOCATION_NOT_FOUND'
        assert error.message == 'Location not found'
        assert str(error) == "[LOCATION_NOT_FOUND] Location not found {'location': 'nowhere'}"

    def test_hierarchy(self):
        assert issubclass(LocationNotFoundError, NotFoundError)
        assert issubclass(ReservationNotActiveError, StateError)
        assert issubclass(ValidationError, InventoryError)

    def test_explicit_code(self):
        assert ValidationError('REASON_REQUIRED').message == 'A reason is required'

    def test_unknown_code_uses_code_as_message(self):
        assert InventoryError('SOMETHING_ELSE').message == 'SOMETHING_ELSE'

    def test_as_dict(self):
        error = NegativeQuantityError(key='sku-1@main', on_hand=3, reserved=2, delta=-4)

        assert error.as_dict() == {
            'code': 'NEGATIVE_QUANTITY',
            'message': 'On-hand quantity would drop below reserved quantity',
            'data': {'key': 'sku-1@main', 'on_hand': 3, 'reserved': 2, 'delta': -4},
        }
        assert error.on_hand == 3
        assert error.reserved == 2
