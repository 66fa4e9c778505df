"""
Tests for the admin (basic fallback and Unfold helpers).
"""

import pytest
from django import forms
from django.urls import reverse

from stockpool.models import ReservationStatus
from stockpool.services.reservations import ReservationManager


pytestmark = pytest.mark.django_db


@pytest.fixture
def seeded(main, store, stock, make_pool):
    stock('sku-1', 'main', 10)
    make_pool('south', {main: 1, store: 2})
    return ReservationManager.reserve('order-1', [('sku-1', '', 4)])


@pytest.mark.parametrize('model', [
    'location', 'pool', 'stockrecord', 'movement', 'reservation', 'allocation', 'transfer',
])
def test_changelist_renders(admin_client, seeded, model):
    response = admin_client.get(reverse(f'admin:stockpool_{model}_changelist'))

    assert response.status_code == 200


def test_ledger_models_are_read_only(admin_client, seeded):
    response = admin_client.get(reverse('admin:stockpool_stockrecord_add'))

    assert response.status_code == 403


def test_release_action(admin_client, seeded, record):
    response = admin_client.post(
        reverse('admin:stockpool_reservation_changelist'),
        {'action': 'release_reservations', '_selected_action': [seeded.reservation_id]},
    )

    assert response.status_code == 302
    reservation = ReservationManager.get(seeded.reservation_id)
    assert reservation.status == ReservationStatus.RELEASED
    assert reservation.release_reason == 'cancelled'
    assert record('sku-1', 'main').reserved_quantity == 0


class TestUnfoldHelpers:

    @pytest.fixture(autouse=True)
    def _unfold(self):
        pytest.importorskip('unfold')

    def test_compact_textarea_halves_rows(self):
        from stockpool.contrib.admin_unfold.base import compact_textarea

        widget = forms.Textarea(attrs={'rows': 10})

        assert compact_textarea(widget, max_width='42rem')
        assert widget.attrs['rows'] == 5
        assert 'max-width: 42rem' in widget.attrs['style']

    def test_other_widgets_untouched(self):
        from stockpool.contrib.admin_unfold.base import compact_textarea

        widget = forms.TextInput()

        assert not compact_textarea(widget)
        assert 'rows' not in widget.attrs
