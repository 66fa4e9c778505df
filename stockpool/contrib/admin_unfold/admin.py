"""
Stockpool Admin with Unfold theme.

This module provides Unfold-styled admin classes for Stockpool models.
To use, add 'stockpool.contrib.admin_unfold' to INSTALLED_APPS after 'stockpool'.

The admins will automatically register the Unfold versions.
"""

from django.contrib import admin
from django.utils.translation import gettext_lazy as _
from unfold.decorators import action, display

from stockpool.admin import ReadOnlyAdminMixin, release_active
from stockpool.contrib.admin_unfold.base import BaseModelAdmin, BaseTabularInline
from stockpool.models import (
    Allocation,
    AllocationLine,
    AllocationStatus,
    Location,
    Movement,
    Pool,
    PoolMember,
    Reservation,
    ReservationLine,
    ReservationStatus,
    StockRecord,
    Transfer,
    TransferLine,
    TransferStatus,
)


def _format_datetime(dt):
    """Format datetime as DD/MM/YY · HH:MM."""
    if dt:
        return dt.strftime('%d/%m/%y · %H:%M')
    return '-'


class ReadOnlyInline(ReadOnlyAdminMixin, BaseTabularInline):
    extra = 0
    can_delete = False


# =============================================================================
# LOCATION / POOL ADMIN
# =============================================================================


@admin.register(Location)
class LocationAdmin(BaseModelAdmin):
    """Admin for Location model."""

    list_display = ['code', 'name', 'kind', 'priority', 'is_active_display', 'is_default']
    list_filter = ['kind', 'is_active']
    search_fields = ['code', 'name']
    readonly_fields = ['created_at', 'updated_at']
    warn_unsaved_form = True

    @display(description=_('Active'), label={'ACTIVE': 'success', 'INACTIVE': 'danger'})
    def is_active_display(self, obj):
        return 'ACTIVE' if obj.is_active else 'INACTIVE'


class PoolMemberInline(BaseTabularInline):
    model = PoolMember
    extra = 1
    autocomplete_fields = ['location']


@admin.register(Pool)
class PoolAdmin(BaseModelAdmin):
    """Admin for Pool model, members inline."""

    list_display = ['code', 'name', 'allocation_strategy', 'reservation_policy', 'is_active']
    list_filter = ['allocation_strategy', 'reservation_policy', 'is_active']
    search_fields = ['code', 'name']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [PoolMemberInline]
    warn_unsaved_form = True


# =============================================================================
# STOCK RECORD ADMIN
# =============================================================================


@admin.register(StockRecord)
class StockRecordAdmin(ReadOnlyAdminMixin, BaseModelAdmin):
    """Admin for StockRecord model (read-only).

    Counters only change through StockLedger, which keeps the
    Movement trail and the version check.
    """

    list_display = ['product_id', 'variant_id', 'location', 'quantity_on_hand',
                    'reserved_display', 'available_display']
    list_filter = ['location']
    search_fields = ['product_id', 'variant_id', 'sku']
    list_select_related = ['location']

    @display(description=_('Reserved'), label=True)
    def reserved_display(self, obj):
        return obj.reserved_quantity

    @display(description=_('Available'), label={'ok': 'success', 'low': 'warning', 'out': 'danger'})
    def available_display(self, obj):
        if obj.is_out_of_stock:
            level = 'out'
        elif obj.is_low_stock:
            level = 'low'
        else:
            level = 'ok'
        return level, obj.available_quantity


# =============================================================================
# MOVEMENT ADMIN
# =============================================================================


@admin.register(Movement)
class MovementAdmin(ReadOnlyAdminMixin, BaseModelAdmin):
    """Admin for Movement model (read-only audit trail)."""

    list_display = ['timestamp_display', 'stock_record', 'kind', 'delta_display', 'reason', 'performed_by']
    list_filter = ['kind', 'timestamp']
    search_fields = ['reason', 'reference_id', 'stock_record__product_id']
    list_select_related = ['stock_record__location']

    @display(description=_('Timestamp'))
    def timestamp_display(self, obj):
        return _format_datetime(obj.timestamp)

    @display(description=_('Delta'), label={'in': 'success', 'out': 'danger'})
    def delta_display(self, obj):
        if obj.delta > 0:
            return 'in', f'+{obj.delta}'
        return 'out', str(obj.delta)


# =============================================================================
# RESERVATION ADMIN
# =============================================================================


class ReservationLineInline(ReadOnlyInline):
    model = ReservationLine
    fields = ['stock_record', 'requested', 'quantity']


@admin.register(Reservation)
class ReservationAdmin(ReadOnlyAdminMixin, BaseModelAdmin):
    """Admin for Reservation model (read-only).

    Reservations are created by inventory.reserve() / allocate(). The
    admin action cancels active ones through ReservationManager.
    """

    list_display = ['id', 'reference_id', 'status_display', 'expires_at_display', 'created_at']
    list_filter = ['status']
    search_fields = ['reference_id']
    inlines = [ReservationLineInline]
    actions = ['release_reservations']

    @display(
        description=_('Status'),
        label={
            ReservationStatus.ACTIVE: 'info',
            ReservationStatus.FULFILLED: 'success',
            ReservationStatus.EXPIRED: 'warning',
            ReservationStatus.RELEASED: 'danger',
        },
    )
    def status_display(self, obj):
        return obj.status

    @display(description=_('Expires at'))
    def expires_at_display(self, obj):
        return _format_datetime(obj.expires_at)

    @action(description=_('Release selected reservations'))
    def release_reservations(self, request, queryset):
        count = release_active(queryset)
        self.message_user(request, _('{count} reservation(s) released.').format(count=count))


# =============================================================================
# ALLOCATION / TRANSFER ADMIN
# =============================================================================


class AllocationLineInline(ReadOnlyInline):
    model = AllocationLine
    fields = ['product_id', 'variant_id', 'requested', 'allocated', 'shortfall', 'sources']


@admin.register(Allocation)
class AllocationAdmin(ReadOnlyAdminMixin, BaseModelAdmin):
    list_display = ['id', 'reference_id', 'pool', 'strategy', 'status_display', 'created_at']
    list_filter = ['status', 'strategy', 'pool']
    search_fields = ['reference_id']
    inlines = [AllocationLineInline]

    @display(
        description=_('Status'),
        label={
            AllocationStatus.PLANNED: 'info',
            AllocationStatus.RESERVED: 'success',
            AllocationStatus.RELEASED: 'danger',
        },
    )
    def status_display(self, obj):
        return obj.status


class TransferLineInline(ReadOnlyInline):
    model = TransferLine
    fields = ['product_id', 'variant_id', 'requested', 'transferred', 'success', 'error_code']


@admin.register(Transfer)
class TransferAdmin(ReadOnlyAdminMixin, BaseModelAdmin):
    list_display = ['id', 'source', 'destination', 'status_display', 'reason', 'created_at']
    list_filter = ['status', 'source', 'destination']
    search_fields = ['reason', 'reference_id']
    inlines = [TransferLineInline]

    @display(
        description=_('Status'),
        label={
            TransferStatus.COMPLETED: 'success',
            TransferStatus.PARTIAL: 'warning',
            TransferStatus.FAILED: 'danger',
        },
    )
    def status_display(self, obj):
        return obj.status
