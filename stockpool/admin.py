"""
Stockpool Admin — basic fallback (works without Unfold).

For the Unfold-styled version, add 'stockpool.contrib.admin_unfold' to INSTALLED_APPS.
When the Unfold contrib is loaded, this module registers nothing (avoids double registration).

Stock only changes through the services, so the admin is read-only for
everything the ledger owns:
- Location: list + edit
- Pool: list + edit, members inline
- StockRecord: read-only (on hand, reserved, available, level)
- Movement: read-only audit trail
- Reservation: read-only with "release" action
- Allocation / Transfer: read-only with their lines
"""

import logging

from django.apps import apps
from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from stockpool.exceptions import InventoryError

logger = logging.getLogger(__name__)


class ReadOnlyAdminMixin:
    """No add, change or delete: the model is written by the services only."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


def release_active(queryset) -> int:
    """Cancel the ACTIVE reservations in `queryset`; returns how many moved."""
    from stockpool.models import ReleaseReason, ReservationStatus
    from stockpool.services.reservations import ReservationManager

    count = 0
    for reservation in queryset.filter(status=ReservationStatus.ACTIVE):
        try:
            count += len(ReservationManager.release(reservation.pk, reason=ReleaseReason.CANCELLED))
        except InventoryError as exc:
            logger.warning("release_reservations: failed to release %s: %s", reservation.pk, exc)
    return count


# Skip registration if the Unfold contrib is installed (it registers its own admins)
if not apps.is_installed('stockpool.contrib.admin_unfold'):
    from stockpool.models import (
        Allocation,
        AllocationLine,
        Location,
        Movement,
        Pool,
        PoolMember,
        Reservation,
        ReservationLine,
        StockRecord,
        Transfer,
        TransferLine,
    )

    class ReadOnlyInline(ReadOnlyAdminMixin, admin.TabularInline):
        extra = 0
        can_delete = False

    # =========================================================================
    # LOCATION / POOL ADMIN
    # =========================================================================

    @admin.register(Location)
    class LocationAdmin(admin.ModelAdmin):
        """Location admin — editable."""

        list_display = ['code', 'name', 'kind', 'priority', 'is_active', 'is_default']
        list_filter = ['kind', 'is_active']
        search_fields = ['code', 'name']
        readonly_fields = ['created_at', 'updated_at']

    class PoolMemberInline(admin.TabularInline):
        model = PoolMember
        extra = 1
        autocomplete_fields = ['location']

    @admin.register(Pool)
    class PoolAdmin(admin.ModelAdmin):
        """Pool admin — editable, members inline."""

        list_display = ['code', 'name', 'allocation_strategy', 'reservation_policy', 'is_active']
        list_filter = ['allocation_strategy', 'reservation_policy', 'is_active']
        search_fields = ['code', 'name']
        readonly_fields = ['created_at', 'updated_at']
        inlines = [PoolMemberInline]

    # =========================================================================
    # STOCK RECORD ADMIN (read-only)
    # =========================================================================

    @admin.register(StockRecord)
    class StockRecordAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
        """StockRecord admin — read-only. Counters only change via StockLedger."""

        list_display = ['product_id', 'variant_id', 'location', 'quantity_on_hand',
                        'reserved_quantity', 'available_display', 'low_stock_display']
        list_filter = ['location']
        search_fields = ['product_id', 'variant_id', 'sku']
        list_select_related = ['location']

        @admin.display(description=_('Available'))
        def available_display(self, obj):
            return obj.available_quantity

        @admin.display(description=_('Low stock?'), boolean=True)
        def low_stock_display(self, obj):
            return obj.is_low_stock

    # =========================================================================
    # MOVEMENT ADMIN (read-only audit trail)
    # =========================================================================

    @admin.register(Movement)
    class MovementAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
        """Movement admin — read-only. Immutable audit trail."""

        list_display = ['timestamp', 'stock_record', 'kind', 'delta', 'new_quantity',
                        'reason', 'performed_by']
        list_filter = ['kind', 'timestamp']
        search_fields = ['reason', 'reference_id', 'stock_record__product_id']
        list_select_related = ['stock_record__location']
        date_hierarchy = 'timestamp'

    # =========================================================================
    # RESERVATION ADMIN (read-only with release action)
    # =========================================================================

    class ReservationLineInline(ReadOnlyInline):
        model = ReservationLine
        fields = ['stock_record', 'requested', 'quantity']

    @admin.register(Reservation)
    class ReservationAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
        """Reservation admin — read-only with release action."""

        list_display = ['id', 'reference_id', 'status', 'expires_at', 'created_at', 'resolved_at']
        list_filter = ['status']
        search_fields = ['reference_id']
        inlines = [ReservationLineInline]
        actions = ['release_reservations']

        @admin.action(description=_('Release selected reservations'))
        def release_reservations(self, request, queryset):
            count = release_active(queryset)
            self.message_user(request, _('{count} reservation(s) released.').format(count=count))

    # =========================================================================
    # ALLOCATION / TRANSFER ADMIN (read-only)
    # =========================================================================

    class AllocationLineInline(ReadOnlyInline):
        model = AllocationLine
        fields = ['product_id', 'variant_id', 'requested', 'allocated', 'shortfall', 'sources']

    @admin.register(Allocation)
    class AllocationAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
        list_display = ['id', 'reference_id', 'pool', 'strategy', 'status', 'created_at']
        list_filter = ['status', 'strategy', 'pool']
        search_fields = ['reference_id']
        inlines = [AllocationLineInline]

    class TransferLineInline(ReadOnlyInline):
        model = TransferLine
        fields = ['product_id', 'variant_id', 'requested', 'transferred', 'success', 'error_code']

    @admin.register(Transfer)
    class TransferAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
        list_display = ['id', 'source', 'destination', 'status', 'reason', 'created_at']
        list_filter = ['status', 'source', 'destination']
        search_fields = ['reason', 'reference_id']
        inlines = [TransferLineInline]
