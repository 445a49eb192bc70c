"""
Ledgerman Admin.

Provides read-only views for production debugging:
- Balance: read-only (product, quantity, average cost, stock value)
- Movement: read-only audit trail (date, direction, source, reference)
- StockAlert: configurable min stock triggers
"""

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from ledgerman.models import Balance, Movement, StockAlert


class ReadOnlyAdminMixin:
    """Stock only changes via the stock service."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =========================================================================
# BALANCE ADMIN (read-only)
# =========================================================================

@admin.register(Balance)
class BalanceAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Balance admin — read-only."""

    list_display = ['product_id', 'quantity', 'average_cost', 'stock_value_display',
                    'last_movement_date', 'updated_at']
    search_fields = ['product_id']
    readonly_fields = ['product_id', 'quantity', 'average_cost', 'last_movement_date',
                       'created_at', 'updated_at']
    date_hierarchy = 'last_movement_date'

    @admin.display(description=_('Valor em Estoque'))
    def stock_value_display(self, obj):
        return obj.stock_value


# =========================================================================
# MOVEMENT ADMIN (read-only audit trail)
# =========================================================================

@admin.register(Movement)
class MovementAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Movement admin — read-only. Immutable audit trail."""

    list_display = ['movement_date', 'product_id', 'direction', 'source', 'quantity',
                    'unit_cost', 'reference_type', 'reference_id', 'user']
    list_filter = ['direction', 'source', 'movement_date']
    search_fields = ['reference_id', 'original_reference_id', 'notes']
    readonly_fields = ['product_id', 'direction', 'source', 'reference_type', 'reference_id',
                       'original_reference_type', 'original_reference_id', 'quantity',
                       'unit_cost', 'movement_date', 'notes', 'metadata', 'user', 'created_at']
    date_hierarchy = 'movement_date'


# =========================================================================
# STOCK ALERT ADMIN
# =========================================================================

@admin.register(StockAlert)
class StockAlertAdmin(admin.ModelAdmin):
    """StockAlert admin — configurable min stock triggers."""

    list_display = ['__str__', 'min_quantity', 'is_active', 'last_triggered_at']
    list_filter = ['is_active']
    search_fields = ['product_id']
    readonly_fields = ['last_triggered_at', 'created_at', 'updated_at']
