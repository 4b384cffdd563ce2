from django.contrib import admin
from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ('product', 'quantity', 'selling_price', 'version')

    def has_add_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Read-only view; stock and totals only stay consistent through the services.
    """
    list_display = ('id', 'customer_name', 'customer_phone', 'status', 'total_amount', 'created_at')
    list_filter = ('status', 'created_at')
    search_fields = ('id', 'customer_name', 'customer_phone')
    readonly_fields = (
        'status', 'customer_name', 'customer_phone', 'total_amount',
        'invoice_path', 'version', 'created_at', 'updated_at'
    )
    inlines = [OrderItemInline]

    def has_add_permission(self, request):
        return False
