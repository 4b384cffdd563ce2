# apps/inventory/admin.py
from django.contrib import admin
from .models import Inventory

@admin.register(Inventory)
class InventoryAdmin(admin.ModelAdmin):
    list_display = ('product', 'quantity', 'version', 'updated_at')
    search_fields = ('product__name', 'product__barcode')
    # Stock changes must go through the services so the version check applies
    readonly_fields = ('product', 'quantity', 'version')

    def has_add_permission(self, request):
        return False
