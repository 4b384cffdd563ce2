# apps/catalog/admin.py
from django.contrib import admin
from .models import Client, Product


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ("name", "created_at")
    search_fields = ("name",)


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("barcode", "name", "category", "client", "mrp")
    search_fields = ("barcode", "name")
    list_filter = ("category", "client")
    readonly_fields = ("created_at", "updated_at")
