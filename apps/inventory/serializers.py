from rest_framework import serializers
from .models import MAX_QUANTITY, Inventory


class InventorySerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    barcode = serializers.CharField(source='product.barcode', read_only=True)
    category = serializers.CharField(source='product.category', read_only=True)

    class Meta:
        model = Inventory
        fields = [
            'id', 'product_id', 'product_name', 'barcode', 'category',
            'quantity', 'version', 'updated_at'
        ]


class InventoryUpdateSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=0, max_value=MAX_QUANTITY)
