# apps/catalog/serializers.py
from rest_framework import serializers
from .models import Client, Product


class ClientSerializer(serializers.ModelSerializer):
    class Meta:
        model = Client
        fields = ["id", "name", "created_at"]
        read_only_fields = ["id", "created_at"]


class ProductSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source="client.name", read_only=True)
    quantity = serializers.IntegerField(source="inventory.quantity", read_only=True)

    class Meta:
        model = Product
        fields = [
            "id",
            "barcode",
            "name",
            "category",
            "mrp",
            "image_url",
            "client",
            "client_name",
            "quantity",
            "created_at",
            "updated_at",
        ]


class ProductCreateSerializer(serializers.Serializer):
    barcode = serializers.CharField(max_length=64)
    name = serializers.CharField(max_length=255)
    category = serializers.CharField(max_length=255)
    mrp = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    client_id = serializers.UUIDField()
    image_url = serializers.URLField(required=False, allow_null=True, allow_blank=True)


class ProductUpdateSerializer(serializers.Serializer):
    barcode = serializers.CharField(max_length=64)
    name = serializers.CharField(max_length=255)
    category = serializers.CharField(max_length=255)
    mrp = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    client_id = serializers.UUIDField(required=False)
    image_url = serializers.URLField(required=False, allow_null=True, allow_blank=True)
