from django.db import models
from .order import Order
from apps.catalog.models import Product
from apps.utils.models import VersionedModel


class OrderItem(VersionedModel):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='order_items')

    quantity = models.PositiveIntegerField()
    # Agreed price; capped by product.mrp at write time
    selling_price = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["order", "product"],
                name="uniq_order_item_per_product",
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name="order_item_quantity_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(selling_price__gte=0),
                name="order_item_price_non_negative",
            ),
        ]

    @property
    def line_total(self):
        return self.selling_price * self.quantity

    def __str__(self):
        return f"{self.quantity}x {self.product_id} @ {self.selling_price}"
