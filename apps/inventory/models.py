from django.db import models
from apps.catalog.models import Product
from apps.utils.models import VersionedModel

# Upper bound of the integer column backing Inventory.quantity
MAX_QUANTITY = 2147483647


class Inventory(VersionedModel):
    """
    Stock ledger row: quantity on hand for one product.
    Created once per product at quantity 0, then only mutated.
    All order-driven changes go through InventoryService.adjust().
    """
    product = models.OneToOneField(
        Product,
        on_delete=models.CASCADE,
        related_name='inventory'
    )

    quantity = models.IntegerField(default=0)

    class Meta:
        verbose_name = "Inventory"
        verbose_name_plural = "Inventory"
        indexes = [
            models.Index(fields=['quantity'], name='inventory_i_quantit_3a9f52_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=0),
                name='inventory_quantity_non_negative'
            ),
        ]

    def __str__(self):
        return f"{self.product.barcode} | Qty: {self.quantity}"
