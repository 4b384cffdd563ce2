# apps/catalog/models.py
from django.db import models
from django.db.models import Q

from apps.utils.models import TimestampedModel


class Client(TimestampedModel):
    """
    Brand owner / supplier a product is catalogued under.
    Names are stored normalized (trimmed, lower-case) so uploads can match them.
    """
    name = models.CharField(max_length=255, unique=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class Product(TimestampedModel):
    # Natural key, stored normalized
    barcode = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255)
    category = models.CharField(max_length=255)
    mrp = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Maximum retail price; selling price may never exceed it",
    )
    image_url = models.URLField(blank=True, null=True)
    client = models.ForeignKey(
        Client,
        on_delete=models.PROTECT,
        related_name="products",
    )

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["name"], name="catalog_pro_name_6c1dd0_idx"),
            models.Index(fields=["category"], name="catalog_pro_categor_5f3a21_idx"),
            models.Index(fields=["mrp"], name="catalog_pro_mrp_b7e4c9_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(mrp__gte=0),
                name="product_mrp_non_negative",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.barcode})"
