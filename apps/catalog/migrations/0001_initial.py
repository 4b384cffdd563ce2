import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Client",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("name", models.CharField(max_length=255, unique=True)),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("barcode", models.CharField(max_length=64, unique=True)),
                ("name", models.CharField(max_length=255)),
                ("category", models.CharField(max_length=255)),
                (
                    "mrp",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Maximum retail price; selling price may never exceed it",
                        max_digits=12,
                    ),
                ),
                ("image_url", models.URLField(blank=True, null=True)),
                (
                    "client",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="products",
                        to="catalog.client",
                    ),
                ),
            ],
            options={
                "ordering": ["name"],
                "indexes": [
                    models.Index(fields=["name"], name="catalog_pro_name_6c1dd0_idx"),
                    models.Index(fields=["category"], name="catalog_pro_categor_5f3a21_idx"),
                    models.Index(fields=["mrp"], name="catalog_pro_mrp_b7e4c9_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("mrp__gte", 0)), name="product_mrp_non_negative"),
                ],
            },
        ),
    ]
