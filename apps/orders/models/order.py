from django.db import models
from apps.utils.models import VersionedModel


class Order(VersionedModel):
    class Status(models.TextChoices):
        CREATED = "CREATED", "Created"
        INVOICED = "INVOICED", "Invoiced"
        CANCELLED = "CANCELLED", "Cancelled"

    TERMINAL_STATUSES = (Status.INVOICED, Status.CANCELLED)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.CREATED, db_index=True)

    customer_name = models.CharField(max_length=255)
    customer_phone = models.CharField(max_length=20)

    # Set once the external invoice service has rendered the PDF
    invoice_path = models.CharField(max_length=512, blank=True, null=True)

    # Kept equal to the sum of line values while CREATED
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["created_at"], name="orders_orde_created_4e8b17_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_amount__gte=0),
                name="order_total_non_negative",
            ),
        ]

    def __str__(self):
        return f"{self.id} [{self.status}]"

    @property
    def is_mutable(self):
        return self.status not in self.TERMINAL_STATUSES
