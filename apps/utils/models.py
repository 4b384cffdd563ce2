from django.db import models
from django.db.models import F
from django.utils import timezone
import uuid

from apps.utils.exceptions import ConflictException


class TimestampedModel(models.Model):
    """
    Common timestamps for all models
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class VersionedModel(TimestampedModel):
    """
    Optimistic concurrency.
    Writes go through save_versioned(), a compare-and-swap on `version`:
    if another transaction committed first, zero rows match and we raise.
    """
    version = models.PositiveIntegerField(default=0)

    class Meta:
        abstract = True

    def save_versioned(self, update_fields):
        fields = {name: getattr(self, name) for name in update_fields}
        fields["updated_at"] = timezone.now()

        updated = (
            type(self).objects
            .filter(pk=self.pk, version=self.version)
            .update(version=F("version") + 1, **fields)
        )
        if updated == 0:
            raise ConflictException(
                f"{type(self).__name__} {self.pk} was modified concurrently. Please retry."
            )

        self.version += 1
        self.updated_at = fields["updated_at"]
        return self
