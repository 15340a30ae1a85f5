import typing as t
import uuid

from django.db import models

from .registration import Registration


class AmendmentImmutableError(Exception):
    """Raised on any attempt to change or remove a recorded amendment."""


class AmendmentQuerySet(models.QuerySet["RegistrationAmendment"]):
    def update(self, **kwargs: t.Any) -> int:
        raise AmendmentImmutableError("Amendments cannot be updated.")

    def delete(self) -> tuple[int, dict[str, int]]:
        raise AmendmentImmutableError("Amendments cannot be deleted.")


class RegistrationAmendment(models.Model):
    """One recorded edit of a registration. Rows are only ever inserted.

    The history of a registration is the ordered set of its amendments; it is never
    rewritten in place.
    """

    class ChangeType(models.TextChoices):
        FORM_DATA = "form_data"
        ACCESS_ADDED = "access_added"
        ACCESS_REMOVED = "access_removed"
        MIXED = "mixed"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    registration = models.ForeignKey(Registration, on_delete=models.CASCADE, related_name="amendments")
    sequence = models.PositiveIntegerField()
    change_type = models.CharField(choices=ChangeType.choices, max_length=20)
    form_data_changes = models.JSONField(default=list, blank=True)
    access_changes = models.JSONField(default=list, blank=True)
    previous_total = models.PositiveIntegerField()
    new_total = models.PositiveIntegerField()
    previous_additional_due = models.PositiveIntegerField(default=0)
    new_additional_due = models.PositiveIntegerField(default=0)
    price_breakdown_snapshot = models.JSONField(default=dict, blank=True)

    objects = AmendmentQuerySet.as_manager()

    class Meta:
        ordering = ["registration", "sequence"]
        constraints = [
            models.UniqueConstraint(fields=["registration", "sequence"], name="unique_amendment_sequence"),
        ]

    def __str__(self) -> str:
        return f"Amendment #{self.sequence} of {self.registration_id}"

    def save(self, *args: t.Any, **kwargs: t.Any) -> None:
        if not self._state.adding:
            raise AmendmentImmutableError("Amendments cannot be updated.")
        self.full_clean()
        super().save(*args, **kwargs)

    def delete(self, *args: t.Any, **kwargs: t.Any) -> tuple[int, dict[str, int]]:
        raise AmendmentImmutableError("Amendments cannot be deleted.")
