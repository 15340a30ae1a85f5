from django.db import models


class ConditionLogic(models.TextChoices):
    AND = "and", "All conditions must match"
    OR = "or", "Any condition must match"


class ConditionalMixin(models.Model):
    """Adds a condition list evaluated against the attendee's form data.

    Each condition is a mapping ``{"field_id": ..., "operator": ..., "value": ...}``.
    An empty list means the object applies unconditionally.
    """

    conditions = models.JSONField(default=list, blank=True)
    condition_logic = models.CharField(
        choices=ConditionLogic.choices, default=ConditionLogic.AND, max_length=3
    )

    class Meta:
        abstract = True


class ValidityWindowMixin(models.Model):
    """Optional [valid_from, valid_to] window, both ends inclusive."""

    valid_from = models.DateTimeField(null=True, blank=True, db_index=True)
    valid_to = models.DateTimeField(null=True, blank=True, db_index=True)

    class Meta:
        abstract = True
