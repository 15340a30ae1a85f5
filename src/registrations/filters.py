from django.db.models import Q
from ninja import Field, FilterSchema

from registrations.models import Registration


class RegistrationFilterSchema(FilterSchema):
    payment_status: Registration.PaymentStatus | None = None
    has_additional_due: bool | None = None
    search: str | None = Field(None, q=["email__icontains", "first_name__icontains", "last_name__icontains"])  # type: ignore[call-overload]

    def filter_has_additional_due(self, has_additional_due: bool | None) -> Q:
        """Registrations that owe money after an amendment."""
        if has_additional_due is None:
            return Q()
        if has_additional_due:
            return Q(additional_amount_due__gt=0)
        return Q(additional_amount_due=0)
