import typing as t

from django.contrib import admin
from django.http import HttpRequest
from unfold.admin import ModelAdmin, TabularInline

from events.admin import EventLinkMixin

from . import models


class RegistrationAccessInline(TabularInline):  # type: ignore[misc]
    model = models.RegistrationAccess
    fields = ["access", "unit_price", "quantity", "subtotal"]
    readonly_fields = fields
    extra = 0
    can_delete = False

    def has_add_permission(self, request: HttpRequest, obj: t.Any = None) -> bool:
        return False


class AmendmentInline(TabularInline):  # type: ignore[misc]
    model = models.RegistrationAmendment
    fields = ["sequence", "created_at", "change_type", "previous_total", "new_total", "new_additional_due"]
    readonly_fields = fields
    extra = 0
    can_delete = False

    def has_add_permission(self, request: HttpRequest, obj: t.Any = None) -> bool:
        return False


@admin.register(models.Registration)
class RegistrationAdmin(ModelAdmin, EventLinkMixin):  # type: ignore[misc]
    list_display = [
        "email",
        "full_name",
        "event_link",
        "payment_status",
        "total_amount",
        "paid_amount",
        "additional_amount_due",
        "edit_count",
        "created_at",
    ]
    list_filter = ["payment_status", "event"]
    search_fields = ["email", "first_name", "last_name", "event__name"]
    autocomplete_fields = ["event"]
    # Money, capacity and history only change through the registration services.
    readonly_fields = [
        "id",
        "payment_status",
        "total_amount",
        "paid_amount",
        "paid_at",
        "additional_amount_due",
        "price_breakdown",
        "base_amount",
        "discount_amount",
        "access_amount",
        "sponsorship_code",
        "sponsorship_amount",
        "idempotency_key",
        "edit_count",
        "last_edited_at",
        "created_at",
        "updated_at",
    ]
    inlines = [RegistrationAccessInline, AmendmentInline]
    date_hierarchy = "created_at"

    def has_delete_permission(self, request: HttpRequest, obj: t.Any = None) -> bool:
        return False
