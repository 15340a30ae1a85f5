import typing as t

from django.contrib import admin
from django.urls import reverse
from django.utils.html import format_html
from unfold.admin import ModelAdmin, TabularInline

from . import models


class EventLinkMixin:
    """Mixin to add a link to an event."""

    def event_link(self, obj: t.Any) -> str | None:
        if not getattr(obj, "event", None):
            return None
        url = reverse("admin:events_event_change", args=[obj.event.id])
        return format_html('<a href="{}">{}</a>', url, obj.event.name)

    event_link.short_description = "Event"  # type: ignore[attr-defined]


class AccessItemInline(TabularInline):  # type: ignore[misc]
    model = models.AccessItem
    fields = ["name", "type", "group_label", "starts_at", "ends_at", "price", "max_capacity", "registered_count"]
    readonly_fields = ["registered_count"]
    extra = 0
    show_change_link = True


class PricingRuleInline(TabularInline):  # type: ignore[misc]
    model = models.PricingRule
    fields = ["name", "rule_type", "priority", "price_type", "price_value", "active"]
    extra = 0
    show_change_link = True


@admin.register(models.Event)
class EventAdmin(ModelAdmin):  # type: ignore[misc]
    list_display = ["name", "status", "start", "base_price", "currency", "registered_count", "max_capacity"]
    list_filter = ["status"]
    search_fields = ["name", "slug"]
    readonly_fields = ["id", "registered_count", "created_at", "updated_at"]
    inlines = [AccessItemInline, PricingRuleInline]
    date_hierarchy = "start"


@admin.register(models.AccessItem)
class AccessItemAdmin(ModelAdmin, EventLinkMixin):  # type: ignore[misc]
    list_display = ["name", "event_link", "type", "group_label", "starts_at", "price", "capacity", "active"]
    list_filter = ["type", "active", "event"]
    search_fields = ["name", "event__name", "group_label"]
    autocomplete_fields = ["event"]
    readonly_fields = ["id", "registered_count", "required_access", "created_at", "updated_at"]

    @admin.display(description="Capacity")
    def capacity(self, obj: models.AccessItem) -> str:
        if obj.max_capacity is None:
            return f"{obj.registered_count} / unlimited"
        return f"{obj.registered_count} / {obj.max_capacity}"


@admin.register(models.PricingRule)
class PricingRuleAdmin(ModelAdmin, EventLinkMixin):  # type: ignore[misc]
    list_display = ["name", "event_link", "rule_type", "priority", "price_type", "price_value", "active"]
    list_filter = ["rule_type", "price_type", "active"]
    search_fields = ["name", "event__name"]
    autocomplete_fields = ["event"]


@admin.register(models.Sponsorship)
class SponsorshipAdmin(ModelAdmin, EventLinkMixin):  # type: ignore[misc]
    list_display = ["code", "sponsor_name", "event_link", "amount", "status", "valid_to"]
    list_filter = ["status"]
    search_fields = ["code", "sponsor_name", "event__name"]
    autocomplete_fields = ["event"]
