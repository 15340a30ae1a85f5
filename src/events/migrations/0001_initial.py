import uuid

import django.db.models.deletion
from django.db import migrations, models

import events.models.sponsorship


class Migration(migrations.Migration):
    initial = True

    dependencies: list[tuple[str, str]] = []

    operations = [
        migrations.CreateModel(
            name="Event",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("name", models.CharField(db_index=True, max_length=255)),
                ("slug", models.SlugField(blank=True, max_length=255)),
                (
                    "status",
                    models.CharField(
                        choices=[("draft", "Draft"), ("open", "Open"), ("closed", "Closed"), ("archived", "Archived")],
                        db_index=True,
                        default="draft",
                        max_length=20,
                    ),
                ),
                ("start", models.DateTimeField(db_index=True)),
                ("end", models.DateTimeField(blank=True, null=True)),
                (
                    "base_price",
                    models.PositiveIntegerField(default=0, help_text="Registration price in minor currency units."),
                ),
                ("currency", models.CharField(default="EUR", help_text="ISO 4217 currency code", max_length=3)),
                (
                    "max_capacity",
                    models.PositiveIntegerField(blank=True, help_text="Leave empty for unlimited.", null=True),
                ),
                ("registered_count", models.PositiveIntegerField(default=0)),
            ],
            options={
                "ordering": ["-start"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("max_capacity__isnull", True))
                        | models.Q(("registered_count__lte", models.F("max_capacity"))),
                        name="event_registered_count_within_capacity",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="AccessItem",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("conditions", models.JSONField(blank=True, default=list)),
                (
                    "condition_logic",
                    models.CharField(
                        choices=[("and", "All conditions must match"), ("or", "Any condition must match")],
                        default="and",
                        max_length=3,
                    ),
                ),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("workshop", "Workshop"),
                            ("session", "Session"),
                            ("dinner", "Dinner"),
                            ("networking", "Networking"),
                            ("accommodation", "Accommodation"),
                            ("transport", "Transport"),
                            ("other", "Other"),
                        ],
                        db_index=True,
                        default="other",
                        max_length=20,
                    ),
                ),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, null=True)),
                ("location", models.CharField(blank=True, max_length=255, null=True)),
                (
                    "group_label",
                    models.CharField(
                        blank=True,
                        help_text="Free-form grouping for items of type 'other'.",
                        max_length=100,
                        null=True,
                    ),
                ),
                ("starts_at", models.DateTimeField(blank=True, null=True)),
                ("ends_at", models.DateTimeField(blank=True, null=True)),
                ("available_from", models.DateTimeField(blank=True, null=True)),
                ("available_to", models.DateTimeField(blank=True, null=True)),
                ("price", models.PositiveIntegerField(default=0, help_text="Unit price in minor currency units.")),
                ("currency", models.CharField(default="EUR", max_length=3)),
                (
                    "max_capacity",
                    models.PositiveIntegerField(blank=True, help_text="Leave empty for unlimited.", null=True),
                ),
                ("registered_count", models.PositiveIntegerField(default=0)),
                ("active", models.BooleanField(db_index=True, default=True)),
                ("sort_order", models.IntegerField(default=0)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="access_items", to="events.event"
                    ),
                ),
                (
                    "required_access",
                    models.ManyToManyField(
                        blank=True,
                        help_text="Items that must also be selected for this one to be selectable.",
                        related_name="required_by",
                        to="events.accessitem",
                    ),
                ),
            ],
            options={
                "ordering": ["sort_order", "starts_at", "created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("max_capacity__isnull", True))
                        | models.Q(("registered_count__lte", models.F("max_capacity"))),
                        name="access_registered_count_within_capacity",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="PricingRule",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("conditions", models.JSONField(blank=True, default=list)),
                (
                    "condition_logic",
                    models.CharField(
                        choices=[("and", "All conditions must match"), ("or", "Any condition must match")],
                        default="and",
                        max_length=3,
                    ),
                ),
                ("valid_from", models.DateTimeField(blank=True, db_index=True, null=True)),
                ("valid_to", models.DateTimeField(blank=True, db_index=True, null=True)),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, null=True)),
                (
                    "rule_type",
                    models.CharField(
                        choices=[("base_price", "Base Price"), ("modifier", "Modifier")],
                        default="base_price",
                        max_length=20,
                    ),
                ),
                (
                    "priority",
                    models.IntegerField(default=0, help_text="Higher priority rules are evaluated first."),
                ),
                (
                    "price_type",
                    models.CharField(
                        choices=[("fixed", "Fixed"), ("percentage", "Percentage")], default="fixed", max_length=20
                    ),
                ),
                (
                    "price_value",
                    models.IntegerField(
                        help_text="Minor units for fixed prices, percent of the event base price for percentages."
                    ),
                ),
                ("active", models.BooleanField(db_index=True, default=True)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="pricing_rules", to="events.event"
                    ),
                ),
            ],
            options={
                "ordering": ["-priority", "created_at"],
            },
        ),
        migrations.CreateModel(
            name="Sponsorship",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("valid_from", models.DateTimeField(blank=True, db_index=True, null=True)),
                ("valid_to", models.DateTimeField(blank=True, db_index=True, null=True)),
                (
                    "code",
                    models.CharField(
                        default=events.models.sponsorship.generate_sponsorship_code, max_length=32, unique=True
                    ),
                ),
                ("sponsor_name", models.CharField(max_length=255)),
                ("amount", models.PositiveIntegerField(help_text="Amount covered in minor currency units.")),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("used", "Used"), ("cancelled", "Cancelled")],
                        db_index=True,
                        default="active",
                        max_length=20,
                    ),
                ),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="sponsorships", to="events.event"
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
            },
        ),
    ]
