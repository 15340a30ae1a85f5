import uuid

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("events", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Registration",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("email", models.EmailField(db_index=True, max_length=254)),
                ("first_name", models.CharField(max_length=150)),
                ("last_name", models.CharField(max_length=150)),
                ("phone", models.CharField(blank=True, max_length=50, null=True)),
                ("form_data", models.JSONField(blank=True, default=dict)),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("paid", "Paid"),
                            ("waived", "Waived"),
                            ("cancelled", "Cancelled"),
                            ("refunded", "Refunded"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("total_amount", models.PositiveIntegerField(default=0)),
                ("paid_amount", models.PositiveIntegerField(default=0)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                (
                    "additional_amount_due",
                    models.PositiveIntegerField(
                        default=0, help_text="Balance owed after a paid registration was amended."
                    ),
                ),
                ("currency", models.CharField(default="EUR", max_length=3)),
                ("price_breakdown", models.JSONField(blank=True, default=dict)),
                ("base_amount", models.IntegerField(default=0)),
                ("discount_amount", models.PositiveIntegerField(default=0)),
                ("access_amount", models.PositiveIntegerField(default=0)),
                ("sponsorship_code", models.CharField(blank=True, max_length=32, null=True)),
                ("sponsorship_amount", models.PositiveIntegerField(default=0)),
                ("idempotency_key", models.CharField(blank=True, max_length=255, null=True)),
                ("edit_count", models.PositiveIntegerField(default=0)),
                ("last_edited_at", models.DateTimeField(blank=True, null=True)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="registrations", to="events.event"
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(fields=("event", "email"), name="unique_registration_email_per_event"),
                    models.UniqueConstraint(
                        fields=("event", "idempotency_key"), name="unique_idempotency_key_per_event"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="RegistrationAccess",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("unit_price", models.PositiveIntegerField()),
                (
                    "quantity",
                    models.PositiveIntegerField(
                        default=1, validators=[django.core.validators.MinValueValidator(1)]
                    ),
                ),
                ("subtotal", models.PositiveIntegerField()),
                (
                    "access",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="registration_selections",
                        to="events.accessitem",
                    ),
                ),
                (
                    "registration",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="access_selections",
                        to="registrations.registration",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
                "constraints": [
                    models.UniqueConstraint(fields=("registration", "access"), name="unique_access_per_registration")
                ],
            },
        ),
        migrations.CreateModel(
            name="RegistrationAmendment",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("sequence", models.PositiveIntegerField()),
                (
                    "change_type",
                    models.CharField(
                        choices=[
                            ("form_data", "Form Data"),
                            ("access_added", "Access Added"),
                            ("access_removed", "Access Removed"),
                            ("mixed", "Mixed"),
                        ],
                        max_length=20,
                    ),
                ),
                ("form_data_changes", models.JSONField(blank=True, default=list)),
                ("access_changes", models.JSONField(blank=True, default=list)),
                ("previous_total", models.PositiveIntegerField()),
                ("new_total", models.PositiveIntegerField()),
                ("previous_additional_due", models.PositiveIntegerField(default=0)),
                ("new_additional_due", models.PositiveIntegerField(default=0)),
                ("price_breakdown_snapshot", models.JSONField(blank=True, default=dict)),
                (
                    "registration",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="amendments",
                        to="registrations.registration",
                    ),
                ),
            ],
            options={
                "ordering": ["registration", "sequence"],
                "constraints": [
                    models.UniqueConstraint(fields=("registration", "sequence"), name="unique_amendment_sequence")
                ],
            },
        ),
    ]
