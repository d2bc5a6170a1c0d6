import uuid

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models

HHMM = django.core.validators.RegexValidator("^([01]?\\d|2[0-3]):[0-5]\\d$", "Use HH:MM")
ROUNDING_MODES = [("ceil", "Ceil"), ("floor", "Floor"), ("round", "Round")]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="StationType",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=100)),
                ("base_rate_per_hour", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
        ),
        migrations.CreateModel(
            name="DayRate",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("position", models.PositiveIntegerField(default=0)),
                ("days", models.JSONField(blank=True, default=list)),
                ("time_from", models.CharField(blank=True, max_length=5, validators=[HHMM])),
                ("time_to", models.CharField(blank=True, max_length=5, validators=[HHMM])),
                ("rate_per_hour", models.PositiveIntegerField()),
                (
                    "station_type",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="day_rates",
                        to="billing.stationtype",
                    ),
                ),
            ],
            options={
                "ordering": ["position", "id"],
            },
        ),
        migrations.CreateModel(
            name="Station",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=64)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("available", "Available"),
                            ("occupied", "Occupied"),
                            ("reserved", "Reserved"),
                            ("out_of_service", "Out Of Service"),
                        ],
                        default="available",
                        max_length=20,
                    ),
                ),
                ("active", models.BooleanField(default=True)),
                ("rate_per_hour", models.PositiveIntegerField(blank=True, null=True)),
                ("branch_id", models.CharField(blank=True, max_length=64, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "station_type",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="stations",
                        to="billing.stationtype",
                    ),
                ),
            ],
            options={
                "ordering": ["name"],
                "indexes": [models.Index(fields=["status"], name="station_status_idx")],
            },
        ),
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("price", models.PositiveIntegerField()),
                ("active", models.BooleanField(default=True)),
                ("category_id", models.CharField(blank=True, max_length=64, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
        ),
        migrations.CreateModel(
            name="BillingSetting",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "scope",
                    models.CharField(
                        choices=[("global", "Global"), ("branch", "Branch")],
                        default="global",
                        max_length=10,
                    ),
                ),
                ("branch_id", models.CharField(blank=True, max_length=64, null=True)),
                ("rounding_step", models.PositiveIntegerField(default=5)),
                ("rounding_mode", models.CharField(choices=ROUNDING_MODES, default="ceil", max_length=10)),
                ("grace_minutes", models.PositiveIntegerField(default=0)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("scope", "global")),
                        fields=("scope",),
                        name="single_global_billing_setting",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(("scope", "branch")),
                        fields=("branch_id",),
                        name="unique_branch_billing_setting",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Session",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "status",
                    models.CharField(
                        choices=[("open", "Open"), ("closed", "Closed"), ("void", "Void")],
                        default="open",
                        max_length=10,
                    ),
                ),
                ("start_time", models.DateTimeField()),
                ("end_time", models.DateTimeField(blank=True, null=True)),
                ("duration_minutes", models.PositiveIntegerField(blank=True, null=True)),
                ("rate_per_hour", models.PositiveIntegerField()),
                ("rate_source", models.CharField(max_length=10)),
                ("rounding_step", models.PositiveIntegerField()),
                ("rounding_mode", models.CharField(choices=ROUNDING_MODES, max_length=10)),
                ("grace_minutes", models.PositiveIntegerField()),
                ("staff_start", models.PositiveBigIntegerField(blank=True, null=True)),
                ("staff_end", models.PositiveBigIntegerField(blank=True, null=True)),
                ("branch_id", models.CharField(blank=True, max_length=64, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "station",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sessions",
                        to="billing.station",
                    ),
                ),
            ],
            options={
                "ordering": ["-start_time"],
                "indexes": [
                    models.Index(fields=["station", "status"], name="session_station_status_idx"),
                    models.Index(fields=["start_time"], name="session_start_time_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status", "open")),
                        fields=("station",),
                        name="one_open_session_per_station",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="SessionItem",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("position", models.PositiveIntegerField(default=0)),
                ("name_snapshot", models.CharField(max_length=255)),
                ("price_snapshot", models.PositiveIntegerField()),
                ("quantity", models.PositiveIntegerField()),
                ("note", models.CharField(blank=True, default="", max_length=255)),
                (
                    "product",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="billing.product",
                    ),
                ),
                (
                    "session",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="billing.session",
                    ),
                ),
            ],
            options={
                "ordering": ["position"],
            },
        ),
        migrations.CreateModel(
            name="Promotion",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("code", models.CharField(blank=True, default="", max_length=64)),
                ("active", models.BooleanField(default=True)),
                ("branch_id", models.CharField(blank=True, max_length=64, null=True)),
                ("apply_order", models.IntegerField(default=0)),
                ("stackable", models.BooleanField(default=True)),
                (
                    "scope",
                    models.CharField(
                        choices=[("time", "Time"), ("product", "Product"), ("bill", "Bill")],
                        max_length=10,
                    ),
                ),
                ("valid_from", models.DateField(blank=True, null=True)),
                ("valid_to", models.DateField(blank=True, null=True)),
                ("days_of_week", models.JSONField(blank=True, default=list)),
                ("time_ranges", models.JSONField(blank=True, default=list)),
                ("station_types", models.JSONField(blank=True, default=list)),
                ("min_minutes", models.PositiveIntegerField(default=0)),
                ("product_ids", models.JSONField(blank=True, default=list)),
                ("category_ids", models.JSONField(blank=True, default=list)),
                ("combo", models.JSONField(blank=True, default=list)),
                ("bill_station_types", models.JSONField(blank=True, default=list)),
                ("min_subtotal", models.PositiveIntegerField(default=0)),
                ("min_service_amount", models.PositiveIntegerField(default=0)),
                ("min_play_minutes", models.PositiveIntegerField(default=0)),
                (
                    "discount_type",
                    models.CharField(
                        choices=[("percent", "Percent"), ("value", "Value")],
                        max_length=10,
                    ),
                ),
                ("discount_value", models.DecimalField(decimal_places=2, max_digits=12)),
                ("discount_max_amount", models.PositiveIntegerField(blank=True, null=True)),
                (
                    "applies_to",
                    models.CharField(
                        choices=[("play", "Play"), ("service", "Service"), ("bill", "Bill")],
                        default="bill",
                        max_length=10,
                    ),
                ),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["apply_order", "created_at"],
                "indexes": [
                    models.Index(fields=["active", "branch_id"], name="promotion_active_branch_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Bill",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("station_name", models.CharField(blank=True, default="", max_length=64)),
                ("staff_id", models.PositiveBigIntegerField(blank=True, null=True)),
                ("staff_name", models.CharField(blank=True, default="", max_length=150)),
                ("play_minutes", models.PositiveIntegerField(default=0)),
                ("play_amount", models.PositiveIntegerField(default=0)),
                ("service_amount", models.PositiveIntegerField(default=0)),
                ("subtotal", models.PositiveIntegerField(default=0)),
                ("discount_lines", models.JSONField(blank=True, default=list)),
                ("discount_total", models.PositiveIntegerField(default=0)),
                ("surcharge", models.PositiveIntegerField(default=0)),
                ("total", models.PositiveIntegerField(default=0)),
                ("payment_method", models.CharField(default="cash", max_length=20)),
                ("paid", models.BooleanField(default=False)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("note", models.CharField(blank=True, default="", max_length=255)),
                ("branch_id", models.CharField(blank=True, max_length=64, null=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "session",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bill",
                        to="billing.session",
                    ),
                ),
                (
                    "station",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bills",
                        to="billing.station",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["-created_at"], name="bill_created_at_idx"),
                    models.Index(fields=["paid"], name="bill_paid_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="BillLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("position", models.PositiveIntegerField(default=0)),
                (
                    "kind",
                    models.CharField(
                        choices=[("play", "Play"), ("product", "Product")],
                        max_length=10,
                    ),
                ),
                ("name", models.CharField(blank=True, default="", max_length=255)),
                ("unit_price", models.PositiveIntegerField(default=0)),
                ("quantity", models.PositiveIntegerField(default=0)),
                ("minutes", models.PositiveIntegerField(default=0)),
                ("rate_per_hour", models.PositiveIntegerField(default=0)),
                ("amount", models.PositiveIntegerField(default=0)),
                ("note", models.CharField(blank=True, default="", max_length=255)),
                (
                    "bill",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lines",
                        to="billing.bill",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="billing.product",
                    ),
                ),
            ],
            options={
                "ordering": ["position"],
            },
        ),
    ]
