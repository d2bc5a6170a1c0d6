"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/.
"""

import uuid

from django.core.exceptions import ValidationError
from django.core.validators import RegexValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone

hhmm_validator = RegexValidator(r"^([01]?\d|2[0-3]):[0-5]\d$", "Use HH:MM")


def _is_hhmm(value) -> bool:
    if not isinstance(value, str):
        return False
    try:
        hhmm_validator(value)
    except ValidationError:
        return False
    return True


class StationStatus(models.TextChoices):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"
    OUT_OF_SERVICE = "out_of_service"


class SessionStatus(models.TextChoices):
    OPEN = "open"
    CLOSED = "closed"
    VOID = "void"


class RoundingMode(models.TextChoices):
    CEIL = "ceil"
    FLOOR = "floor"
    ROUND = "round"


class StationType(models.Model):
    """Persistence model for station types and their base rate."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100)
    base_rate_per_hour = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name


class DayRate(models.Model):
    """One ordered band of a station type's rate schedule."""

    station_type = models.ForeignKey(
        StationType, on_delete=models.CASCADE, related_name="day_rates"
    )
    position = models.PositiveIntegerField(default=0)
    days = models.JSONField(default=list, blank=True)
    time_from = models.CharField(max_length=5, blank=True, validators=[hhmm_validator])
    time_to = models.CharField(max_length=5, blank=True, validators=[hhmm_validator])
    rate_per_hour = models.PositiveIntegerField()

    class Meta:
        ordering = ["position", "id"]

    def __str__(self) -> str:
        return f"{self.station_type.name} {self.time_from}-{self.time_to}: {self.rate_per_hour}"


class Station(models.Model):
    """Persistence model for stations (tables)."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=64)
    status = models.CharField(
        max_length=20, choices=StationStatus.choices, default=StationStatus.AVAILABLE
    )
    active = models.BooleanField(default=True)
    rate_per_hour = models.PositiveIntegerField(null=True, blank=True)
    station_type = models.ForeignKey(
        StationType,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stations",
    )
    branch_id = models.CharField(max_length=64, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["status"], name="station_status_idx"),
        ]

    def __str__(self) -> str:
        return self.name


class Product(models.Model):
    """Persistence model for sellable products."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    price = models.PositiveIntegerField()
    active = models.BooleanField(default=True)
    category_id = models.CharField(max_length=64, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.name} - {self.price}"


class BillingSetting(models.Model):
    """Rounding policy for the global scope or one branch."""

    class Scope(models.TextChoices):
        GLOBAL = "global"
        BRANCH = "branch"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    scope = models.CharField(max_length=10, choices=Scope.choices, default=Scope.GLOBAL)
    branch_id = models.CharField(max_length=64, null=True, blank=True)
    rounding_step = models.PositiveIntegerField(default=5)
    rounding_mode = models.CharField(
        max_length=10, choices=RoundingMode.choices, default=RoundingMode.CEIL
    )
    grace_minutes = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["scope"],
                condition=Q(scope="global"),
                name="single_global_billing_setting",
            ),
            models.UniqueConstraint(
                fields=["branch_id"],
                condition=Q(scope="branch"),
                name="unique_branch_billing_setting",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.scope} {self.branch_id or ''}".strip()


class Session(models.Model):
    """Persistence model for rental sessions with their snapshots."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    station = models.ForeignKey(Station, on_delete=models.PROTECT, related_name="sessions")
    status = models.CharField(
        max_length=10, choices=SessionStatus.choices, default=SessionStatus.OPEN
    )
    start_time = models.DateTimeField()
    end_time = models.DateTimeField(null=True, blank=True)
    duration_minutes = models.PositiveIntegerField(null=True, blank=True)
    rate_per_hour = models.PositiveIntegerField()
    rate_source = models.CharField(max_length=10)
    rounding_step = models.PositiveIntegerField()
    rounding_mode = models.CharField(max_length=10, choices=RoundingMode.choices)
    grace_minutes = models.PositiveIntegerField()
    staff_start = models.PositiveBigIntegerField(null=True, blank=True)
    staff_end = models.PositiveBigIntegerField(null=True, blank=True)
    branch_id = models.CharField(max_length=64, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-start_time"]
        constraints = [
            models.UniqueConstraint(
                fields=["station"],
                condition=Q(status="open"),
                name="one_open_session_per_station",
            ),
        ]
        indexes = [
            models.Index(fields=["station", "status"], name="session_station_status_idx"),
            models.Index(fields=["start_time"], name="session_start_time_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.station.name} - {self.start_time}"


class SessionItem(models.Model):
    """Service item of a session, priced from a snapshot."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    session = models.ForeignKey(Session, on_delete=models.CASCADE, related_name="items")
    position = models.PositiveIntegerField(default=0)
    product = models.ForeignKey(
        Product, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    name_snapshot = models.CharField(max_length=255)
    price_snapshot = models.PositiveIntegerField()
    quantity = models.PositiveIntegerField()
    note = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        ordering = ["position"]

    def __str__(self) -> str:
        return f"{self.name_snapshot} x{self.quantity}"


class Promotion(models.Model):
    """Persistence model for promotion rules."""

    class Scope(models.TextChoices):
        TIME = "time"
        PRODUCT = "product"
        BILL = "bill"

    class DiscountType(models.TextChoices):
        PERCENT = "percent"
        VALUE = "value"

    class Target(models.TextChoices):
        PLAY = "play"
        SERVICE = "service"
        BILL = "bill"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    code = models.CharField(max_length=64, blank=True, default="")
    active = models.BooleanField(default=True)
    branch_id = models.CharField(max_length=64, null=True, blank=True)
    apply_order = models.IntegerField(default=0)
    stackable = models.BooleanField(default=True)
    scope = models.CharField(max_length=10, choices=Scope.choices)

    valid_from = models.DateField(null=True, blank=True)
    valid_to = models.DateField(null=True, blank=True)
    days_of_week = models.JSONField(default=list, blank=True)
    time_ranges = models.JSONField(default=list, blank=True)

    station_types = models.JSONField(default=list, blank=True)
    min_minutes = models.PositiveIntegerField(default=0)

    product_ids = models.JSONField(default=list, blank=True)
    category_ids = models.JSONField(default=list, blank=True)
    combo = models.JSONField(default=list, blank=True)

    bill_station_types = models.JSONField(default=list, blank=True)
    min_subtotal = models.PositiveIntegerField(default=0)
    min_service_amount = models.PositiveIntegerField(default=0)
    min_play_minutes = models.PositiveIntegerField(default=0)

    discount_type = models.CharField(max_length=10, choices=DiscountType.choices)
    discount_value = models.DecimalField(max_digits=12, decimal_places=2)
    discount_max_amount = models.PositiveIntegerField(null=True, blank=True)
    applies_to = models.CharField(max_length=10, choices=Target.choices, default=Target.BILL)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["apply_order", "created_at"]
        indexes = [
            models.Index(fields=["active", "branch_id"], name="promotion_active_branch_idx"),
        ]

    def __str__(self) -> str:
        return self.name

    def clean(self) -> None:
        errors = {}
        days = self.days_of_week or []
        if not isinstance(days, list) or not all(
            isinstance(d, int) and 0 <= d <= 6 for d in days
        ):
            errors["days_of_week"] = "Use a list of weekday numbers 0 (Sunday) to 6."

        ranges = self.time_ranges or []
        valid_ranges = isinstance(ranges, list) and all(
            isinstance(r, dict) and _is_hhmm(r.get("from")) and _is_hhmm(r.get("to"))
            for r in ranges
        )
        if not valid_ranges:
            errors["time_ranges"] = 'Use a list of {"from": "HH:MM", "to": "HH:MM"} objects.'

        if errors:
            raise ValidationError(errors)


class Bill(models.Model):
    """Settled bill. Only payment fields change after creation."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    session = models.OneToOneField(Session, on_delete=models.PROTECT, related_name="bill")
    station = models.ForeignKey(Station, on_delete=models.PROTECT, related_name="bills")
    station_name = models.CharField(max_length=64, blank=True, default="")
    staff_id = models.PositiveBigIntegerField(null=True, blank=True)
    staff_name = models.CharField(max_length=150, blank=True, default="")
    play_minutes = models.PositiveIntegerField(default=0)
    play_amount = models.PositiveIntegerField(default=0)
    service_amount = models.PositiveIntegerField(default=0)
    subtotal = models.PositiveIntegerField(default=0)
    discount_lines = models.JSONField(default=list, blank=True)
    discount_total = models.PositiveIntegerField(default=0)
    surcharge = models.PositiveIntegerField(default=0)
    total = models.PositiveIntegerField(default=0)
    payment_method = models.CharField(max_length=20, default="cash")
    paid = models.BooleanField(default=False)
    paid_at = models.DateTimeField(null=True, blank=True)
    # staff remark, edited in the admin only
    note = models.CharField(max_length=255, blank=True, default="")
    branch_id = models.CharField(max_length=64, null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["-created_at"], name="bill_created_at_idx"),
            models.Index(fields=["paid"], name="bill_paid_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.station_name} - {self.total}"


class BillLine(models.Model):
    """One charge line of a bill."""

    class Kind(models.TextChoices):
        PLAY = "play"
        PRODUCT = "product"

    bill = models.ForeignKey(Bill, on_delete=models.CASCADE, related_name="lines")
    position = models.PositiveIntegerField(default=0)
    kind = models.CharField(max_length=10, choices=Kind.choices)
    name = models.CharField(max_length=255, blank=True, default="")
    product = models.ForeignKey(
        Product, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    unit_price = models.PositiveIntegerField(default=0)
    quantity = models.PositiveIntegerField(default=0)
    minutes = models.PositiveIntegerField(default=0)
    rate_per_hour = models.PositiveIntegerField(default=0)
    amount = models.PositiveIntegerField(default=0)
    note = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        ordering = ["position"]

    def __str__(self) -> str:
        return f"{self.kind} {self.name} {self.amount}"
