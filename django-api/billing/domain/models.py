"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in billing/models.py (persistence layer).

Aggregates are frozen; state changes go through methods that return a
new instance, so a Session can only be changed while it is open.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Self

from billing.domain.errors import (
    InvalidQuantityError,
    InvalidRateError,
    LineItemNotFoundError,
    SessionNotOpenError,
)
from billing.domain.time_rules import TimeRange
from billing.domain.value_objects import (
    BillId,
    LineItemId,
    ProductId,
    PromotionId,
    SessionId,
    StationId,
    StationTypeId,
    round_money,
)


class StationStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"
    OUT_OF_SERVICE = "out_of_service"


class SessionStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    VOID = "void"


class RoundingMode(str, Enum):
    CEIL = "ceil"
    FLOOR = "floor"
    ROUND = "round"


class RateSource(str, Enum):
    STATION = "station"
    TYPE = "type"


class PromotionScope(str, Enum):
    TIME = "time"
    PRODUCT = "product"
    BILL = "bill"


class DiscountType(str, Enum):
    PERCENT = "percent"
    VALUE = "value"


class DiscountTarget(str, Enum):
    PLAY = "play"
    SERVICE = "service"
    BILL = "bill"


class BillLineKind(str, Enum):
    PLAY = "play"
    PRODUCT = "product"


# --------------------------------------------------------------------------
# Catalog
# --------------------------------------------------------------------------


@dataclass(frozen=True)
class DayRate:
    """One band of a station type's schedule.

    An empty ``days`` set means any day, a missing ``time_range`` means
    any time of day.
    """

    rate_per_hour: int
    days: frozenset[int] = frozenset()
    time_range: TimeRange | None = None

    def __post_init__(self) -> None:
        if self.rate_per_hour < 0:
            raise InvalidRateError(self.rate_per_hour)


@dataclass(frozen=True)
class StationType:
    """Domain representation of a StationType and its rate schedule."""

    id: StationTypeId
    name: str
    base_rate_per_hour: int = 0
    day_rates: tuple[DayRate, ...] = ()

    def __post_init__(self) -> None:
        if self.base_rate_per_hour < 0:
            raise InvalidRateError(self.base_rate_per_hour)


@dataclass(frozen=True)
class Station:
    """Domain representation of a Station."""

    id: StationId
    name: str
    status: StationStatus = StationStatus.AVAILABLE
    active: bool = True
    rate_per_hour: int | None = None
    station_type: StationType | None = None
    branch_id: str | None = None

    def __post_init__(self) -> None:
        if self.rate_per_hour is not None and self.rate_per_hour < 0:
            raise InvalidRateError(self.rate_per_hour)


@dataclass(frozen=True)
class Product:
    """Domain representation of a Product."""

    id: ProductId
    name: str
    price: int
    active: bool = True
    category_id: str | None = None


# --------------------------------------------------------------------------
# Session
# --------------------------------------------------------------------------


@dataclass(frozen=True)
class BillingRule:
    """Minute rounding policy."""

    rounding_step: int = 5
    rounding_mode: RoundingMode = RoundingMode.CEIL
    grace_minutes: int = 0


@dataclass(frozen=True)
class PricingSnapshot:
    """Hourly rate captured at check-in and where it came from."""

    rate_per_hour: int
    rate_source: RateSource


@dataclass(frozen=True)
class LineItem:
    """A service item in a session, priced from a snapshot."""

    id: LineItemId
    product_id: ProductId | None
    name: str
    price: int
    quantity: int
    note: str = ""

    @property
    def amount(self) -> int:
        return round_money(self.price * self.quantity)


@dataclass(frozen=True)
class Session:
    """Domain representation of a Session."""

    id: SessionId
    station_id: StationId
    start_time: datetime
    pricing: PricingSnapshot
    billing_rule: BillingRule
    status: SessionStatus = SessionStatus.OPEN
    items: tuple[LineItem, ...] = ()
    end_time: datetime | None = None
    duration_minutes: int | None = None
    staff_start: int | None = None
    staff_end: int | None = None
    branch_id: str | None = None

    @classmethod
    def start(
        cls,
        station: Station,
        pricing: PricingSnapshot,
        billing_rule: BillingRule,
        start_time: datetime,
        staff_id: int | None = None,
    ) -> Self:
        return cls(
            id=SessionId.new(),
            station_id=station.id,
            start_time=start_time,
            pricing=pricing,
            billing_rule=billing_rule,
            staff_start=staff_id,
            branch_id=station.branch_id,
        )

    @property
    def is_open(self) -> bool:
        return self.status == SessionStatus.OPEN

    @property
    def service_amount(self) -> int:
        return sum(item.amount for item in self.items)

    def find_item(self, item_id: LineItemId) -> LineItem:
        for item in self.items:
            if item.id == item_id:
                return item
        raise LineItemNotFoundError(str(item_id))

    def add_item(self, product: Product, quantity: int, note: str = "") -> Self:
        """Merge into the product's existing line, or append a new one."""
        self._require_open()
        if quantity <= 0:
            raise InvalidQuantityError(quantity)

        items = list(self.items)
        for index, item in enumerate(items):
            if item.product_id == product.id:
                items[index] = replace(
                    item,
                    quantity=item.quantity + quantity,
                    note=note or item.note,
                )
                return replace(self, items=tuple(items))

        items.append(
            LineItem(
                id=LineItemId.new(),
                product_id=product.id,
                name=product.name,
                price=product.price,
                quantity=quantity,
                note=note,
            )
        )
        return replace(self, items=tuple(items))

    def update_item_quantity(self, item_id: LineItemId, quantity: int) -> Self:
        """Set a line's quantity; zero or less removes the line."""
        self._require_open()
        target = self.find_item(item_id)
        if quantity <= 0:
            return self._without(target.id)
        if quantity == target.quantity:
            return self
        return replace(
            self,
            items=tuple(
                replace(item, quantity=quantity) if item.id == target.id else item
                for item in self.items
            ),
        )

    def remove_item(self, item_id: LineItemId) -> Self:
        self._require_open()
        target = self.find_item(item_id)
        return self._without(target.id)

    def close(self, end_time: datetime, bill_minutes: int, staff_id: int | None) -> Self:
        self._require_open()
        return replace(
            self,
            status=SessionStatus.CLOSED,
            end_time=end_time,
            duration_minutes=bill_minutes,
            staff_end=staff_id if staff_id is not None else self.staff_start,
        )

    def void(self, end_time: datetime, staff_id: int | None) -> Self:
        self._require_open()
        return replace(
            self,
            status=SessionStatus.VOID,
            end_time=end_time,
            staff_end=staff_id if staff_id is not None else self.staff_start,
        )

    def _without(self, item_id: LineItemId) -> Self:
        return replace(self, items=tuple(i for i in self.items if i.id != item_id))

    def _require_open(self) -> None:
        if not self.is_open:
            raise SessionNotOpenError(str(self.id))


# --------------------------------------------------------------------------
# Promotions
# --------------------------------------------------------------------------


@dataclass(frozen=True)
class PromotionWindow:
    """When a promotion is valid. Empty filters match everything."""

    valid_from: date | None = None
    valid_to: date | None = None
    days_of_week: frozenset[int] = frozenset()
    time_ranges: tuple[TimeRange, ...] = ()


@dataclass(frozen=True)
class ComboRequirement:
    product_id: str
    quantity: int = 1


@dataclass(frozen=True)
class ProductRule:
    product_ids: frozenset[str] = frozenset()
    category_ids: frozenset[str] = frozenset()
    combo: tuple[ComboRequirement, ...] = ()


@dataclass(frozen=True)
class BillRule:
    station_type_ids: frozenset[str] = frozenset()
    min_subtotal: int = 0
    min_service_amount: int = 0
    min_play_minutes: int = 0


@dataclass(frozen=True)
class DiscountSpec:
    type: DiscountType
    value: Decimal
    applies_to: DiscountTarget = DiscountTarget.BILL
    max_amount: int | None = None


@dataclass(frozen=True)
class PromotionRule:
    """Domain representation of a promotion and its eligibility gates."""

    id: PromotionId
    name: str
    scope: PromotionScope
    discount: DiscountSpec
    created_at: datetime
    code: str = ""
    active: bool = True
    stackable: bool = True
    apply_order: int = 0
    branch_id: str | None = None
    window: PromotionWindow = PromotionWindow()
    station_type_ids: frozenset[str] = frozenset()
    min_minutes: int = 0
    product_rule: ProductRule = ProductRule()
    bill_rule: BillRule = BillRule()


# --------------------------------------------------------------------------
# Bill
# --------------------------------------------------------------------------


@dataclass(frozen=True)
class DiscountLine:
    name: str
    type: DiscountType
    value: Decimal
    amount: int
    applies_to: DiscountTarget = DiscountTarget.BILL
    max_amount: int | None = None
    meta: dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class BillLine:
    """One charge on a bill: the play time or a service item."""

    kind: BillLineKind
    name: str
    amount: int
    product_id: ProductId | None = None
    unit_price: int = 0
    quantity: int = 0
    minutes: int = 0
    rate_per_hour: int = 0
    note: str = ""


@dataclass(frozen=True)
class Bill:
    """Settled record produced at checkout.

    Only the payment fields may change after creation. ``note`` is
    written from the admin and read back as-is; checkout leaves it empty.
    """

    id: BillId
    session_id: SessionId
    station_id: StationId
    station_name: str
    staff_id: int | None
    staff_name: str
    lines: tuple[BillLine, ...]
    play_minutes: int
    play_amount: int
    service_amount: int
    subtotal: int
    discount_lines: tuple[DiscountLine, ...]
    discount_total: int
    surcharge: int
    total: int
    payment_method: str
    paid: bool
    paid_at: datetime | None
    created_at: datetime
    branch_id: str | None = None
    note: str = ""

    def mark_paid(self, paid_at: datetime, payment_method: str | None = None) -> Self:
        if self.paid:
            return self
        return replace(
            self,
            paid=True,
            paid_at=paid_at,
            payment_method=payment_method or self.payment_method,
        )
