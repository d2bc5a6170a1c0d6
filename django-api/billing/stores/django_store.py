"""Django ORM implementation of the billing stores."""

from decimal import Decimal

import structlog
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from billing import models as orm
from billing.domain import (
    Bill,
    BillId,
    BillingRule,
    LineItem,
    LineItemId,
    PricingSnapshot,
    Product,
    ProductId,
    PromotionId,
    PromotionRule,
    Session,
    SessionId,
    Station,
    StationId,
    StationType,
    StationTypeId,
)
from billing.domain.errors import (
    DomainError,
    SessionNotOpenError,
    StationNotFoundError,
    StationOccupiedError,
)
from billing.domain.models import (
    BillLine,
    BillLineKind,
    BillRule,
    ComboRequirement,
    DayRate,
    DiscountLine,
    DiscountSpec,
    DiscountTarget,
    DiscountType,
    ProductRule,
    PromotionScope,
    PromotionWindow,
    RateSource,
    RoundingMode,
    SessionStatus,
    StationStatus,
)
from billing.domain.time_rules import TimeRange
from billing.stores.interfaces import CatalogStore, PromotionStore, SessionStore, SettingsStore

logger = structlog.get_logger(__name__)


# --------------------------------------------------------------------------
# Row -> domain conversion
# --------------------------------------------------------------------------


def _time_range(start: str, end: str) -> TimeRange | None:
    if not start or not end:
        return None
    return TimeRange.from_strings(start, end)


def _station_type_to_domain(row: orm.StationType) -> StationType:
    return StationType(
        id=StationTypeId(row.id),
        name=row.name,
        base_rate_per_hour=row.base_rate_per_hour,
        day_rates=tuple(
            DayRate(
                rate_per_hour=rate.rate_per_hour,
                days=frozenset(int(d) for d in rate.days or ()),
                time_range=_time_range(rate.time_from, rate.time_to),
            )
            for rate in row.day_rates.all()
        ),
    )


def _station_to_domain(row: orm.Station) -> Station:
    return Station(
        id=StationId(row.id),
        name=row.name,
        status=StationStatus(row.status),
        active=row.active,
        rate_per_hour=row.rate_per_hour,
        station_type=_station_type_to_domain(row.station_type) if row.station_type else None,
        branch_id=row.branch_id,
    )


def _product_to_domain(row: orm.Product) -> Product:
    return Product(
        id=ProductId(row.id),
        name=row.name,
        price=row.price,
        active=row.active,
        category_id=row.category_id,
    )


def _session_to_domain(row: orm.Session) -> Session:
    return Session(
        id=SessionId(row.id),
        station_id=StationId(row.station_id),
        start_time=row.start_time,
        pricing=PricingSnapshot(
            rate_per_hour=row.rate_per_hour,
            rate_source=RateSource(row.rate_source),
        ),
        billing_rule=BillingRule(
            rounding_step=row.rounding_step,
            rounding_mode=RoundingMode(row.rounding_mode),
            grace_minutes=row.grace_minutes,
        ),
        status=SessionStatus(row.status),
        items=tuple(
            LineItem(
                id=LineItemId(item.id),
                product_id=ProductId(item.product_id) if item.product_id else None,
                name=item.name_snapshot,
                price=item.price_snapshot,
                quantity=item.quantity,
                note=item.note,
            )
            for item in row.items.all()
        ),
        end_time=row.end_time,
        duration_minutes=row.duration_minutes,
        staff_start=row.staff_start,
        staff_end=row.staff_end,
        branch_id=row.branch_id,
    )


def _promotion_to_domain(row: orm.Promotion) -> PromotionRule:
    time_ranges = tuple(
        TimeRange.from_strings(r["from"], r["to"])
        for r in row.time_ranges or ()
        if r.get("from") and r.get("to")
    )
    return PromotionRule(
        id=PromotionId(row.id),
        name=row.name,
        code=row.code,
        scope=PromotionScope(row.scope),
        active=row.active,
        stackable=row.stackable,
        apply_order=row.apply_order,
        branch_id=row.branch_id,
        created_at=row.created_at,
        window=PromotionWindow(
            valid_from=row.valid_from,
            valid_to=row.valid_to,
            days_of_week=frozenset(int(d) for d in row.days_of_week or ()),
            time_ranges=time_ranges,
        ),
        station_type_ids=frozenset(str(t) for t in row.station_types or ()),
        min_minutes=row.min_minutes,
        product_rule=ProductRule(
            product_ids=frozenset(str(p) for p in row.product_ids or ()),
            category_ids=frozenset(str(c) for c in row.category_ids or ()),
            combo=tuple(
                ComboRequirement(product_id=str(c["product"]), quantity=int(c.get("qty", 1)))
                for c in row.combo or ()
            ),
        ),
        bill_rule=BillRule(
            station_type_ids=frozenset(str(t) for t in row.bill_station_types or ()),
            min_subtotal=row.min_subtotal,
            min_service_amount=row.min_service_amount,
            min_play_minutes=row.min_play_minutes,
        ),
        discount=DiscountSpec(
            type=DiscountType(row.discount_type),
            value=Decimal(row.discount_value),
            applies_to=DiscountTarget(row.applies_to),
            max_amount=row.discount_max_amount,
        ),
    )


def _discount_line_to_json(line: DiscountLine) -> dict:
    return {
        "name": line.name,
        "type": line.type.value,
        "value": str(line.value),
        "amount": line.amount,
        "applies_to": line.applies_to.value,
        "max_amount": line.max_amount,
        "meta": line.meta,
    }


def _discount_line_from_json(data: dict) -> DiscountLine:
    return DiscountLine(
        name=data["name"],
        type=DiscountType(data["type"]),
        value=Decimal(data["value"]),
        amount=int(data["amount"]),
        applies_to=DiscountTarget(data.get("applies_to", "bill")),
        max_amount=data.get("max_amount"),
        meta=data.get("meta") or {},
    )


def _bill_to_domain(row: orm.Bill) -> Bill:
    return Bill(
        id=BillId(row.id),
        session_id=SessionId(row.session_id),
        station_id=StationId(row.station_id),
        station_name=row.station_name,
        staff_id=row.staff_id,
        staff_name=row.staff_name,
        lines=tuple(
            BillLine(
                kind=BillLineKind(line.kind),
                name=line.name,
                amount=line.amount,
                product_id=ProductId(line.product_id) if line.product_id else None,
                unit_price=line.unit_price,
                quantity=line.quantity,
                minutes=line.minutes,
                rate_per_hour=line.rate_per_hour,
                note=line.note,
            )
            for line in row.lines.all()
        ),
        play_minutes=row.play_minutes,
        play_amount=row.play_amount,
        service_amount=row.service_amount,
        subtotal=row.subtotal,
        discount_lines=tuple(_discount_line_from_json(d) for d in row.discount_lines or ()),
        discount_total=row.discount_total,
        surcharge=row.surcharge,
        total=row.total,
        payment_method=row.payment_method,
        paid=row.paid,
        paid_at=row.paid_at,
        created_at=row.created_at,
        branch_id=row.branch_id,
        note=row.note,
    )


# --------------------------------------------------------------------------
# Store
# --------------------------------------------------------------------------


class DjangoStore(CatalogStore, SettingsStore, PromotionStore, SessionStore):
    """Relational store using Django ORM.

    The one-open-session-per-station invariant is the partial unique
    constraint ``one_open_session_per_station``; check-in relies on it
    rather than on a read-then-write check.
    """

    # catalog

    def get_station(self, station_id: StationId) -> Station | None:
        row = (
            orm.Station.objects.select_related("station_type")
            .prefetch_related("station_type__day_rates")
            .filter(pk=station_id.value)
            .first()
        )
        return _station_to_domain(row) if row else None

    def get_product(self, product_id: ProductId) -> Product | None:
        row = orm.Product.objects.filter(pk=product_id.value).first()
        return _product_to_domain(row) if row else None

    def get_product_categories(self, product_ids: list[ProductId]) -> dict[str, str | None]:
        rows = orm.Product.objects.filter(pk__in=[p.value for p in product_ids])
        return {str(pk): category for pk, category in rows.values_list("id", "category_id")}

    def get_staff_name(self, staff_id: int | None) -> str:
        if staff_id is None:
            return ""
        user = get_user_model().objects.filter(pk=staff_id).first()
        if user is None:
            return ""
        return user.get_full_name() or user.get_username()

    # settings

    def get_billing_rule(self, branch_id: str | None) -> BillingRule | None:
        if branch_id is None:
            query = orm.BillingSetting.objects.filter(scope=orm.BillingSetting.Scope.GLOBAL)
        else:
            query = orm.BillingSetting.objects.filter(
                scope=orm.BillingSetting.Scope.BRANCH, branch_id=branch_id
            )
        row = query.first()
        if row is None:
            return None
        return BillingRule(
            rounding_step=row.rounding_step,
            rounding_mode=RoundingMode(row.rounding_mode),
            grace_minutes=row.grace_minutes,
        )

    # promotions

    def list_active_promotions(self, branch_id: str | None) -> list[PromotionRule]:
        query = orm.Promotion.objects.filter(active=True)
        if branch_id:
            query = query.filter(Q(branch_id=branch_id) | Q(branch_id__isnull=True))
        else:
            query = query.filter(branch_id__isnull=True)
        rules = []
        for row in query.order_by("apply_order", "created_at", "id"):
            try:
                rules.append(_promotion_to_domain(row))
            except (DomainError, KeyError, TypeError, ValueError, AttributeError) as exc:
                # malformed rows are skipped, never raised
                logger.warning(
                    "promotion_skipped_malformed",
                    promotion_id=str(row.id),
                    error=str(exc),
                )
        return rules

    # sessions

    def atomic(self):
        return transaction.atomic()

    def get_session(self, session_id: SessionId, for_update: bool = False) -> Session | None:
        query = orm.Session.objects.filter(pk=session_id.value)
        if for_update:
            query = query.select_for_update()
        row = query.prefetch_related("items").first()
        return _session_to_domain(row) if row else None

    def find_open_session(self, station_id: StationId) -> Session | None:
        row = (
            orm.Session.objects.filter(station_id=station_id.value, status=SessionStatus.OPEN.value)
            .prefetch_related("items")
            .first()
        )
        return _session_to_domain(row) if row else None

    def create_session(self, session: Session) -> Session:
        try:
            with transaction.atomic():
                orm.Session.objects.create(
                    id=session.id.value,
                    station_id=session.station_id.value,
                    status=session.status.value,
                    start_time=session.start_time,
                    rate_per_hour=session.pricing.rate_per_hour,
                    rate_source=session.pricing.rate_source.value,
                    rounding_step=session.billing_rule.rounding_step,
                    rounding_mode=session.billing_rule.rounding_mode.value,
                    grace_minutes=session.billing_rule.grace_minutes,
                    staff_start=session.staff_start,
                    branch_id=session.branch_id,
                )
        except IntegrityError as exc:
            open_exists = orm.Session.objects.filter(
                station_id=session.station_id.value, status=SessionStatus.OPEN.value
            ).exists()
            if open_exists:
                logger.info("open_session_constraint_hit", station_id=str(session.station_id))
                raise StationOccupiedError(str(session.station_id)) from exc
            raise
        return session

    def save_items(self, session: Session) -> Session:
        with transaction.atomic():
            touched = orm.Session.objects.filter(
                pk=session.id.value, status=SessionStatus.OPEN.value
            ).update(updated_at=timezone.now())
            if not touched:
                raise SessionNotOpenError(str(session.id))

            orm.SessionItem.objects.filter(session_id=session.id.value).delete()
            orm.SessionItem.objects.bulk_create(
                orm.SessionItem(
                    id=item.id.value,
                    session_id=session.id.value,
                    position=position,
                    product_id=item.product_id.value if item.product_id else None,
                    name_snapshot=item.name,
                    price_snapshot=item.price,
                    quantity=item.quantity,
                    note=item.note,
                )
                for position, item in enumerate(session.items)
            )
        return session

    def save_session_state(self, session: Session) -> Session:
        orm.Session.objects.filter(pk=session.id.value).update(
            status=session.status.value,
            end_time=session.end_time,
            duration_minutes=session.duration_minutes,
            staff_end=session.staff_end,
            updated_at=timezone.now(),
        )
        return session

    def set_station_status(self, station_id: StationId, status: StationStatus) -> None:
        updated = orm.Station.objects.filter(pk=station_id.value).update(
            status=status.value, updated_at=timezone.now()
        )
        if not updated:
            raise StationNotFoundError(str(station_id))

    # bills

    def create_bill(self, bill: Bill) -> Bill:
        with transaction.atomic():
            row = orm.Bill.objects.create(
                id=bill.id.value,
                session_id=bill.session_id.value,
                station_id=bill.station_id.value,
                station_name=bill.station_name,
                staff_id=bill.staff_id,
                staff_name=bill.staff_name,
                play_minutes=bill.play_minutes,
                play_amount=bill.play_amount,
                service_amount=bill.service_amount,
                subtotal=bill.subtotal,
                discount_lines=[_discount_line_to_json(d) for d in bill.discount_lines],
                discount_total=bill.discount_total,
                surcharge=bill.surcharge,
                total=bill.total,
                payment_method=bill.payment_method,
                paid=bill.paid,
                paid_at=bill.paid_at,
                note=bill.note,
                branch_id=bill.branch_id,
                created_at=bill.created_at,
            )
            orm.BillLine.objects.bulk_create(
                orm.BillLine(
                    bill=row,
                    position=position,
                    kind=line.kind.value,
                    name=line.name,
                    product_id=line.product_id.value if line.product_id else None,
                    unit_price=line.unit_price,
                    quantity=line.quantity,
                    minutes=line.minutes,
                    rate_per_hour=line.rate_per_hour,
                    amount=line.amount,
                    note=line.note,
                )
                for position, line in enumerate(bill.lines)
            )
        return bill

    def get_bill(self, bill_id: BillId) -> Bill | None:
        row = orm.Bill.objects.filter(pk=bill_id.value).prefetch_related("lines").first()
        return _bill_to_domain(row) if row else None

    def save_bill_payment(self, bill: Bill) -> Bill:
        orm.Bill.objects.filter(pk=bill.id.value).update(
            paid=bill.paid,
            paid_at=bill.paid_at,
            payment_method=bill.payment_method,
        )
        return bill
