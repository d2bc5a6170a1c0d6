"""Promotion engine: eligibility, ordering, and stacking of discount rules.

Three "remaining" pools (play, service, bill) start at the play amount,
the service amount and the subtotal. Every applied discount is deducted
from the pool its target maps to and no pool ever drops below zero, so
stacked rules can never discount past what is left.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from billing.domain.models import (
    DiscountLine,
    DiscountSpec,
    DiscountTarget,
    DiscountType,
    ProductRule,
    PromotionRule,
    PromotionScope,
    PromotionWindow,
    Session,
)
from billing.domain.rules import Quote
from billing.domain.time_rules import matches_days, minute_of_day
from billing.domain.value_objects import round_money


@dataclass(frozen=True)
class ServiceItem:
    product_id: str | None
    category_id: str | None
    quantity: int
    amount: int


@dataclass(frozen=True)
class PromotionContext:
    at: datetime
    station_type_id: str | None
    play_minutes: int
    play_amount: int
    service_items: tuple[ServiceItem, ...]
    service_amount: int
    subtotal: int
    branch_id: str | None = None


@dataclass
class RemainingPools:
    play: int
    service: int
    bill: int

    def get(self, target: DiscountTarget) -> int:
        return getattr(self, target.value)

    def deduct(self, target: DiscountTarget, amount: int) -> None:
        setattr(self, target.value, max(0, self.get(target) - amount))


@dataclass(frozen=True)
class PromotionResult:
    lines: tuple[DiscountLine, ...]
    discount_total: int
    remaining: RemainingPools = field(compare=False)


def promo_is_active_at(window: PromotionWindow, at: datetime) -> bool:
    """Check a promotion's date range, weekday filter and time ranges.

    The end date is inclusive up to the end of that day.
    """
    day = at.date()
    if window.valid_from is not None and day < window.valid_from:
        return False
    if window.valid_to is not None and day > window.valid_to:
        return False
    if not matches_days(window.days_of_week, at):
        return False
    if window.time_ranges:
        minute = minute_of_day(at)
        if not any(time_range.contains(minute) for time_range in window.time_ranges):
            return False
    return True


def sum_eligible_product_amount(items: Iterable[ServiceItem], rule: ProductRule) -> int:
    """Total of the service items a product rule applies to.

    A combo requires every listed product with at least its quantity,
    otherwise nothing is eligible.
    """
    eligible = [
        item
        for item in items
        if (not rule.product_ids or item.product_id in rule.product_ids)
        and (not rule.category_ids or item.category_id in rule.category_ids)
    ]

    for requirement in rule.combo:
        quantity = sum(i.quantity for i in eligible if i.product_id == requirement.product_id)
        if quantity < requirement.quantity:
            return 0

    return sum(item.amount for item in eligible)


def compute_discount_value(discount: DiscountSpec, base: int) -> int:
    if discount.type == DiscountType.PERCENT:
        percent = min(max(discount.value, Decimal(0)), Decimal(100))
        amount = round_money(Decimal(base) * percent / Decimal(100))
    else:
        amount = round_money(discount.value)

    if discount.max_amount is not None:
        amount = min(amount, max(0, discount.max_amount))
    return min(max(amount, 0), base)


def _allows_station_type(allowed: frozenset[str], station_type_id: str | None) -> bool:
    return not allowed or station_type_id in allowed


def _eligible_base(
    rule: PromotionRule,
    context: PromotionContext,
    pool: int,
    meta: dict,
) -> int:
    target = rule.discount.applies_to

    if rule.scope == PromotionScope.TIME:
        if not _allows_station_type(rule.station_type_ids, context.station_type_id):
            return 0
        if context.play_minutes < rule.min_minutes:
            return 0
        return pool

    if rule.scope == PromotionScope.PRODUCT:
        if target == DiscountTarget.PLAY:
            return 0
        base = sum_eligible_product_amount(context.service_items, rule.product_rule)
        meta["eligible_service_base"] = base
        return min(pool, base)

    if rule.scope == PromotionScope.BILL:
        bill_rule = rule.bill_rule
        if not _allows_station_type(bill_rule.station_type_ids, context.station_type_id):
            return 0
        if context.subtotal < bill_rule.min_subtotal:
            return 0
        if context.service_amount < bill_rule.min_service_amount:
            return 0
        if context.play_minutes < bill_rule.min_play_minutes:
            return 0
        return pool

    return 0


def apply_promotions(
    context: PromotionContext,
    rules: Iterable[PromotionRule],
) -> PromotionResult:
    """Apply ``rules`` in the order given.

    Rules are expected pre-sorted by ``(apply_order, created_at)``. An
    ineligible rule is skipped. Once a non-stackable rule produces a
    discount, evaluation stops.
    """
    pools = RemainingPools(
        play=round_money(context.play_amount),
        service=round_money(context.service_amount),
        bill=round_money(context.subtotal),
    )
    lines: list[DiscountLine] = []

    for rule in rules:
        if not rule.active or not promo_is_active_at(rule.window, context.at):
            continue

        target = rule.discount.applies_to
        pool = pools.get(target)
        if pool <= 0:
            continue

        meta = {"promotion_id": str(rule.id), "scope": rule.scope.value, "code": rule.code}
        base = _eligible_base(rule, context, pool, meta)
        if base <= 0:
            continue

        amount = compute_discount_value(rule.discount, base)
        if amount <= 0:
            continue

        pools.deduct(target, amount)
        lines.append(
            DiscountLine(
                name=rule.name,
                type=rule.discount.type,
                value=rule.discount.value,
                amount=amount,
                applies_to=target,
                max_amount=rule.discount.max_amount,
                meta=meta,
            )
        )

        if not rule.stackable:
            break

    return PromotionResult(
        lines=tuple(lines),
        discount_total=sum(line.amount for line in lines),
        remaining=pools,
    )


def build_promotion_context(
    session: Session,
    quote: Quote,
    station_type_id: str | None,
    categories: dict[str, str | None] | None = None,
    at: datetime | None = None,
) -> PromotionContext:
    """Build the evaluation context for a session from its quote.

    ``categories`` maps product ids to category ids for product-scope
    rules; items without an entry have no category. ``at`` overrides the
    evaluation instant, normally with the local wall-clock time.
    """
    categories = categories or {}
    items = tuple(
        ServiceItem(
            product_id=str(item.product_id) if item.product_id else None,
            category_id=categories.get(str(item.product_id)) if item.product_id else None,
            quantity=item.quantity,
            amount=item.amount,
        )
        for item in session.items
    )
    return PromotionContext(
        at=at or quote.end_time,
        station_type_id=station_type_id,
        play_minutes=quote.bill_minutes,
        play_amount=quote.play_amount,
        service_items=items,
        service_amount=quote.service_amount,
        subtotal=quote.subtotal,
        branch_id=session.branch_id,
    )
