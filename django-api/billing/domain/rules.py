"""Billing rules: billable minutes, play amounts, and running totals.

Raw minutes are always rounded up to the whole minute before the
rounding policy runs, so ``floor`` and ``round`` operate on the
ceiled raw value rather than on exact elapsed time. Reports built on
historical bills depend on this two-stage behaviour.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable

from billing.domain.models import (
    BillingRule,
    DiscountLine,
    DiscountTarget,
    DiscountType,
    RoundingMode,
    Session,
)
from billing.domain.value_objects import round_money

DEFAULT_BILLING_RULE = BillingRule(rounding_step=5, rounding_mode=RoundingMode.CEIL, grace_minutes=0)

_ONE_MINUTE = timedelta(minutes=1)


@dataclass(frozen=True)
class MinuteBreakdown:
    raw_minutes: int
    bill_minutes: int


@dataclass(frozen=True)
class DiscountRequest:
    """Caller-supplied discount, priced without eligibility checks."""

    name: str
    type: DiscountType
    value: Decimal
    max_amount: int | None = None
    applies_to: DiscountTarget = DiscountTarget.BILL


@dataclass(frozen=True)
class Quote:
    """Running totals of a session at a given end instant."""

    end_time: datetime
    raw_minutes: int
    bill_minutes: int
    rate_per_hour: int
    play_amount: int
    service_amount: int
    subtotal: int
    discount_lines: tuple[DiscountLine, ...]
    discount_total: int
    surcharge: int
    total: int


def effective_billing_rule(
    branch_rule: BillingRule | None,
    global_rule: BillingRule | None,
    default: BillingRule = DEFAULT_BILLING_RULE,
) -> BillingRule:
    """Branch override, then the global rule, then the built-in default."""
    if branch_rule is not None:
        return branch_rule
    if global_rule is not None:
        return global_rule
    return default


def _round_units(raw_minutes: int, step: int, mode: RoundingMode) -> int:
    if mode == RoundingMode.FLOOR:
        return raw_minutes // step
    if mode == RoundingMode.ROUND:
        # half-up on non-negative integers
        return (2 * raw_minutes + step) // (2 * step)
    return -(-raw_minutes // step)


def compute_minutes(
    start: datetime,
    end: datetime | None,
    rule: BillingRule,
) -> MinuteBreakdown:
    """Convert elapsed wall-clock time into billable minutes.

    ``end`` defaults to now, for quoting a session that is still open.
    """
    if end is None:
        end = datetime.now(tz=start.tzinfo)

    raw_minutes = max(0, math.ceil((end - start) / _ONE_MINUTE))
    if raw_minutes <= rule.grace_minutes:
        return MinuteBreakdown(raw_minutes=raw_minutes, bill_minutes=0)
    if rule.rounding_step <= 1:
        return MinuteBreakdown(raw_minutes=raw_minutes, bill_minutes=raw_minutes)

    units = _round_units(raw_minutes, rule.rounding_step, RoundingMode(rule.rounding_mode))
    return MinuteBreakdown(raw_minutes=raw_minutes, bill_minutes=units * rule.rounding_step)


def compute_amount(rate_per_hour: int, bill_minutes: int) -> int:
    return round_money(Decimal(rate_per_hour) * Decimal(bill_minutes) / Decimal(60))


def price_discount_requests(
    requests: Iterable[DiscountRequest],
    subtotal: int,
) -> tuple[DiscountLine, ...]:
    """Price caller-supplied discounts against the subtotal.

    Percent lines take a share of the subtotal, value lines take their
    face value. Each line is capped by its ``max_amount`` when one is
    set; zero or ``None`` means uncapped. Amounts are never negative.
    """
    lines = []
    for request in requests:
        if request.type == DiscountType.PERCENT:
            amount = Decimal(subtotal) * request.value / Decimal(100)
        else:
            amount = request.value
        if request.max_amount:
            amount = min(amount, Decimal(request.max_amount))
        lines.append(
            DiscountLine(
                name=request.name,
                type=request.type,
                value=request.value,
                amount=round_money(amount),
                applies_to=request.applies_to,
                max_amount=request.max_amount,
                meta={"manual": True},
            )
        )
    return tuple(lines)


def compute_total(subtotal: int, discount_total: int, surcharge: int) -> int:
    return round_money(subtotal - discount_total + surcharge)


def quote_session(
    session: Session,
    end_time: datetime,
    discount_requests: Iterable[DiscountRequest] = (),
    surcharge: int = 0,
) -> Quote:
    """Running totals for ``session`` as if it closed at ``end_time``.

    Uses the session's pricing and billing-rule snapshots only.
    """
    breakdown = compute_minutes(session.start_time, end_time, session.billing_rule)
    rate = session.pricing.rate_per_hour
    play_amount = compute_amount(rate, breakdown.bill_minutes)
    service_amount = session.service_amount
    subtotal = play_amount + service_amount

    discount_lines = price_discount_requests(discount_requests, subtotal)
    discount_total = sum(line.amount for line in discount_lines)

    return Quote(
        end_time=end_time,
        raw_minutes=breakdown.raw_minutes,
        bill_minutes=breakdown.bill_minutes,
        rate_per_hour=rate,
        play_amount=play_amount,
        service_amount=service_amount,
        subtotal=subtotal,
        discount_lines=discount_lines,
        discount_total=discount_total,
        surcharge=surcharge,
        total=compute_total(subtotal, discount_total, surcharge),
    )
