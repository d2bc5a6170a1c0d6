"""Checkout and bill payment tests against the in-memory store."""

from dataclasses import replace
from datetime import timedelta
from decimal import Decimal

import pytest

from billing.domain import BillId, PromotionRule
from billing.domain.errors import (
    BillNotFoundError,
    SessionAlreadyClosedError,
    SessionNotFoundError,
    SessionNotOpenError,
)
from billing.domain.models import (
    BillLineKind,
    DiscountSpec,
    DiscountTarget,
    DiscountType,
    PromotionScope,
    SessionStatus,
    StationStatus,
)
from billing.domain.rules import DiscountRequest
from billing.domain.value_objects import PromotionId


@pytest.fixture
def ten_percent_off(store, now) -> PromotionRule:
    rule = PromotionRule(
        id=PromotionId.new(),
        name="Weekday 10%",
        scope=PromotionScope.BILL,
        discount=DiscountSpec(
            type=DiscountType.PERCENT,
            value=Decimal("10"),
            applies_to=DiscountTarget.BILL,
            max_amount=20_000,
        ),
        created_at=now - timedelta(days=30),
        stackable=False,
    )
    store.promotions.append(rule)
    return rule


@pytest.fixture
def with_tea(session_service, open_session, product):
    return session_service.add_item(str(open_session.id), str(product.id), 2)


class TestCheckout:
    def test_full_flow_with_promotion(
        self, checkout_service, with_tea, ten_percent_off, store, station, now
    ):
        store.staff[7] = "Linh"

        result = checkout_service.checkout(
            str(with_tea.id), end_at=now + timedelta(minutes=47)
        )
        bill = result.bill

        assert bill.play_minutes == 60
        assert bill.play_amount == 60_000
        assert bill.service_amount == 50_000
        assert bill.subtotal == 110_000
        assert bill.discount_total == 11_000
        assert bill.total == 99_000
        assert bill.staff_id == 7
        assert bill.staff_name == "Linh"
        assert bill.station_name == "Table 1"
        assert [line.kind for line in bill.lines] == [BillLineKind.PLAY, BillLineKind.PRODUCT]
        assert bill.discount_lines[0].meta["promotion_id"] == str(ten_percent_off.id)

        assert result.session.status == SessionStatus.CLOSED
        assert result.session.duration_minutes == 60
        assert store.sessions[with_tea.id].status == SessionStatus.CLOSED
        assert store.stations[station.id].status == StationStatus.AVAILABLE
        assert store.bills[bill.id] == bill

    def test_manual_discounts_replace_promotions(
        self, checkout_service, with_tea, ten_percent_off, now
    ):
        bill = checkout_service.checkout(
            str(with_tea.id),
            end_at=now + timedelta(minutes=47),
            discount_requests=[
                DiscountRequest(name="Owner", type=DiscountType.VALUE, value=Decimal("5000"))
            ],
            surcharge=2_000,
        ).bill

        (line,) = bill.discount_lines
        assert line.name == "Owner"
        assert line.meta == {"manual": True}
        assert bill.total == 110_000 - 5_000 + 2_000

    def test_empty_discount_list_means_no_discount(
        self, checkout_service, with_tea, ten_percent_off, now
    ):
        bill = checkout_service.checkout(
            str(with_tea.id), end_at=now + timedelta(minutes=47), discount_requests=[]
        ).bill
        assert bill.discount_total == 0
        assert bill.total == 110_000

    def test_discount_total_is_sum_of_lines_and_total_floors_at_zero(
        self, checkout_service, with_tea, now
    ):
        bill = checkout_service.checkout(
            str(with_tea.id),
            end_at=now + timedelta(minutes=47),
            discount_requests=[
                DiscountRequest(name="A", type=DiscountType.PERCENT, value=Decimal("80")),
                DiscountRequest(name="B", type=DiscountType.PERCENT, value=Decimal("80")),
            ],
        ).bill
        assert [line.amount for line in bill.discount_lines] == [88_000, 88_000]
        assert bill.discount_total == 176_000
        assert bill.total == 0

    def test_stacked_promotions_on_separate_pools(self, checkout_service, open_session, store, now):
        store.promotions.extend(
            [
                PromotionRule(
                    id=PromotionId.new(),
                    name="Free play",
                    scope=PromotionScope.TIME,
                    discount=DiscountSpec(
                        type=DiscountType.PERCENT,
                        value=Decimal("100"),
                        applies_to=DiscountTarget.PLAY,
                    ),
                    created_at=now - timedelta(days=2),
                    apply_order=1,
                ),
                PromotionRule(
                    id=PromotionId.new(),
                    name="Free bill",
                    scope=PromotionScope.BILL,
                    discount=DiscountSpec(
                        type=DiscountType.PERCENT,
                        value=Decimal("100"),
                        applies_to=DiscountTarget.BILL,
                    ),
                    created_at=now - timedelta(days=1),
                    apply_order=2,
                ),
            ]
        )

        bill = checkout_service.checkout(str(open_session.id), end_at=now + timedelta(minutes=60)).bill

        assert bill.subtotal == 60_000
        assert [line.amount for line in bill.discount_lines] == [60_000, 60_000]
        assert bill.discount_total == sum(line.amount for line in bill.discount_lines)
        assert bill.discount_total == 120_000
        assert bill.total == 0

    def test_uses_snapshot_rate_not_live_rate(self, checkout_service, open_session, store, station, now):
        store.stations[station.id] = replace(store.stations[station.id], rate_per_hour=999_000)

        bill = checkout_service.checkout(str(open_session.id), end_at=now + timedelta(hours=1)).bill

        assert bill.play_amount == 60_000

    def test_checkout_twice_fails(self, checkout_service, open_session, now):
        checkout_service.checkout(str(open_session.id), end_at=now + timedelta(minutes=30))
        with pytest.raises(SessionAlreadyClosedError):
            checkout_service.checkout(str(open_session.id), end_at=now + timedelta(minutes=40))

    def test_items_locked_after_checkout(
        self, checkout_service, session_service, open_session, product, now
    ):
        checkout_service.checkout(str(open_session.id), end_at=now + timedelta(minutes=30))
        with pytest.raises(SessionNotOpenError):
            session_service.add_item(str(open_session.id), str(product.id), 1)

    def test_unknown_session(self, checkout_service):
        with pytest.raises(SessionNotFoundError):
            checkout_service.checkout(str(BillId.new()))

    def test_failure_rolls_back_everything(
        self, checkout_service, with_tea, store, station, now
    ):
        def broken(station_id, status):
            raise RuntimeError("station table unavailable")

        store.set_station_status = broken

        with pytest.raises(RuntimeError):
            checkout_service.checkout(str(with_tea.id), end_at=now + timedelta(minutes=47))

        assert store.sessions[with_tea.id].is_open
        assert store.bills == {}
        assert store.stations[station.id].status == StationStatus.OCCUPIED

    def test_paid_at_checkout(self, checkout_service, open_session, now):
        bill = checkout_service.checkout(
            str(open_session.id), end_at=now + timedelta(minutes=30), paid=True, payment_method="card"
        ).bill
        assert bill.paid
        assert bill.paid_at == now
        assert bill.payment_method == "card"


class TestPromotionQuote:
    def test_quote_promotions_is_read_only(
        self, checkout_service, with_tea, ten_percent_off, store, now
    ):
        result = checkout_service.quote_promotions(str(with_tea.id), end_at=now + timedelta(minutes=47))

        assert result.quote.subtotal == 110_000
        assert result.promotions.discount_total == 11_000
        assert result.promotions.remaining.bill == 99_000
        assert store.bills == {}
        assert store.sessions[with_tea.id].is_open


class TestPayment:
    def test_mark_paid(self, checkout_service, open_session, now):
        bill = checkout_service.checkout(str(open_session.id), end_at=now + timedelta(minutes=30)).bill

        paid = checkout_service.mark_bill_paid(str(bill.id), "transfer")

        assert paid.paid
        assert paid.paid_at == now
        assert paid.payment_method == "transfer"
        assert paid.total == bill.total

    def test_mark_paid_is_idempotent(self, checkout_service, open_session, now):
        bill = checkout_service.checkout(str(open_session.id), end_at=now + timedelta(minutes=30)).bill
        first = checkout_service.mark_bill_paid(str(bill.id), "card")
        second = checkout_service.mark_bill_paid(str(bill.id), "cash")

        assert second == first
        assert second.payment_method == "card"

    def test_unknown_bill(self, checkout_service):
        with pytest.raises(BillNotFoundError):
            checkout_service.get_bill(str(BillId.new()))
