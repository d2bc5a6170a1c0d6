"""Checkout service - closes a session into a bill in one transaction.

The session is re-read under a row lock, priced from its own snapshots
(never the station's live rate), and the bill, the closed session and
the freed station are committed together. Any failure rolls back all
three.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable

import structlog

from billing.domain import Bill, BillId, Session, SessionId
from billing.domain.errors import (
    BillNotFoundError,
    SessionAlreadyClosedError,
    SessionNotFoundError,
    StationNotFoundError,
)
from billing.domain.models import (
    BillLine,
    BillLineKind,
    Station,
    StationStatus,
)
from billing.domain.promotions import PromotionResult, apply_promotions, build_promotion_context
from billing.domain.rules import (
    DiscountRequest,
    Quote,
    compute_total,
    price_discount_requests,
    quote_session,
)
from billing.services import clock
from billing.stores.interfaces import CatalogStore, PromotionStore, SessionStore

logger = structlog.get_logger(__name__)

PLAY_LINE_NAME = "Play time"


@dataclass(frozen=True)
class CheckoutResult:
    bill: Bill
    session: Session


@dataclass(frozen=True)
class PromotionQuote:
    quote: Quote
    promotions: PromotionResult


def _bill_lines(session: Session, quote: Quote) -> tuple[BillLine, ...]:
    play = BillLine(
        kind=BillLineKind.PLAY,
        name=PLAY_LINE_NAME,
        amount=quote.play_amount,
        minutes=quote.bill_minutes,
        rate_per_hour=quote.rate_per_hour,
    )
    services = tuple(
        BillLine(
            kind=BillLineKind.PRODUCT,
            name=item.name,
            amount=item.amount,
            product_id=item.product_id,
            unit_price=item.price,
            quantity=item.quantity,
            note=item.note,
        )
        for item in session.items
    )
    return (play, *services)


class CheckoutService:
    """Settles sessions into bills and manages bill payment."""

    def __init__(
        self,
        catalog: CatalogStore,
        sessions: SessionStore,
        promotions: PromotionStore,
        now: Callable[[], datetime] = clock.now,
    ) -> None:
        self._catalog = catalog
        self._sessions = sessions
        self._promotions = promotions
        self._now = now

    def quote_promotions(self, session_id: str, end_at: datetime | None = None) -> PromotionQuote:
        """Run the promotion engine against a quote without saving anything."""
        session = self._sessions.get_session(SessionId.from_string(session_id))
        if session is None:
            raise SessionNotFoundError(session_id)
        end_at = end_at or self._now()
        quote = quote_session(session, end_at)
        station = self._catalog.get_station(session.station_id)
        return PromotionQuote(quote=quote, promotions=self._auto_discounts(session, quote, station))

    def checkout(
        self,
        session_id: str,
        staff_id: int | None = None,
        end_at: datetime | None = None,
        discount_requests: Iterable[DiscountRequest] | None = None,
        surcharge: int = 0,
        payment_method: str = "cash",
        paid: bool = False,
    ) -> CheckoutResult:
        """Close a session and create its bill atomically.

        With ``discount_requests=None`` the active promotions of the
        session's branch are applied. Otherwise the given discounts are
        priced as-is. The discount total is the sum of the discount
        lines; only the bill total is floored at zero.

        Raises:
            InvalidIdError: If the session_id is not a valid UUID.
            SessionNotFoundError: If the session does not exist.
            SessionAlreadyClosedError: If the session is not open.
            StationNotFoundError: If the session's station is gone.
        """
        sid = SessionId.from_string(session_id)
        end_at = end_at or self._now()
        surcharge = max(0, surcharge)

        with self._sessions.atomic():
            session = self._sessions.get_session(sid, for_update=True)
            if session is None:
                raise SessionNotFoundError(session_id)
            if not session.is_open:
                raise SessionAlreadyClosedError(session_id)

            quote = quote_session(session, end_at)

            station = self._catalog.get_station(session.station_id)
            if station is None:
                raise StationNotFoundError(str(session.station_id))

            if discount_requests is None:
                discount_lines = self._auto_discounts(session, quote, station).lines
            else:
                discount_lines = price_discount_requests(discount_requests, quote.subtotal)
            discount_total = sum(line.amount for line in discount_lines)

            staff = staff_id if staff_id is not None else session.staff_start
            bill = Bill(
                id=BillId.new(),
                session_id=session.id,
                station_id=station.id,
                station_name=station.name,
                staff_id=staff,
                staff_name=self._catalog.get_staff_name(staff),
                lines=_bill_lines(session, quote),
                play_minutes=quote.bill_minutes,
                play_amount=quote.play_amount,
                service_amount=quote.service_amount,
                subtotal=quote.subtotal,
                discount_lines=tuple(discount_lines),
                discount_total=discount_total,
                surcharge=surcharge,
                total=compute_total(quote.subtotal, discount_total, surcharge),
                payment_method=payment_method,
                paid=paid,
                paid_at=self._now() if paid else None,
                created_at=self._now(),
                branch_id=session.branch_id,
            )
            self._sessions.create_bill(bill)

            closed = session.close(end_at, quote.bill_minutes, staff_id)
            self._sessions.save_session_state(closed)
            self._sessions.set_station_status(session.station_id, StationStatus.AVAILABLE)

        logger.info(
            "checkout_completed",
            session_id=session_id,
            bill_id=str(bill.id),
            bill_minutes=quote.bill_minutes,
            subtotal=bill.subtotal,
            discount_total=bill.discount_total,
            total=bill.total,
        )
        return CheckoutResult(bill=bill, session=closed)

    def get_bill(self, bill_id: str) -> Bill:
        bill = self._sessions.get_bill(BillId.from_string(bill_id))
        if bill is None:
            raise BillNotFoundError(bill_id)
        return bill

    def mark_bill_paid(self, bill_id: str, payment_method: str | None = None) -> Bill:
        """Record payment. Already-paid bills are returned unchanged."""
        bill = self.get_bill(bill_id)
        if bill.paid:
            return bill
        paid = self._sessions.save_bill_payment(bill.mark_paid(self._now(), payment_method))
        logger.info("bill_paid", bill_id=bill_id, payment_method=paid.payment_method)
        return paid

    def _auto_discounts(
        self,
        session: Session,
        quote: Quote,
        station: Station | None,
    ) -> PromotionResult:
        product_ids = [item.product_id for item in session.items if item.product_id]
        categories = self._catalog.get_product_categories(product_ids) if product_ids else {}
        station_type = station.station_type if station else None
        context = build_promotion_context(
            session,
            quote,
            station_type_id=str(station_type.id) if station_type else None,
            categories=categories,
            at=clock.local(quote.end_time),
        )
        rules = self._promotions.list_active_promotions(session.branch_id)
        return apply_promotions(context, rules)
