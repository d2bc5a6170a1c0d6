"""Session service - check-in, item changes, quotes and voiding.

Services:
- Depend only on interfaces (stores)
- Validate domain invariants
- Perform orchestration and error mapping
- Return domain models or domain errors
"""

from datetime import datetime
from typing import Callable, Iterable

import structlog

from billing.domain import LineItemId, ProductId, Session, SessionId, StationId
from billing.domain.errors import (
    InvalidQuantityError,
    ProductInactiveError,
    ProductNotFoundError,
    SessionNotFoundError,
    SessionNotOpenError,
    StationInactiveError,
    StationNotFoundError,
    StationOccupiedError,
)
from billing.domain.models import StationStatus
from billing.domain.rates import resolve_rate
from billing.domain.rules import DiscountRequest, Quote, quote_session
from billing.services import clock
from billing.services.settings_service import BillingSettingsService
from billing.stores.interfaces import CatalogStore, SessionStore

logger = structlog.get_logger(__name__)


class SessionService:
    """Lifecycle of an open rental session."""

    def __init__(
        self,
        catalog: CatalogStore,
        sessions: SessionStore,
        billing_settings: BillingSettingsService,
        now: Callable[[], datetime] = clock.now,
    ) -> None:
        self._catalog = catalog
        self._sessions = sessions
        self._billing_settings = billing_settings
        self._now = now

    def check_in(
        self,
        station_id: str,
        staff_id: int | None = None,
        start_at: datetime | None = None,
    ) -> Session:
        """Open a session on a station and mark the station occupied.

        The rate and the billing rule are snapshotted into the session.

        Raises:
            InvalidIdError: If the station_id is not a valid UUID.
            StationNotFoundError: If the station does not exist.
            StationInactiveError: If the station is disabled.
            StationOccupiedError: If the station already has an open session.
        """
        sid = StationId.from_string(station_id)
        start_at = start_at or self._now()

        try:
            with self._sessions.atomic():
                station = self._catalog.get_station(sid)
                if station is None:
                    raise StationNotFoundError(station_id)
                if not station.active:
                    raise StationInactiveError(station_id)
                if self._sessions.find_open_session(sid) is not None:
                    raise StationOccupiedError(station_id)

                pricing = resolve_rate(station, station.station_type, clock.local(start_at))
                rule = self._billing_settings.get_active_billing_rule(station.branch_id)
                session = Session.start(station, pricing, rule, start_at, staff_id)

                self._sessions.create_session(session)
                self._sessions.set_station_status(sid, StationStatus.OCCUPIED)
        except StationOccupiedError:
            logger.warning("check_in_conflict", station_id=station_id)
            raise

        logger.info(
            "session_checked_in",
            session_id=str(session.id),
            station_id=station_id,
            rate_per_hour=pricing.rate_per_hour,
            rate_source=pricing.rate_source.value,
        )
        return session

    def get_session(self, session_id: str) -> Session:
        """Return a session by ID.

        Raises:
            InvalidIdError: If the session_id is not a valid UUID.
            SessionNotFoundError: If the session does not exist.
        """
        session = self._sessions.get_session(SessionId.from_string(session_id))
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def add_item(
        self,
        session_id: str,
        product_id: str,
        quantity: int = 1,
        note: str = "",
    ) -> Session:
        """Add a product to an open session, merging with an existing line.

        Raises:
            InvalidQuantityError: If quantity is not positive.
            SessionNotFoundError: If the session does not exist.
            SessionNotOpenError: If the session is closed or void.
            ProductNotFoundError: If the product does not exist.
            ProductInactiveError: If the product is disabled.
        """
        if quantity <= 0:
            raise InvalidQuantityError(quantity)

        session = self._open_session(session_id)
        product = self._catalog.get_product(ProductId.from_string(product_id))
        if product is None:
            raise ProductNotFoundError(product_id)
        if not product.active:
            raise ProductInactiveError(product_id)

        updated = self._sessions.save_items(session.add_item(product, quantity, note))
        logger.info("session_item_added", session_id=session_id, product_id=product_id, quantity=quantity)
        return updated

    def update_item_quantity(self, session_id: str, item_id: str, quantity: int) -> Session:
        """Set a line's quantity. Zero or less removes the line.

        Raises:
            SessionNotFoundError: If the session does not exist.
            SessionNotOpenError: If the session is closed or void.
            LineItemNotFoundError: If the item is not in the session.
        """
        session = self._open_session(session_id)
        updated = session.update_item_quantity(LineItemId.from_string(item_id), quantity)
        if updated is session:
            return session
        return self._sessions.save_items(updated)

    def remove_item(self, session_id: str, item_id: str) -> Session:
        """Remove a line from an open session.

        Raises:
            SessionNotFoundError: If the session does not exist.
            SessionNotOpenError: If the session is closed or void.
            LineItemNotFoundError: If the item is not in the session.
        """
        session = self._open_session(session_id)
        return self._sessions.save_items(session.remove_item(LineItemId.from_string(item_id)))

    def preview_close(
        self,
        session_id: str,
        end_at: datetime | None = None,
        discount_requests: Iterable[DiscountRequest] = (),
        surcharge: int = 0,
    ) -> Quote:
        """Quote the session as if it closed at ``end_at``. Nothing is saved."""
        session = self.get_session(session_id)
        if end_at is None:
            end_at = session.end_time if not session.is_open and session.end_time else self._now()
        return quote_session(session, end_at, discount_requests, surcharge)

    def void_session(self, session_id: str, staff_id: int | None = None) -> Session:
        """Cancel an open session without a bill and free the station.

        Raises:
            SessionNotFoundError: If the session does not exist.
            SessionNotOpenError: If the session is closed or void.
        """
        sid = SessionId.from_string(session_id)
        with self._sessions.atomic():
            session = self._sessions.get_session(sid, for_update=True)
            if session is None:
                raise SessionNotFoundError(session_id)
            voided = session.void(self._now(), staff_id)
            self._sessions.save_session_state(voided)
            self._sessions.set_station_status(session.station_id, StationStatus.AVAILABLE)

        logger.info("session_voided", session_id=session_id, station_id=str(session.station_id))
        return voided

    def _open_session(self, session_id: str) -> Session:
        session = self.get_session(session_id)
        if not session.is_open:
            raise SessionNotOpenError(session_id)
        return session
