"""Store interfaces (repository pattern).

Stores must be swappable and return domain models.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager

from billing.domain import (
    Bill,
    BillId,
    BillingRule,
    Product,
    ProductId,
    PromotionRule,
    Session,
    SessionId,
    Station,
    StationId,
)
from billing.domain.models import StationStatus


class CatalogStore(ABC):
    """Read access to stations, products and staff."""

    @abstractmethod
    def get_station(self, station_id: StationId) -> Station | None:
        """Return a station with its type and rate schedule, or None."""
        ...

    @abstractmethod
    def get_product(self, product_id: ProductId) -> Product | None:
        """Return a product by ID, or None if not found."""
        ...

    @abstractmethod
    def get_product_categories(self, product_ids: list[ProductId]) -> dict[str, str | None]:
        """Map product ID strings to their category IDs."""
        ...

    @abstractmethod
    def get_staff_name(self, staff_id: int | None) -> str:
        """Return a display name for a staff member, or an empty string."""
        ...


class SettingsStore(ABC):
    """Configured billing rules."""

    @abstractmethod
    def get_billing_rule(self, branch_id: str | None) -> BillingRule | None:
        """Return the rule stored for exactly this scope.

        ``branch_id=None`` is the global scope. No fallback is applied.
        """
        ...


class PromotionStore(ABC):
    """Promotion rules."""

    @abstractmethod
    def list_active_promotions(self, branch_id: str | None) -> list[PromotionRule]:
        """Return active rules for the branch plus global rules.

        Ordered by apply_order ascending, then created_at ascending.
        """
        ...


class SessionStore(ABC):
    """Sessions, bills and station availability, with a transaction boundary."""

    @abstractmethod
    def atomic(self) -> AbstractContextManager:
        """Context manager committing everything inside it, or nothing."""
        ...

    @abstractmethod
    def get_session(self, session_id: SessionId, for_update: bool = False) -> Session | None:
        """Return a session with its items, or None.

        ``for_update`` locks the session row until the transaction ends.
        """
        ...

    @abstractmethod
    def find_open_session(self, station_id: StationId) -> Session | None:
        """Return the open session of a station, if any."""
        ...

    @abstractmethod
    def create_session(self, session: Session) -> Session:
        """Persist a new open session.

        Raises:
            StationOccupiedError: If the station already has an open session.
        """
        ...

    @abstractmethod
    def save_items(self, session: Session) -> Session:
        """Replace the stored items of a session with ``session.items``."""
        ...

    @abstractmethod
    def save_session_state(self, session: Session) -> Session:
        """Persist status, end time, duration and closing staff."""
        ...

    @abstractmethod
    def set_station_status(self, station_id: StationId, status: StationStatus) -> None:
        """Update a station's operational status.

        Raises:
            StationNotFoundError: If the station does not exist.
        """
        ...

    @abstractmethod
    def create_bill(self, bill: Bill) -> Bill:
        """Persist a new bill with its lines."""
        ...

    @abstractmethod
    def get_bill(self, bill_id: BillId) -> Bill | None:
        """Return a bill by ID, or None if not found."""
        ...

    @abstractmethod
    def save_bill_payment(self, bill: Bill) -> Bill:
        """Persist the payment fields of a bill. Nothing else changes."""
        ...
