"""Pytest configuration and shared fixtures."""

import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone

import pytest
from rest_framework.test import APIClient

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
from billing.domain.errors import StationNotFoundError, StationOccupiedError
from billing.domain.models import RoundingMode
from billing.services.checkout_service import CheckoutService
from billing.services.session_service import SessionService
from billing.services.settings_service import BillingSettingsService
from billing.stores.interfaces import CatalogStore, PromotionStore, SessionStore, SettingsStore

FIXED_NOW = datetime(2024, 5, 6, 10, 0, tzinfo=timezone.utc)


class InMemoryStore(CatalogStore, SettingsStore, PromotionStore, SessionStore):
    """Dict-backed store for service tests.

    ``atomic`` keeps a per-thread undo log and replays it on failure.
    ``create_session`` enforces one open session per station under a
    lock, like the database's partial unique constraint.
    """

    def __init__(self) -> None:
        self.stations: dict[StationId, Station] = {}
        self.products: dict[ProductId, Product] = {}
        self.staff: dict[int, str] = {}
        self.billing_rules: dict[str | None, BillingRule] = {}
        self.promotions: list[PromotionRule] = []
        self.sessions: dict[SessionId, Session] = {}
        self.bills: dict[BillId, Bill] = {}
        self._lock = threading.Lock()
        self._tx = threading.local()

    # transaction

    @contextmanager
    def atomic(self):
        if getattr(self._tx, "undo", None) is not None:
            yield
            return
        self._tx.undo = []
        try:
            yield
        except BaseException:
            for undo in reversed(self._tx.undo):
                undo()
            raise
        finally:
            self._tx.undo = None

    def _write(self, mapping: dict, key, value) -> None:
        undo = getattr(self._tx, "undo", None)
        if undo is not None:
            if key in mapping:
                previous = mapping[key]
                undo.append(lambda: mapping.__setitem__(key, previous))
            else:
                undo.append(lambda: mapping.pop(key, None))
        mapping[key] = value

    # catalog

    def get_station(self, station_id):
        return self.stations.get(station_id)

    def get_product(self, product_id):
        return self.products.get(product_id)

    def get_product_categories(self, product_ids):
        return {
            str(pid): self.products[pid].category_id for pid in product_ids if pid in self.products
        }

    def get_staff_name(self, staff_id):
        return self.staff.get(staff_id, "")

    # settings and promotions

    def get_billing_rule(self, branch_id):
        return self.billing_rules.get(branch_id)

    def list_active_promotions(self, branch_id):
        rules = [
            r for r in self.promotions if r.active and r.branch_id in {branch_id, None}
        ]
        return sorted(rules, key=lambda r: (r.apply_order, r.created_at))

    # sessions

    def get_session(self, session_id, for_update=False):
        return self.sessions.get(session_id)

    def find_open_session(self, station_id):
        for session in self.sessions.values():
            if session.station_id == station_id and session.is_open:
                return session
        return None

    def create_session(self, session):
        with self._lock:
            taken = any(
                s.station_id == session.station_id and s.is_open for s in self.sessions.values()
            )
            if taken:
                raise StationOccupiedError(str(session.station_id))
            self._write(self.sessions, session.id, session)
        return session

    def save_items(self, session):
        self._write(self.sessions, session.id, session)
        return session

    def save_session_state(self, session):
        self._write(self.sessions, session.id, session)
        return session

    def set_station_status(self, station_id, status):
        station = self.stations.get(station_id)
        if station is None:
            raise StationNotFoundError(str(station_id))
        self._write(self.stations, station_id, replace(station, status=status))

    def create_bill(self, bill):
        self._write(self.bills, bill.id, bill)
        return bill

    def get_bill(self, bill_id):
        return self.bills.get(bill_id)

    def save_bill_payment(self, bill):
        self._write(self.bills, bill.id, bill)
        return bill


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def station(store: InMemoryStore) -> Station:
    station = Station(id=StationId.new(), name="Table 1", rate_per_hour=60_000)
    store.stations[station.id] = station
    store.billing_rules[None] = BillingRule(
        rounding_step=15, rounding_mode=RoundingMode.CEIL, grace_minutes=0
    )
    return station


@pytest.fixture
def product(store: InMemoryStore) -> Product:
    product = Product(id=ProductId.new(), name="Iced tea", price=25_000, category_id="drinks")
    store.products[product.id] = product
    return product


@pytest.fixture
def session_service(store: InMemoryStore) -> SessionService:
    return SessionService(
        catalog=store,
        sessions=store,
        billing_settings=BillingSettingsService(store),
        now=lambda: FIXED_NOW,
    )


@pytest.fixture
def checkout_service(store: InMemoryStore) -> CheckoutService:
    return CheckoutService(catalog=store, sessions=store, promotions=store, now=lambda: FIXED_NOW)


@pytest.fixture
def open_session(session_service: SessionService, station: Station) -> Session:
    return session_service.check_in(str(station.id), staff_id=7, start_at=FIXED_NOW)


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW
