"""Integration tests for the ORM store and the services running on it.

Run with: pytest tests/test_django_store.py -v
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError

from billing import models as orm
from billing.domain import ProductId, StationId
from billing.domain.errors import SessionNotOpenError, StationNotFoundError, StationOccupiedError
from billing.domain.models import RateSource, SessionStatus, StationStatus
from billing.services.checkout_service import CheckoutService
from billing.services.session_service import SessionService
from billing.services.settings_service import BillingSettingsService
from billing.stores.django_store import DjangoStore


@pytest.fixture
def db_store() -> DjangoStore:
    return DjangoStore()


@pytest.fixture
def db_sessions(db_store, now) -> SessionService:
    return SessionService(db_store, db_store, BillingSettingsService(db_store), now=lambda: now)


@pytest.fixture
def db_checkout(db_store, now) -> CheckoutService:
    return CheckoutService(db_store, db_store, db_store, now=lambda: now)


@pytest.fixture
def table(db) -> orm.Station:
    orm.BillingSetting.objects.create(rounding_step=15, rounding_mode="ceil", grace_minutes=0)
    pool = orm.StationType.objects.create(name="Pool", base_rate_per_hour=60_000)
    orm.DayRate.objects.create(
        station_type=pool, position=0, days=[], time_from="18:00", time_to="23:00",
        rate_per_hour=90_000,
    )
    return orm.Station.objects.create(name="Table 1", station_type=pool)


@pytest.fixture
def drinks(db) -> tuple[orm.Product, orm.Product]:
    return (
        orm.Product.objects.create(name="Iced tea", price=25_000, category_id="drinks"),
        orm.Product.objects.create(name="Cola", price=15_000, category_id="drinks"),
    )


@pytest.mark.django_db
class TestCatalog:
    def test_station_with_type_schedule(self, db_store, table):
        station = db_store.get_station(StationId(table.id))

        assert station.name == "Table 1"
        assert station.rate_per_hour is None
        assert station.station_type.base_rate_per_hour == 60_000
        (band,) = station.station_type.day_rates
        assert band.time_range.as_strings() == ("18:00", "23:00")

    def test_missing_station(self, db_store):
        assert db_store.get_station(StationId.new()) is None

    def test_billing_rule_scopes(self, db_store, table):
        orm.BillingSetting.objects.create(
            scope="branch", branch_id="north", rounding_step=30, rounding_mode="floor"
        )

        assert db_store.get_billing_rule(None).rounding_step == 15
        assert db_store.get_billing_rule("north").rounding_step == 30
        assert db_store.get_billing_rule("south") is None

    def test_staff_name(self, db_store):
        user = get_user_model().objects.create_user(
            username="linh", first_name="Linh", last_name="Tran"
        )
        assert db_store.get_staff_name(user.pk) == "Linh Tran"
        assert db_store.get_staff_name(None) == ""

    def test_promotions_for_branch_include_global(self, db_store, now):
        common = dict(scope="bill", discount_type="percent", discount_value=Decimal("5"))
        orm.Promotion.objects.create(name="Global", apply_order=2, **common)
        orm.Promotion.objects.create(name="North", branch_id="north", apply_order=1, **common)
        orm.Promotion.objects.create(name="South", branch_id="south", **common)
        orm.Promotion.objects.create(name="Retired", active=False, **common)

        assert [p.name for p in db_store.list_active_promotions("north")] == ["North", "Global"]
        assert [p.name for p in db_store.list_active_promotions(None)] == ["Global"]

    def test_malformed_promotion_is_skipped(self, db_store):
        common = dict(scope="bill", discount_type="percent", discount_value=Decimal("5"))
        orm.Promotion.objects.create(
            name="Late night", time_ranges=[{"from": "24:00", "to": "02:00"}], **common
        )
        orm.Promotion.objects.create(name="Bad days", days_of_week=["mon"], **common)
        orm.Promotion.objects.create(name="Everyday", **common)

        assert [p.name for p in db_store.list_active_promotions(None)] == ["Everyday"]

    @pytest.mark.parametrize(
        "field, value",
        [
            ("time_ranges", [{"from": "24:00", "to": "02:00"}]),
            ("time_ranges", [{"from": "22:00"}]),
            ("time_ranges", {"from": "22:00", "to": "23:00"}),
            ("days_of_week", [7]),
            ("days_of_week", ["mon"]),
        ],
    )
    def test_promotion_clean_rejects_bad_window(self, field, value):
        promotion = orm.Promotion(
            name="Late night", scope="bill", discount_type="percent", discount_value=Decimal("5")
        )
        setattr(promotion, field, value)

        with pytest.raises(ValidationError) as exc:
            promotion.clean()

        assert field in exc.value.message_dict

    def test_promotion_clean_accepts_valid_window(self):
        promotion = orm.Promotion(
            name="Late night",
            scope="bill",
            discount_type="percent",
            discount_value=Decimal("5"),
            days_of_week=[5, 6],
            time_ranges=[{"from": "22:00", "to": "02:00"}],
        )

        promotion.clean()


@pytest.mark.django_db
class TestSessionPersistence:
    def test_check_in_snapshots_type_rate(self, db_sessions, table, now):
        session = db_sessions.check_in(str(table.id), start_at=now)

        row = orm.Session.objects.get(pk=session.id.value)
        assert row.status == "open"
        assert row.rate_per_hour == 60_000
        assert row.rate_source == RateSource.TYPE.value
        assert row.rounding_step == 15
        table.refresh_from_db()
        assert table.status == StationStatus.OCCUPIED.value

    def test_open_session_constraint_rejects_second_session(
        self, db_sessions, table, monkeypatch
    ):
        db_sessions.check_in(str(table.id))
        # skip the pre-check so the insert reaches the database
        monkeypatch.setattr(DjangoStore, "find_open_session", lambda self, station_id: None)

        with pytest.raises(StationOccupiedError):
            db_sessions.check_in(str(table.id))

        assert orm.Session.objects.filter(station=table, status="open").count() == 1

    def test_items_keep_insertion_order(self, db_store, db_sessions, table, drinks):
        tea, cola = drinks
        session = db_sessions.check_in(str(table.id))
        db_sessions.add_item(str(session.id), str(cola.id), 1)
        db_sessions.add_item(str(session.id), str(tea.id), 2, "no ice")
        db_sessions.add_item(str(session.id), str(cola.id), 1)

        stored = db_store.get_session(session.id)

        assert [(i.name, i.quantity) for i in stored.items] == [("Cola", 2), ("Iced tea", 2)]
        assert stored.items[1].note == "no ice"
        assert stored.service_amount == 80_000

    def test_save_items_refuses_closed_session(self, db_store, db_sessions, table, drinks):
        session = db_sessions.check_in(str(table.id))
        db_sessions.void_session(str(session.id))

        with pytest.raises(SessionNotOpenError):
            db_store.save_items(session.add_item(db_store.get_product(ProductId(drinks[0].id)), 1))

    def test_set_status_of_missing_station(self, db_store):
        with pytest.raises(StationNotFoundError):
            db_store.set_station_status(StationId.new(), StationStatus.AVAILABLE)


@pytest.mark.django_db
class TestCheckoutPersistence:
    def test_checkout_writes_bill_and_frees_station(
        self, db_store, db_sessions, db_checkout, table, drinks, now
    ):
        session = db_sessions.check_in(str(table.id), staff_id=None, start_at=now)
        db_sessions.add_item(str(session.id), str(drinks[0].id), 2)

        result = db_checkout.checkout(str(session.id), end_at=now + timedelta(minutes=47))

        stored = db_store.get_bill(result.bill.id)
        assert stored.total == 110_000
        assert [line.name for line in stored.lines] == ["Play time", "Iced tea"]
        assert orm.Session.objects.get(pk=session.id.value).status == SessionStatus.CLOSED.value
        table.refresh_from_db()
        assert table.status == StationStatus.AVAILABLE.value

    def test_discount_lines_round_trip(self, db_store, db_sessions, db_checkout, table, now):
        orm.Promotion.objects.create(
            name="Tuesday 10%",
            code="TUE10",
            scope="bill",
            discount_type="percent",
            discount_value=Decimal("10"),
            discount_max_amount=20_000,
        )
        session = db_sessions.check_in(str(table.id), start_at=now)

        bill = db_checkout.checkout(str(session.id), end_at=now + timedelta(minutes=60)).bill
        (line,) = db_store.get_bill(bill.id).discount_lines

        assert line.amount == 6_000
        assert line.value == Decimal("10")
        assert line.meta["code"] == "TUE10"

    def test_failed_checkout_rolls_back(
        self, db_sessions, db_checkout, table, now, monkeypatch
    ):
        session = db_sessions.check_in(str(table.id), start_at=now)

        def broken(self, station_id, status):
            raise RuntimeError("station table unavailable")

        monkeypatch.setattr(DjangoStore, "set_station_status", broken)

        with pytest.raises(RuntimeError):
            db_checkout.checkout(str(session.id), end_at=now + timedelta(minutes=30))

        assert orm.Session.objects.get(pk=session.id.value).status == "open"
        assert not orm.Bill.objects.exists()

    def test_checkout_ignores_malformed_promotion(
        self, db_store, db_sessions, db_checkout, table, now
    ):
        orm.Promotion.objects.create(
            name="Late night",
            scope="bill",
            discount_type="percent",
            discount_value=Decimal("50"),
            time_ranges=[{"from": "24:00", "to": "02:00"}],
        )
        orm.Promotion.objects.create(
            name="House 10%", scope="bill", discount_type="percent", discount_value=Decimal("10")
        )
        session = db_sessions.check_in(str(table.id), start_at=now)

        bill = db_checkout.checkout(str(session.id), end_at=now + timedelta(minutes=60)).bill

        assert [line.name for line in bill.discount_lines] == ["House 10%"]
        assert bill.total == 54_000
        table.refresh_from_db()
        assert table.status == StationStatus.AVAILABLE.value

    def test_bill_note_edited_in_admin_is_read_back(
        self, db_store, db_sessions, db_checkout, table, now
    ):
        session = db_sessions.check_in(str(table.id), start_at=now)
        bill = db_checkout.checkout(str(session.id), end_at=now + timedelta(minutes=30)).bill
        assert db_store.get_bill(bill.id).note == ""

        orm.Bill.objects.filter(pk=bill.id.value).update(note="regular, settles monthly")

        assert db_store.get_bill(bill.id).note == "regular, settles monthly"

    def test_payment_is_persisted(self, db_store, db_sessions, db_checkout, table, now):
        session = db_sessions.check_in(str(table.id), start_at=now)
        bill = db_checkout.checkout(str(session.id), end_at=now + timedelta(minutes=30)).bill

        db_checkout.mark_bill_paid(str(bill.id), "card")

        stored = db_store.get_bill(bill.id)
        assert stored.paid
        assert stored.paid_at == now
        assert stored.payment_method == "card"
