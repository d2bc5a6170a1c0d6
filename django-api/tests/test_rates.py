"""Tests for hourly rate resolution."""

from datetime import datetime

import pytest

from billing.domain import Station, StationId, StationType
from billing.domain.models import DayRate, RateSource
from billing.domain.rates import resolve_rate
from billing.domain.time_rules import TimeRange
from billing.domain.value_objects import StationTypeId

MONDAY_NOON = datetime(2024, 5, 6, 12, 0)


def pool_type(*day_rates: DayRate, base: int = 40_000) -> StationType:
    return StationType(
        id=StationTypeId.new(), name="Pool", base_rate_per_hour=base, day_rates=day_rates
    )


def station_of(station_type: StationType | None, rate: int | None = None) -> Station:
    return Station(
        id=StationId.new(), name="Table 1", rate_per_hour=rate, station_type=station_type
    )


class TestResolveRate:
    def test_station_override_wins(self):
        station_type = pool_type(DayRate(rate_per_hour=90_000))
        snapshot = resolve_rate(station_of(station_type, rate=55_000), station_type, MONDAY_NOON)

        assert snapshot.rate_per_hour == 55_000
        assert snapshot.rate_source == RateSource.STATION

    def test_zero_override_still_wins(self):
        station_type = pool_type()
        snapshot = resolve_rate(station_of(station_type, rate=0), station_type, MONDAY_NOON)

        assert snapshot.rate_per_hour == 0
        assert snapshot.rate_source == RateSource.STATION

    def test_falls_back_to_base_rate(self):
        station_type = pool_type(
            DayRate(rate_per_hour=90_000, time_range=TimeRange.from_strings("18:00", "22:00"))
        )
        snapshot = resolve_rate(station_of(station_type), station_type, MONDAY_NOON)

        assert snapshot.rate_per_hour == 40_000
        assert snapshot.rate_source == RateSource.TYPE

    def test_no_type_and_no_override_is_free(self):
        snapshot = resolve_rate(station_of(None), None, MONDAY_NOON)
        assert snapshot.rate_per_hour == 0

    @pytest.mark.parametrize(
        "instant, expected",
        [
            (datetime(2024, 5, 6, 23, 30), 80_000),
            (datetime(2024, 5, 7, 2, 0), 80_000),
            (datetime(2024, 5, 6, 12, 0), 40_000),
        ],
    )
    def test_overnight_band(self, instant, expected):
        station_type = pool_type(
            DayRate(rate_per_hour=80_000, time_range=TimeRange.from_strings("22:00", "03:00"))
        )
        assert resolve_rate(station_of(station_type), station_type, instant).rate_per_hour == expected

    def test_first_matching_band_wins(self):
        station_type = pool_type(
            DayRate(rate_per_hour=70_000, time_range=TimeRange.from_strings("10:00", "14:00")),
            DayRate(rate_per_hour=99_000, time_range=TimeRange.from_strings("11:00", "13:00")),
        )
        assert resolve_rate(station_of(station_type), station_type, MONDAY_NOON).rate_per_hour == 70_000

    def test_weekday_filter(self):
        weekend = DayRate(rate_per_hour=75_000, days=frozenset({0, 6}))
        station_type = pool_type(weekend)
        saturday = datetime(2024, 5, 11, 12, 0)

        assert resolve_rate(station_of(station_type), station_type, saturday).rate_per_hour == 75_000
        assert resolve_rate(station_of(station_type), station_type, MONDAY_NOON).rate_per_hour == 40_000
