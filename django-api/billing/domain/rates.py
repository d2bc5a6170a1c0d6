"""Hourly rate resolution for a station at a given instant."""

from datetime import datetime

from billing.domain.models import (
    DayRate,
    PricingSnapshot,
    RateSource,
    Station,
    StationType,
)
from billing.domain.time_rules import matches_days


def _day_rate_matches(day_rate: DayRate, instant: datetime) -> bool:
    if not matches_days(day_rate.days, instant):
        return False
    return day_rate.time_range is None or day_rate.time_range.contains_instant(instant)


def resolve_rate(
    station: Station,
    station_type: StationType | None,
    instant: datetime,
) -> PricingSnapshot:
    """Pick the hourly rate effective for ``station`` at ``instant``.

    A station-level override always wins. Otherwise the first schedule
    entry of the type matching both weekday and time of day is used, and
    the type's base rate is the fallback. Schedule order is significant.
    """
    if station.rate_per_hour is not None and station.rate_per_hour >= 0:
        return PricingSnapshot(rate_per_hour=station.rate_per_hour, rate_source=RateSource.STATION)

    if station_type is None:
        return PricingSnapshot(rate_per_hour=0, rate_source=RateSource.TYPE)

    for day_rate in station_type.day_rates:
        if _day_rate_matches(day_rate, instant):
            return PricingSnapshot(rate_per_hour=day_rate.rate_per_hour, rate_source=RateSource.TYPE)

    return PricingSnapshot(
        rate_per_hour=station_type.base_rate_per_hour,
        rate_source=RateSource.TYPE,
    )
