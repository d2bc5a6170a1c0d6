from datetime import datetime

from django.utils import timezone


def now() -> datetime:
    return timezone.now()


def local(instant: datetime) -> datetime:
    """Wall-clock time of ``instant`` in the configured time zone."""
    if timezone.is_naive(instant):
        instant = timezone.make_aware(instant)
    return timezone.localtime(instant)
