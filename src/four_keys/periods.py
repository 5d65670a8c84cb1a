"""Resolution of look-back periods to concrete date ranges."""

from datetime import datetime, time, timezone
from typing import Optional, Union

from dateutil.relativedelta import relativedelta

from .errors import InvalidConfiguration
from .models import DateRange, Period

_LOOKBACK = {
    Period.DAY: relativedelta(),
    Period.WEEK: relativedelta(days=7),
    Period.MONTH: relativedelta(months=1),
    Period.QUARTER: relativedelta(months=3),
    Period.YEAR: relativedelta(years=1),
}


def resolve_period(period: Union[Period, str], now: Optional[datetime] = None) -> DateRange:
    """
    Map a period to an inclusive date range ending today.

    The range ends at the last instant of the current day and starts at
    midnight of the day one period back (today for ``day``).

    Args:
        period: Period (or its string value)
        now: Reference time, defaults to the current UTC time

    Returns:
        DateRange

    Raises:
        InvalidConfiguration: If the period is unknown
    """
    try:
        lookback = _LOOKBACK[Period(period)]
    except (ValueError, KeyError):
        raise InvalidConfiguration(f"Unknown period: {period!r}")

    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    start_day = (now - lookback).date()
    start = datetime.combine(start_day, time.min, tzinfo=now.tzinfo)
    end = datetime.combine(now.date(), time.max, tzinfo=now.tzinfo)
    return DateRange(start=start, end=end)
