"""Timestamp and calendar-day helpers shared by the metric builders."""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from datetime import date, datetime, tzinfo

import pandas as pd
import pytz

from .config import SECONDS_PER_DAY, TIMEZONE


@dataclass(slots=True)
class DayDifference:
    exact: float
    rounded: int


def get_timezone(name: str | tzinfo | None = None) -> tzinfo:
    if isinstance(name, tzinfo):
        return name
    return pytz.timezone(name or TIMEZONE)


def parse_epoch(value) -> float | None:
    """Coerce a raw timestamp (int, float, numeric string) into epoch seconds.

    Returns None for missing, empty, or unparsable values.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(seconds) or math.isinf(seconds):
        return None
    return seconds


def epoch_to_local(seconds: float | None, tz) -> pd.Timestamp | None:
    if seconds is None or pd.isna(seconds):
        return None
    ts = pd.to_datetime(seconds, unit="s", utc=True)
    return ts.tz_convert(get_timezone(tz))


def to_calendar_day(value, tz=None) -> date | None:
    """Normalize a date-like value into a local calendar day.

    Parameters
    ----------
    value : date, datetime, pd.Timestamp, str, int, float or None
        Numbers are treated as epoch seconds. Naive datetimes and strings
        are taken as already expressed in local time.
    tz : str or tzinfo, optional
        Timezone used for epoch values and aware datetimes.

    Returns
    -------
    date or None
        The calendar day, or None when the value cannot be interpreted.
    """
    if value is None:
        return None
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        local = epoch_to_local(parse_epoch(value), tz)
        return local.date() if local is not None else None
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    ts = pd.to_datetime(value, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert(get_timezone(tz))
    return ts.date()


def local_days(seconds: pd.Series, tz) -> pd.Series:
    """Map a Series of epoch seconds to naive local-midnight Timestamps (NaT when missing)."""
    numeric = pd.to_numeric(seconds, errors="coerce")
    stamps = pd.to_datetime(numeric, unit="s", utc=True)
    # Drop the offset before normalizing; local midnight does not exist on some DST days.
    return stamps.dt.tz_convert(get_timezone(tz)).dt.tz_localize(None).dt.normalize()


def days_between(start_seconds: float, end_seconds: float) -> DayDifference:
    """Elapsed days between two epoch timestamps.

    ``exact`` keeps the fractional part and is the value used for every
    comparison and limit computation; ``rounded`` is floored for display.
    """
    exact = (end_seconds - start_seconds) / SECONDS_PER_DAY
    return DayDifference(exact=exact, rounded=math.floor(exact))


def calendar_days_between(start: date, end: date) -> int:
    return (end - start).days
