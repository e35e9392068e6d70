"""XmR natural process limits over a baseline window.

Individuals chart: center = mean lead time in the window,
limits = center +/- 2.66 * average moving range.
Moving range chart: center = average moving range, upper = 3.27 * it.
A lower limit at or below zero carries no meaning for durations and is
returned as None.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from typing import TypeVar

from flow_metrics.analytics.metrics.moving_range import build_moving_ranges
from flow_metrics.core.config import MOVING_RANGE_LIMIT_FACTOR, NATURAL_PROCESS_LIMIT_FACTOR
from flow_metrics.core.dates import to_calendar_day
from flow_metrics.core.errors import EmptyBaselineError, InsufficientDataError
from flow_metrics.core.models import ControlLimits, LeadTimeRecord, MovingRangeRecord

R = TypeVar("R")


def _window(baseline_start, baseline_end) -> tuple[date, date]:
    start = to_calendar_day(baseline_start)
    end = to_calendar_day(baseline_end)
    if start is None or end is None:
        raise ValueError(f"Invalid baseline window: {baseline_start!r} - {baseline_end!r}")
    if start > end:
        raise ValueError(f"Baseline start {start} is after baseline end {end}")
    return start, end


def filter_by_window(records: Sequence[R], start: date, end: date, attr: str) -> list[R]:
    """Records whose ``attr`` calendar day lies in ``[start, end]`` inclusive."""
    return [r for r in records if start <= getattr(r, attr) <= end]


def _mean(values: list[float]) -> float:
    return sum(values) / len(values)


def average_moving_range(
    moving_ranges: Sequence[MovingRangeRecord],
    baseline_start,
    baseline_end,
) -> float:
    """Mean moving range over records whose ``to_date`` falls in the window."""
    start, end = _window(baseline_start, baseline_end)
    if not moving_ranges:
        raise InsufficientDataError("At least two lead times are needed to form a moving range")
    in_window = filter_by_window(moving_ranges, start, end, "to_date")
    if not in_window:
        raise EmptyBaselineError("moving range", start, end)
    return _mean([r.value for r in in_window])


def compute_individuals_limits(
    lead_times: Sequence[LeadTimeRecord],
    baseline_start,
    baseline_end,
    *,
    moving_ranges: Sequence[MovingRangeRecord] | None = None,
) -> ControlLimits:
    """Center line and natural process limits for the lead-time individuals chart.

    Parameters
    ----------
    lead_times : Sequence[LeadTimeRecord]
        Lead-time series.
    baseline_start, baseline_end : date-like
        Inclusive baseline window (calendar days).
    moving_ranges : Sequence[MovingRangeRecord], optional
        Precomputed moving ranges; derived per ticket from ``lead_times``
        when omitted.

    Returns
    -------
    ControlLimits
        ``lower`` is None when it would be zero or negative.

    Raises
    ------
    EmptyBaselineError
        No lead time (or moving range) falls inside the window.
    InsufficientDataError
        The series is too short to form a moving range.
    """
    start, end = _window(baseline_start, baseline_end)
    in_window = filter_by_window(lead_times, start, end, "delivered_date")
    if not in_window:
        raise EmptyBaselineError("lead time", start, end)
    center = _mean([r.lead_time for r in in_window])

    if moving_ranges is None:
        moving_ranges = build_moving_ranges(lead_times)
    amr = average_moving_range(moving_ranges, start, end)

    spread = NATURAL_PROCESS_LIMIT_FACTOR * amr
    lower = center - spread
    return ControlLimits(
        center=center,
        upper=center + spread,
        lower=lower if lower > 0 else None,
        baseline_start=start,
        baseline_end=end,
        avg_moving_range=amr,
    )


def compute_moving_range_limits(
    moving_ranges: Sequence[MovingRangeRecord],
    baseline_start,
    baseline_end,
) -> ControlLimits:
    """Center line and upper range limit for the moving range chart (no lower limit)."""
    start, end = _window(baseline_start, baseline_end)
    amr = average_moving_range(moving_ranges, start, end)
    return ControlLimits(
        center=amr,
        upper=MOVING_RANGE_LIMIT_FACTOR * amr,
        lower=None,
        baseline_start=start,
        baseline_end=end,
        avg_moving_range=amr,
    )
