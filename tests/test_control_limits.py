from datetime import date, datetime, timedelta, timezone

import pytest

from flow_metrics.analytics.metrics.control_limits import (
    average_moving_range,
    compute_individuals_limits,
    compute_moving_range_limits,
)
from flow_metrics.analytics.metrics.moving_range import build_moving_ranges
from flow_metrics.core.errors import EmptyBaselineError, InsufficientDataError
from flow_metrics.core.models import LeadTimeRecord

START = datetime(2023, 3, 1, 12, 0, tzinfo=timezone.utc)


def _series(*lead_times):
    out = []
    for offset, value in enumerate(lead_times):
        delivered_at = START + timedelta(days=offset)
        out.append(
            LeadTimeRecord(
                ticket_id=f"T-{offset}",
                delivered_at=delivered_at,
                delivered_date=delivered_at.date(),
                start_state="analysis_active",
                lead_time=value,
                lead_time_rounded=int(value),
            )
        )
    return out


def test_two_point_baseline_scenario():
    series = _series(10, 20)
    moving = build_moving_ranges(series)
    assert moving[0].value == 10

    limits = compute_individuals_limits(series, date(2023, 3, 1), date(2023, 3, 2))
    assert limits.center == 15
    assert limits.upper == pytest.approx(41.6)
    assert limits.lower is None
    assert limits.avg_moving_range == 10

    mr_limits = compute_moving_range_limits(moving, date(2023, 3, 1), date(2023, 3, 2))
    assert mr_limits.center == 10
    assert mr_limits.upper == pytest.approx(32.7)
    assert mr_limits.lower is None


def test_positive_lower_limit_ordering():
    series = _series(10, 11, 10, 12)
    limits = compute_individuals_limits(series, "2023-03-01", "2023-03-04")
    assert limits.avg_moving_range == pytest.approx(4 / 3)
    assert limits.lower is not None
    assert limits.lower < limits.center < limits.upper
    assert limits.lower == pytest.approx(10.75 - 2.66 * 4 / 3)


def test_baseline_restricts_center():
    series = _series(10, 20, 100)
    limits = compute_individuals_limits(series, date(2023, 3, 1), date(2023, 3, 2))
    assert limits.center == 15
    assert limits.baseline_start == date(2023, 3, 1)
    assert limits.baseline_end == date(2023, 3, 2)


def test_empty_baseline_is_an_error():
    series = _series(10, 20)
    with pytest.raises(EmptyBaselineError):
        compute_individuals_limits(series, date(2023, 4, 1), date(2023, 4, 30))
    with pytest.raises(EmptyBaselineError):
        compute_moving_range_limits(build_moving_ranges(series), date(2023, 4, 1), date(2023, 4, 30))


def test_moving_range_outside_window_is_an_error():
    series = _series(10, 20)
    # The only moving range ends on 2023-03-02.
    with pytest.raises(EmptyBaselineError):
        compute_individuals_limits(series, date(2023, 3, 1), date(2023, 3, 1))


def test_single_record_is_insufficient():
    series = _series(10)
    with pytest.raises(InsufficientDataError):
        compute_individuals_limits(series, date(2023, 3, 1), date(2023, 3, 1))
    with pytest.raises(InsufficientDataError):
        compute_moving_range_limits([], date(2023, 3, 1), date(2023, 3, 1))


def test_inverted_window_rejected():
    with pytest.raises(ValueError):
        average_moving_range(build_moving_ranges(_series(1, 2)), date(2023, 3, 5), date(2023, 3, 1))


def test_limits_are_idempotent():
    series = _series(10, 14, 9, 12, 30)
    first = compute_individuals_limits(series, date(2023, 3, 1), date(2023, 3, 5))
    second = compute_individuals_limits(series, date(2023, 3, 1), date(2023, 3, 5))
    assert first == second


def test_precomputed_day_mode_ranges_are_used():
    series = _series(10, 20, 40)
    day_ranges = build_moving_ranges(series, mode="day")
    limits = compute_individuals_limits(
        series, date(2023, 3, 1), date(2023, 3, 3), moving_ranges=day_ranges
    )
    assert limits.avg_moving_range == 15
