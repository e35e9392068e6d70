"""Moving range (successive absolute differences) over a lead-time series."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import pandas as pd

from flow_metrics.core.config import MOVING_RANGE_MODES
from flow_metrics.core.models import LeadTimeRecord, MovingRangeRecord

logger = logging.getLogger(__name__)


def _daily_means(lead_times: Sequence[LeadTimeRecord]) -> pd.Series:
    frame = pd.DataFrame(
        {
            "delivered_date": [r.delivered_date for r in lead_times],
            "lead_time": [r.lead_time for r in lead_times],
        }
    )
    return frame.groupby("delivered_date", sort=True)["lead_time"].mean()


def build_moving_ranges(
    lead_times: Sequence[LeadTimeRecord],
    *,
    mode: str = "ticket",
) -> list[MovingRangeRecord]:
    """Build the moving-range series.

    ``mode="ticket"`` differences chronologically adjacent tickets.
    ``mode="day"`` first averages lead times delivered on the same calendar
    day and differences adjacent days. Fewer than two points yields an
    empty list, which callers must read as insufficient data.
    """
    if mode not in MOVING_RANGE_MODES:
        raise ValueError(f"Unknown moving range mode: {mode!r}")
    ordered = sorted(lead_times, key=lambda r: r.delivered_at)
    if len(ordered) < 2:
        logger.debug("Moving range needs two lead times, got %s", len(ordered))
        return []

    if mode == "day":
        daily = _daily_means(ordered)
        dates = list(daily.index)
        values = list(daily.values)
        return [
            MovingRangeRecord(
                from_date=dates[i - 1],
                to_date=dates[i],
                value=abs(float(values[i]) - float(values[i - 1])),
            )
            for i in range(1, len(dates))
        ]

    return [
        MovingRangeRecord(
            from_date=ordered[i - 1].delivered_date,
            to_date=ordered[i].delivered_date,
            value=abs(ordered[i].lead_time - ordered[i - 1].lead_time),
            from_ticket=ordered[i - 1].ticket_id,
            to_ticket=ordered[i].ticket_id,
        )
        for i in range(1, len(ordered))
    ]
