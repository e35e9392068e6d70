"""Pure helpers to assemble every flow series for a view (no rendering)."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

import pandas as pd

from flow_metrics.analytics.metrics.as_of import resolve_as_of
from flow_metrics.analytics.metrics.binning import lead_time_histogram
from flow_metrics.analytics.metrics.cfd import build_cfd
from flow_metrics.analytics.metrics.control_limits import (
    compute_individuals_limits,
    compute_moving_range_limits,
)
from flow_metrics.analytics.metrics.lead_time import build_lead_times, lead_time_percentiles
from flow_metrics.analytics.metrics.moving_range import build_moving_ranges
from flow_metrics.core.config import EngineSettings
from flow_metrics.core.dates import to_calendar_day
from flow_metrics.core.errors import FlowMetricsError
from flow_metrics.core.models import (
    AsOfMetrics,
    CfdRecord,
    ControlLimits,
    LeadTimeRecord,
    MovingRangeRecord,
    Ticket,
)
from flow_metrics.core.workflow import validate_settings, validate_states

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FlowContext:
    states: tuple[str, ...]
    cfd: list[CfdRecord]
    lead_times: list[LeadTimeRecord]
    moving_ranges: list[MovingRangeRecord]
    individuals_limits: ControlLimits | None
    moving_range_limits: ControlLimits | None
    percentiles: dict[float, float] = field(default_factory=dict)
    histogram: pd.DataFrame = field(default_factory=pd.DataFrame)
    limits_error: str | None = None
    settings: EngineSettings = field(default_factory=EngineSettings)

    def as_of(self, query_date, query_cumulative_count: float) -> AsOfMetrics | None:
        return resolve_as_of(
            self.cfd,
            self.states,
            query_date,
            query_cumulative_count,
            tz=self.settings.timezone,
        )


def build_flow_context(
    tickets: Iterable[Ticket],
    states: Sequence[str],
    baseline_start=None,
    baseline_end=None,
    *,
    moving_range_mode: str = "ticket",
    settings: EngineSettings | None = None,
) -> FlowContext:
    """Compute CFD, lead times, moving ranges, limits and distribution summaries.

    The baseline defaults to the full delivered history. Limit errors
    (empty window, too few tickets) are captured in ``limits_error`` so a
    view can show the series while explaining why no limits are drawn.
    """
    states = validate_states(states)
    settings = validate_settings(settings)
    tickets = list(tickets)
    cfd = build_cfd(tickets, states, settings=settings)
    lead_times = build_lead_times(tickets, states, settings=settings)
    moving_ranges = build_moving_ranges(lead_times, mode=moving_range_mode)

    start = to_calendar_day(baseline_start, settings.timezone)
    end = to_calendar_day(baseline_end, settings.timezone)
    if lead_times:
        start = start or lead_times[0].delivered_date
        end = end or lead_times[-1].delivered_date

    individuals = None
    mr_limits = None
    limits_error = None
    if start is None or end is None:
        limits_error = "No delivered tickets; limits are undefined"
    else:
        try:
            individuals = compute_individuals_limits(
                lead_times, start, end, moving_ranges=moving_ranges
            )
            mr_limits = compute_moving_range_limits(moving_ranges, start, end)
        except FlowMetricsError as exc:
            logger.warning("Control limits unavailable: %s", exc)
            limits_error = str(exc)

    return FlowContext(
        states=states,
        cfd=cfd,
        lead_times=lead_times,
        moving_ranges=moving_ranges,
        individuals_limits=individuals,
        moving_range_limits=mr_limits,
        percentiles=lead_time_percentiles(lead_times),
        histogram=lead_time_histogram(lead_times),
        limits_error=limits_error,
        settings=settings,
    )
