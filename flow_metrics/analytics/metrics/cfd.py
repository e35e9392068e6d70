"""Cumulative flow reconstruction from per-ticket state timestamps.

A ticket occupies exactly one state per day: the latest state it has
entered by the end of that day. Occupancy is computed per state from entry
and exit events (the exit of a state being the entry into the next stamped
state), so the cost grows with days + tickets rather than their product.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

import pandas as pd

from flow_metrics.core.config import EngineSettings
from flow_metrics.core.dates import local_days
from flow_metrics.core.mappers import tickets_to_frame
from flow_metrics.core.models import CfdRecord, Ticket
from flow_metrics.core.workflow import apply_order_policy, validate_settings, validate_states

logger = logging.getLogger(__name__)


def _exit_seconds(frame: pd.DataFrame, later_states: Sequence[str]) -> pd.Series:
    if not later_states:
        return pd.Series(float("nan"), index=frame.index)
    # First non-null timestamp among the downstream states.
    return frame[list(later_states)].bfill(axis=1).iloc[:, 0]


def state_occupancy(
    frame: pd.DataFrame,
    states: Sequence[str],
    index: int,
    days: pd.DatetimeIndex,
    tz,
) -> pd.Series:
    """Count tickets sitting in ``states[index]`` for every day in ``days``.

    Parameters
    ----------
    frame : pd.DataFrame
        Output of ``tickets_to_frame``.
    states : Sequence[str]
        Workflow order.
    index : int
        Position of the state to count.
    days : pd.DatetimeIndex
        Consecutive local-midnight days.
    tz : str or tzinfo
        Timezone used to derive calendar days from epoch seconds.

    Returns
    -------
    pd.Series
        Integer occupancy indexed by ``days``.
    """
    state = states[index]
    entry = local_days(frame[state], tz)
    exit_ = local_days(_exit_seconds(frame, states[index + 1 :]), tz)

    # A state left on (or before) the day it was entered is never occupied.
    occupied = entry.notna() & ~(exit_.notna() & (exit_ <= entry))
    entry = entry[occupied]
    exit_ = exit_[occupied].dropna()

    first_day = days[0]
    arrivals = entry.clip(lower=first_day).value_counts()
    departures = exit_.clip(lower=first_day).value_counts()
    delta = arrivals.reindex(days, fill_value=0) - departures.reindex(days, fill_value=0)
    return delta.cumsum()


def build_cfd(
    tickets: Iterable[Ticket],
    states: Sequence[str],
    *,
    settings: EngineSettings | None = None,
) -> list[CfdRecord]:
    """Build the daily cumulative flow series.

    The window runs from the earliest to the latest delivered day, inclusive.
    Tickets that were never delivered do not shape the window but still
    count in their last reached state for every day of it.

    Parameters
    ----------
    tickets : Iterable[Ticket]
        Raw tickets.
    states : Sequence[str]
        Workflow order; the last state is terminal.
    settings : EngineSettings, optional
        Timezone and data-quality policies (defaults to ``config.SETTINGS``).

    Returns
    -------
    list[CfdRecord]
        One record per day in ascending date order; empty when no ticket has
        been delivered.
    """
    states = validate_states(states)
    settings = validate_settings(settings)
    kept = apply_order_policy(tickets, states, settings, series="cumulative flow")
    if not kept:
        return []

    frame = tickets_to_frame(kept, states)
    delivered = local_days(frame[states[-1]], settings.timezone).dropna()
    if delivered.empty:
        logger.debug("No delivered tickets among %s; cumulative flow is empty", len(kept))
        return []

    days = pd.date_range(delivered.min(), delivered.max(), freq="D")
    occupancy = {
        state: state_occupancy(frame, states, idx, days, settings.timezone)
        for idx, state in enumerate(states)
    }
    records = [
        CfdRecord(
            date=day.date(),
            counts={state: int(occupancy[state].iloc[pos]) for state in states},
        )
        for pos, day in enumerate(days)
    ]
    logger.debug("Built cumulative flow: %s tickets over %s days", len(kept), len(records))
    return records


def cumulative_counts(record: CfdRecord, stack: Sequence[str]) -> list[int]:
    """Running totals of ``record`` walking ``stack`` from the bottom band up."""
    totals: list[int] = []
    running = 0
    for state in stack:
        running += record.counts.get(state, 0)
        totals.append(running)
    return totals
