"""Point-in-time ("as-of") metrics read off a cumulative flow series.

Bands are stacked with the terminal state at the bottom, so the stack is
the workflow in reverse. The cumulative count at a stack position is the
number of tickets that have reached that workflow state or any later one.
A horizontal distance between two such curves is a cycle time: the days
it took for the upstream curve to reach today's level of the current one.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from flow_metrics.analytics.metrics.cfd import cumulative_counts
from flow_metrics.core.dates import calendar_days_between, to_calendar_day
from flow_metrics.core.models import AsOfMetrics, CfdRecord
from flow_metrics.core.workflow import validate_states


def stack_order(states: Sequence[str]) -> tuple[str, ...]:
    return tuple(reversed(states))


def find_record_index(cfd: Sequence[CfdRecord], query_date: date) -> int | None:
    for idx, record in enumerate(cfd):
        if record.date == query_date:
            return idx
    return None


def current_stack_index(record: CfdRecord, stack: Sequence[str], query_count: float) -> int | None:
    """Stack position whose band contains ``query_count`` (None above the top band)."""
    for idx, total in enumerate(cumulative_counts(record, stack)):
        if query_count <= total:
            return idx
    return None


def _scan_back(
    totals: Sequence[Sequence[int]],
    position: int,
    compare_index: int,
    threshold: int,
) -> int | None:
    """Most recent index before ``position`` whose total at ``compare_index`` is <= ``threshold``."""
    for idx in range(position - 1, -1, -1):
        if totals[idx][compare_index] <= threshold:
            return idx
    return None


def _boundary_cycle_time(
    cfd: Sequence[CfdRecord],
    totals: Sequence[Sequence[int]],
    position: int,
    stack_index: int,
) -> tuple[int | None, date | None]:
    if stack_index + 1 >= len(totals[position]):
        return None, None
    found = _scan_back(totals, position, stack_index + 1, totals[position][stack_index])
    if found is None:
        return None, None
    before = cfd[found].date
    return calendar_days_between(before, cfd[position].date), before


def resolve_as_of(
    cfd: Sequence[CfdRecord],
    states: Sequence[str],
    query_date,
    query_cumulative_count: float,
    *,
    tz=None,
) -> AsOfMetrics | None:
    """Resolve state, cycle/lead time, WIP and throughput at a point of the CFD.

    Parameters
    ----------
    cfd : Sequence[CfdRecord]
        Date-ascending output of ``build_cfd``.
    states : Sequence[str]
        Workflow order used to build ``cfd``.
    query_date : date-like
        Day under the pointer; must match a record exactly.
    query_cumulative_count : float
        Vertical position expressed as a ticket count from the bottom band.
    tz : str or tzinfo, optional
        Timezone the CFD days were built in; aware query timestamps are
        converted to it before matching.

    Returns
    -------
    AsOfMetrics or None
        None when no record exists for ``query_date``.
    """
    stack = stack_order(validate_states(states))
    day = to_calendar_day(query_date, tz)
    position = find_record_index(cfd, day) if day is not None else None
    if position is None:
        return None

    record = cfd[position]
    # Only records up to the query day are ever scanned.
    totals = [cumulative_counts(r, stack) for r in cfd[: position + 1]]
    today = totals[position]
    top = len(stack) - 1

    stack_index = current_stack_index(record, stack, query_cumulative_count)
    cycle_time, cycle_before = (None, None)
    if stack_index is not None:
        cycle_time, cycle_before = _boundary_cycle_time(cfd, totals, position, stack_index)

    delivered_today = today[0]
    lead_found = _scan_back(totals, position, top, delivered_today)
    lead_before = cfd[lead_found].date if lead_found is not None else None
    lead_time = calendar_days_between(lead_before, record.date) if lead_before is not None else None

    cycle_times: dict[str, int | None] = {}
    for idx in range(top):
        cycle_times[stack[idx]] = _boundary_cycle_time(cfd, totals, position, idx)[0]
    measured = {s: v for s, v in cycle_times.items() if v is not None}
    biggest_state = max(measured, key=measured.get) if measured else None

    wip = today[top] - delivered_today
    throughput = wip / lead_time if lead_time else None

    return AsOfMetrics(
        date=record.date,
        current_state=stack[stack_index] if stack_index is not None else None,
        cycle_time=cycle_time,
        cycle_time_date_before=cycle_before,
        lead_time=lead_time,
        lead_time_date_before=lead_before,
        wip=wip,
        throughput=throughput,
        cycle_times=cycle_times,
        biggest_cycle_time=measured[biggest_state] if biggest_state else None,
        biggest_cycle_time_state=biggest_state,
    )
