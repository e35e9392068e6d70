"""Lead time per delivered ticket, plus distribution summaries."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence

import pandas as pd

from flow_metrics.core.config import DEFAULT_PERCENTILES, EngineSettings
from flow_metrics.core.dates import days_between, epoch_to_local
from flow_metrics.core.models import LeadTimeRecord, Ticket
from flow_metrics.core.workflow import (
    apply_order_policy,
    first_stamped_state,
    validate_settings,
    validate_states,
)

logger = logging.getLogger(__name__)


def build_lead_times(
    tickets: Iterable[Ticket],
    states: Sequence[str],
    *,
    settings: EngineSettings | None = None,
) -> list[LeadTimeRecord]:
    """Compute one lead-time record per delivered ticket.

    Lead time runs from the first stamped state (in workflow order) to the
    delivered timestamp. Non-positive lead times, including tickets that
    only carry a delivered stamp, are dropped with a warning.

    Parameters
    ----------
    tickets : Iterable[Ticket]
        Raw tickets.
    states : Sequence[str]
        Workflow order; the last state is terminal.
    settings : EngineSettings, optional
        Timezone, out-of-order and tie-break policies.

    Returns
    -------
    list[LeadTimeRecord]
        Sorted ascending by delivery instant.
    """
    states = validate_states(states)
    settings = validate_settings(settings)
    terminal = states[-1]
    delivered = [t for t in tickets if t.timestamp(terminal) is not None]
    kept = apply_order_policy(delivered, states, settings, series="lead times")

    records: list[tuple[float, int, LeadTimeRecord]] = []
    for position, ticket in enumerate(kept):
        delivered_ts = ticket.timestamp(terminal)
        start_state = first_stamped_state(ticket, states[:-1])
        if start_state is None:
            logger.warning("Skipping %s from lead times: delivered without any earlier state", ticket.id)
            continue
        diff = days_between(ticket.timestamp(start_state), delivered_ts)
        if diff.exact <= 0:
            logger.warning(
                "Skipping %s from lead times: non-positive lead time %.4f days (%s -> %s)",
                ticket.id,
                diff.exact,
                start_state,
                terminal,
            )
            continue
        delivered_at = epoch_to_local(delivered_ts, settings.timezone)
        record = LeadTimeRecord(
            ticket_id=ticket.id,
            delivered_at=delivered_at.to_pydatetime(),
            delivered_date=delivered_at.date(),
            start_state=start_state,
            lead_time=diff.exact,
            lead_time_rounded=diff.rounded,
        )
        records.append((delivered_ts, position, record))

    if settings.tie_break == "ticket_id":
        records.sort(key=lambda item: (item[0], item[2].ticket_id))
    else:
        records.sort(key=lambda item: (item[0], item[1]))
    logger.debug("Built %s lead-time records from %s delivered tickets", len(records), len(delivered))
    return [item[2] for item in records]


def lead_time_percentiles(
    lead_times: Sequence[LeadTimeRecord],
    percentiles: Sequence[float] = DEFAULT_PERCENTILES,
    *,
    rounded: bool = False,
) -> dict[float, float]:
    """Lead time at each percentile, picking ``sorted[floor(n * p)]``.

    Percentiles whose index falls outside the series (e.g. ``p == 1.0``)
    are omitted.
    """
    values = sorted(r.lead_time_rounded if rounded else r.lead_time for r in lead_times)
    out: dict[float, float] = {}
    for p in percentiles:
        idx = math.floor(len(values) * p)
        if 0 <= idx < len(values):
            out[p] = values[idx]
    return out


def summarize_lead_times(lead_times: Sequence[LeadTimeRecord]) -> pd.Series:
    """Basic descriptive statistics (count, mean, median, min, max) of exact lead times."""
    values = pd.Series([r.lead_time for r in lead_times], dtype="float64")
    if values.empty:
        return pd.Series({"count": 0, "mean": None, "median": None, "min": None, "max": None})
    return pd.Series(
        {
            "count": int(values.count()),
            "mean": float(values.mean()),
            "median": float(values.median()),
            "min": float(values.min()),
            "max": float(values.max()),
        }
    )
