"""Chart builders (Altair) over flow metric series.

These only consume engine output; nothing here computes metrics.
"""

from __future__ import annotations

from collections.abc import Sequence

import altair as alt
import pandas as pd

from flow_metrics.core.mappers import (
    cfd_to_dataframe,
    lead_times_to_dataframe,
    moving_ranges_to_dataframe,
)
from flow_metrics.core.models import CfdRecord, ControlLimits, LeadTimeRecord, MovingRangeRecord

STATE_COLORS: Sequence[str] = ("#bae6fd", "#0ea5e9", "#ddd6fe", "#8b5cf6", "#bbf7d0", "#22c55e")


def _limit_rules(limits: ControlLimits | None, *, center_color: str = "orange") -> alt.Chart | None:
    if limits is None:
        return None
    rows = [
        {"label": "Center", "value": limits.center, "color": center_color},
        {"label": "Upper limit", "value": limits.upper, "color": "purple"},
    ]
    if limits.lower is not None:
        rows.append({"label": "Lower limit", "value": limits.lower, "color": "purple"})
    frame = pd.DataFrame(rows)
    return (
        alt.Chart(frame)
        .mark_rule(strokeDash=[6, 4])
        .encode(
            y="value:Q",
            color=alt.Color("color:N", scale=None),
            tooltip=[alt.Tooltip("label:N", title="Line"), alt.Tooltip("value:Q", title="Days", format=".2f")],
        )
    )


def cfd_chart(records: Sequence[CfdRecord], states: Sequence[str]) -> alt.Chart | None:
    if not records:
        return None
    wide = cfd_to_dataframe(records, states)
    long = wide.melt(id_vars="date", var_name="state", value_name="count")
    # Terminal state at the bottom of the stack.
    stack = list(reversed(states))
    long["order"] = long["state"].map({s: i for i, s in enumerate(stack)})
    palette = list(STATE_COLORS)[: len(states)] if len(states) <= len(STATE_COLORS) else None
    color_scale = alt.Scale(domain=list(states), range=palette) if palette else alt.Scale(domain=list(states))
    return (
        alt.Chart(long)
        .mark_area()
        .encode(
            x=alt.X("date:T", title="Date"),
            y=alt.Y("count:Q", stack="zero", title="Tickets"),
            color=alt.Color("state:N", scale=color_scale, sort=list(states), title="State"),
            order=alt.Order("order:Q", sort="ascending"),
            tooltip=[
                alt.Tooltip("date:T", title="Date"),
                alt.Tooltip("state:N", title="State"),
                alt.Tooltip("count:Q", title="Tickets"),
            ],
        )
        .properties(height=320)
    )


def control_chart(
    lead_times: Sequence[LeadTimeRecord],
    limits: ControlLimits | None = None,
) -> alt.Chart | alt.LayerChart | None:
    if not lead_times:
        return None
    df = lead_times_to_dataframe(lead_times).drop(columns=["delivered_at"])
    points = (
        alt.Chart(df)
        .mark_circle(color="#0ea5e9", size=60, opacity=0.8)
        .encode(
            x=alt.X("delivered_date:T", title="Delivered"),
            y=alt.Y("lead_time:Q", title="Lead time (days)"),
            tooltip=[
                alt.Tooltip("ticket_id:N", title="Ticket"),
                alt.Tooltip("delivered_date:T", title="Delivered"),
                alt.Tooltip("lead_time_rounded:Q", title="Days"),
            ],
        )
    )
    rules = _limit_rules(limits)
    chart = points + rules if rules is not None else points
    return chart.properties(height=280)


def moving_range_chart(
    moving_ranges: Sequence[MovingRangeRecord],
    limits: ControlLimits | None = None,
) -> alt.Chart | alt.LayerChart | None:
    if not moving_ranges:
        return None
    df = moving_ranges_to_dataframe(moving_ranges)
    line = (
        alt.Chart(df)
        .mark_line(point=True, color="black")
        .encode(
            x=alt.X("to_date:T", title="Delivered"),
            y=alt.Y("value:Q", title="Moving range (days)"),
            tooltip=[
                alt.Tooltip("from_ticket:N", title="From"),
                alt.Tooltip("to_ticket:N", title="To"),
                alt.Tooltip("value:Q", title="Range", format=".2f"),
            ],
        )
    )
    rules = _limit_rules(limits)
    chart = line + rules if rules is not None else line
    return chart.properties(height=220)


def lead_time_histogram_chart(histogram: pd.DataFrame) -> alt.Chart | None:
    if histogram is None or histogram.empty:
        return None
    return (
        alt.Chart(histogram)
        .mark_bar(color="#0ea5e9")
        .encode(
            x=alt.X("bucket:N", sort=list(histogram["bucket"]), title="Lead time"),
            y=alt.Y("count:Q", title="Tickets"),
            tooltip=[alt.Tooltip("bucket:N", title="Bucket"), alt.Tooltip("count:Q", title="Tickets")],
        )
        .properties(height=240)
    )
