"""Day-bucket histograms for lead-time distributions."""

from __future__ import annotations

import math
from collections.abc import Sequence

import pandas as pd

from flow_metrics.core.config import DEFAULT_HISTOGRAM_BINS
from flow_metrics.core.models import LeadTimeRecord


def determine_day_step(
    values: pd.Series,
    *,
    target_bins: int = DEFAULT_HISTOGRAM_BINS,
    min_step: float = 1.0,
) -> float | None:
    """Whole-day bucket width that splits ``values`` into about ``target_bins`` buckets."""
    numeric = pd.to_numeric(values, errors="coerce").dropna()
    if numeric.empty:
        return None
    spread = float(numeric.max() - numeric.min())
    if math.isnan(spread) or spread <= 0:
        return float(min_step)
    return float(max(math.ceil(spread / max(target_bins, 1)), min_step))


def build_day_buckets(
    values: pd.Series,
    *,
    target_bins: int = DEFAULT_HISTOGRAM_BINS,
    min_step: float = 1.0,
) -> dict | None:
    """Bucket edges and labels such as "0–<3d", "3–<6d", "≥12d".

    Returns
    -------
    dict or None
        ``bins`` (edges ending in +inf), ``labels`` and ``step``; None when
        there is nothing positive to bucket.
    """
    numeric = pd.to_numeric(values, errors="coerce").dropna()
    step = determine_day_step(numeric, target_bins=target_bins, min_step=min_step)
    if step is None:
        return None
    top = float(numeric.max())
    if top <= 0:
        return None
    last_edge = math.ceil(top / step) * step
    edges: list[float] = [0.0]
    edge = step
    while edge <= last_edge + 1e-9:
        edges.append(round(edge, 6))
        edge += step
    edges.append(float("inf"))
    labels = [f"{int(edges[i])}–<{int(edges[i + 1])}d" for i in range(len(edges) - 2)]
    labels.append(f"≥{int(edges[-2])}d")
    return {"bins": edges, "labels": labels, "step": step}


def lead_time_histogram(
    lead_times: Sequence[LeadTimeRecord],
    *,
    target_bins: int = DEFAULT_HISTOGRAM_BINS,
) -> pd.DataFrame:
    """Ticket counts per lead-time bucket (columns ``bucket``, ``count``)."""
    values = pd.Series([r.lead_time for r in lead_times], dtype="float64")
    layout = build_day_buckets(values, target_bins=target_bins)
    if layout is None:
        return pd.DataFrame(columns=["bucket", "count"])
    buckets = pd.cut(values, bins=layout["bins"], labels=layout["labels"], right=False)
    counts = buckets.value_counts(sort=False).reindex(layout["labels"], fill_value=0)
    return pd.DataFrame({"bucket": layout["labels"], "count": counts.astype(int).to_list()})
