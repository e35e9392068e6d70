"""Mapping raw exported ticket JSON into Ticket models, and records into DataFrames."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import asdict
from typing import Any

import pandas as pd

from .config import DEFAULT_WORKFLOW_STATES
from .dates import parse_epoch
from .models import CfdRecord, LeadTimeRecord, MovingRangeRecord, Ticket
from .workflow import normalize_state_name

TICKET_TYPE_INDEX = "ticket_type"


def _extract_index(indexes: Any, name: str) -> str | None:
    if not isinstance(indexes, list):
        return None
    for entry in indexes:
        if isinstance(entry, dict) and entry.get("name") == name:
            value = entry.get("value")
            return str(value) if value is not None else None
    return None


def map_ticket(raw: Mapping[str, Any], states: Sequence[str] = DEFAULT_WORKFLOW_STATES) -> Ticket:
    """Build a Ticket from one exported ticket dict.

    Every state in ``states`` is present in the result; states missing from
    the raw payload (or holding empty/unparsable values) map to None.
    """
    stamps: dict[str, float | None] = {state: None for state in states}
    for raw_key, raw_value in raw.items():
        state = raw_key if raw_key in stamps else normalize_state_name(raw_key)
        if state in stamps:
            stamps[state] = parse_epoch(raw_value)
    tags = raw.get("tags")
    return Ticket(
        id=str(raw.get("work_id") or raw.get("id") or ""),
        state_timestamps=stamps,
        repo=raw.get("github_repo"),
        ticket_type=_extract_index(raw.get("indexes"), TICKET_TYPE_INDEX),
        tags=list(tags) if isinstance(tags, list) else [],
    )


def process_service_data(
    service_data: Mapping[str, Iterable[Mapping[str, Any]]] | None,
    removed_repos: Iterable[str] = (),
    removed_ticket_types: Iterable[str] = (),
) -> list[dict[str, Any]]:
    """Flatten a ``{repo: [raw tickets]}`` export into one filtered ticket list.

    Repos whose key ends with any name in ``removed_repos`` are dropped, as
    are tickets whose ``ticket_type`` index is in ``removed_ticket_types``.
    The input mapping is not modified.
    """
    if not service_data:
        return []
    removed_repos = tuple(removed_repos)
    removed_types = set(removed_ticket_types)
    out: list[dict[str, Any]] = []
    for repo_key, tickets in service_data.items():
        if any(repo_key.endswith(r) for r in removed_repos):
            continue
        for ticket in tickets or []:
            if not isinstance(ticket, Mapping):
                continue
            ticket_type = _extract_index(ticket.get("indexes"), TICKET_TYPE_INDEX)
            if ticket_type is not None and ticket_type in removed_types:
                continue
            out.append(dict(ticket))
    return out


def tickets_from_service_data(
    service_data: Mapping[str, Iterable[Mapping[str, Any]]] | None,
    states: Sequence[str] = DEFAULT_WORKFLOW_STATES,
    *,
    removed_repos: Iterable[str] = (),
    removed_ticket_types: Iterable[str] = (),
) -> list[Ticket]:
    raw = process_service_data(service_data, removed_repos, removed_ticket_types)
    return [map_ticket(r, states) for r in raw]


def tickets_to_frame(tickets: Iterable[Ticket], states: Sequence[str]) -> pd.DataFrame:
    """One row per ticket: ``id`` plus one float epoch column per state (NaN when missing)."""
    rows = []
    for t in tickets:
        row: dict[str, Any] = {"id": t.id}
        for state in states:
            ts = t.timestamp(state)
            row[state] = float(ts) if ts is not None else float("nan")
        rows.append(row)
    columns = ["id", *states]
    if not rows:
        return pd.DataFrame(columns=columns).astype({s: "float64" for s in states})
    return pd.DataFrame(rows, columns=columns)


def cfd_to_dataframe(records: Iterable[CfdRecord], states: Sequence[str]) -> pd.DataFrame:
    rows = [{"date": pd.Timestamp(r.date), **{s: r.counts.get(s, 0) for s in states}} for r in records]
    return pd.DataFrame(rows, columns=["date", *states])


def lead_times_to_dataframe(records: Iterable[LeadTimeRecord]) -> pd.DataFrame:
    rows = [asdict(r) for r in records]
    df = pd.DataFrame(
        rows,
        columns=[
            "ticket_id",
            "delivered_at",
            "delivered_date",
            "start_state",
            "lead_time",
            "lead_time_rounded",
        ],
    )
    df["delivered_date"] = pd.to_datetime(df["delivered_date"])
    return df


def moving_ranges_to_dataframe(records: Iterable[MovingRangeRecord]) -> pd.DataFrame:
    rows = [asdict(r) for r in records]
    df = pd.DataFrame(rows, columns=["from_date", "to_date", "value", "from_ticket", "to_ticket"])
    df["from_date"] = pd.to_datetime(df["from_date"])
    df["to_date"] = pd.to_datetime(df["to_date"])
    return df
