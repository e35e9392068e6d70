"""Domain data models for tickets and the derived flow metric series."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime


@dataclass(slots=True)
class Ticket:
    id: str
    state_timestamps: dict[str, float | None] = field(default_factory=dict)
    repo: str | None = None
    ticket_type: str | None = None
    tags: list[dict] = field(default_factory=list)

    def timestamp(self, state: str) -> float | None:
        return self.state_timestamps.get(state)


@dataclass(slots=True)
class CfdRecord:
    date: date
    counts: dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.counts.values())


@dataclass(slots=True)
class LeadTimeRecord:
    ticket_id: str
    delivered_at: datetime
    delivered_date: date
    start_state: str
    lead_time: float
    lead_time_rounded: int


@dataclass(slots=True)
class MovingRangeRecord:
    from_date: date
    to_date: date
    value: float
    from_ticket: str | None = None
    to_ticket: str | None = None


@dataclass(slots=True)
class ControlLimits:
    center: float
    upper: float
    lower: float | None
    baseline_start: date
    baseline_end: date
    avg_moving_range: float


@dataclass(slots=True)
class AsOfMetrics:
    date: date
    current_state: str | None
    cycle_time: int | None
    cycle_time_date_before: date | None
    lead_time: int | None
    lead_time_date_before: date | None
    wip: int
    throughput: float | None
    cycle_times: dict[str, int | None] = field(default_factory=dict)
    biggest_cycle_time: int | None = None
    biggest_cycle_time_state: str | None = None


@dataclass(slots=True)
class WorkItemAge:
    ticket_id: str
    current_state: str
    initial_state: str
    initial_timestamp: float
    age: int
    ticket_type: str | None = None
