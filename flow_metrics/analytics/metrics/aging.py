"""Work item age for tickets still in flight (pure functions)."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime

import pytz

from flow_metrics.core.dates import days_between
from flow_metrics.core.models import Ticket, WorkItemAge
from flow_metrics.core.workflow import (
    first_stamped_state,
    last_stamped_state,
    validate_states,
)

logger = logging.getLogger(__name__)


def build_work_item_ages(
    tickets: Iterable[Ticket],
    states: Sequence[str],
    now: datetime | None = None,
) -> list[WorkItemAge]:
    states = validate_states(states)
    now = now or datetime.now(tz=pytz.UTC)
    if now.tzinfo is None:
        now = pytz.UTC.localize(now)
    now_seconds = now.timestamp()

    out: list[WorkItemAge] = []
    for ticket in tickets:
        current = last_stamped_state(ticket, states)
        if current is None or current == states[-1]:
            continue
        initial = first_stamped_state(ticket, states)
        initial_ts = ticket.timestamp(initial)
        age = days_between(initial_ts, now_seconds).rounded + 1
        if age <= 0:
            logger.warning("Skipping %s from work item age: invalid age %s", ticket.id, age)
            continue
        out.append(
            WorkItemAge(
                ticket_id=ticket.id,
                current_state=current,
                initial_state=initial,
                initial_timestamp=initial_ts,
                age=age,
                ticket_type=ticket.ticket_type,
            )
        )
    order = {state: idx for idx, state in enumerate(states)}
    out.sort(key=lambda w: (order[w.current_state], -w.age, w.ticket_id))
    return out
