"""Workflow state normalization and ticket ordering checks.

Centralizes how a caller-supplied state sequence is validated and how each
ticket's timestamps are read in workflow order. Every metric builder goes
through these helpers so the data-quality policies from config.py
(out-of-order handling, tie-breaks) apply consistently.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from .config import (
    OUT_OF_ORDER_POLICIES,
    SETTINGS,
    STATE_ALIASES,
    TIE_BREAK_POLICIES,
    EngineSettings,
)
from .errors import WorkflowConfigError
from .models import Ticket

logger = logging.getLogger(__name__)


def normalize_state_name(value: str | None) -> str | None:
    """Map a raw state key to its canonical workflow name.

    Parameters
    ----------
    value : str | None
        Raw state key from exported ticket data.

    Returns
    -------
    str | None
        Canonical state name, the stripped input when no alias matches, or
        None for empty values.

    Examples
    --------
    >>> normalize_state_name("verif_start")
    'verification_start'
    >>> normalize_state_name(" In Progress ")
    'in_progress'
    """
    if not value:
        return None
    text = str(value).strip()
    if not text:
        return None
    return STATE_ALIASES.get(text.lower(), text)


def validate_states(states: Iterable[str]) -> tuple[str, ...]:
    """Return the workflow as an immutable tuple, rejecting unusable sequences.

    The last element is treated as the terminal (delivered) state.
    """
    if isinstance(states, str):
        raise WorkflowConfigError("Workflow states must be a sequence of names, not a string")
    ordered = tuple(str(s) for s in states)
    if len(ordered) < 2:
        raise WorkflowConfigError(f"Workflow needs at least two states, got {len(ordered)}")
    if len(set(ordered)) != len(ordered):
        raise WorkflowConfigError(f"Workflow states must be unique: {ordered}")
    return ordered


def validate_settings(settings: EngineSettings | None) -> EngineSettings:
    settings = settings or SETTINGS
    if settings.out_of_order_policy not in OUT_OF_ORDER_POLICIES:
        raise WorkflowConfigError(f"Unknown out-of-order policy: {settings.out_of_order_policy!r}")
    if settings.tie_break not in TIE_BREAK_POLICIES:
        raise WorkflowConfigError(f"Unknown tie-break policy: {settings.tie_break!r}")
    return settings


def terminal_state(states: Sequence[str]) -> str:
    return states[-1]


def first_stamped_state(ticket: Ticket, states: Sequence[str]) -> str | None:
    """First state in workflow order carrying a timestamp."""
    for state in states:
        if ticket.timestamp(state) is not None:
            return state
    return None


def last_stamped_state(ticket: Ticket, states: Sequence[str]) -> str | None:
    for state in reversed(states):
        if ticket.timestamp(state) is not None:
            return state
    return None


def find_out_of_order(ticket: Ticket, states: Sequence[str]) -> tuple[str, str] | None:
    """Return the first (earlier, later) state pair whose timestamps go backwards."""
    previous_state = None
    previous_ts = None
    for state in states:
        ts = ticket.timestamp(state)
        if ts is None:
            continue
        if previous_ts is not None and ts < previous_ts:
            return previous_state, state
        previous_state, previous_ts = state, ts
    return None


def apply_order_policy(
    tickets: Iterable[Ticket],
    states: Sequence[str],
    settings: EngineSettings,
    *,
    series: str,
) -> list[Ticket]:
    """Warn about tickets with backwards timestamps; drop them under the "skip" policy."""
    skip = settings.out_of_order_policy == "skip"
    kept: list[Ticket] = []
    for ticket in tickets:
        pair = find_out_of_order(ticket, states)
        if pair is not None:
            logger.warning(
                "%s %s %s %s: %s is stamped before %s",
                "Skipping" if skip else "Keeping",
                ticket.id,
                "from" if skip else "in",
                series,
                pair[1],
                pair[0],
            )
            if skip:
                continue
        kept.append(ticket)
    return kept
