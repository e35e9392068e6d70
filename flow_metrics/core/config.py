"""Central configuration, constants, and engine policies."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

# =============================================================================
# Time Settings
# =============================================================================
TIMEZONE = "UTC"
SECONDS_PER_DAY: int = 86400

# =============================================================================
# Workflow Configuration
# =============================================================================
# Default state order; callers may pass their own sequence to every builder.
DEFAULT_WORKFLOW_STATES: Sequence[str] = (
    "analysis_active",
    "analysis_done",
    "in_progress",
    "dev_complete",
    "verification_start",
    "delivered",
)

TERMINAL_STATE = DEFAULT_WORKFLOW_STATES[-1]

# Map raw state keys found in exported ticket data to canonical names.
# Keys should be lowercase for case-insensitive matching
STATE_ALIASES: dict[str, str] = {
    "analysis active": "analysis_active",
    "analysis-active": "analysis_active",
    "analysis done": "analysis_done",
    "analysis-done": "analysis_done",
    "in progress": "in_progress",
    "in-progress": "in_progress",
    "inprogress": "in_progress",
    "dev complete": "dev_complete",
    "dev-complete": "dev_complete",
    "verif_start": "verification_start",
    "verification start": "verification_start",
    "verification-start": "verification_start",
    "done": "delivered",
}

# =============================================================================
# Process Behaviour Chart Constants
# =============================================================================
# XmR scaling factors for a two-point moving range. Not tunable.
NATURAL_PROCESS_LIMIT_FACTOR: float = 2.66
MOVING_RANGE_LIMIT_FACTOR: float = 3.27

# =============================================================================
# Distribution Defaults
# =============================================================================
DEFAULT_PERCENTILES: Sequence[float] = (0.5, 0.7, 0.85, 0.95)
DEFAULT_HISTOGRAM_BINS: int = 12

# =============================================================================
# Data Quality Policies
# =============================================================================
# "skip": drop tickets whose timestamps go backwards in workflow order.
# "keep": tolerate them and apply the counting rules literally.
OUT_OF_ORDER_POLICIES: frozenset[str] = frozenset({"skip", "keep"})

# "ticket_id": same-instant deliveries ordered by ticket id.
# "input": same-instant deliveries keep the caller's order.
TIE_BREAK_POLICIES: frozenset[str] = frozenset({"ticket_id", "input"})

MOVING_RANGE_MODES: frozenset[str] = frozenset({"ticket", "day"})


@dataclass(slots=True)
class EngineSettings:
    timezone: str = TIMEZONE
    out_of_order_policy: str = "skip"
    tie_break: str = "ticket_id"


SETTINGS = EngineSettings()
