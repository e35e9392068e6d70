"""Exception types raised by the flow metrics engine."""

from __future__ import annotations


class FlowMetricsError(RuntimeError):
    """Base class for engine errors surfaced to callers."""


class WorkflowConfigError(FlowMetricsError, ValueError):
    """Workflow states or engine settings are unusable."""


class EmptyBaselineError(FlowMetricsError):
    """No records fall inside the selected baseline window."""

    def __init__(self, series: str, start, end):
        self.series = series
        self.start = start
        self.end = end
        super().__init__(f"No {series} records between {start} and {end}; limits are undefined")


class InsufficientDataError(FlowMetricsError):
    """Too few records to form a moving range."""
