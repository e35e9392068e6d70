"""Flow overview feature: every flow series assembled for one ticket set."""

from flow_metrics.features.flow_overview.context import FlowContext, build_flow_context

__all__ = [
    "FlowContext",
    "build_flow_context",
]
