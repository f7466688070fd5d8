"""
Expvar Monitor - Telemetry Package

Per-target state, delta/history computation and the per-round snapshot.
"""

from .series import SeriesState
from .target import Target, TargetStatus
from .aggregate import DashboardAggregate, build_aggregate

__all__ = [
    "SeriesState",
    "Target",
    "TargetStatus",
    "DashboardAggregate",
    "build_aggregate",
]
