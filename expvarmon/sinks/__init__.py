"""
Expvar Monitor - Sinks Package

Render sinks consume one DashboardAggregate per round:
- ConsoleSink: headless line output
- DashboardSink: full-screen text dashboard, single or multi target layout
"""

from typing import Optional, TextIO

from .base import RenderSink
from .console import ConsoleSink
from .dashboard import DashboardSink, sparkline


def select_sink(target_count: int, headless: bool = False, stream: Optional[TextIO] = None) -> RenderSink:
    """Pick the sink variant for the number of targets and the headless flag."""
    if headless:
        return ConsoleSink(stream)
    return DashboardSink(single=target_count <= 1, stream=stream)


__all__ = [
    "RenderSink",
    "ConsoleSink",
    "DashboardSink",
    "select_sink",
    "sparkline",
]
