"""
Expvar Monitor - Console Sink

Headless output: one line per target per round, suitable for piping into a
file or another tool.
"""

import sys
from typing import Optional, TextIO

from expvarmon.telemetry import DashboardAggregate, TargetStatus

from .base import RenderSink


class ConsoleSink(RenderSink):
    """Writes plain text lines to a stream."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout

    def initialize(self, aggregate: DashboardAggregate) -> None:
        names = ", ".join(t.address for t in aggregate.targets)
        self.stream.write(f"Monitoring {len(aggregate.targets)} target(s): {names}\n")
        self.stream.flush()

    def refresh(self, aggregate: DashboardAggregate) -> None:
        ts = aggregate.timestamp.strftime("%H:%M:%S") if aggregate.timestamp else "--:--:--"
        for target in aggregate.targets:
            if target.status != TargetStatus.ONLINE:
                self.stream.write(f"{ts} {target.name} {target.status.value}: {target.error or ''}\n")
                continue

            fields = []
            for spec in aggregate.variables:
                state = target.series[spec.name]
                value = "N/A" if spec.name in target.var_errors else spec.format(state.last_value)
                fields.append(f"{spec.name}={value}")
            self.stream.write(f"{ts} {target.name} online {' '.join(fields)}\n")
        self.stream.flush()

    def shutdown(self) -> None:
        self.stream.flush()
