"""
Expvar Monitor - Text Dashboard Sink

Redraws the terminal after every round. A single target gets one sparkline
per variable; several targets get a table of latest values with a sparkline
of the first variable.
"""

import shutil
import sys
from typing import Optional, Sequence, TextIO, Union

from expvarmon.telemetry import DashboardAggregate, Target, TargetStatus
from expvarmon.variables import VariableSpec

from .base import RenderSink

Number = Union[int, float]

SPARK_CHARS = "▁▂▃▄▅▆▇█"

CLEAR_SCREEN = "\033[H\033[2J"
HIDE_CURSOR = "\033[?25l"
SHOW_CURSOR = "\033[?25h"


def sparkline(values: Sequence[Number], width: int) -> str:
    """Render the last ``width`` values as a one-line sparkline scaled to their max."""
    if width <= 0:
        return ""
    data = list(values)[-width:]
    if not data:
        return ""

    upper = max(data)
    if upper <= 0:
        return SPARK_CHARS[0] * len(data)

    levels = len(SPARK_CHARS) - 1
    chars = []
    for v in data:
        ratio = max(0.0, min(1.0, v / upper))
        chars.append(SPARK_CHARS[round(ratio * levels)])
    return "".join(chars)


def _status_text(target: Target) -> str:
    if target.status == TargetStatus.ONLINE:
        return "online"
    if target.error:
        return f"{target.status.value}: {target.error}"
    return target.status.value


class DashboardSink(RenderSink):
    """Full-screen text dashboard."""

    def __init__(self, single: bool, stream: Optional[TextIO] = None):
        self.single = single
        self.stream = stream or sys.stdout

    def _width(self) -> int:
        return shutil.get_terminal_size((80, 24)).columns

    def initialize(self, aggregate: DashboardAggregate) -> None:
        self.stream.write(HIDE_CURSOR)
        self.refresh(aggregate)

    def refresh(self, aggregate: DashboardAggregate) -> None:
        if self.single:
            lines = self.render_single(aggregate)
        else:
            lines = self.render_multi(aggregate)
        self.stream.write(CLEAR_SCREEN + "\n".join(lines) + "\n")
        self.stream.flush()

    def shutdown(self) -> None:
        self.stream.write(SHOW_CURSOR)
        self.stream.flush()

    def _header(self, aggregate: DashboardAggregate) -> str:
        updated = aggregate.timestamp.strftime("%H:%M:%S") if aggregate.timestamp else "never"
        return (
            f"expvarmon - {aggregate.online_count}/{len(aggregate.targets)} online"
            f" - updated {updated} - Ctrl+C to quit"
        )

    def _value_text(self, target: Target, spec: VariableSpec) -> str:
        if spec.name in target.var_errors:
            return "N/A"
        return spec.format(target.series[spec.name].last_value)

    def render_single(self, aggregate: DashboardAggregate) -> list:
        width = self._width()
        lines = [self._header(aggregate)]
        if not aggregate.targets:
            return lines

        target = aggregate.targets[0]
        lines.append(f"{target.name} ({target.address}) {_status_text(target)}")
        lines.append("-" * min(width, 80))

        for spec in aggregate.variables:
            state = target.series[spec.name]
            label = f"{spec.name}: {self._value_text(target, spec)}"
            if state.max_value is not None:
                label += f" (max {spec.format(state.max_value)})"
            if spec.name in target.var_errors:
                label += f" [{target.var_errors[spec.name]}]"
            lines.append(label)
            lines.append(sparkline(state.values, width))
        return lines

    def render_multi(self, aggregate: DashboardAggregate) -> list:
        width = self._width()
        lines = [self._header(aggregate)]

        name_width = max([len(t.name) for t in aggregate.targets] + [len("Target")])
        columns = [max(len(spec.name), 10) for spec in aggregate.variables]

        header = "Target".ljust(name_width) + "  " + "  ".join(
            spec.name.rjust(col) for spec, col in zip(aggregate.variables, columns)
        )
        lines.append(header)
        lines.append("-" * min(width, len(header)))

        for target in aggregate.targets:
            if target.status != TargetStatus.ONLINE:
                lines.append(f"{target.name.ljust(name_width)}  {_status_text(target)}")
                continue
            cells = [
                self._value_text(target, spec).rjust(col)
                for spec, col in zip(aggregate.variables, columns)
            ]
            lines.append(target.name.ljust(name_width) + "  " + "  ".join(cells))

        if aggregate.variables:
            first = aggregate.variables[0]
            lines.append("")
            lines.append(first.name)
            spark_width = max(width - name_width - 2, 0)
            for target in aggregate.targets:
                values = target.series[first.name].values
                lines.append(target.name.ljust(name_width) + "  " + sparkline(values, spark_width))
        return lines
