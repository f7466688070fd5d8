"""
Expvar Monitor - Dashboard Aggregate

The snapshot handed to the render sink after every round.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Tuple

from expvarmon.variables import VariableSpec

from .target import Target, TargetStatus


@dataclass(frozen=True)
class DashboardAggregate:
    """
    Point-in-time view of all targets.

    Targets are shared by reference with the scheduler. Sinks must treat
    them as read-only and must not keep the aggregate past their refresh
    call.
    """
    targets: Tuple[Target, ...]
    variables: Tuple[VariableSpec, ...]
    timestamp: Optional[datetime] = None

    @property
    def online_count(self) -> int:
        return sum(1 for t in self.targets if t.status == TargetStatus.ONLINE)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "variables": [
                {"name": v.name, "kind": v.kind.value, "path": v.dotted_path}
                for v in self.variables
            ],
            "targets": [t.to_dict() for t in self.targets],
        }


def build_aggregate(
    targets: Iterable[Target],
    variables: Iterable[VariableSpec],
    timestamp: Optional[datetime] = None,
) -> DashboardAggregate:
    """Assemble the snapshot for one completed round."""
    return DashboardAggregate(
        targets=tuple(targets),
        variables=tuple(variables),
        timestamp=timestamp,
    )
