"""
Expvar Monitor - Target

One monitored process and the series collected from it. A Target is owned by
the polling scheduler; renderers only read it between rounds.
"""

import os
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, Optional
from urllib.parse import urlsplit

from expvarmon.errors import FetchError, NetworkError
from expvarmon.variables import VariableSpec

from .series import SeriesState


class TargetStatus(str, Enum):
    """Outcome of the most recent poll of a target."""
    PENDING = "pending"
    ONLINE = "online"
    OFFLINE = "offline"
    ERROR = "error"


def display_name(address: str) -> str:
    """Short ``host:port`` label for an address."""
    parts = urlsplit(address)
    return parts.netloc or address


@dataclass
class Target:
    """Monitored process at a fixed address."""
    address: str
    series: Dict[str, SeriesState]
    name: str = ""
    status: TargetStatus = TargetStatus.PENDING
    error: Optional[str] = None
    last_fetched_at: Optional[datetime] = None

    # Variables whose extraction failed in the last successful poll
    var_errors: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if not self.name:
            self.name = display_name(self.address)

    @classmethod
    def create(cls, address: str, variables: Iterable[VariableSpec], capacity: int) -> "Target":
        """Build a target with one empty series per variable."""
        return cls(
            address=address,
            series={spec.name: SeriesState(capacity) for spec in variables},
        )

    @property
    def stale(self) -> frozenset:
        return frozenset(self.var_errors)

    @property
    def is_online(self) -> bool:
        return self.status == TargetStatus.ONLINE

    def mark_online(self, fetched_at: datetime, document: Dict[str, Any]) -> None:
        """Record a successful fetch."""
        self.status = TargetStatus.ONLINE
        self.error = None
        self.last_fetched_at = fetched_at

        # Go expvar documents carry the command line; use the binary name
        cmdline = document.get("cmdline")
        if isinstance(cmdline, list) and cmdline and isinstance(cmdline[0], str) and cmdline[0]:
            self.name = os.path.basename(cmdline[0])

    def mark_failed(self, error: FetchError) -> None:
        """Record a failed fetch; series are left untouched."""
        self.status = TargetStatus.OFFLINE if isinstance(error, NetworkError) else TargetStatus.ERROR
        self.error = error.message

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "address": self.address,
            "name": self.name,
            "status": self.status.value,
            "error": self.error,
            "last_fetched_at": self.last_fetched_at.isoformat() if self.last_fetched_at else None,
            "stale": sorted(self.var_errors),
            "series": {
                name: {"last_value": state.last_value, "history": list(state.history)}
                for name, state in self.series.items()
            },
        }
