"""
Expvar Monitor - Delta/History Engine

Turns raw scalars into display values and keeps a bounded history of them.

Gauges and memory values are displayed as read. Counters and durations
accumulate over the monitored process's lifetime and are displayed as the
difference since the previous poll. A decrease means the counter was reset
(usually a process restart), so the delta is clamped to zero and the new raw
value becomes the baseline.
"""

from collections import deque
from typing import Deque, Optional, Tuple, Union

from expvarmon.variables import VarKind

Number = Union[int, float]


class SeriesState:
    """Accumulated state for one (target, variable) pair."""

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError("History capacity must be positive")
        self.capacity = capacity
        self.raw_previous: Optional[Number] = None
        self.last_value: Optional[Number] = None
        self.history: Deque[Number] = deque(maxlen=capacity)

    @property
    def values(self) -> Tuple[Number, ...]:
        """Read-only copy of the history, oldest first."""
        return tuple(self.history)

    @property
    def max_value(self) -> Optional[Number]:
        """Largest display value currently held, None when empty."""
        return max(self.history) if self.history else None

    def update(self, raw: Number, kind: VarKind) -> Number:
        """Record a raw reading and return the display value appended."""
        if kind.is_delta:
            if self.raw_previous is None:
                value = 0
            else:
                value = max(raw - self.raw_previous, 0)
        else:
            value = raw

        self.raw_previous = raw
        self.last_value = value
        # deque(maxlen) drops the oldest entry once full
        self.history.append(value)
        return value

    def __repr__(self) -> str:
        return f"SeriesState(last_value={self.last_value!r}, points={len(self.history)}/{self.capacity})"
