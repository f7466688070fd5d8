"""
Expvar Monitor - Value Formatting

Human-readable rendering of display values per variable kind.
"""

from typing import Optional, Union

from .spec import VarKind

Number = Union[int, float]

MEMORY_UNITS = ["B", "KB", "MB", "GB", "TB"]

# Nanosecond thresholds, largest first
DURATION_UNITS = [
    (3600 * 10**9, "h"),
    (60 * 10**9, "m"),
    (10**9, "s"),
    (10**6, "ms"),
    (10**3, "µs"),
]


def _trim(value: float) -> str:
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return text or "0"


def format_memory(value: Number) -> str:
    """Format a byte count using base-1024 units."""
    size = float(value)
    for unit in MEMORY_UNITS:
        if abs(size) < 1024 or unit == MEMORY_UNITS[-1]:
            if unit == "B":
                return f"{int(size)}B"
            return f"{size:.1f}{unit}"
        size /= 1024


def format_duration(value: Number) -> str:
    """Format a nanosecond duration."""
    for threshold, unit in DURATION_UNITS:
        if abs(value) >= threshold:
            return f"{_trim(value / threshold)}{unit}"
    return f"{_trim(value)}ns"


def format_number(value: Number) -> str:
    if isinstance(value, int) or float(value).is_integer():
        return str(int(value))
    return _trim(value)


def format_value(kind: VarKind, value: Optional[Number]) -> str:
    """Render a display value for the given kind, "N/A" when absent."""
    if value is None:
        return "N/A"
    if kind == VarKind.MEMORY:
        return format_memory(value)
    if kind == VarKind.DURATION:
        return format_duration(value)
    return format_number(value)
