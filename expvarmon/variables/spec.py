"""
Expvar Monitor - Variable Specification Parser

Turns the ``--vars`` mini-language into typed extraction rules.

Each comma-separated token has the form ``[kind:]path[ name]``:

    mem:memstats.Alloc           memory gauge, named "memstats.Alloc"
    duration:Response.Mean Mean  duration delta, named "Mean"
    Goroutines                   plain gauge

Only an explicit ``kind:`` prefix selects a kind; a bare word such as
``Counter`` is a path.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Tuple, Union

from expvarmon.errors import InvalidSpecError


class VarKind(str, Enum):
    """How raw values of a variable are interpreted and formatted."""
    GAUGE = "gauge"
    MEMORY = "mem"
    DURATION = "duration"
    COUNTER = "counter"

    @classmethod
    def from_prefix(cls, prefix: str) -> "VarKind":
        """Map a descriptor prefix to a kind, unknown prefixes are gauges."""
        if prefix in (cls.MEMORY.value, cls.DURATION.value, cls.COUNTER.value):
            return cls(prefix)
        return cls.GAUGE

    @property
    def is_delta(self) -> bool:
        return self in (VarKind.DURATION, VarKind.COUNTER)


@dataclass(frozen=True)
class VariableSpec:
    """One variable to track on every target."""
    name: str
    kind: VarKind
    path: Tuple[str, ...]

    @property
    def is_delta(self) -> bool:
        """Whether display values are deltas between polls."""
        return self.kind.is_delta

    @property
    def dotted_path(self) -> str:
        return ".".join(self.path)

    def format(self, value) -> str:
        """Render a display value according to this variable's kind."""
        from .format import format_value
        return format_value(self.kind, value)


def parse_var(token: str) -> VariableSpec:
    """Parse a single ``[kind:]path[ name]`` token."""
    token = token.strip()
    if not token:
        raise InvalidSpecError("Empty variable descriptor")

    kind = VarKind.GAUGE
    body = token
    # A kind prefix only counts inside the leading path word
    if ":" in token.split(None, 1)[0]:
        prefix, body = token.split(":", 1)
        kind = VarKind.from_prefix(prefix.strip().lower())

    parts = body.strip().split(None, 1)
    if not parts:
        raise InvalidSpecError(f"Empty path in variable descriptor {token!r}")

    dotted = parts[0]
    path = tuple(dotted.split("."))
    if any(not segment for segment in path):
        raise InvalidSpecError(f"Empty path segment in variable descriptor {token!r}")

    name = parts[1].strip() if len(parts) > 1 else dotted
    return VariableSpec(name=name, kind=kind, path=path)


def parse_vars(value: Union[str, Iterable[str]]) -> List[VariableSpec]:
    """
    Parse a comma-separated list of variable descriptors.

    Accepts a single string or a sequence of strings, each of which may
    itself hold several comma-separated tokens. Raises InvalidSpecError on
    empty tokens, empty paths or duplicate names.
    """
    chunks = [value] if isinstance(value, str) else list(value)

    specs: List[VariableSpec] = []
    seen = set()
    for chunk in chunks:
        for token in chunk.split(","):
            spec = parse_var(token)
            if spec.name in seen:
                raise InvalidSpecError(f"Duplicate variable name {spec.name!r}")
            seen.add(spec.name)
            specs.append(spec)

    if not specs:
        raise InvalidSpecError("No variables specified")
    return specs
