"""
Expvar Monitor - Path Extractor

Walks a parsed expvar tree one segment at a time. Objects are indexed by
field name, lists by non-negative integer index. Missing values are errors,
never defaults, so a single variable can be marked stale without touching
its siblings.
"""

import math
from typing import Any, Sequence, Union

from expvarmon.errors import PathNotFoundError, TypeMismatchError

Number = Union[int, float]


def _describe(path: Sequence[str], depth: int) -> str:
    return ".".join(path[:depth + 1])


def resolve_path(tree: Any, path: Sequence[str]) -> Any:
    """Return the node found at ``path`` inside ``tree``."""
    node = tree
    for depth, segment in enumerate(path):
        if isinstance(node, dict):
            if segment not in node:
                raise PathNotFoundError(f"{_describe(path, depth)}: field not found")
            node = node[segment]
        elif isinstance(node, list):
            if not (segment.isascii() and segment.isdigit()):
                raise PathNotFoundError(
                    f"{_describe(path, depth)}: invalid index {segment!r} for array"
                )
            index = int(segment)
            if index >= len(node):
                raise PathNotFoundError(
                    f"{_describe(path, depth)}: index {index} out of range ({len(node)} items)"
                )
            node = node[index]
        else:
            raise TypeMismatchError(
                f"{_describe(path, depth)}: cannot look up {segment!r} in {type(node).__name__}"
            )
    return node


def to_number(value: Any) -> Number:
    """Convert a scalar node to a number, rejecting booleans and containers."""
    if isinstance(value, bool):
        raise TypeMismatchError(f"expected a number, got bool {value!r}")
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            raise TypeMismatchError(f"expected a number, got string {value!r}") from None
    else:
        raise TypeMismatchError(f"expected a number, got {type(value).__name__}")

    if isinstance(number, float) and not math.isfinite(number):
        raise TypeMismatchError(f"expected a finite number, got {value!r}")
    return number


def extract_value(tree: Any, path: Sequence[str]) -> Number:
    """Resolve ``path`` and return the numeric value stored there."""
    node = resolve_path(tree, path)
    try:
        return to_number(node)
    except TypeMismatchError as e:
        raise TypeMismatchError(f"{'.'.join(path)}: {e}") from None
