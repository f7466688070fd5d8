"""
Expvar Monitor - Variables Package

Variable descriptors and per-kind value formatting.
"""

from .spec import VarKind, VariableSpec, parse_vars
from .format import format_value

__all__ = [
    "VarKind",
    "VariableSpec",
    "parse_vars",
    "format_value",
]
