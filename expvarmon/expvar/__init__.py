"""
Expvar Monitor - Expvar Package

Fetching expvar documents and resolving variable paths inside them.
"""

from .fetcher import DEFAULT_ENDPOINT, ExpvarFetcher, parse_expvar
from .path import extract_value, resolve_path

__all__ = [
    "DEFAULT_ENDPOINT",
    "ExpvarFetcher",
    "parse_expvar",
    "extract_value",
    "resolve_path",
]
