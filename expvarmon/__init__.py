"""
Expvar Monitor

Polls expvar endpoints of running processes, turns the selected variables
into bounded time series and renders them as a live dashboard.
"""

__version__ = "1.0.0"
