"""
Expvar Monitor - Logging

Structured logging setup. Logs go to stderr as JSON so they never mix with
dashboard output on stdout.
"""

import logging
import sys

import structlog


def configure_logging(debug: bool = False, quiet: bool = False) -> None:
    """
    Configure stdlib logging and structlog once at startup.

    ``quiet`` raises the level to ERROR, used while the full-screen
    dashboard owns the terminal.
    """
    level = logging.INFO
    if debug:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=level,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
