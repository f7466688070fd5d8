"""
Expvar Monitor - Logging Tests
"""

import structlog

from expvarmon.logconfig import configure_logging


class TestConfigureLogging:
    """Test structlog setup."""

    def test_json_renderer_is_last(self):
        configure_logging(debug=True)

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)
        assert structlog.stdlib.filter_by_level in processors
