"""
Expvar Monitor - Render Sink Interface

Every output (console, text dashboard) implements this interface so the
scheduler depends on nothing but these three calls.
"""

from abc import ABC, abstractmethod

from expvarmon.telemetry import DashboardAggregate


class RenderSink(ABC):
    """Base class for all render sinks."""

    @abstractmethod
    def initialize(self, aggregate: DashboardAggregate) -> None:
        """Prepare the output before the first round completes."""
        pass

    @abstractmethod
    def refresh(self, aggregate: DashboardAggregate) -> None:
        """Draw a completed round. Must not keep the aggregate afterwards."""
        pass

    @abstractmethod
    def shutdown(self) -> None:
        """Release the output."""
        pass
