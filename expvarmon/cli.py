"""
Expvar Monitor - Command Line

Usage:
    expvarmon --ports="80"
    expvarmon --ports="23000-23010,http://example.com:80-81" -i=1m
    expvarmon --ports="80,remoteapp:80" --vars="mem:memstats.Alloc,duration:Response.Mean,Counter"
    expvarmon --ports="1234-1236" --vars="Goroutines" --self
"""

import argparse
import asyncio
import signal
import sys
from typing import List, Optional

import structlog

from expvarmon import __version__
from expvarmon.config import Settings, load_settings
from expvarmon.errors import ConfigurationError
from expvarmon.expvar import ExpvarFetcher
from expvarmon.logconfig import configure_logging
from expvarmon.ports import parse_ports
from expvarmon.scheduler import PollingScheduler
from expvarmon.selfmon import SelfMonitor
from expvarmon.sinks import select_sink
from expvarmon.telemetry import Target
from expvarmon.variables import parse_vars

logger = structlog.get_logger(__name__)

EXAMPLES = """
Examples:
  %(prog)s --ports="80"
  %(prog)s --ports="23000-23010,http://example.com:80-81" -i=1m
  %(prog)s --ports="80,remoteapp:80" --vars="mem:memstats.Alloc,duration:Response.Mean,Counter"
  %(prog)s --ports="1234-1236" --vars="Goroutines" --self
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="expvarmon",
        description="Monitor expvar endpoints of running processes",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", "-c", help="Path to YAML configuration file")
    parser.add_argument("-i", "--interval", help="Polling interval (e.g. 5s, 1m, 1h30m)")
    parser.add_argument(
        "--ports",
        help="Ports/URLs for accessing services expvars (start-end,port2,port3,https://host:port)",
    )
    parser.add_argument("--vars", help="Vars to monitor (comma-separated)")
    parser.add_argument("--endpoint", help="URL endpoint for expvars")
    parser.add_argument("--history", dest="history_size", type=int, help="Points kept per variable")
    parser.add_argument("--timeout", dest="fetch_timeout", help="Per-fetch timeout (e.g. 3s)")
    parser.add_argument("--dummy", action="store_true", default=None, help="Use dummy (console) output")
    parser.add_argument("--self", dest="self_monitor", action="store_true", default=None, help="Monitor itself")
    parser.add_argument("--debug", action="store_true", default=None, help="Turn debugging mode on")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


class Monitor:
    """Wires settings, targets, fetcher, scheduler and sink together."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.variables = parse_vars(settings.vars)
        self.addresses = parse_ports(settings.ports_list, settings.endpoint)
        self.self_monitor = SelfMonitor(settings.endpoint) if settings.self_monitor else None
        self.scheduler: Optional[PollingScheduler] = None
        self.error: Optional[BaseException] = None
        self._shutdown_event = asyncio.Event()

    async def start(self) -> None:
        """Start self monitoring (if enabled) and the polling scheduler."""
        addresses = list(self.addresses)
        if self.self_monitor:
            await self.self_monitor.start()
            addresses.append(self.self_monitor.address)

        if not addresses:
            raise ConfigurationError(
                "no ports specified. Use --ports arg to specify ports of apps to monitor"
            )

        targets = [
            Target.create(address, self.variables, self.settings.history_size)
            for address in addresses
        ]
        fetcher = ExpvarFetcher(timeout=self.settings.fetch_timeout)
        sink = select_sink(len(targets), headless=self.settings.dummy)

        self.scheduler = PollingScheduler(
            targets, self.variables, fetcher, sink, interval=self.settings.interval
        )
        await self.scheduler.start()
        self.scheduler.task.add_done_callback(self._on_scheduler_done)
        logger.info("Monitor started", targets=addresses)

    async def stop(self) -> None:
        """Stop polling and release resources."""
        if self.scheduler:
            await self.scheduler.stop()
            await self.scheduler.fetcher.close()
        if self.self_monitor:
            await self.self_monitor.stop()
        self._shutdown_event.set()
        logger.info("Monitor stopped")

    def _on_scheduler_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.error = error
            logger.error("Polling stopped unexpectedly", error=repr(error))
        self.request_stop()

    def request_stop(self) -> None:
        self._shutdown_event.set()

    def request_refresh(self) -> None:
        if self.scheduler:
            self.scheduler.request_refresh()

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_stop)
            except NotImplementedError:
                pass
        if hasattr(signal, "SIGWINCH"):
            try:
                loop.add_signal_handler(signal.SIGWINCH, self.request_refresh)
            except NotImplementedError:
                pass

        try:
            await self.start()
            await self._shutdown_event.wait()
        finally:
            await self.stop()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    overrides = vars(args).copy()
    config_file = overrides.pop("config")

    try:
        settings = load_settings(config_file, **overrides)
        configure_logging(debug=settings.debug, quiet=not settings.dummy)
        monitor = Monitor(settings)
        if not monitor.addresses and not settings.self_monitor:
            raise ConfigurationError(
                "no ports specified. Use --ports arg to specify ports of apps to monitor"
            )
        asyncio.run(monitor.run())
        if monitor.error is not None:
            print(f"expvarmon: polling failed: {monitor.error}", file=sys.stderr)
            return 1
    except ConfigurationError as e:
        print(f"expvarmon: {e}", file=sys.stderr)
        parser.print_usage(sys.stderr)
        return 1
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
