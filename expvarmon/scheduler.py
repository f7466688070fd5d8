"""
Expvar Monitor - Polling Scheduler

Drives polling rounds across all targets:
1. Fetches every target concurrently, each bounded by the fetch timeout
2. Extracts every variable and updates that target's series
3. Joins all targets, rebuilds the aggregate and hands it to the sink

Rounds run on a fixed interval and on explicit refresh requests. A refresh
does not shift the interval's phase.
"""

import asyncio
import math
from datetime import datetime
from typing import Iterable, Optional, Set

import structlog

from expvarmon.errors import ExtractionError, FetchError
from expvarmon.expvar import ExpvarFetcher, extract_value
from expvarmon.sinks import RenderSink
from expvarmon.telemetry import DashboardAggregate, Target, TargetStatus, build_aggregate
from expvarmon.variables import VariableSpec

logger = structlog.get_logger(__name__)


class PollingScheduler:
    """Polls all targets and feeds completed rounds to a render sink."""

    def __init__(
        self,
        targets: Iterable[Target],
        variables: Iterable[VariableSpec],
        fetcher: ExpvarFetcher,
        sink: RenderSink,
        interval: float = 5.0,
    ):
        if not (interval > 0 and math.isfinite(interval)):
            raise ValueError("Polling interval must be a positive number of seconds")

        self.targets = list(targets)
        self.variables = tuple(variables)
        self.fetcher = fetcher
        self.sink = sink
        self.interval = interval

        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._refresh_event = asyncio.Event()
        self._round_lock = asyncio.Lock()
        self._in_flight: Set[str] = set()
        self.rounds = 0

        self.aggregate: DashboardAggregate = build_aggregate(self.targets, self.variables)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    def request_refresh(self) -> None:
        """Ask for a round as soon as possible without moving the timer."""
        self._refresh_event.set()

    async def start(self) -> None:
        """Start polling in a background task."""
        if self._task and not self._task.done():
            return
        self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        """Stop polling; in-flight fetches are abandoned without applying updates."""
        self._running = False
        # A task that already finished has had its outcome reported by its owner
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

    async def run(self) -> None:
        """Run the startup round, then one round per tick or refresh request."""
        loop = asyncio.get_running_loop()
        self._running = True

        try:
            self.sink.initialize(self.aggregate)
            logger.info(
                "Polling started",
                targets=len(self.targets),
                variables=len(self.variables),
                interval=self.interval,
            )

            next_tick = loop.time() + self.interval
            await self._safe_round()

            while self._running:
                timeout = next_tick - loop.time()
                if timeout > 0:
                    try:
                        await asyncio.wait_for(self._refresh_event.wait(), timeout)
                    except asyncio.TimeoutError:
                        pass

                if not self._running:
                    break

                now = loop.time()
                if now >= next_tick:
                    # Skip ticks missed during a slow round instead of replaying them
                    while next_tick <= now:
                        next_tick += self.interval
                self._refresh_event.clear()

                await self._safe_round()
        finally:
            self._running = False
            self.sink.shutdown()
            logger.info("Polling stopped", rounds=self.rounds)

    async def _safe_round(self) -> None:
        try:
            await self.run_round()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("Polling round failed", error=str(e))

    async def run_round(self) -> DashboardAggregate:
        """Poll every target concurrently and refresh the sink once all are done."""
        async with self._round_lock:
            results = await asyncio.gather(
                *(self.poll_target(target) for target in self.targets),
                return_exceptions=True,
            )

            for target, result in zip(self.targets, results):
                if isinstance(result, BaseException):
                    logger.error(
                        "Unexpected polling error",
                        target=target.address,
                        error=repr(result),
                    )
                    target.status = TargetStatus.ERROR
                    target.error = repr(result)

            self.rounds += 1
            self.aggregate = build_aggregate(self.targets, self.variables, datetime.now())
            self.sink.refresh(self.aggregate)
            return self.aggregate

    async def poll_target(self, target: Target) -> bool:
        """
        Fetch one target and update its series.

        Returns True when the fetch succeeded. A target already being polled
        is skipped so its series never sees two concurrent writers.
        """
        if target.address in self._in_flight:
            logger.warning("Previous poll still running, skipping", target=target.address)
            return False

        self._in_flight.add(target.address)
        try:
            try:
                document = await self.fetcher.fetch(target.address)
            except FetchError as e:
                previous = target.status
                target.mark_failed(e)
                if previous != target.status:
                    logger.warning(
                        "Target unavailable",
                        target=target.address,
                        status=target.status.value,
                        error=e.message,
                    )
                return False

            # Nothing below awaits: a cancelled fetch never leaves a partial update
            if target.status != TargetStatus.ONLINE:
                logger.info("Target online", target=target.address)
            target.mark_online(datetime.now(), document)

            var_errors = {}
            for spec in self.variables:
                try:
                    raw = extract_value(document, spec.path)
                except ExtractionError as e:
                    var_errors[spec.name] = str(e)
                    logger.debug(
                        "Variable unavailable",
                        target=target.address,
                        var=spec.name,
                        error=str(e),
                    )
                    continue
                target.series[spec.name].update(raw, spec.kind)

            target.var_errors = var_errors
            return True
        finally:
            self._in_flight.discard(target.address)
