"""
Expvar Monitor - Self Monitoring

Serves an expvar-style document describing this process so the monitor can
watch itself with ``--self``. Memory figures come from psutil and the garbage
collector, laid out under the same ``memstats`` names Go's runtime uses.
"""

import asyncio
import gc
import sys
import time
from typing import Optional

import psutil
import structlog
from aiohttp import web

logger = structlog.get_logger(__name__)


class SelfMonitor:
    """Local HTTP endpoint exposing this process's own variables."""

    def __init__(self, endpoint: str = "/debug/vars", host: str = "127.0.0.1"):
        self.endpoint = endpoint
        self.host = host
        self.port: Optional[int] = None
        self._runner: Optional[web.AppRunner] = None
        self._process = psutil.Process()
        self._started = time.time()
        self._gc_pause_ns = 0
        self._gc_start: Optional[int] = None

    @property
    def address(self) -> str:
        return f"http://{self.host}:{self.port}{self.endpoint}"

    def collect(self) -> dict:
        """Build the expvar document for this process."""
        mem = self._process.memory_info()
        gc_stats = gc.get_stats()
        try:
            tasks = len(asyncio.all_tasks())
        except RuntimeError:
            tasks = 0

        return {
            "cmdline": list(sys.argv),
            "memstats": {
                "Alloc": mem.rss,
                "Sys": mem.vms,
                "HeapAlloc": mem.rss,
                "HeapInuse": mem.rss,
                "NumGC": sum(s["collections"] for s in gc_stats),
                "PauseTotalNs": self._gc_pause_ns,
            },
            "Goroutines": tasks,
            "Uptime": int(time.time() - self._started),
        }

    def _on_gc(self, phase: str, info: dict) -> None:
        if phase == "start":
            self._gc_start = time.perf_counter_ns()
        elif self._gc_start is not None:
            self._gc_pause_ns += time.perf_counter_ns() - self._gc_start
            self._gc_start = None

    async def handle_vars(self, request: web.Request) -> web.Response:
        return web.json_response(self.collect())

    async def start(self) -> int:
        """Start serving on an ephemeral port and return the port."""
        gc.callbacks.append(self._on_gc)

        app = web.Application()
        app.router.add_get(self.endpoint, self.handle_vars)

        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, 0)
        await site.start()

        self.port = self._runner.addresses[0][1]
        logger.info("Self monitor started", address=self.address)
        return self.port

    async def stop(self) -> None:
        """Stop serving."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
        if self._on_gc in gc.callbacks:
            gc.callbacks.remove(self._on_gc)
        logger.info("Self monitor stopped")
