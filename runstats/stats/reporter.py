"""Background thread that periodically writes a flat stats report."""

from __future__ import annotations

import threading
from typing import Any

from runstats.lib.logger import get_logger
from runstats.stats.host import HostStats
from runstats.stats.registry import StatsRegistry
from runstats.w3c.reporter import W3CReporter

logger = get_logger(__name__)


class StatsReporter:
    """Sleep for ``interval_seconds``, report, repeat; no drift correction.

    Counters are reported as deltas since the previous report and are never
    reset, so other readers keep seeing cumulative values.
    """

    def __init__(
        self,
        registry: StatsRegistry,
        reporter: W3CReporter,
        interval_seconds: float,
        include_host: bool = True,
        host_stats: HostStats | None = None,
    ) -> None:
        self._registry = registry
        self._reporter = reporter
        self.interval_seconds = interval_seconds
        self._host_stats = (host_stats or HostStats()) if include_host else None
        self._previous_counters: dict[str, int] = {}
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None

    def collect(self) -> dict[str, Any]:
        report: dict[str, Any] = {}
        if self._host_stats is not None:
            for key, value in self._host_stats.snapshot().items():
                report[f"host_{key}"] = value

        for key, value in self._registry.get_counter_stats(False).items():
            report[key] = value - self._previous_counters.get(key, 0)
            self._previous_counters[key] = value

        report.update(self._registry.get_gauge_stats(False))

        for key, timing in self._registry.get_timing_stats(False).items():
            report[f"{key}_count"] = timing.count
            report[f"{key}_min"] = timing.minimum
            report[f"{key}_max"] = timing.maximum
            report[f"{key}_sum"] = timing.sum
            report[f"{key}_sumsq"] = timing.sum_squares if timing.sum_squares is not None else 0
            report[f"{key}_avg"] = timing.average
            report[f"{key}_std"] = timing.standard_deviation
        return report

    def report_once(self) -> str:
        return self._reporter.report(self.collect())

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stopped.clear()
        self._thread = threading.Thread(target=self._run, name="StatsReporter", daemon=True)
        self._thread.start()
        logger.info("stats.reporter.started", extra={"interval_seconds": self.interval_seconds})

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stopped.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("stats.reporter.stopped")

    def _run(self) -> None:
        while not self._stopped.wait(self.interval_seconds):
            try:
                self.report_once()
            except Exception:
                logger.exception("stats.reporter.failed")
