"""Central named store of counters, timings, injected timing stats and gauges."""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Mapping, TypeVar

from runstats.stats.counter import Counter
from runstats.stats.gauge import DerivativeGauge, FunctionGauge, Gauge, GaugeBuilder
from runstats.stats.timing import Timing, TimingStat, duration_ms, duration_ns

T = TypeVar("T")

TimingStatsFn = Callable[[bool], Mapping[str, TimingStat]]

_NANOS_PER_MILLI = 1_000_000


class Stats(ABC):
    """Capability handed to producers: count events and time units of work."""

    @abstractmethod
    def incr(self, name: str, by: int = 1) -> int:
        """Increment a named counter and return its new value."""

    @abstractmethod
    def add_timing(self, name: str, duration: int) -> int:
        """Record a precomputed duration under ``name``."""

    @abstractmethod
    def time(self, name: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run ``fn`` and record its duration, in milliseconds, under ``name``."""

    @abstractmethod
    def time_nanos(self, name: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run ``fn`` and record its duration, in nanoseconds, under ``name``.

        Encode the unit in the name; a ``_ns`` suffix is the convention.
        """

    @contextmanager
    def timer(self, name: str) -> Iterator[None]:
        """Time the body of a ``with`` block in milliseconds.

        Nothing is recorded when the block raises.
        """

        start = time.monotonic_ns()
        yield
        self.add_timing(name, (time.monotonic_ns() - start) // _NANOS_PER_MILLI)

    @contextmanager
    def timer_nanos(self, name: str) -> Iterator[None]:
        start = time.monotonic_ns()
        yield
        self.add_timing(name, time.monotonic_ns() - start)


class DevNullStats(Stats):
    """Stats sink for tests and disabled-metrics deployments; records nothing."""

    def incr(self, name: str, by: int = 1) -> int:
        return by

    def add_timing(self, name: str, duration: int) -> int:
        return 0

    def time(self, name: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        return fn(*args, **kwargs)

    def time_nanos(self, name: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        return fn(*args, **kwargs)


class StatsRegistry(Stats):
    """Thread-safe registry returning consistent per-metric snapshots.

    Each of the four maps has its own lock. Lookups of an existing name never
    touch a lock; creation of a new name, whole-map copies taken before a
    sweep, and clearing do. There is no registry-wide transaction: a sweep is
    consistent per metric only.
    """

    def __init__(self) -> None:
        self._counters: dict[str, Counter] = {}
        self._counters_lock = threading.Lock()
        self._timings: dict[str, Timing] = {}
        self._timings_lock = threading.Lock()
        self._timing_stats: dict[str, TimingStat] = {}
        self._timing_stats_lock = threading.Lock()
        self._gauges: dict[str, Gauge] = {}
        self._gauges_lock = threading.Lock()
        self._timing_stats_fns: list[TimingStatsFn] = []
        self._timing_stats_fns_lock = threading.Lock()
        self.gauges = GaugeBuilder(self)

    # ---- Lookup / creation ----

    def get_counter(self, name: str) -> Counter:
        """Find or create the counter with the given name."""

        counter = self._counters.get(name)
        if counter is not None:
            return counter
        with self._counters_lock:
            return self._counters.setdefault(name, Counter())

    def get_timing(self, name: str) -> Timing:
        """Find or create the timing with the given name."""

        timing = self._timings.get(name)
        if timing is not None:
            return timing
        with self._timings_lock:
            return self._timings.setdefault(name, Timing())

    # ---- Producers ----

    def incr(self, name: str, by: int = 1) -> int:
        return self.get_counter(name).increment(by)

    def build_incr(self, name: str) -> Callable[[], int]:
        """Return a callable that bumps ``name`` by one."""

        counter = self.get_counter(name)
        return lambda: counter.increment(1)

    def add_timing(self, name: str, duration: int) -> int:
        return self.get_timing(name).add(duration)

    def time(self, name: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        result, elapsed = duration_ms(fn, *args, **kwargs)
        self.add_timing(name, elapsed)
        return result

    def time_nanos(self, name: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        result, elapsed = duration_ns(fn, *args, **kwargs)
        self.add_timing(name, elapsed)
        return result

    def add_timing_stat(self, name: str, stat: TimingStat) -> None:
        """Inject a precomputed stat; replaces an earlier injection under the same name."""

        with self._timing_stats_lock:
            self._timing_stats[name] = stat

    def register_gauge(self, name: str, gauge: Gauge | Callable[[bool], float]) -> Gauge:
        """Register ``gauge`` under ``name``, replacing any previous one."""

        if not isinstance(gauge, Gauge):
            gauge = FunctionGauge(gauge)
        with self._gauges_lock:
            self._gauges[name] = gauge
        return gauge

    def make_gauge(self, name: str, fn: Callable[[], float]) -> Gauge:
        return self.gauges.value(name, fn)

    def make_derivative_gauge(self, name: str, numerator: Counter, denominator: Counter) -> Gauge:
        return self.register_gauge(name, DerivativeGauge(numerator, denominator))

    def register_timing_stats_fn(self, fn: TimingStatsFn) -> None:
        """Register a callback contributing timing stats; it receives the reset flag."""

        with self._timing_stats_fns_lock:
            self._timing_stats_fns.append(fn)

    def clear_timing_stats_fn(self) -> None:
        with self._timing_stats_fns_lock:
            self._timing_stats_fns.clear()

    # ---- Snapshots ----

    def get_counter_stats(self, reset: bool = False) -> dict[str, int]:
        with self._counters_lock:
            counters = list(self._counters.items())
        return {name: counter.snapshot(reset) for name, counter in counters}

    def get_timing_stats(self, reset: bool = False) -> dict[str, TimingStat]:
        """Union live timings, callback-provided stats and injected stats.

        A name reported by more than one source is combined additively.
        """

        with self._timings_lock:
            timings = list(self._timings.items())
        with self._timing_stats_fns_lock:
            fns = list(self._timing_stats_fns)
        with self._timing_stats_lock:
            injected = list(self._timing_stats.items())

        out: dict[str, TimingStat] = {name: timing.snapshot(reset) for name, timing in timings}
        for fn in fns:
            for name, stat in fn(reset).items():
                _merge(out, name, stat)
        for name, stat in injected:
            _merge(out, name, stat)
        return out

    def get_gauge_stats(self, reset: bool = False) -> dict[str, float]:
        with self._gauges_lock:
            gauges = list(self._gauges.items())
        return {name: gauge.compute(reset) for name, gauge in gauges}

    def clear_all(self) -> None:
        """Forget every metric and callback (primarily for test isolation)."""

        with self._counters_lock:
            self._counters.clear()
        with self._timings_lock:
            self._timings.clear()
        with self._timing_stats_lock:
            self._timing_stats.clear()
        with self._gauges_lock:
            self._gauges.clear()
        self.clear_timing_stats_fn()


def _merge(out: dict[str, TimingStat], name: str, stat: TimingStat) -> None:
    existing = out.get(name)
    out[name] = stat if existing is None else existing + stat
