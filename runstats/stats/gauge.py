"""Pull-based gauges evaluated whenever stats are collected."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable

from runstats.stats.counter import Counter

if TYPE_CHECKING:
    from runstats.stats.registry import StatsRegistry


class Gauge(ABC):
    """An instantaneous value (like memory usage) polled on every snapshot."""

    @abstractmethod
    def compute(self, reset: bool) -> float:
        """Return the current reading; ``reset`` marks a consuming read."""

    def __call__(self, reset: bool = False) -> float:
        return self.compute(reset)


class FunctionGauge(Gauge):
    """Gauge backed by a ``(reset) -> float`` callable."""

    def __init__(self, fn: Callable[[bool], float]) -> None:
        self._fn = fn

    def compute(self, reset: bool) -> float:
        return float(self._fn(reset))


class DerivativeGauge(Gauge):
    """Rate of change of one counter relative to another across reads.

    The baseline only moves on a resetting read, so repeated non-resetting
    reads report the same ratio. Concurrent resetting reads race; the last
    one to commit its baseline wins.
    """

    def __init__(self, numerator: Counter, denominator: Counter) -> None:
        self._numerator = numerator
        self._denominator = denominator
        self._lock = threading.Lock()
        self._last_numerator = 0
        self._last_denominator = 0

    def compute(self, reset: bool) -> float:
        numerator = self._numerator.value
        denominator = self._denominator.value
        with self._lock:
            delta_numerator = numerator - self._last_numerator
            delta_denominator = denominator - self._last_denominator
            if reset:
                self._last_numerator = numerator
                self._last_denominator = denominator
        if delta_denominator == 0:
            return 0.0
        return delta_numerator / delta_denominator


class GaugeBuilder:
    """Registers gauges on a registry from plain callables or counter handles."""

    def __init__(self, registry: "StatsRegistry") -> None:
        self._registry = registry

    def value(self, name: str, fn: Callable[[], float]) -> Gauge:
        """Register a gauge that ignores the reset flag."""

        return self.function(name, lambda reset: fn())

    def function(self, name: str, fn: Callable[[bool], float]) -> Gauge:
        gauge = FunctionGauge(fn)
        self._registry.register_gauge(name, gauge)
        return gauge

    def derivative(self, name: str, numerator: str | Counter, denominator: str | Counter) -> Gauge:
        """Register a :class:`DerivativeGauge`; counter names are resolved (and created) now."""

        if isinstance(numerator, str):
            numerator = self._registry.get_counter(numerator)
        if isinstance(denominator, str):
            denominator = self._registry.get_counter(denominator)
        gauge = DerivativeGauge(numerator, denominator)
        self._registry.register_gauge(name, gauge)
        return gauge
