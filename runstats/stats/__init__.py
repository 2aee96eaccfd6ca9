"""Metrics registry: counters, timings and gauges with reset-on-read snapshots."""

from runstats.stats.counter import Counter
from runstats.stats.gauge import DerivativeGauge, FunctionGauge, Gauge, GaugeBuilder
from runstats.stats.registry import DevNullStats, Stats, StatsRegistry
from runstats.stats.timing import Timing, TimingStat

__all__ = [
    "Counter",
    "DerivativeGauge",
    "DevNullStats",
    "FunctionGauge",
    "Gauge",
    "GaugeBuilder",
    "Stats",
    "StatsRegistry",
    "Timing",
    "TimingStat",
]
