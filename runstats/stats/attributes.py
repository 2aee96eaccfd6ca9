"""Typed attribute view of the registry for management/introspection clients."""

from __future__ import annotations

from typing import Iterable, NamedTuple

from runstats.errors import UnknownAttributeError
from runstats.stats.registry import StatsRegistry

TIMING_FIELDS = ("min", "max", "average", "count")


class AttributeInfo(NamedTuple):
    name: str
    type: str
    description: str


class StatsAttributes:
    """Expose each metric as a named, read-only attribute.

    Counters appear as ``counter_<name>``, gauges as ``gauge_<name>``, and
    every timing as ``timing_<field>_<name>`` for each of
    ``min``/``max``/``average``/``count``. Reads never reset anything.
    """

    def __init__(self, registry: StatsRegistry) -> None:
        self._registry = registry

    def describe(self) -> list[AttributeInfo]:
        infos = [AttributeInfo(f"counter_{name}", "int", "counter") for name in self._registry.get_counter_stats()]
        for name in self._registry.get_timing_stats(False):
            infos.extend(AttributeInfo(f"timing_{field}_{name}", "int", "timing") for field in TIMING_FIELDS)
        infos.extend(AttributeInfo(f"gauge_{name}", "float", "gauge") for name in self._registry.get_gauge_stats(False))
        return infos

    def attribute_names(self) -> list[str]:
        return [info.name for info in self.describe()]

    def get_attribute(self, name: str) -> int | float:
        kind, _, rest = name.partition("_")
        if not rest:
            raise UnknownAttributeError(name)

        if kind == "counter":
            counters = self._registry.get_counter_stats(False)
            if rest in counters:
                return counters[rest]
        elif kind == "gauge":
            gauges = self._registry.get_gauge_stats(False)
            if rest in gauges:
                return gauges[rest]
        elif kind == "timing":
            field, _, metric = rest.partition("_")
            timings = self._registry.get_timing_stats(False)
            if field in TIMING_FIELDS and metric in timings:
                stat = timings[metric]
                return {
                    "min": stat.minimum,
                    "max": stat.maximum,
                    "average": stat.average,
                    "count": stat.count,
                }[field]
        raise UnknownAttributeError(name)

    def get_attributes(self, names: Iterable[str]) -> dict[str, int | float]:
        return {name: self.get_attribute(name) for name in names}
