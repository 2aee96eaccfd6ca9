"""Text and JSON renderings of a full registry snapshot."""

from __future__ import annotations

import json
import math
from typing import Any

from pydantic import BaseModel, Field, field_serializer

from runstats.stats.host import HostStats
from runstats.stats.registry import StatsRegistry


class TimingSummary(BaseModel):
    count: int = 0
    minimum: int = 0
    maximum: int = 0
    average: int = 0


class StatsSnapshot(BaseModel):
    """A point-in-time view of host facts and every registered metric."""

    host: dict[str, int] = Field(default_factory=dict)
    counters: dict[str, int] = Field(default_factory=dict)
    timings: dict[str, TimingSummary] = Field(default_factory=dict)
    gauges: dict[str, float] = Field(default_factory=dict)

    @field_serializer("gauges", when_used="json")
    def _finite_gauges(self, gauges: dict[str, float]) -> dict[str, float | None]:
        # NaN and infinity have no JSON literal
        return {name: value if math.isfinite(value) else None for name, value in gauges.items()}

    @classmethod
    def collect(
        cls,
        registry: StatsRegistry,
        reset: bool = False,
        host_stats: HostStats | None = None,
    ) -> "StatsSnapshot":
        """Read the registry; counters are never reset here, consumers diff them."""

        return cls(
            host=host_stats.snapshot() if host_stats is not None else {},
            counters=registry.get_counter_stats(False),
            timings={
                name: TimingSummary(**stat.to_dict())
                for name, stat in registry.get_timing_stats(reset).items()
            },
            gauges=registry.get_gauge_stats(reset),
        )

    def lines(self) -> list[str]:
        out: list[str] = []
        for group in (self.host, self.counters):
            out.extend(f"{name}: {value}" for name, value in group.items())
        out.extend(
            f"{name}: count={t.count} min={t.minimum} max={t.maximum} average={t.average}"
            for name, t in self.timings.items()
        )
        out.extend(f"{name}: {value}" for name, value in self.gauges.items())
        return out

    def json_payload(self) -> dict[str, Any]:
        """Return JSON-serializable payload."""

        return self.model_dump(mode="json")


def stats_text(registry: StatsRegistry, reset: bool = False, host_stats: HostStats | None = None) -> str:
    """Render ``name: value`` lines: host facts, counters, timings, then gauges."""

    return "\n".join(StatsSnapshot.collect(registry, reset, host_stats).lines())


def stats_json(registry: StatsRegistry, reset: bool = False, host_stats: HostStats | None = None) -> str:
    return json.dumps(StatsSnapshot.collect(registry, reset, host_stats).json_payload(), allow_nan=False)
