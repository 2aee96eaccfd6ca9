"""Duration aggregation: the mutable ``Timing`` and its immutable ``TimingStat`` form."""

from __future__ import annotations

import json
import math
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from runstats.lib.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

_NANOS_PER_MILLI = 1_000_000


def duration_ns(fn: Callable[..., T], *args: Any, **kwargs: Any) -> tuple[T, int]:
    """Run ``fn`` and return ``(result, elapsed nanoseconds)``."""

    start = time.monotonic_ns()
    result = fn(*args, **kwargs)
    return result, time.monotonic_ns() - start


def duration_ms(fn: Callable[..., T], *args: Any, **kwargs: Any) -> tuple[T, int]:
    """Run ``fn`` and return ``(result, elapsed milliseconds)``."""

    result, elapsed = duration_ns(fn, *args, **kwargs)
    return result, elapsed // _NANOS_PER_MILLI


@dataclass(frozen=True)
class TimingStat:
    """A pre-calculated timing.

    Used both for snapshots of a live :class:`Timing` and for statistics that
    come from an external source but should be reported alongside everything
    else. When ``sum`` is not supplied it is derived from ``average * count``.
    """

    count: int
    minimum: int
    maximum: int
    average: int
    sum: int | None = None
    sum_squares: int | None = None

    def __post_init__(self) -> None:
        if self.sum is None:
            object.__setattr__(self, "sum", self.average * self.count)

    @classmethod
    def empty(cls) -> "TimingStat":
        return cls(0, 0, 0, 0, 0, 0)

    @property
    def standard_deviation(self) -> float:
        if self.count < 2 or self.sum_squares is None:
            return 0.0
        mean = self.sum / self.count
        variance = self.sum_squares / self.count - mean * mean
        return math.sqrt(variance) if variance > 0 else 0.0

    def __add__(self, other: "TimingStat") -> "TimingStat":
        if not isinstance(other, TimingStat):
            return NotImplemented
        if other.count == 0:
            return self
        if self.count == 0:
            return other
        count = self.count + other.count
        total = self.sum + other.sum
        if self.sum_squares is None or other.sum_squares is None:
            sum_squares = None
        else:
            sum_squares = self.sum_squares + other.sum_squares
        return TimingStat(
            count=count,
            minimum=min(self.minimum, other.minimum),
            maximum=max(self.maximum, other.maximum),
            average=total // count,
            sum=total,
            sum_squares=sum_squares,
        )

    def as_tuple(self) -> tuple[int, int, int, int]:
        return (self.count, self.minimum, self.maximum, self.average)

    def to_dict(self) -> dict[str, int]:
        return {
            "count": self.count,
            "minimum": self.minimum,
            "maximum": self.maximum,
            "average": self.average,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    def __str__(self) -> str:
        return f"count={self.count} min={self.minimum} max={self.maximum} average={self.average}"


class Timing:
    """Collates durations of an event and reports count/min/max/average.

    Every mutation and every read of the aggregate happens under one lock, so
    a resetting read never exposes a half-cleared state.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._count = 0
        self._minimum = 0
        self._maximum = 0
        self._sum = 0
        self._sum_squares = 0

    def _clear_locked(self) -> None:
        self._count = 0
        self._minimum = 0
        self._maximum = 0
        self._sum = 0
        self._sum_squares = 0

    def clear(self) -> None:
        """Drop every duration collected so far."""

        with self._lock:
            self._clear_locked()

    def add(self, duration: int) -> int:
        """Account one duration and return the number of samples held."""

        if duration < 0:
            logger.warning(
                "stats.timing.negative_duration",
                extra={"duration": duration, "reason": "clock adjusted?"},
            )
            return self.count

        with self._lock:
            if self._count == 0:
                self._minimum = duration
                self._maximum = duration
            else:
                self._minimum = min(self._minimum, duration)
                self._maximum = max(self._maximum, duration)
            self._sum += duration
            self._sum_squares += duration * duration
            self._count += 1
            return self._count

    def time(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run ``fn`` and record its duration in milliseconds.

        Nothing is recorded when ``fn`` raises.
        """

        result, elapsed = duration_ms(fn, *args, **kwargs)
        self.add(elapsed)
        return result

    def time_nanos(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        result, elapsed = duration_ns(fn, *args, **kwargs)
        self.add(elapsed)
        return result

    @property
    def count(self) -> int:
        with self._lock:
            return self._count

    def snapshot(self, reset: bool = False) -> TimingStat:
        """Return the aggregate as a :class:`TimingStat`, clearing it afterwards if ``reset``."""

        with self._lock:
            if self._count == 0:
                return TimingStat.empty()
            stat = TimingStat(
                count=self._count,
                minimum=self._minimum,
                maximum=self._maximum,
                average=self._sum // self._count,
                sum=self._sum,
                sum_squares=self._sum_squares,
            )
            if reset:
                self._clear_locked()
            return stat
