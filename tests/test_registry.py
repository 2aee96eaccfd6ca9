"""Registry behaviour: counters, timings, gauges, callbacks and snapshots."""

from __future__ import annotations

import math
import threading
import time

import pytest

from runstats.stats.attributes import StatsAttributes
from runstats.stats.counter import Counter
from runstats.stats.registry import DevNullStats, StatsRegistry
from runstats.stats.timing import TimingStat


def _sum_to_hundred() -> int:
    total = 0
    for i in range(100):
        total += i
    return total


def test_counters(registry: StatsRegistry) -> None:
    registry.incr("widgets", 1)
    registry.incr("wodgets", 12)
    assert registry.incr("wodgets") == 13

    assert registry.get_counter_stats() == {"widgets": 1, "wodgets": 13}


def test_counter_reset_on_read(registry: StatsRegistry) -> None:
    for amount in (3, 4, 5):
        registry.incr("events", amount)

    assert registry.get_counter_stats(False) == {"events": 12}
    assert registry.get_counter_stats(True) == {"events": 12}
    assert registry.get_counter_stats(False) == {"events": 0}


def test_counter_snapshot_and_set() -> None:
    counter = Counter()
    counter.increment(5)
    counter.set(9)

    assert counter.snapshot(True) == 9
    assert counter.snapshot(False) == 0


def test_build_incr(registry: StatsRegistry) -> None:
    bump = registry.build_incr("hits")
    bump()
    assert bump() == 2


def test_concurrent_increments_are_not_lost(registry: StatsRegistry) -> None:
    def work() -> None:
        for _ in range(1000):
            registry.incr("shared")
            registry.add_timing("latency", 3)

    threads = [threading.Thread(target=work) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert registry.get_counter_stats()["shared"] == 8000
    assert registry.get_timing_stats()["latency"].as_tuple() == (8000, 3, 3, 3)


def test_report_timing(registry: StatsRegistry) -> None:
    assert registry.time("hundred", _sum_to_hundred) == 4950

    timings = registry.get_timing_stats(False)
    assert list(timings) == ["hundred"]
    assert timings["hundred"].count == 1
    assert timings["hundred"].minimum == timings["hundred"].average
    assert timings["hundred"].maximum == timings["hundred"].average


def test_time_handles_code_blocks(registry: StatsRegistry) -> None:
    registry.time("test", time.sleep, 0.01)

    assert registry.get_timing("test").snapshot(True).average >= 10


def test_timer_context_manager(registry: StatsRegistry) -> None:
    with registry.timer("block"):
        _sum_to_hundred()
    with registry.timer_nanos("block_ns"):
        _sum_to_hundred()

    timings = registry.get_timing_stats()
    assert timings["block"].count == 1
    assert timings["block_ns"].count == 1
    assert timings["block_ns"].maximum > 0


def test_failed_work_is_not_timed(registry: StatsRegistry) -> None:
    def boom() -> None:
        raise RuntimeError("failed")

    with pytest.raises(RuntimeError):
        registry.time("boom", boom)
    with pytest.raises(RuntimeError):
        with registry.timer("boom_block"):
            boom()

    timings = registry.get_timing_stats()
    assert "boom" not in timings
    assert "boom_block" not in timings


def test_reset_timings_when_asked(registry: StatsRegistry) -> None:
    registry.time("hundred", _sum_to_hundred)
    assert registry.get_timing_stats(False)["hundred"].count == 1
    registry.time("hundred", _sum_to_hundred)
    assert registry.get_timing_stats(False)["hundred"].count == 2
    assert registry.get_timing_stats(True)["hundred"].count == 2
    registry.time("hundred", _sum_to_hundred)
    assert registry.get_timing_stats(False)["hundred"].count == 1


def test_time_nanos(registry: StatsRegistry) -> None:
    registry.time_nanos("work_ns", _sum_to_hundred)

    assert registry.get_timing_stats()["work_ns"].count == 1


def test_gauge_report(registry: StatsRegistry) -> None:
    registry.make_gauge("pi", lambda: math.pi)

    assert registry.get_gauge_stats(False) == {"pi": math.pi}


def test_gauge_evaluated_on_every_read(registry: StatsRegistry) -> None:
    potatoes = [100.0]

    def stew() -> float:
        potatoes[0] += 1.0
        return potatoes[0]

    registry.make_gauge("stew", stew)

    assert registry.get_gauge_stats(True) == {"stew": 101.0}
    assert registry.get_gauge_stats(True) == {"stew": 102.0}
    assert registry.get_gauge_stats(True) == {"stew": 103.0}


def test_gauge_receives_reset_flag(registry: StatsRegistry) -> None:
    seen: list[bool] = []
    registry.register_gauge("flag", lambda reset: seen.append(reset) or 1.0)

    registry.get_gauge_stats(False)
    registry.get_gauge_stats(True)

    assert seen == [False, True]


def test_gauge_registration_last_wins(registry: StatsRegistry) -> None:
    registry.make_gauge("temp", lambda: 1.0)
    registry.make_gauge("temp", lambda: 2.0)

    assert registry.get_gauge_stats() == {"temp": 2.0}


def test_derivative_gauge(registry: StatsRegistry) -> None:
    registry.incr("results", 100)
    registry.incr("queries", 25)
    registry.make_derivative_gauge(
        "results_per_query", registry.get_counter("results"), registry.get_counter("queries")
    )

    assert registry.get_gauge_stats(True) == {"results_per_query": 4.0}
    assert registry.get_gauge_stats(True) == {"results_per_query": 0.0}
    registry.incr("results", 10)
    registry.incr("queries", 5)
    assert registry.get_gauge_stats(False) == {"results_per_query": 2.0}
    assert registry.get_gauge_stats(False) == {"results_per_query": 2.0}


def test_gauge_builder_derivative_by_name(registry: StatsRegistry) -> None:
    registry.gauges.derivative("bytes_per_request", "bytes", "requests")
    registry.incr("bytes", 300)
    registry.incr("requests", 3)

    assert registry.get_gauge_stats(True) == {"bytes_per_request": 100.0}


def test_timing_stats_callback_and_injected_stat_combine(registry: StatsRegistry) -> None:
    registry.register_timing_stats_fn(lambda reset: {"db": TimingStat(2, 1, 5, 3)})
    registry.add_timing_stat("db", TimingStat(3, 2, 8, 4))

    stat = registry.get_timing_stats()["db"]

    assert stat.count == 5
    assert stat.minimum == 1
    assert stat.maximum == 8
    assert stat.average == 18 // 5


def test_timing_stats_callback_combines_with_live_timing(registry: StatsRegistry) -> None:
    registry.add_timing("cache", 10)
    registry.register_timing_stats_fn(lambda reset: {"cache": TimingStat(1, 30, 30, 30)})

    assert registry.get_timing_stats()["cache"].as_tuple() == (2, 10, 30, 20)


def test_timing_stats_callback_receives_reset(registry: StatsRegistry) -> None:
    flags: list[bool] = []

    def provider(reset: bool) -> dict[str, TimingStat]:
        flags.append(reset)
        return {}

    registry.register_timing_stats_fn(provider)
    registry.get_timing_stats(True)
    registry.clear_timing_stats_fn()
    registry.get_timing_stats(True)

    assert flags == [True]


def test_injected_stat_replaced_by_later_injection(registry: StatsRegistry) -> None:
    registry.add_timing_stat("external", TimingStat(1, 1, 1, 1))
    registry.add_timing_stat("external", TimingStat(2, 4, 4, 4))

    assert registry.get_timing_stats(True)["external"].as_tuple() == (2, 4, 4, 4)
    assert registry.get_timing_stats(True)["external"].count == 2


def test_clear_all(registry: StatsRegistry) -> None:
    registry.incr("widgets")
    registry.add_timing("latency", 4)
    registry.add_timing_stat("external", TimingStat(1, 1, 1, 1))
    registry.make_gauge("pi", lambda: math.pi)
    registry.register_timing_stats_fn(lambda reset: {"cb": TimingStat(1, 1, 1, 1)})

    registry.clear_all()

    assert registry.get_counter_stats() == {}
    assert registry.get_timing_stats() == {}
    assert registry.get_gauge_stats() == {}


def test_attribute_names(registry: StatsRegistry) -> None:
    registry.incr("widgets", 1)
    registry.time("nothing", lambda: 2 * 2)

    names = StatsAttributes(registry).attribute_names()

    assert names == [
        "counter_widgets",
        "timing_min_nothing",
        "timing_max_nothing",
        "timing_average_nothing",
        "timing_count_nothing",
    ]


def test_attribute_reads_are_live(registry: StatsRegistry) -> None:
    registry.incr("widgets", 2)
    registry.add_timing("req_time", 4)
    registry.add_timing("req_time", 8)
    registry.make_gauge("load", lambda: 0.5)
    attributes = StatsAttributes(registry)

    assert attributes.get_attribute("counter_widgets") == 2
    assert attributes.get_attribute("timing_max_req_time") == 8
    assert attributes.get_attribute("timing_average_req_time") == 6
    assert attributes.get_attribute("timing_count_req_time") == 2
    assert attributes.get_attribute("gauge_load") == 0.5
    # reads do not reset
    assert attributes.get_attributes(["counter_widgets", "timing_count_req_time"]) == {
        "counter_widgets": 2,
        "timing_count_req_time": 2,
    }


@pytest.mark.parametrize("name", ["counter_missing", "timing_p99_x", "bogus", "gauge_"])
def test_unknown_attribute(registry: StatsRegistry, name: str) -> None:
    with pytest.raises(KeyError):
        StatsAttributes(registry).get_attribute(name)


def test_dev_null_stats_records_nothing() -> None:
    stats = DevNullStats()

    assert stats.time("x", lambda: 42) == 42
    assert stats.time_nanos("x", lambda: 43) == 43
    assert stats.incr("x", 5) == 5
    with stats.timer("x"):
        pass
