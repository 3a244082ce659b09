import pytest

from psychnorm.core.metrics import (
    count_calls,
    get_counters,
    get_histograms,
    get_metrics,
    inc_counter,
    instrumentation_enabled,
    measure_time,
    set_instrumentation_enabled,
    timer,
)


@pytest.fixture()
def instrumentation():
    previous = instrumentation_enabled()
    set_instrumentation_enabled(True)
    yield
    set_instrumentation_enabled(previous)


def test_timer_records_block_duration(instrumentation):
    with timer("block"):
        pass
    with timer("block"):
        pass
    stats = get_metrics()["block"]
    assert stats["count"] == 2.0
    assert stats["max_ms"] >= stats["avg_ms"] >= 0.0


def test_measure_time_with_histogram(instrumentation):
    @measure_time("decorated", histogram=True, buckets=(1000.0,))
    def work(value):
        return value * 2

    assert work(21) == 42
    assert get_metrics()["decorated"]["count"] == 1.0
    assert get_histograms()["decorated"] == {"1000.0": 1.0, "+Inf": 0.0}


def test_count_calls_and_counters(instrumentation):
    @count_calls("calls")
    def noop():
        return None

    noop()
    noop()
    inc_counter("manual", 3)
    counters = get_counters()
    assert counters["calls"] == 2.0
    assert counters["manual"] == 3.0


def test_disabled_instrumentation_skips_timings(instrumentation):
    set_instrumentation_enabled(False)
    with timer("silent"):
        pass
    assert "silent" not in get_metrics()
    # counters are always kept
    inc_counter("still_counted")
    assert get_counters()["still_counted"] == 1.0


def test_snapshot_reset_clears_values(instrumentation):
    inc_counter("transient")
    assert get_counters(reset=True) == {"transient": 1.0}
    assert get_counters() == {}
