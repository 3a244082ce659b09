from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from functools import wraps
from time import perf_counter
from typing import Any, Callable, Dict, Iterator, Sequence, TypeVar, cast

from psychnorm.core.config import settings

_F = TypeVar("_F", bound=Callable[..., Any])

DEFAULT_BUCKETS: tuple[float, ...] = (1.0, 5.0, 10.0, 25.0, 50.0, 100.0)


@dataclass(slots=True)
class TimingStats:
    """Running aggregates for a timing label."""

    count: int = 0
    total_ms: float = 0.0
    max_ms: float = 0.0

    def update(self, elapsed_ms: float) -> None:
        self.count += 1
        self.total_ms += elapsed_ms
        self.max_ms = max(self.max_ms, elapsed_ms)

    def snapshot(self) -> Dict[str, float]:
        avg = self.total_ms / self.count if self.count else 0.0
        return {
            "count": float(self.count),
            "total_ms": self.total_ms,
            "max_ms": self.max_ms,
            "avg_ms": avg,
        }


@dataclass(slots=True)
class HistogramBuckets:
    boundaries: tuple[float, ...]
    counts: Dict[str, float] = field(init=False)

    def __post_init__(self) -> None:
        self.counts = {str(boundary): 0.0 for boundary in self.boundaries}
        self.counts["+Inf"] = 0.0

    def observe(self, value: float) -> None:
        for boundary in self.boundaries:
            if value <= boundary:
                self.counts[str(boundary)] += 1.0
                return
        self.counts["+Inf"] += 1.0


class _MetricsRegistry:
    """Thread-safe in-process store for timings, counters and histograms."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._timings: Dict[str, TimingStats] = {}
        self._counters: Dict[str, float] = {}
        self._histograms: Dict[str, HistogramBuckets] = {}

    def record(self, label: str, elapsed_ms: float) -> None:
        if not label:
            return
        with self._lock:
            self._timings.setdefault(label, TimingStats()).update(float(elapsed_ms))

    def inc(self, label: str, amount: float = 1.0) -> None:
        if not label:
            return
        with self._lock:
            self._counters[label] = self._counters.get(label, 0.0) + float(amount)

    def observe_histogram(self, label: str, value: float, *, buckets: Sequence[float] | None = None) -> None:
        if not label:
            return
        with self._lock:
            histogram = self._histograms.get(label)
            if histogram is None:
                histogram = HistogramBuckets(tuple(buckets or DEFAULT_BUCKETS))
                self._histograms[label] = histogram
            histogram.observe(float(value))

    def timings_snapshot(self, reset: bool = False) -> Dict[str, Dict[str, float]]:
        with self._lock:
            data = {label: stats.snapshot() for label, stats in self._timings.items()}
            if reset:
                self._timings.clear()
            return data

    def counters_snapshot(self, reset: bool = False) -> Dict[str, float]:
        with self._lock:
            data = dict(self._counters)
            if reset:
                self._counters.clear()
            return data

    def histograms_snapshot(self, reset: bool = False) -> Dict[str, Dict[str, float]]:
        with self._lock:
            data = {label: dict(h.counts) for label, h in self._histograms.items()}
            if reset:
                self._histograms.clear()
            return data

    def reset(self) -> None:
        with self._lock:
            self._timings.clear()
            self._counters.clear()
            self._histograms.clear()


metrics_registry = _MetricsRegistry()

_INSTRUMENTATION_ENABLED: bool = bool(settings.debug_instrumentation_enabled)


def set_instrumentation_enabled(enabled: bool) -> None:
    global _INSTRUMENTATION_ENABLED
    _INSTRUMENTATION_ENABLED = bool(enabled)


def instrumentation_enabled() -> bool:
    return _INSTRUMENTATION_ENABLED


@contextmanager
def timer(label: str) -> Iterator[None]:
    """Time a code block and record it under `label`."""
    if not instrumentation_enabled():
        yield
        return
    t0 = perf_counter()
    try:
        yield
    finally:
        metrics_registry.record(label, (perf_counter() - t0) * 1000.0)


def measure_time(
    label: str,
    *,
    histogram: bool = False,
    buckets: Sequence[float] | None = None,
) -> Callable[[_F], _F]:
    """Decorator recording call duration and, optionally, a histogram."""

    def _wrap(func: _F) -> _F:
        @wraps(func)
        def _inner(*args: Any, **kwargs: Any):
            if not instrumentation_enabled():
                return func(*args, **kwargs)
            t0 = perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                dt_ms = (perf_counter() - t0) * 1000.0
                metrics_registry.record(label, dt_ms)
                if histogram:
                    metrics_registry.observe_histogram(label, dt_ms, buckets=buckets)

        return cast(_F, _inner)

    return _wrap


def count_calls(label: str) -> Callable[[_F], _F]:
    """Decorator that increments a counter each time the function is invoked."""

    def _wrap(func: _F) -> _F:
        @wraps(func)
        def _inner(*args: Any, **kwargs: Any):
            if instrumentation_enabled():
                metrics_registry.inc(label)
            return func(*args, **kwargs)

        return cast(_F, _inner)

    return _wrap


def inc_counter(label: str, amount: float = 1.0) -> None:
    metrics_registry.inc(label, amount)


def observe_histogram(label: str, value: float, *, buckets: Sequence[float] | None = None) -> None:
    if instrumentation_enabled():
        metrics_registry.observe_histogram(label, value, buckets=buckets)


def get_metrics(reset: bool = False) -> Dict[str, Dict[str, float]]:
    return metrics_registry.timings_snapshot(reset=reset)


def get_counters(reset: bool = False) -> Dict[str, float]:
    return metrics_registry.counters_snapshot(reset=reset)


def get_histograms(reset: bool = False) -> Dict[str, Dict[str, float]]:
    return metrics_registry.histograms_snapshot(reset=reset)


__all__ = [
    "timer",
    "measure_time",
    "count_calls",
    "inc_counter",
    "observe_histogram",
    "get_metrics",
    "get_counters",
    "get_histograms",
    "metrics_registry",
    "set_instrumentation_enabled",
    "instrumentation_enabled",
]
