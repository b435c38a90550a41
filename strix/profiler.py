"""
Performance profiler - timing for bootstrap phases, routes and ad-hoc work.

Metrics are pushed to listeners registered with ``on_metric``; nothing is
aggregated here. A disabled profiler turns every call into a cheap no-op.
"""

import inspect
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional


logger = logging.getLogger("strix.profiler")

MetricListener = Callable[["PerformanceMetric"], None]


@dataclass
class PerformanceMetric:
    """One timed operation. ``duration`` is in milliseconds."""

    name: str
    duration: float
    start_time: float
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RouteMetric(PerformanceMetric):
    method: str = ""
    path: str = ""
    status_code: int = 0


class PerformanceProfiler:
    """
    Times operations and notifies listeners.

    Example:
        ```python
        end = profiler.start_timer("load-users")
        users = await repo.all()
        end({"count": len(users)})

        result = await profiler.measure("render", render, page)
        ```
    """

    def __init__(self, *, enabled: bool = True):
        self._enabled = enabled
        self._listeners: List[MetricListener] = []
        self._bootstrap: Dict[str, float] = {}

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def is_enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = enabled

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def on_metric(self, listener: MetricListener) -> Callable[[], None]:
        """Subscribe to metrics; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, metric: PerformanceMetric) -> None:
        for listener in list(self._listeners):
            try:
                listener(metric)
            except Exception:
                logger.exception("Metric listener failed for %s", metric.name)

    # ------------------------------------------------------------------
    # Timing
    # ------------------------------------------------------------------

    def start_timer(self, name: str) -> Callable[..., Optional[PerformanceMetric]]:
        """
        Start timing ``name``.

        Returns an ``end(metadata=None)`` function that emits and returns the
        metric, or returns None when the profiler is disabled.
        """
        if not self._enabled:
            return lambda metadata=None: None

        start_time = time.time()
        started = time.perf_counter()

        def end(metadata: Optional[Dict[str, Any]] = None) -> Optional[PerformanceMetric]:
            metric = PerformanceMetric(
                name=name,
                duration=(time.perf_counter() - started) * 1000,
                start_time=start_time,
                metadata=dict(metadata or {}),
            )
            self._emit(metric)
            return metric

        return end

    async def measure(self, name: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run ``fn`` (sync or async) under a timer; failures are tagged ``error``."""
        end = self.start_timer(name)
        try:
            result = fn(*args, **kwargs)
            if inspect.isawaitable(result):
                result = await result
        except Exception:
            end({"error": True})
            raise
        end()
        return result

    def logging_timer(self, prefix: str, level: int = logging.INFO) -> Callable[[str], Callable[[], None]]:
        """
        Factory for timers that log ``"<prefix> <name>: <ms>ms"`` when ended.
        """
        def timer(name: str) -> Callable[[], None]:
            started = time.perf_counter()

            def end() -> None:
                elapsed_ms = (time.perf_counter() - started) * 1000
                logger.log(level, "%s %s: %.2fms", prefix, name, elapsed_ms)

            return end

        return timer

    # ------------------------------------------------------------------
    # Bootstrap & routes
    # ------------------------------------------------------------------

    def record_bootstrap_phase(self, phase: str, duration: float) -> None:
        if self._enabled:
            self._bootstrap[phase] = duration

    @contextmanager
    def bootstrap_phase(self, phase: str) -> Iterator[None]:
        """Time a ``with`` block as a bootstrap phase."""
        started = time.perf_counter()
        try:
            yield
        finally:
            self.record_bootstrap_phase(phase, (time.perf_counter() - started) * 1000)

    def bootstrap_metrics(self) -> Dict[str, float]:
        """Phase durations in milliseconds (a copy)."""
        return dict(self._bootstrap)

    def record_route_metric(self, metric: RouteMetric) -> None:
        if self._enabled:
            self._emit(metric)


profiler = PerformanceProfiler()


def get_global_profiler() -> PerformanceProfiler:
    return profiler


def set_global_profiler(new_profiler: PerformanceProfiler) -> None:
    global profiler
    profiler = new_profiler
