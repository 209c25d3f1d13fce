"""Utilities for tracing how long each rule of a run takes."""

from collections.abc import Generator
import contextvars
from contextlib import contextmanager
from dataclasses import dataclass, field
import logging
from time import perf_counter


_LOGGER = logging.getLogger(__name__)

# No public API
__all__: list[str] = []


trace: contextvars.ContextVar[list[str]] = contextvars.ContextVar("trace")


@dataclass
class TraceCollector:
    """Accumulates the wall clock time spent in each traced label."""

    timings: dict[str, float] = field(default_factory=dict)

    def add(self, name: str, duration: float) -> None:
        self.timings[name] = self.timings.get(name, 0.0) + duration

    def summary(self) -> list[tuple[str, float]]:
        """Return timings sorted from slowest to fastest."""
        return sorted(self.timings.items(), key=lambda x: x[1], reverse=True)


_collector: contextvars.ContextVar[TraceCollector | None] = contextvars.ContextVar(
    "collector", default=None
)


@contextmanager
def trace_collector() -> Generator[TraceCollector, None, None]:
    """Collect timings of every trace_context entered within this block."""
    collector = TraceCollector()
    token = _collector.set(collector)
    try:
        yield collector
    finally:
        _collector.reset(token)


@contextmanager
def trace_context(name: str) -> Generator[None, None, None]:
    stack = trace.get([])
    token = trace.set(stack + [name])
    label = " > ".join(stack + [name])
    t1 = perf_counter()
    _LOGGER.debug("[Trace] > %s", label)
    try:
        yield
    finally:
        duration = perf_counter() - t1
        trace.reset(token)
        if (collector := _collector.get()) is not None:
            collector.add(label, duration)
        _LOGGER.debug("[Trace] < %s (%0.2fs)", label, duration)
