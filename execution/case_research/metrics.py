"""
Usage Notifications for Search and Routing

Each search and each routed answer emits a small event. Events are handed to
registered sinks on a background thread pool: a slow or failing sink never
blocks or fails the search or routing call that produced the event.

UsageStats is a built-in sink that keeps aggregate counters in memory.
"""

import time
import logging
import threading
from dataclasses import dataclass, field
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchEvent:
    """One completed document search."""
    scope_id: str
    query_text: str
    results_count: int
    path: str  # "hybrid", "text_only", or "empty"
    latency_ms: float
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class RouteEvent:
    """One routed model answer."""
    provider: str
    complexity: str
    effort_level: str
    citations_count: int
    latency_ms: float
    timestamp: float = field(default_factory=time.time)


UsageEvent = Union[SearchEvent, RouteEvent]


@dataclass
class UsageStats:
    """Aggregated counters, usable as a notifier sink."""
    total_searches: int = 0
    text_only_searches: int = 0
    empty_searches: int = 0
    total_routes: int = 0
    routes_by_provider: dict = field(default_factory=lambda: defaultdict(int))
    routes_by_complexity: dict = field(default_factory=lambda: defaultdict(int))
    latencies: list = field(default_factory=list)
    max_history: int = 1000
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __call__(self, event: UsageEvent) -> None:
        with self._lock:
            if isinstance(event, SearchEvent):
                self.total_searches += 1
                if event.path == "text_only":
                    self.text_only_searches += 1
                elif event.path == "empty":
                    self.empty_searches += 1
            elif isinstance(event, RouteEvent):
                self.total_routes += 1
                self.routes_by_provider[event.provider] += 1
                self.routes_by_complexity[event.complexity] += 1

            self.latencies.append(event.latency_ms)
            if len(self.latencies) > self.max_history:
                self.latencies = self.latencies[-self.max_history:]

    @property
    def avg_latency_ms(self) -> float:
        if not self.latencies:
            return 0
        return sum(self.latencies) / len(self.latencies)

    @property
    def p95_latency_ms(self) -> float:
        if not self.latencies:
            return 0
        sorted_latencies = sorted(self.latencies)
        index = int(len(sorted_latencies) * 0.95)
        return sorted_latencies[min(index, len(sorted_latencies) - 1)]

    @property
    def fallback_rate(self) -> float:
        """Share of searches that ran on the text-only path."""
        if self.total_searches == 0:
            return 0
        return self.text_only_searches / self.total_searches

    def to_dict(self) -> dict:
        return {
            "searches": {
                "total": self.total_searches,
                "text_only": self.text_only_searches,
                "empty": self.empty_searches,
                "fallback_rate": f"{self.fallback_rate:.2%}",
            },
            "routes": {
                "total": self.total_routes,
                "by_provider": dict(self.routes_by_provider),
                "by_complexity": dict(self.routes_by_complexity),
            },
            "latency_ms": {
                "avg": round(self.avg_latency_ms, 2),
                "p95": round(self.p95_latency_ms, 2),
            },
        }


class UsageNotifier:
    """
    Fire-and-forget dispatch of usage events to sinks.

    The owner shuts the worker pool down with close() (or flush()), or uses
    the notifier as a context manager.

    Usage:
        stats = UsageStats()
        with UsageNotifier([stats]) as notifier:
            retriever = HybridRetriever(backend, gateway, notifier=notifier)
            ...
    """

    def __init__(
        self,
        sinks: Optional[list[Callable[[UsageEvent], None]]] = None,
        max_workers: int = 2,
    ):
        self._sinks = list(sinks or [])
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="usage")

    def add_sink(self, sink: Callable[[UsageEvent], None]) -> None:
        self._sinks.append(sink)

    def notify(self, event: UsageEvent) -> None:
        """Queue an event for every sink. Never raises."""
        for sink in self._sinks:
            try:
                self._executor.submit(self._deliver, sink, event)
            except RuntimeError as e:
                # Executor already shut down
                logger.debug(f"Usage event dropped: {e}")

    @staticmethod
    def _deliver(sink: Callable[[UsageEvent], None], event: UsageEvent) -> None:
        try:
            sink(event)
        except Exception as e:
            logger.warning(f"Usage sink {getattr(sink, '__name__', type(sink).__name__)} failed: {e}")

    def flush(self) -> None:
        """Wait for queued events, then stop accepting new ones."""
        self._executor.shutdown(wait=True)

    def close(self) -> None:
        """Deliver queued events and release the worker threads."""
        self.flush()

    def __enter__(self) -> "UsageNotifier":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
