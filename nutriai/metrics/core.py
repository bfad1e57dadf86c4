"""In-memory metrics store for the vision pipeline.

Counters and latency samples are kept in two maps keyed by
``(metric name, sorted tag pairs)`` and guarded by a single lock.
Tag values are stored as strings, so ``original_status=429`` and
``original_status="429"`` address the same series.

Nothing is exported over HTTP; the store is read by tests and
operators attaching a debugger.
"""

from __future__ import annotations

from collections import defaultdict, deque
from threading import Lock
from typing import DefaultDict, Deque, Dict, List, NamedTuple, Sequence, Tuple

SeriesKey = Tuple[str, Tuple[Tuple[str, str], ...]]

# latency samples kept per series
DEFAULT_WINDOW = 2000


class LatencySummary(NamedTuple):
    count: int
    avg: float
    p95: float
    min: float
    max: float


def _series_key(name: str, tags: Dict[str, object]) -> SeriesKey:
    return name, tuple(sorted((key, str(value)) for key, value in tags.items()))


def summarize(samples: Sequence[float]) -> LatencySummary:
    """Count, mean, nearest-rank p95 and range of ``samples``."""
    if not samples:
        return LatencySummary(0, 0.0, 0.0, 0.0, 0.0)
    ordered = sorted(samples)
    count = len(ordered)
    return LatencySummary(
        count=count,
        avg=sum(ordered) / count,
        p95=ordered[int(0.95 * (count - 1))],
        min=ordered[0],
        max=ordered[-1],
    )


class MetricsRegistry:
    """
    Process-wide counters and latency windows.

    Example:
        >>> reg = MetricsRegistry()
        >>> reg.inc("vision_analysis_errors_total", code="RATE_LIMITED")
        >>> reg.counter_value("vision_analysis_errors_total", code="RATE_LIMITED")
        1
    """

    def __init__(self, window: int = DEFAULT_WINDOW) -> None:
        self._window = window
        self._counts: DefaultDict[SeriesKey, int] = defaultdict(int)
        self._samples: Dict[SeriesKey, Deque[float]] = {}
        self._lock = Lock()

    def inc(self, name: str, amount: int = 1, **tags: object) -> None:
        key = _series_key(name, tags)
        with self._lock:
            self._counts[key] += amount

    def observe(self, name: str, value: float, **tags: object) -> None:
        key = _series_key(name, tags)
        with self._lock:
            window = self._samples.get(key)
            if window is None:
                window = self._samples[key] = deque(maxlen=self._window)
            window.append(value)

    def counter_value(self, name: str, **tags: object) -> int:
        """Value of an exact counter series (0 if never touched)."""
        with self._lock:
            return self._counts.get(_series_key(name, tags), 0)

    def summary(self, name: str, **tags: object) -> LatencySummary:
        with self._lock:
            samples = list(self._samples.get(_series_key(name, tags), ()))
        return summarize(samples)

    def series(self, name: str) -> List[Dict[str, str]]:
        """Tag sets recorded under ``name``, in first-seen order."""
        with self._lock:
            keys = list(self._counts) + list(self._samples)
        found: List[Dict[str, str]] = []
        for metric, pairs in keys:
            tags = dict(pairs)
            if metric == name and tags not in found:
                found.append(tags)
        return found

    def reset(self) -> None:
        with self._lock:
            self._counts.clear()
            self._samples.clear()


registry = MetricsRegistry()
