from __future__ import annotations

import statistics
import threading
from collections import deque
from typing import Deque, Dict, List, Tuple

from domain.models import AggregateRecord, Statistic

DEFAULT_WINDOW_SIZE = 20


def window_stats(values: Tuple[float, ...]) -> Dict[Statistic, float]:
    """
    MIN / MAX / MEAN / STDDEV over a non-empty window.

    STDDEV is the sample standard deviation (n-1 divisor); a single value
    has STDDEV 0.
    """
    if not values:
        raise ValueError("window_stats() requires at least one value")
    std = statistics.stdev(values) if len(values) > 1 else 0.0
    return {
        Statistic.MIN: float(min(values)),
        Statistic.MAX: float(max(values)),
        Statistic.MEAN: float(statistics.fmean(values)),
        Statistic.STDDEV: float(std),
    }


class WindowAggregator:
    """
    Last-N window per sensor name. Every update recomputes the summary over
    the whole window snapshot.
    """

    def __init__(self, size: int = DEFAULT_WINDOW_SIZE):
        if size < 1:
            raise ValueError(f"window size must be >= 1, got {size}")
        self.size = int(size)
        self._lock = threading.Lock()
        self._windows: Dict[str, Deque[float]] = {}

    def update(self, sensor_name: str, value: float) -> AggregateRecord:
        with self._lock:
            w = self._windows.get(sensor_name)
            if w is None:
                w = deque(maxlen=self.size)
                self._windows[sensor_name] = w
            w.append(float(value))
            snap = tuple(w)

        return AggregateRecord(
            sensor_name=sensor_name,
            stats=window_stats(snap),
            count=len(snap),
        )

    def window(self, sensor_name: str) -> Tuple[float, ...]:
        with self._lock:
            return tuple(self._windows.get(sensor_name, ()))

    def sensor_names(self) -> List[str]:
        with self._lock:
            return list(self._windows.keys())
