from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Generic, Optional, TypeVar

from domain.errors import RangeSensorError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PeriodicPoller(Generic[T]):
    """
    Calls `supplier` every `period_sec` on its own thread and passes the
    result to `consumer`, if any. A failing call is logged and that tick skipped.
    Ticks are scheduled on a fixed grid from start(), so a slow call does not
    shift later ticks.
    """

    def __init__(
        self,
        name: str,
        supplier: Callable[[], T],
        period_sec: float,
        consumer: Optional[Callable[[T], object]] = None,
        *,
        initial_delay_sec: float = 0.0,
    ):
        if period_sec <= 0:
            raise ValueError(f"{name}: period must be > 0, got {period_sec}")
        self.name = name
        self.supplier = supplier
        self.consumer = consumer
        self.period_sec = float(period_sec)
        self.initial_delay_sec = float(initial_delay_sec)

        self._stop = threading.Event()
        self._t: Optional[threading.Thread] = None
        self.total_ticks = 0
        self.total_errors = 0

    def start(self) -> None:
        if self._t is not None:
            return
        self._stop.clear()
        self._t = threading.Thread(target=self._run, name=f"poll-{self.name}", daemon=True)
        self._t.start()

    def stop(self, timeout: float = 3.0) -> None:
        self._stop.set()
        if self._t is not None:
            self._t.join(timeout=timeout)
            self._t = None

    def poll_once(self) -> None:
        self.total_ticks += 1
        try:
            value = self.supplier()
            if self.consumer is not None:
                self.consumer(value)
        except RangeSensorError as e:
            self.total_errors += 1
            logger.warning("poll failed: %s", e, extra={"poller": self.name})
        except Exception:
            self.total_errors += 1
            logger.exception("poll failed", extra={"poller": self.name})

    def _run(self) -> None:
        if self.initial_delay_sec > 0 and self._stop.wait(self.initial_delay_sec):
            return

        n = 0
        t0 = time.monotonic()
        while not self._stop.is_set():
            self.poll_once()
            n += 1
            now = time.monotonic()
            # next slot on the grid; slots already missed are skipped
            if t0 + n * self.period_sec < now:
                n = int((now - t0) // self.period_sec) + 1
            if self._stop.wait(t0 + n * self.period_sec - now):
                return
