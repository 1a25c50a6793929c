from __future__ import annotations

import json
import logging
import threading
from typing import List, Optional

from gpiozero import LED

from domain.models import Event
from domain.ports import EventChannel, MessageSink

logger = logging.getLogger(__name__)


class LogEventChannel(EventChannel):
    """
    Channel used when no platform is configured: every event is logged as
    one JSON line. Keeps the last events in memory for inspection.
    """

    def __init__(self, keep_last: int = 100):
        self._keep_last = keep_last
        self._lock = threading.Lock()
        self._events: List[Event] = []

    def publish(self, event: Event) -> None:
        logger.info(
            "event %s",
            json.dumps(dict(event.payload), sort_keys=True),
            extra={"topic": event.topic, "qos": event.qos.name},
        )
        with self._lock:
            self._events.append(event)
            if len(self._events) > self._keep_last:
                del self._events[: len(self._events) - self._keep_last]

    def events(self, topic: Optional[str] = None) -> List[Event]:
        with self._lock:
            return [e for e in self._events if topic is None or e.topic == topic]


class ConsoleMessageSink(MessageSink):
    def handle(self, msg: str) -> None:
        print(msg, flush=True)


class LedFlashSink(MessageSink):
    """Flashes an LED once per display message."""

    def __init__(self, led, flash_ms: int = 1000):
        self.led = led
        self.flash_sec = flash_ms / 1000.0

    @classmethod
    def on_pin(cls, pin: int, flash_ms: int = 1000) -> "LedFlashSink":
        return cls(LED(pin), flash_ms=flash_ms)

    def handle(self, msg: str) -> None:
        self.led.blink(on_time=self.flash_sec, off_time=0, n=1, background=True)
