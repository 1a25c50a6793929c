from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Mapping, Protocol

from .models import Event


class Clock(Protocol):
    def now_epoch(self) -> float: ...

    def now_datetime(self) -> datetime: ...


class SampleSource(Protocol):
    """Produces one distance reading (cm) per call."""

    def read(self) -> float: ...


class EventChannel(Protocol):
    def publish(self, event: Event) -> None:
        """Hand the event over; raises TransportError if it cannot be accepted."""
        ...


class CommandSource(Protocol):
    def fetch(self) -> Iterable[Mapping[str, Any]]: ...


class MessageSink(Protocol):
    def handle(self, msg: str) -> None: ...
