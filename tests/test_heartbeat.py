from __future__ import annotations

from datetime import datetime, timezone

from app.emitter import EventEmitter
from app.heartbeat import HEARTBEAT_PERIOD_SEC, HeartbeatTicker
from domain.errors import TransportError
from domain.models import QoS
from infra.sinks import LogEventChannel


class FakeClock:
    def __init__(self, dt: datetime) -> None:
        self.t = dt.timestamp()

    def advance(self, seconds: float) -> None:
        self.t += seconds

    def now_epoch(self) -> float:
        return self.t

    def now_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.t, tz=timezone.utc)


class DownChannel:
    def publish(self, event) -> None:
        raise TransportError("offline")


def test_two_ticks_one_period_apart_are_increasing() -> None:
    clock = FakeClock(datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc))
    channel = LogEventChannel()
    ticker = HeartbeatTicker(EventEmitter(channel), clock)

    first = ticker.tick()
    clock.advance(HEARTBEAT_PERIOD_SEC)
    second = ticker.tick()

    assert first is not None and second is not None
    assert first.topic == "heartbeat"
    assert first.qos is QoS.FIRE_AND_FORGET
    assert second.payload["heartbeat"] > first.payload["heartbeat"]
    assert second.payload["heartbeat"] - first.payload["heartbeat"] == 60_000
    assert len(channel.events("heartbeat")) == 2


def test_payload_shape() -> None:
    clock = FakeClock(datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc))
    ticker = HeartbeatTicker(EventEmitter(LogEventChannel()), clock)

    payload = ticker.payload()

    assert payload == {
        "when": "Mon Oct 19 12:00:00 UTC 2026",
        "heartbeat": 1792411200000,
    }


def test_send_failure_is_not_raised() -> None:
    clock = FakeClock(datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc))
    emitter = EventEmitter(DownChannel())
    ticker = HeartbeatTicker(emitter, clock)

    assert ticker.tick() is None
    assert emitter.total_failed == 1
