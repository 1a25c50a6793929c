from __future__ import annotations

import logging
from typing import Optional

from domain.errors import TransportError
from domain.models import Event, QoS, TOPIC_HEARTBEAT
from domain.ports import Clock

from .emitter import EventEmitter

logger = logging.getLogger(__name__)

HEARTBEAT_PERIOD_SEC = 60.0

# same shape as java.util.Date#toString: "Mon Oct 19 12:00:00 UTC 2026"
WHEN_FORMAT = "%a %b %d %H:%M:%S %Z %Y"


class HeartbeatTicker:
    """
    Liveness event, independent of the sensor cadence, so there is outbound
    traffic (and a platform connection) soon after startup.
    """

    def __init__(self, emitter: EventEmitter, clock: Clock, *, print_events: bool = False):
        self.emitter = emitter
        self.clock = clock
        self.print_events = print_events

    def payload(self) -> dict:
        dt = self.clock.now_datetime()
        return {
            "when": dt.strftime(WHEN_FORMAT),
            "heartbeat": int(round(dt.timestamp() * 1000)),
        }

    def tick(self) -> Optional[Event]:
        p = self.payload()
        if self.print_events:
            logger.info("heartbeat %s", p, extra={"topic": TOPIC_HEARTBEAT})
        try:
            return self.emitter.emit(TOPIC_HEARTBEAT, p, QoS.FIRE_AND_FORGET)
        except TransportError as e:
            logger.warning("heartbeat send failed", extra={"topic": TOPIC_HEARTBEAT, "reason": str(e)})
            return None
