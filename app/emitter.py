from __future__ import annotations

import logging
import threading
from typing import Any, Mapping

from domain.errors import TransportError
from domain.models import Event, QoS
from domain.ports import EventChannel

logger = logging.getLogger(__name__)


class EventEmitter:
    """
    Wraps records as Events and hands them to the outbound channel.
    No acknowledgement is awaited and nothing is retried here; a refused send
    surfaces as TransportError for the caller to log.
    """

    def __init__(self, channel: EventChannel):
        self.channel = channel
        self._tot_lock = threading.Lock()
        self.total_emitted = 0
        self.total_failed = 0

    def emit(
        self,
        topic: str,
        payload: Mapping[str, Any],
        qos: QoS = QoS.FIRE_AND_FORGET,
    ) -> Event:
        ev = Event(topic=topic, payload=dict(payload), qos=QoS(qos))
        try:
            self.channel.publish(ev)
        except TransportError:
            with self._tot_lock:
                self.total_failed += 1
            raise
        except Exception as e:
            with self._tot_lock:
                self.total_failed += 1
            raise TransportError(f"channel rejected event on topic {topic!r}: {e}") from e

        with self._tot_lock:
            self.total_emitted += 1
        logger.debug("event handed to channel", extra={"topic": topic, "qos": ev.qos.name})
        return ev
