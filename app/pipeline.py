from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from queue import Full, Queue
from typing import Optional

from domain.errors import TransportError
from domain.models import AggregateRecord, QoS, Reading, TOPIC_SENSORS
from domain.ports import Clock
from domain.thresholds import AlertFilter, ValidityFilter

from .aggregator import WindowAggregator
from .emitter import EventEmitter

logger = logging.getLogger(__name__)

DEFAULT_SENSOR_NAME = "rangeSensor"


@dataclass(frozen=True)
class PipelineTotals:
    enqueued: int
    dropped: int
    processed: int
    invalid: int
    suppressed: int
    emitted: int
    send_failed: int


class RangePipeline:
    """
    Reading flow: validity filter -> window aggregate -> alert filter -> emit.

    - submit() is called from the sampling thread and never blocks; a full
      queue drops the reading.
    - a single worker thread consumes the queue, so updates for one sensor
      name are applied in arrival order.
    """

    def __init__(
        self,
        aggregator: WindowAggregator,
        emitter: EventEmitter,
        clock: Clock,
        *,
        validity: Optional[ValidityFilter] = None,
        alert: Optional[AlertFilter] = None,
        sensor_name: str = DEFAULT_SENSOR_NAME,
        queue_size: int = 1000,
        print_events: bool = False,
    ):
        self.aggregator = aggregator
        self.emitter = emitter
        self.clock = clock
        self.validity = validity or ValidityFilter()
        self.alert = alert or AlertFilter()
        self.sensor_name = sensor_name
        self.print_events = print_events

        self._q: "Queue[Optional[Reading]]" = Queue(maxsize=queue_size)
        self._thread: Optional[threading.Thread] = None

        self._tot_lock = threading.Lock()
        self.total_enqueued = 0
        self.total_dropped = 0
        self.total_processed = 0
        self.total_invalid = 0
        self.total_suppressed = 0
        self.total_emitted = 0
        self.total_send_failed = 0

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._worker, name="range-pipeline", daemon=True)
        self._thread.start()

    def submit(self, value: float) -> bool:
        reading = Reading(sensor_name=self.sensor_name, value=float(value), t_epoch=self.clock.now_epoch())
        logger.debug("reading", extra={"sensor": self.sensor_name, "value": reading.value})
        try:
            self._q.put_nowait(reading)
        except Full:
            with self._tot_lock:
                self.total_dropped += 1
            logger.warning("reading queue full, dropping reading", extra={"value": reading.value})
            return False
        with self._tot_lock:
            self.total_enqueued += 1
        return True

    def process(self, reading: Reading) -> Optional[AggregateRecord]:
        """Runs one reading through the chain; returns the record if it was emitted."""
        with self._tot_lock:
            self.total_processed += 1

        if not self.validity.accept(reading.value):
            with self._tot_lock:
                self.total_invalid += 1
            logger.debug(
                "reading outside sensor range",
                extra={"sensor": reading.sensor_name, "value": reading.value},
            )
            return None

        record = self.aggregator.update(reading.sensor_name, reading.value)

        if not self.alert.accept(record):
            with self._tot_lock:
                self.total_suppressed += 1
            return None

        if self.print_events:
            logger.info("aggregate %s", record.to_payload(), extra={"sensor": record.sensor_name})

        try:
            self.emitter.emit(TOPIC_SENSORS, record.to_payload(), QoS.FIRE_AND_FORGET)
        except TransportError as e:
            with self._tot_lock:
                self.total_send_failed += 1
            logger.warning("send failed", extra={"topic": TOPIC_SENSORS, "reason": str(e)})
            return record

        with self._tot_lock:
            self.total_emitted += 1
        return record

    def totals(self) -> PipelineTotals:
        with self._tot_lock:
            return PipelineTotals(
                enqueued=self.total_enqueued,
                dropped=self.total_dropped,
                processed=self.total_processed,
                invalid=self.total_invalid,
                suppressed=self.total_suppressed,
                emitted=self.total_emitted,
                send_failed=self.total_send_failed,
            )

    def _worker(self) -> None:
        while True:
            reading = self._q.get()
            try:
                if reading is None:
                    return
                self.process(reading)
            except Exception:
                logger.exception("pipeline failed on reading", extra={"value": reading.value})
            finally:
                self._q.task_done()

    def shutdown(self, timeout: float = 5.0) -> None:
        """Stops the worker after the readings already queued are processed."""
        if self._thread is None:
            return
        self._q.put(None)
        self._thread.join(timeout=timeout)
        self._thread = None
