from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Optional, Tuple

import httpx

from domain.errors import TransportError
from domain.models import Event, QoS
from domain.ports import EventChannel

logger = logging.getLogger(__name__)

EVENT_PATH = "/api/v0002/device/types/{type}/devices/{id}/events/{topic}"
TOKEN_AUTH_USER = "use-token-auth"


class HttpEventChannel(EventChannel):
    """
    Posts device events as JSON on worker threads.

    publish() only enqueues. FIRE_AND_FORGET gets a single attempt;
    AT_LEAST_ONCE retries with backoff up to max_retries.
    """

    def __init__(
        self,
        base_url: str,
        device_type: str,
        device_id: str,
        *,
        auth_token: Optional[str] = None,
        workers: int = 2,
        queue_max: int = 1000,
        timeout_sec: float = 5.0,
        max_retries: int = 3,
        drop_on_full: bool = True,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._device_type = device_type
        self._device_id = device_id
        self._auth: Optional[Tuple[str, str]] = (TOKEN_AUTH_USER, auth_token) if auth_token else None
        self._timeout = timeout_sec
        self._max_retries = max_retries
        self._drop_on_full = drop_on_full
        self._transport = transport

        self._q: queue.Queue[Event | _Stop] = queue.Queue(maxsize=queue_max)
        self._workers = workers
        self._threads: list[threading.Thread] = []
        self._client: Optional[httpx.Client] = None
        self._started = False

        self._tot_lock = threading.Lock()
        self.total_published = 0
        self.total_dropped = 0
        self.total_failed = 0
        self.total_sent = 0

    def url_for(self, topic: str) -> str:
        return self._base_url + EVENT_PATH.format(
            type=self._device_type, id=self._device_id, topic=topic
        )

    def start(self) -> None:
        if self._started:
            return
        self._client = httpx.Client(timeout=self._timeout, auth=self._auth, transport=self._transport)
        self._threads = []
        for i in range(self._workers):
            t = threading.Thread(target=self._worker, args=(i,), name=f"event-sender-{i}", daemon=True)
            t.start()
            self._threads.append(t)
        self._started = True

    def stop(self, timeout: float = 3.0) -> None:
        """Lets queued events go out, then closes the client (best effort)."""
        if not self._started:
            return
        for _ in self._threads:
            self._q.put(_Stop())
        for t in self._threads:
            t.join(timeout=timeout)
        self._threads.clear()
        self._started = False
        if self._client:
            self._client.close()
            self._client = None

    def publish(self, event: Event) -> None:
        if not self._started:
            raise TransportError("HttpEventChannel.publish called before start()")
        if event.qos == QoS.EXACTLY_ONCE:
            raise TransportError("HTTP event channel does not support EXACTLY_ONCE delivery")

        with self._tot_lock:
            self.total_published += 1

        if self._drop_on_full:
            try:
                self._q.put_nowait(event)
            except queue.Full:
                with self._tot_lock:
                    self.total_dropped += 1
                raise TransportError(f"send queue full, event on topic {event.topic!r} dropped")
        else:
            self._q.put(event)

    def _attempts(self, event: Event) -> int:
        if event.qos == QoS.AT_LEAST_ONCE:
            return 1 + self._max_retries
        return 1

    def _worker(self, wid: int) -> None:
        assert self._client is not None

        while True:
            item = self._q.get()
            try:
                if isinstance(item, _Stop):
                    return

                url = self.url_for(item.topic)
                attempts = self._attempts(item)
                attempt = 0
                while True:
                    try:
                        r = self._client.post(url, json=dict(item.payload))
                        r.raise_for_status()
                        with self._tot_lock:
                            self.total_sent += 1
                        break
                    except httpx.HTTPError as e:
                        attempt += 1
                        if attempt >= attempts:
                            with self._tot_lock:
                                self.total_failed += 1
                            logger.warning(
                                "event send failed",
                                extra={"topic": item.topic, "qos": item.qos.name, "reason": str(e)},
                            )
                            break
                        time.sleep(min(0.25 * (2 ** (attempt - 1)), 2.0))
            finally:
                self._q.task_done()


class _Stop:
    pass
