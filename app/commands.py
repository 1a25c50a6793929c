from __future__ import annotations

import logging
import threading
from queue import Empty, Full, Queue
from typing import Any, Iterable, Iterator, List, Mapping, Optional, Sequence

from domain.errors import MalformedCommand
from domain.models import Command
from domain.ports import MessageSink

logger = logging.getLogger(__name__)

DISPLAY_COMMAND = "display"


def parse_command(envelope: Any) -> Command:
    """
    Envelope: {"tsms": <epoch ms>, "command": <id>, "payload": {...}}
    """
    if not isinstance(envelope, Mapping):
        raise MalformedCommand(f"envelope is not an object: {type(envelope).__name__}")

    command_id = envelope.get("command")
    if not isinstance(command_id, str) or not command_id:
        raise MalformedCommand("envelope has no 'command' id")

    tsms_raw = envelope.get("tsms", 0)
    try:
        tsms = int(tsms_raw)
    except (TypeError, ValueError) as e:
        raise MalformedCommand(f"invalid 'tsms': {tsms_raw!r}") from e

    payload = envelope.get("payload")
    if not isinstance(payload, Mapping):
        raise MalformedCommand("envelope 'payload' is missing or not an object")

    return Command(command_id=command_id, tsms=tsms, payload=payload)


def extract_display_message(cmd: Command) -> str:
    msg = cmd.payload.get("msg")
    # bool is an int subclass; only real scalars count
    if isinstance(msg, bool) or not isinstance(msg, (str, int, float)):
        raise MalformedCommand("payload has no string 'msg'")
    return str(msg)


class CommandListener:
    """
    Turns inbound "display" envelopes into a sequence of message strings.
    The listener only extracts; printing / LED flashing is done by the sinks
    registered in start().
    """

    def __init__(self, command_id: str = DISPLAY_COMMAND, *, queue_size: int = 100):
        self.command_id = command_id
        self._q: "Queue[Optional[str]]" = Queue(maxsize=queue_size)
        self._sinks: List[MessageSink] = []
        self._thread: Optional[threading.Thread] = None

        self.total_received = 0
        self.total_ignored = 0
        self.total_malformed = 0
        self.total_dropped = 0

    def on_envelope(self, envelope: Any) -> Optional[str]:
        self.total_received += 1
        try:
            cmd = parse_command(envelope)
            if cmd.command_id != self.command_id:
                self.total_ignored += 1
                return None
            msg = extract_display_message(cmd)
        except MalformedCommand as e:
            self.total_malformed += 1
            logger.warning("skipping malformed command", extra={"reason": str(e)})
            return None

        try:
            self._q.put_nowait(msg)
        except Full:
            self.total_dropped += 1
            logger.warning("display queue full, dropping message", extra={"command": self.command_id})
            return None
        return msg

    def on_envelopes(self, envelopes: Iterable[Any]) -> List[str]:
        out: List[str] = []
        for env in envelopes:
            msg = self.on_envelope(env)
            if msg is not None:
                out.append(msg)
        return out

    def messages(self) -> Iterator[str]:
        """Yields the messages pending right now, without blocking."""
        while True:
            try:
                msg = self._q.get_nowait()
            except Empty:
                return
            try:
                if msg is None:
                    return
                yield msg
            finally:
                self._q.task_done()

    def drain(self) -> List[str]:
        return list(self.messages())

    def start(self, sinks: Sequence[MessageSink]) -> None:
        if self._thread is not None:
            return
        self._sinks = list(sinks)
        self._thread = threading.Thread(target=self._dispatch, name="display-dispatch", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 3.0) -> None:
        if self._thread is None:
            return
        self._q.put(None)
        self._thread.join(timeout=timeout)
        self._thread = None

    def _dispatch(self) -> None:
        while True:
            msg = self._q.get()
            try:
                if msg is None:
                    return
                for sink in self._sinks:
                    try:
                        sink.handle(msg)
                    except Exception:
                        logger.exception("display sink failed", extra={"command": self.command_id})
            finally:
                self._q.task_done()
