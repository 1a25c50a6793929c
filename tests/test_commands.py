"""Tests for inbound display command handling."""

from __future__ import annotations

import logging

import pytest

from app.commands import CommandListener, extract_display_message, parse_command
from domain.errors import MalformedCommand


class RecordingSink:
    def __init__(self) -> None:
        self.messages: list[str] = []

    def handle(self, msg: str) -> None:
        self.messages.append(msg)


class BrokenSink:
    def handle(self, msg: str) -> None:
        raise RuntimeError("led unplugged")


def _display(msg, tsms: int = 1) -> dict:
    return {"tsms": tsms, "command": "display", "payload": {"msg": msg}}


def test_display_command_yields_message() -> None:
    listener = CommandListener()

    assert listener.on_envelope(_display("hello")) == "hello"
    assert listener.drain() == ["hello"]


def test_missing_msg_is_skipped_and_listener_keeps_working(caplog) -> None:
    listener = CommandListener()

    with caplog.at_level(logging.WARNING):
        assert listener.on_envelope({"tsms": 1, "command": "display", "payload": {}}) is None
    assert listener.on_envelope(_display("next")) == "next"

    assert listener.drain() == ["next"]
    assert listener.total_malformed == 1
    assert any("malformed" in r.getMessage() for r in caplog.records)


@pytest.mark.parametrize(
    "envelope",
    [
        None,
        "display",
        {"tsms": 1, "payload": {"msg": "x"}},
        {"tsms": 1, "command": "display"},
        {"tsms": 1, "command": "display", "payload": "msg"},
        {"tsms": "soon", "command": "display", "payload": {"msg": "x"}},
        {"tsms": 1, "command": "display", "payload": {"msg": {"nested": 1}}},
        {"tsms": 1, "command": "display", "payload": {"msg": True}},
    ],
)
def test_malformed_envelopes_yield_nothing(envelope) -> None:
    listener = CommandListener()

    assert listener.on_envelope(envelope) is None
    assert listener.drain() == []
    assert listener.total_malformed == 1


def test_other_command_ids_are_ignored() -> None:
    listener = CommandListener()

    assert listener.on_envelope({"tsms": 1, "command": "reboot", "payload": {"msg": "x"}}) is None
    assert listener.total_ignored == 1
    assert listener.drain() == []


def test_numeric_msg_is_rendered_as_string() -> None:
    assert CommandListener().on_envelope(_display(42)) == "42"


def test_parse_command_fields() -> None:
    cmd = parse_command(_display("hi", tsms=1700000000123))

    assert cmd.command_id == "display"
    assert cmd.tsms == 1700000000123
    assert extract_display_message(cmd) == "hi"


def test_parse_command_rejects_missing_payload() -> None:
    with pytest.raises(MalformedCommand):
        parse_command({"tsms": 1, "command": "display"})


def test_on_envelopes_keeps_order() -> None:
    listener = CommandListener()

    out = listener.on_envelopes([_display("a"), {"bad": True}, _display("b")])

    assert out == ["a", "b"]
    assert list(listener.messages()) == ["a", "b"]


def test_full_queue_drops_message() -> None:
    listener = CommandListener(queue_size=1)

    assert listener.on_envelope(_display("a")) == "a"
    assert listener.on_envelope(_display("b")) is None
    assert listener.total_dropped == 1


def test_dispatch_delivers_to_all_sinks_even_if_one_fails() -> None:
    listener = CommandListener()
    sink = RecordingSink()
    listener.start([BrokenSink(), sink])

    listener.on_envelope(_display("one"))
    listener.on_envelope(_display("two"))
    listener.stop()

    assert sink.messages == ["one", "two"]
