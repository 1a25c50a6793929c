from __future__ import annotations


class RangeSensorError(Exception):
    pass


class SensorFault(RangeSensorError):
    """Hardware measurement failed (no echo, echo too long)."""


class MalformedCommand(RangeSensorError):
    """Inbound command envelope is missing an expected field."""


class TransportError(RangeSensorError):
    """Outbound channel could not accept a send."""


class StartupConfigError(RangeSensorError):
    """Missing or invalid startup arguments / configuration."""
