from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping


class Statistic(str, Enum):
    MIN = "MIN"
    MAX = "MAX"
    MEAN = "MEAN"
    STDDEV = "STDDEV"


class QoS(int, Enum):
    """Delivery policy of an outbound send."""
    FIRE_AND_FORGET = 0
    AT_LEAST_ONCE = 1
    EXACTLY_ONCE = 2


TOPIC_SENSORS = "sensors"
TOPIC_HEARTBEAT = "heartbeat"


@dataclass(frozen=True)
class Reading:
    sensor_name: str
    value: float
    t_epoch: float = 0.0


@dataclass(frozen=True)
class AggregateRecord:
    sensor_name: str
    stats: Dict[Statistic, float]
    count: int = 0

    def stat(self, s: Statistic) -> float:
        return self.stats[s]

    def to_payload(self) -> Dict[str, Any]:
        # wire format: {"name": ..., "reading": {"MIN": .., "MAX": .., "MEAN": .., "STDDEV": ..}}
        return {
            "name": self.sensor_name,
            "reading": {s.value: float(v) for s, v in self.stats.items()},
        }


@dataclass(frozen=True)
class Event:
    topic: str
    payload: Mapping[str, Any]
    qos: QoS = QoS.FIRE_AND_FORGET


@dataclass(frozen=True)
class Command:
    command_id: str
    tsms: int
    payload: Mapping[str, Any] = field(default_factory=dict)
