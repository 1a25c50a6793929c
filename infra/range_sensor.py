from __future__ import annotations

import logging
import math
import random
from typing import Optional

from gpiozero import DistanceSensor, GPIOZeroError

from domain.errors import SensorFault

logger = logging.getLogger(__name__)

# returned instead of raising when the device itself fails; the validity
# filter drops it
OUT_OF_RANGE = math.inf

# HC-SR04 rated range; echoes beyond it read as exactly 400 cm
DEFAULT_MAX_DISTANCE_M = 4.0


class RangeSensor:
    """
    HC-SR04 read through gpiozero's DistanceSensor, which times the echo
    from the pin driver's edge ticks. Readings are clamped to the device's
    max_distance, so a target out of range comes back as the ceiling.
    """

    def __init__(self, device):
        self.device = device
        self.total_faults = 0

    @classmethod
    def on_pins(
        cls,
        trigger_pin: int,
        echo_pin: int,
        *,
        max_distance_m: float = DEFAULT_MAX_DISTANCE_M,
        pin_factory=None,
    ) -> "RangeSensor":
        # queue_len=1: no smoothing, every read is the latest echo
        device = DistanceSensor(
            echo=echo_pin,
            trigger=trigger_pin,
            max_distance=max_distance_m,
            queue_len=1,
            pin_factory=pin_factory,
        )
        return cls(device)

    def measure(self) -> float:
        """Latest distance in cm; raises SensorFault when the device fails."""
        try:
            distance_m = self.device.distance
        except GPIOZeroError as e:
            raise SensorFault(f"distance sensor error: {e}") from e
        if distance_m is None:
            raise SensorFault("distance sensor returned no value")
        return distance_m * 100.0

    def read(self) -> float:
        try:
            return self.measure()
        except SensorFault as e:
            self.total_faults += 1
            logger.debug("range sensor fault", extra={"reason": str(e)})
            return OUT_OF_RANGE

    def close(self) -> None:
        self.device.close()


class SimulatedRangeSensor:
    """
    Random walk around `base_cm` for machines without the sensor. Now and
    then returns a spike beyond the sensor range. Same seed, same sequence.
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        *,
        base_cm: float = 20.0,
        step_cm: float = 1.5,
        pull: float = 0.1,
        spike_probability: float = 0.05,
        min_cm: float = 2.0,
    ):
        self._rng = random.Random(seed)
        self.base_cm = float(base_cm)
        self.step_cm = float(step_cm)
        self.pull = float(pull)
        self.spike_probability = float(spike_probability)
        self.min_cm = float(min_cm)
        self._value = self.base_cm

    def read(self) -> float:
        if self._rng.random() < self.spike_probability:
            return round(400.0 + self._rng.uniform(0.0, 100.0), 2)

        self._value += (self.base_cm - self._value) * self.pull
        self._value += self._rng.uniform(-self.step_cm, self.step_cm)
        self._value = max(self.min_cm, self._value)
        return round(self._value, 2)

    def close(self) -> None:
        pass
