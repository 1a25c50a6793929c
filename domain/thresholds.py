from __future__ import annotations

from .models import AggregateRecord, Statistic

# HC-SR04 physical range ceiling (cm)
MAX_VALID_CM = 400.0
ALERT_MEAN_LIMIT = 30.0


class ValidityFilter:
    """
    Drops readings outside the sensor's range: keeps only value < ceiling.
    No lower bound is applied. NaN never compares below, so it is dropped.
    """

    def __init__(self, ceiling: float = MAX_VALID_CM):
        self.ceiling = float(ceiling)

    def accept(self, value: float) -> bool:
        return value < self.ceiling


class AlertFilter:
    """Passes an aggregate only while abs(MEAN) < limit."""

    def __init__(self, limit: float = ALERT_MEAN_LIMIT):
        self.limit = float(limit)

    def accept(self, record: AggregateRecord) -> bool:
        return abs(record.stat(Statistic.MEAN)) < self.limit
