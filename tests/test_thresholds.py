"""Unit tests for the validity and alert filters."""

from __future__ import annotations

import math

import pytest

from domain.models import AggregateRecord, Statistic
from domain.thresholds import AlertFilter, ValidityFilter


def _record(mean: float) -> AggregateRecord:
    return AggregateRecord(
        sensor_name="rangeSensor",
        stats={
            Statistic.MIN: mean,
            Statistic.MAX: mean,
            Statistic.MEAN: mean,
            Statistic.STDDEV: 0.0,
        },
        count=1,
    )


@pytest.mark.parametrize("value", [400.0, 400.0001, 1000.0, math.inf])
def test_validity_rejects_at_and_above_ceiling(value: float) -> None:
    assert ValidityFilter().accept(value) is False


@pytest.mark.parametrize("value", [399.999, 120.5, 0.0, -5.0])
def test_validity_accepts_below_ceiling_without_lower_bound(value: float) -> None:
    assert ValidityFilter().accept(value) is True


def test_validity_rejects_nan() -> None:
    assert ValidityFilter().accept(math.nan) is False


def test_validity_custom_ceiling() -> None:
    f = ValidityFilter(ceiling=200.0)

    assert f.accept(199.0)
    assert not f.accept(200.0)


@pytest.mark.parametrize(
    ("mean", "expected"),
    [
        (29.999, True),
        (30.0, False),
        (-29.999, True),
        (-30.0, False),
        (0.0, True),
        (250.0, False),
    ],
)
def test_alert_filter_boundary(mean: float, expected: bool) -> None:
    assert AlertFilter().accept(_record(mean)) is expected


def test_alert_filter_custom_limit() -> None:
    f = AlertFilter(limit=2.0)

    assert f.accept(_record(1.5))
    assert not f.accept(_record(-2.0))
