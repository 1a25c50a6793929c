"""Unit tests for the sliding-window aggregation."""

from __future__ import annotations

import pytest

from app.aggregator import WindowAggregator, window_stats
from domain.models import Statistic


def test_single_value_window() -> None:
    agg = WindowAggregator()

    record = agg.update("rangeSensor", 12.5)

    assert record.count == 1
    assert record.stats == {
        Statistic.MIN: 12.5,
        Statistic.MAX: 12.5,
        Statistic.MEAN: 12.5,
        Statistic.STDDEV: 0.0,
    }


def test_constant_window_has_zero_stddev() -> None:
    agg = WindowAggregator()

    for _ in range(3):
        record = agg.update("rangeSensor", 10.0)

    assert record.stat(Statistic.MIN) == 10.0
    assert record.stat(Statistic.MAX) == 10.0
    assert record.stat(Statistic.MEAN) == 10.0
    assert record.stat(Statistic.STDDEV) == 0.0


def test_sample_stddev_is_pinned() -> None:
    agg = WindowAggregator()

    for v in [1, 2, 3, 4, 5]:
        record = agg.update("rangeSensor", v)

    assert record.stat(Statistic.MEAN) == 3.0
    # sample (n-1) standard deviation: sqrt(2.5)
    assert record.stat(Statistic.STDDEV) == pytest.approx(1.5811388300841898, rel=1e-12)


def test_window_keeps_last_twenty_in_arrival_order() -> None:
    agg = WindowAggregator()

    for v in range(25):
        record = agg.update("rangeSensor", float(v))
        assert len(agg.window("rangeSensor")) <= 20

    assert agg.window("rangeSensor") == tuple(float(v) for v in range(5, 25))
    assert record.count == 20
    assert record.stat(Statistic.MIN) == 5.0
    assert record.stat(Statistic.MAX) == 24.0
    assert record.stat(Statistic.MEAN) == 14.5


def test_sensor_names_are_independent() -> None:
    agg = WindowAggregator()

    agg.update("a", 1.0)
    agg.update("b", 100.0)
    record_a = agg.update("a", 3.0)

    assert record_a.stat(Statistic.MEAN) == 2.0
    assert agg.window("b") == (100.0,)
    assert sorted(agg.sensor_names()) == ["a", "b"]


def test_unknown_sensor_has_empty_window() -> None:
    assert WindowAggregator().window("nope") == ()


def test_custom_window_size() -> None:
    agg = WindowAggregator(size=3)

    for v in [1.0, 2.0, 3.0, 4.0]:
        agg.update("s", v)

    assert agg.window("s") == (2.0, 3.0, 4.0)


def test_invalid_window_size() -> None:
    with pytest.raises(ValueError):
        WindowAggregator(size=0)


def test_window_stats_requires_values() -> None:
    with pytest.raises(ValueError):
        window_stats(())


def test_payload_wire_format() -> None:
    record = WindowAggregator().update("rangeSensor", 7.0)

    assert record.to_payload() == {
        "name": "rangeSensor",
        "reading": {"MIN": 7.0, "MAX": 7.0, "MEAN": 7.0, "STDDEV": 0.0},
    }
