"""Tests for per-point summaries and report series."""

from __future__ import annotations

from datetime import timedelta

import pytest

from src.iot.aggregator import build_series, is_numeric, summarize
from src.iot.base import DataPointSpec, NormalizedSample, PointResult
from src.iot.tests.conftest import T0


def _result(spec: DataPointSpec, values: list) -> PointResult:
    return PointResult(
        spec=spec,
        samples=[
            NormalizedSample(timestamp=T0 + timedelta(seconds=i), value=v)
            for i, v in enumerate(values)
        ],
    )


class TestIsNumeric:
    @pytest.mark.parametrize("value", [0, 1.5, -3])
    def test_numbers(self, value) -> None:
        assert is_numeric(value)

    @pytest.mark.parametrize("value", [True, "1", None, [1.0], float("nan")])
    def test_non_numbers(self, value) -> None:
        assert not is_numeric(value)


class TestSummarize:
    def test_basic_statistics(self, temperature_spec: DataPointSpec) -> None:
        summary = summarize(_result(temperature_spec, [1.0, 2.0, 3.0]))
        assert summary.count == 3
        assert summary.min_value == 1.0
        assert summary.max_value == 3.0
        assert summary.avg_value == pytest.approx(2.0)

    def test_carries_point_identity(self, temperature_spec: DataPointSpec) -> None:
        summary = summarize(_result(temperature_spec, [20.0]))
        assert summary.point_name == "temperature"
        assert summary.display_name == "Temperature"
        assert summary.unit == "°C"

    def test_no_samples_defaults_to_zero(self, temperature_spec: DataPointSpec) -> None:
        summary = summarize(_result(temperature_spec, []))
        assert (summary.count, summary.min_value, summary.max_value, summary.avg_value) == (
            0, 0.0, 0.0, 0.0,
        )

    def test_negative_values(self, temperature_spec: DataPointSpec) -> None:
        summary = summarize(_result(temperature_spec, [-5.0, -1.0]))
        assert summary.min_value == -5.0
        assert summary.max_value == -1.0

    def test_fallback_zero_is_counted(self, temperature_spec: DataPointSpec) -> None:
        # "abc" on a number point normalizes to 0.0 and still counts
        summary = summarize(_result(temperature_spec, [0.0, 4.0]))
        assert summary.count == 2
        assert summary.avg_value == pytest.approx(2.0)

    def test_non_numeric_samples_ignored(self, data_points: tuple[DataPointSpec, ...]) -> None:
        flag_spec = data_points[3]
        summary = summarize(_result(flag_spec, [True, False, "on", 5]))
        assert summary.count == 1
        assert summary.min_value == summary.max_value == 5.0

    def test_array_point_has_no_statistics(self, data_points: tuple[DataPointSpec, ...]) -> None:
        envelope = data_points[2]
        summary = summarize(_result(envelope, [[0.1, 0.2], [0.3]]))
        assert summary.count == 0


class TestBuildSeries:
    def test_one_entry_per_sample_in_order(self, temperature_spec: DataPointSpec) -> None:
        series = build_series(_result(temperature_spec, [3.0, 1.0, 2.0]))
        assert [p.value for p in series] == [3.0, 1.0, 2.0]
        assert [p.time for p in series] == [T0 + timedelta(seconds=i) for i in range(3)]

    def test_series_json_shape(self, temperature_spec: DataPointSpec) -> None:
        series = build_series(_result(temperature_spec, [21.5]))
        assert series[0].to_json() == {"time_bucket": "2026-02-23T08:00:00Z", "avg_value": 21.5}
