"""Tests for data_points.yaml loading and validation."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from src.iot.base import ValueKind
from src.iot.registry import (
    ConfigValidationError,
    _validate_and_build,
    find_data_point,
    get_data_points,
    load_data_points,
    reload_data_points,
)


class TestBundledRegistry:
    def test_loads_seven_points(self) -> None:
        names = [spec.name for spec in load_data_points()]
        assert names == [
            "volume",
            "shake",
            "temperature",
            "feature_speed_1_speed",
            "feature_hilbert_2_hb",
            "controlledvariable",
            "controlledvolume",
        ]

    def test_envelope_is_the_only_array(self) -> None:
        arrays = [s.name for s in load_data_points() if s.value_kind is ValueKind.ARRAY]
        assert arrays == ["feature_hilbert_2_hb"]

    def test_units(self) -> None:
        specs = {s.name: s for s in load_data_points()}
        assert specs["volume"].unit == "dB"
        assert specs["shake"].unit == "g"
        assert specs["temperature"].unit == "°C"
        assert specs["feature_speed_1_speed"].unit == "rpm"
        assert specs["controlledvariable"].value_kind is ValueKind.BOOLEAN

    def test_default_registry_cached(self) -> None:
        assert get_data_points() is get_data_points()

    def test_find_data_point(self) -> None:
        assert find_data_point("shake").display_name == "Vibration"
        with pytest.raises(KeyError):
            find_data_point("humidity")


class TestValidation:
    def test_missing_list(self) -> None:
        with pytest.raises(ConfigValidationError, match="non-empty list"):
            _validate_and_build({"version": "1.0"})

    def test_errors_collected_together(self) -> None:
        raw = {
            "data_points": [
                {"name": "a", "value_kind": "number"},
                {"name": "a", "value_kind": "number"},
                {"display_name": "nameless"},
                {"name": "b", "value_kind": "string"},
                "not a mapping",
            ]
        }
        with pytest.raises(ConfigValidationError) as exc_info:
            _validate_and_build(raw)
        message = str(exc_info.value)
        assert "4 validation error(s)" in message
        assert "duplicate name 'a'" in message
        assert "missing a 'name'" in message
        assert "'string'" in message

    def test_defaults_applied(self) -> None:
        (spec,) = _validate_and_build({"data_points": [{"name": "rpm"}]})
        assert spec.display_name == "rpm"
        assert spec.unit == ""
        assert spec.value_kind is ValueKind.NUMBER


class TestReload:
    def test_reload_from_custom_path(self, tmp_path: Path) -> None:
        path = tmp_path / "points.yaml"
        path.write_text(
            textwrap.dedent(
                """\
                version: "1.0"
                data_points:
                  - name: pressure
                    unit: bar
                """
            ),
            encoding="utf-8",
        )
        try:
            specs = reload_data_points(path)
            assert [s.name for s in specs] == ["pressure"]
            assert get_data_points() == specs
        finally:
            reload_data_points()

    def test_invalid_yaml_keeps_previous(self, tmp_path: Path) -> None:
        before = get_data_points()
        path = tmp_path / "broken.yaml"
        path.write_text("data_points: [\n", encoding="utf-8")
        with pytest.raises(ConfigValidationError, match="YAML parse error"):
            reload_data_points(path)
        assert get_data_points() is before

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_data_points(tmp_path / "absent.yaml")
