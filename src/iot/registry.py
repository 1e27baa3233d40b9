"""Load and validate the telemetry data point registry.

The registry lives in ``data_points.yaml`` alongside this module.  It is
loaded once and cached; ``reload_data_points()`` re-reads it from disk.
The orchestrator receives the registry at construction, so tests can pass
any sequence of specs instead.

Usage::

    from src.iot.registry import get_data_points

    for spec in get_data_points():
        print(spec.name, spec.value_kind)
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any

import yaml

from src.iot.base import DataPointSpec, ValueKind

logger = logging.getLogger("devmon.iot.registry")

_REGISTRY_PATH = Path(__file__).parent / "data_points.yaml"


class ConfigValidationError(ValueError):
    """Raised when data_points.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    """Read and parse a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigValidationError: If the YAML is malformed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Data point registry not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc


def _validate_and_build(raw: dict) -> tuple[DataPointSpec, ...]:
    """Validate the raw YAML dict and build the registry.

    All problems are collected and reported together.

    Args:
        raw: Parsed YAML dict.

    Returns:
        Registry entries in file order.

    Raises:
        ConfigValidationError: If entries are missing, duplicated or invalid.
    """
    errors: list[str] = []
    entries_raw = raw.get("data_points")
    if not entries_raw or not isinstance(entries_raw, list):
        raise ConfigValidationError("'data_points' must be a non-empty list")

    kinds = {k.value for k in ValueKind}
    specs: list[DataPointSpec] = []
    seen: set[str] = set()

    for idx, entry in enumerate(entries_raw):
        if not isinstance(entry, dict):
            errors.append(f"data_points[{idx}] must be a mapping")
            continue

        name = entry.get("name")
        if not name or not isinstance(name, str):
            errors.append(f"data_points[{idx}] is missing a 'name'")
            continue
        if name in seen:
            errors.append(f"data_points[{idx}]: duplicate name '{name}'")
            continue
        seen.add(name)

        kind: Any = entry.get("value_kind", "number")
        if kind not in kinds:
            errors.append(
                f"data_points.{name}.value_kind = {kind!r}, expected one of {sorted(kinds)}"
            )
            continue

        specs.append(
            DataPointSpec(
                name=name,
                display_name=str(entry.get("display_name") or name),
                unit=str(entry.get("unit") or ""),
                value_kind=ValueKind(kind),
            )
        )

    if errors:
        raise ConfigValidationError(
            f"data_points.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )
    return tuple(specs)


def load_data_points(path: Path | None = None) -> tuple[DataPointSpec, ...]:
    """Load and validate the data point registry from disk.

    Args:
        path: Override path to YAML. Uses the bundled data_points.yaml by default.
    """
    target = path or _REGISTRY_PATH
    specs = _validate_and_build(_load_yaml(target))
    logger.info("Loaded %d data points from %s", len(specs), target)
    return specs


# ---------------------------------------------------------------------------
# Process-wide default with reload support
# ---------------------------------------------------------------------------

_registry: tuple[DataPointSpec, ...] | None = None
_registry_lock = threading.Lock()


def get_data_points() -> tuple[DataPointSpec, ...]:
    """Return the default registry, loading it on first call. Thread-safe."""
    global _registry
    if _registry is None:
        with _registry_lock:
            if _registry is None:
                _registry = load_data_points()
    return _registry


def reload_data_points(path: Path | None = None) -> tuple[DataPointSpec, ...]:
    """Re-read the registry and replace the cached default.

    If validation fails the previous registry is kept and the error re-raised.
    """
    global _registry
    new_registry = load_data_points(path)
    with _registry_lock:
        _registry = new_registry
    return new_registry


def find_data_point(
    name: str, data_points: tuple[DataPointSpec, ...] | None = None
) -> DataPointSpec:
    """Look up a registry entry by platform identifier.

    Raises:
        KeyError: If no entry has that name.
    """
    for spec in data_points or get_data_points():
        if spec.name == name:
            return spec
    raise KeyError(f"No data point registered with name '{name}'")
