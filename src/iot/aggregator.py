"""Per-point statistics and report series over normalized samples."""

from __future__ import annotations

import math
from typing import Any

from src.iot.base import PointResult, PointSummary, SeriesPoint


def is_numeric(value: Any) -> bool:
    """True for ints and floats, excluding bools and NaN."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)


def summarize(result: PointResult) -> PointSummary:
    """Compute count / min / max / avg over the numeric samples of a point.

    Non-numeric samples (flags, envelopes, text) are ignored.  With no
    numeric samples every statistic is zero.
    """
    summary = PointSummary(
        point_name=result.spec.name,
        unit=result.unit,
        display_name=result.display_name,
    )

    count = 0
    total = 0.0
    low = high = 0.0
    for sample in result.samples:
        if not is_numeric(sample.value):
            continue
        value = float(sample.value)
        if count == 0:
            low = high = value
        else:
            low = min(low, value)
            high = max(high, value)
        total += value
        count += 1

    if count:
        summary.count = count
        summary.min_value = low
        summary.max_value = high
        summary.avg_value = total / count
    return summary


def build_series(result: PointResult) -> list[SeriesPoint]:
    """Return one series entry per sample, in sample order."""
    return [SeriesPoint(time=s.timestamp, value=s.value) for s in result.samples]
