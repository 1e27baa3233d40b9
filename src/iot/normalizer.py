"""Normalize raw platform samples into canonical typed samples.

The platform is inconsistent about encodings.  Sample times arrive as epoch
milliseconds (numbers), or as digit strings that are milliseconds when they
have 13 characters and seconds otherwise.  Values arrive as numbers, numeric
strings, booleans or arbitrary JSON.

Normalization is lenient: a malformed time becomes ``ZERO_INSTANT`` and a
malformed number becomes ``0.0``, so one bad sample never aborts a sync.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import datetime, timedelta, timezone
from typing import Any

from src.iot.base import (
    ZERO_INSTANT,
    BooleanValue,
    DataPointSpec,
    NormalizedSample,
    NumberValue,
    OpaqueValue,
    RawSample,
    RawValue,
    TextValue,
    ValueKind,
)

logger = logging.getLogger("devmon.iot.normalizer")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
_MILLIS_STRING_LENGTH = 13


def normalize(raw: RawSample, spec: DataPointSpec) -> NormalizedSample:
    """Convert one raw sample into a NormalizedSample for the given data point."""
    return NormalizedSample(
        timestamp=normalize_time(raw.raw_time),
        value=normalize_value(raw.raw_value, spec.value_kind),
    )


def normalize_time(raw_time: RawValue) -> datetime:
    """Return the UTC instant encoded by a raw sample time.

    Args:
        raw_time: Tagged raw time value.

    Returns:
        Aware UTC datetime, or ZERO_INSTANT when the encoding is unreadable.
    """
    if isinstance(raw_time, NumberValue):
        try:
            epoch_ms = int(raw_time.value)
        except (ValueError, OverflowError):  # nan / inf
            return ZERO_INSTANT
        return _from_epoch(epoch_ms, millis=True)
    if isinstance(raw_time, TextValue):
        text = raw_time.value
        if not _INTEGER_RE.fullmatch(text):
            logger.debug("Unparseable sample time %r", text)
            return ZERO_INSTANT
        return _from_epoch(int(text), millis=len(text) == _MILLIS_STRING_LENGTH)
    if isinstance(raw_time, (BooleanValue, OpaqueValue)):
        return ZERO_INSTANT
    raise TypeError(f"Unknown raw value type: {type(raw_time).__name__}")


def normalize_value(raw_value: RawValue, kind: ValueKind) -> Any:
    """Return the canonical value for a raw sample value.

    - ``array`` points keep the payload untouched.
    - ``number`` points turn numbers and numeric strings into floats;
      strings that do not parse, and non-finite numbers, become 0.0.
      Other encodings pass through.
    - ``boolean`` points pass everything through without coercion.
    """
    if kind is ValueKind.NUMBER:
        if isinstance(raw_value, (NumberValue, TextValue)):
            return _to_float(raw_value.value)
        return raw_value.value
    if kind in (ValueKind.ARRAY, ValueKind.BOOLEAN):
        return raw_value.value
    raise ValueError(f"Unknown value kind: {kind!r}")


def _to_float(value: int | float | str) -> float:
    try:
        number = float(value)
    except (ValueError, OverflowError):
        logger.debug("Unparseable numeric value %r, using 0.0", value)
        return 0.0
    # NaN/inf cannot be summarized or serialized to JSON
    return number if math.isfinite(number) else 0.0


def _from_epoch(value: int, millis: bool) -> datetime:
    try:
        if millis:
            return _EPOCH + timedelta(milliseconds=value)
        return _EPOCH + timedelta(seconds=value)
    except OverflowError:
        logger.debug("Sample time %d out of range", value)
        return ZERO_INSTANT
