"""Device Monitor telemetry engine.

Pulls session telemetry from the IoT cloud platform, normalizes the
platform's inconsistent encodings and summarizes each data point.

Core modules:
    base             canonical data models and the raw value tagged union
    errors           AuthError / NetworkError / ParseError
    registry         load/validate/reload data_points.yaml
    token_manager    cached platform token with single-flight refresh
    client           one telemetry query per data point and window
    normalizer       raw time/value encodings to canonical samples
    orchestrator     concurrent fan-out over the registry
    aggregator       per-point statistics and report series
    report           session report assembly
    telemetry_store  persistence seam (no-op in this service)
    service          IotService facade used by the routers
"""

from src.iot.base import (
    DataPointSpec,
    NormalizedSample,
    PointResult,
    PointSummary,
    RawSample,
    SessionReport,
    ValueKind,
)
from src.iot.errors import AuthError, IotError, NetworkError, ParseError
from src.iot.service import IotService

__all__ = [
    "DataPointSpec",
    "ValueKind",
    "RawSample",
    "NormalizedSample",
    "PointResult",
    "PointSummary",
    "SessionReport",
    "IotError",
    "AuthError",
    "NetworkError",
    "ParseError",
    "IotService",
]
