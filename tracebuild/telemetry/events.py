"""
Record types for reconstructed telemetry.

This module defines the backend-neutral span and metric records, and how
they map to OpenTelemetry's trace model: span kinds, status codes and
OTLP JSON attributes.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Optional

from tracebuild.constants import UNSET
from tracebuild.telemetry.ids import encode_span_id, encode_trace_id


class OtlpSpanKind(IntEnum):
    """OpenTelemetry span kinds."""

    INTERNAL = 1
    SERVER = 2
    CLIENT = 3
    PRODUCER = 4
    CONSUMER = 5


class OtlpStatusCode(IntEnum):
    """OpenTelemetry span status codes."""

    UNSET = 0
    OK = 1
    ERROR = 2


class SpanKind(str, Enum):
    """Granularity of an instrumented build phase."""

    CMD = "cmd"
    STEP = "step"
    BUILD = "build"

    @property
    def otlp_kind(self) -> OtlpSpanKind:
        # A wrapped command calls out to another program
        if self is SpanKind.CMD:
            return OtlpSpanKind.CLIENT
        return OtlpSpanKind.INTERNAL


class SpanStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    UNSET = UNSET

    @property
    def otlp_code(self) -> OtlpStatusCode:
        return {
            SpanStatus.SUCCESS: OtlpStatusCode.OK,
            SpanStatus.FAILURE: OtlpStatusCode.ERROR,
            SpanStatus.UNSET: OtlpStatusCode.UNSET,
        }[self]

    def __str__(self) -> str:
        return self.value


@dataclass
class SpanRecord:
    """
    A finished span, rebuilt from identifiers and timestamps supplied by the
    caller rather than recorded by a live tracer.

    Times are nanoseconds since the Unix epoch. Attribute values are always
    strings.
    """

    trace_id: int
    span_id: int
    parent_span_id: Optional[int]
    kind: SpanKind
    name: str
    start: int
    end: int
    status: SpanStatus = SpanStatus.UNSET
    attributes: dict[str, str] = field(default_factory=dict)

    @property
    def duration_ns(self) -> int:
        return self.end - self.start

    def to_otlp(self) -> dict:
        """Convert to OTLP JSON span format."""
        span = {
            "traceId": encode_trace_id(self.trace_id),
            "spanId": encode_span_id(self.span_id),
            "name": self.name,
            "kind": int(self.kind.otlp_kind),
            "startTimeUnixNano": str(self.start),
            "endTimeUnixNano": str(self.end),
            "status": {
                "code": int(self.status.otlp_code),
            },
            "attributes": [
                {"key": key, "value": {"stringValue": value}}
                for key, value in self.attributes.items()
            ],
        }

        if self.parent_span_id is not None:
            span["parentSpanId"] = encode_span_id(self.parent_span_id)

        return span


@dataclass
class MetricSample:
    """A single observation, e.g. the duration of a step in seconds."""

    metric_name: str
    value: float
    labels: dict[str, str] = field(default_factory=dict)
    timestamp: Optional[int] = None
