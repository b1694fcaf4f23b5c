"""
Telemetry model for tracebuild.

Spans are reconstructed after the fact from identifiers and timestamps that
the calling build script threads through separate process invocations:

    export TRACEBUILD_BUILD_ID=$(tracebuild id)
    export TRACEBUILD_BUILD_START=$(tracebuild now)
    tracebuild cmd -- make
    tracebuild build --name example --status success

Usage:
    from tracebuild.telemetry import SpanHandle, build_span_record

    build = SpanHandle.parse(build_id, start=parse_timestamp(build_start))
    span = build_span_record(build, end=now(), name="example")
"""

from tracebuild.telemetry.clock import now, parse_timestamp
from tracebuild.telemetry.events import MetricSample, SpanKind, SpanRecord, SpanStatus
from tracebuild.telemetry.ids import SpanHandle
from tracebuild.telemetry.spans import build_span, build_span_record, cmd_span, step_span

__all__ = [
    "MetricSample",
    "SpanHandle",
    "SpanKind",
    "SpanRecord",
    "SpanStatus",
    "build_span",
    "build_span_record",
    "cmd_span",
    "now",
    "parse_timestamp",
    "step_span",
]
