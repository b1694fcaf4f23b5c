"""Tests for the OTLP/gRPC trace exporter."""

from concurrent import futures

import grpc
import pytest
from opentelemetry.proto.collector.trace.v1 import trace_service_pb2
from opentelemetry.proto.collector.trace.v1 import trace_service_pb2_grpc
from opentelemetry.proto.trace.v1 import trace_pb2

from tracebuild.config import OtlpSettings
from tracebuild.errors import ConfigurationError, ExportFailure
from tracebuild.exporters.otlp import (
    OtlpTraceExporter,
    build_request,
    channel_target,
    span_to_protobuf,
)
from tracebuild.telemetry.events import SpanStatus
from tracebuild.telemetry.ids import SpanHandle
from tracebuild.telemetry.spans import build_span_record, cmd_span

START = 1_700_000_000_000_000_000


@pytest.fixture
def build():
    return SpanHandle.generate(start=START)


@pytest.fixture
def collector():
    """In-process OTLP collector recording requests and their metadata."""
    received = []

    class Collector(trace_service_pb2_grpc.TraceServiceServicer):
        def Export(self, request, context):
            received.append((request, dict(context.invocation_metadata())))
            return trace_service_pb2.ExportTraceServiceResponse()

    server = grpc.server(futures.ThreadPoolExecutor(max_workers=2))
    trace_service_pb2_grpc.add_TraceServiceServicer_to_server(Collector(), server)
    port = server.add_insecure_port("127.0.0.1:0")
    server.start()

    yield f"http://127.0.0.1:{port}", received

    server.stop(None)


class TestConversion:
    @pytest.mark.short
    def test_child_span(self, build):
        span = cmd_span(build, None, 0xABC, "make", [], START, START + 10, 1)
        proto = span_to_protobuf(span)
        assert proto.trace_id == build.trace_id.to_bytes(16, "big")
        assert proto.span_id == (0xABC).to_bytes(8, "big")
        assert proto.parent_span_id.hex() == build.span_id_hex
        assert proto.kind == trace_pb2.Span.SPAN_KIND_CLIENT
        assert proto.status.code == trace_pb2.Status.STATUS_CODE_ERROR
        assert proto.start_time_unix_nano == START
        assert proto.end_time_unix_nano == START + 10
        attributes = {a.key: a.value.string_value for a in proto.attributes}
        assert attributes["tracebuild.cmd.exit_code"] == "1"

    @pytest.mark.short
    def test_root_span(self, build):
        span = build_span_record(build, end=START + 1, status=SpanStatus.SUCCESS)
        proto = span_to_protobuf(span)
        assert proto.parent_span_id == b""
        assert proto.kind == trace_pb2.Span.SPAN_KIND_INTERNAL
        assert proto.status.code == trace_pb2.Status.STATUS_CODE_OK

    @pytest.mark.short
    def test_request_resource(self, build):
        request = build_request([build_span_record(build, end=START + 1)], "ci")
        (resource_spans,) = request.resource_spans
        resource = {
            a.key: a.value.string_value for a in resource_spans.resource.attributes
        }
        assert resource["service.name"] == "ci"
        assert resource["telemetry.sdk.name"] == "tracebuild"
        assert resource_spans.scope_spans[0].scope.name == "tracebuild"
        assert len(resource_spans.scope_spans[0].spans) == 1


class TestChannelTarget:
    @pytest.mark.short
    @pytest.mark.parametrize(
        "endpoint, insecure, expected",
        [
            ("https://collector:4317", False, ("collector:4317", True)),
            ("https://collector:4317", True, ("collector:4317", False)),
            ("http://collector:4317", False, ("collector:4317", False)),
            ("collector:4317", False, ("collector:4317", True)),
            ("collector:4317", True, ("collector:4317", False)),
        ],
    )
    def test_targets(self, endpoint, insecure, expected):
        assert channel_target(endpoint, insecure) == expected

    @pytest.mark.short
    def test_unsupported_scheme(self):
        with pytest.raises(ConfigurationError):
            channel_target("udp://collector:4317")


class TestExport:
    @pytest.mark.short
    def test_flush_without_spans_does_nothing(self):
        exporter = OtlpTraceExporter(OtlpSettings(endpoint="http://127.0.0.1:1"))
        exporter.flush(timeout=1)

    @pytest.mark.short
    def test_delivers_to_collector(self, build, collector):
        endpoint, received = collector
        exporter = OtlpTraceExporter(
            OtlpSettings(endpoint=endpoint, headers={"x-team": "ci"}), "pipeline"
        )
        exporter.export_span(build_span_record(build, end=START + 1))
        exporter.flush(timeout=5)

        ((request, metadata),) = received
        span = request.resource_spans[0].scope_spans[0].spans[0]
        assert span.span_id == build.span_id.to_bytes(8, "big")
        assert metadata["x-team"] == "ci"

    @pytest.mark.short
    def test_unreachable_collector(self, build):
        exporter = OtlpTraceExporter(OtlpSettings(endpoint="http://127.0.0.1:1"))
        exporter.export_span(build_span_record(build, end=START + 1))
        with pytest.raises(ExportFailure) as excinfo:
            exporter.flush(timeout=1)
        assert excinfo.value.backend == "otlp"

    @pytest.mark.short
    def test_unreadable_certificate(self, build, tmp_path):
        exporter = OtlpTraceExporter(
            OtlpSettings(
                endpoint="https://127.0.0.1:1", certificate=str(tmp_path / "missing.pem")
            )
        )
        exporter.export_span(build_span_record(build, end=START + 1))
        with pytest.raises(ExportFailure, match="certificate"):
            exporter.flush(timeout=1)
