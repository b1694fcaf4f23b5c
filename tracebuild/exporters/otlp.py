"""
OTLP/gRPC trace exporter.

Spans are converted to ``ExportTraceServiceRequest`` protobufs and pushed in
a single batch when the exporter is flushed. The channel is encrypted unless
the endpoint uses ``http://`` or insecure mode is requested.
"""

import logging
from typing import Optional
from urllib.parse import urlparse

import grpc
from opentelemetry.proto.collector.trace.v1 import trace_service_pb2
from opentelemetry.proto.collector.trace.v1 import trace_service_pb2_grpc
from opentelemetry.proto.common.v1 import common_pb2
from opentelemetry.proto.resource.v1 import resource_pb2
from opentelemetry.proto.trace.v1 import trace_pb2

from tracebuild import __version__
from tracebuild.config import OtlpSettings
from tracebuild.constants import APP_NAME
from tracebuild.errors import ConfigurationError, ExportFailure
from tracebuild.exporters.base import TraceExporter
from tracebuild.telemetry.events import SpanRecord

logger = logging.getLogger(__name__)


def string_attribute(key: str, value: str) -> common_pb2.KeyValue:
    return common_pb2.KeyValue(key=key, value=common_pb2.AnyValue(string_value=value))


def span_to_protobuf(span: SpanRecord) -> trace_pb2.Span:
    """Convert a span record to an OTLP protobuf span."""
    parent_span_id = b""
    if span.parent_span_id is not None:
        parent_span_id = span.parent_span_id.to_bytes(8, "big")

    return trace_pb2.Span(
        trace_id=span.trace_id.to_bytes(16, "big"),
        span_id=span.span_id.to_bytes(8, "big"),
        parent_span_id=parent_span_id,
        name=span.name,
        kind=int(span.kind.otlp_kind),
        start_time_unix_nano=span.start,
        end_time_unix_nano=span.end,
        attributes=[string_attribute(k, v) for k, v in span.attributes.items()],
        status=trace_pb2.Status(code=int(span.status.otlp_code)),
    )


def build_request(
    spans: list[SpanRecord], service_name: str
) -> trace_service_pb2.ExportTraceServiceRequest:
    resource = resource_pb2.Resource(
        attributes=[
            string_attribute("service.name", service_name),
            string_attribute("telemetry.sdk.name", APP_NAME),
            string_attribute("telemetry.sdk.version", __version__),
        ]
    )
    scope_spans = trace_pb2.ScopeSpans(
        scope=common_pb2.InstrumentationScope(name=APP_NAME, version=__version__),
        spans=[span_to_protobuf(s) for s in spans],
    )
    return trace_service_pb2.ExportTraceServiceRequest(
        resource_spans=[
            trace_pb2.ResourceSpans(resource=resource, scope_spans=[scope_spans])
        ]
    )


def channel_target(endpoint: str, insecure: bool = False) -> tuple[str, bool]:
    """
    Split an endpoint into a gRPC target and whether to use TLS.

    ``https://host:4317`` -> ("host:4317", True)
    ``http://host:4317``  -> ("host:4317", False)
    ``host:4317``         -> ("host:4317", not insecure)
    """
    if "://" not in endpoint:
        return endpoint, not insecure
    parsed = urlparse(endpoint)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigurationError(f"Unsupported OTLP endpoint {endpoint}")
    return parsed.netloc, parsed.scheme == "https" and not insecure


class OtlpTraceExporter(TraceExporter):
    name = "otlp"

    def __init__(self, settings: OtlpSettings, service_name: str = APP_NAME):
        self.settings = settings
        self.service_name = service_name
        self.target, self.secure = channel_target(settings.endpoint, settings.insecure)
        self._spans: list[SpanRecord] = []

    def export_span(self, span: SpanRecord) -> None:
        self._spans.append(span)

    def _credentials(self) -> grpc.ChannelCredentials:
        root_certificates: Optional[bytes] = None
        if self.settings.certificate:
            try:
                with open(self.settings.certificate, "rb") as f:
                    root_certificates = f.read()
            except OSError as e:
                raise ExportFailure(
                    self.name, f"cannot read certificate {self.settings.certificate}: {e}", e
                )
        return grpc.ssl_channel_credentials(root_certificates=root_certificates)

    def _channel(self) -> grpc.Channel:
        if self.secure:
            return grpc.secure_channel(self.target, self._credentials())
        return grpc.insecure_channel(self.target)

    def flush(self, timeout: float) -> None:
        if not self._spans:
            return
        request = build_request(self._spans, self.service_name)
        timeout = min(timeout, self.settings.timeout)

        logger.debug(f"Sending {len(self._spans)} span(s) to {self.target} via OTLP")
        channel = self._channel()
        try:
            stub = trace_service_pb2_grpc.TraceServiceStub(channel)
            stub.Export(
                request,
                timeout=timeout,
                metadata=list(self.settings.headers.items()) or None,
            )
        except grpc.RpcError as e:
            if isinstance(e, grpc.Call):
                message = f"{e.code().name}: {e.details()}"
            else:
                message = str(e)
            raise ExportFailure(self.name, message, e)
        finally:
            channel.close()
        self._spans.clear()
