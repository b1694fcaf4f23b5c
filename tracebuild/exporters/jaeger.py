"""
Jaeger trace exporter.

Spans are encoded with the Jaeger Thrift model (``jaeger.thrift``) and
delivered either to a local agent over UDP (``Agent.emitBatch``, compact
protocol) or, when a collector endpoint is configured, to the collector's
HTTP API (binary protocol) with optional basic auth.

Thrift layout of the structs written below:

    Tag     { 1: key, 2: vType, 3: vStr, 5: vBool }
    SpanRef { 1: refType, 2: traceIdLow, 3: traceIdHigh, 4: spanId }
    Span    { 1: traceIdLow, 2: traceIdHigh, 3: spanId, 4: parentSpanId,
              5: operationName, 6: references, 7: flags, 8: startTime,
              9: duration, 10: tags }
    Process { 1: serviceName, 2: tags }
    Batch   { 1: process, 2: spans }
"""

import logging
import socket
from typing import Union

import requests
from requests.auth import HTTPBasicAuth
from thrift.Thrift import TMessageType, TType
from thrift.protocol import TBinaryProtocol, TCompactProtocol
from thrift.protocol.TProtocol import TProtocolBase
from thrift.transport import TTransport

from tracebuild import __version__
from tracebuild.config import JaegerSettings
from tracebuild.constants import APP_NAME
from tracebuild.errors import ExportFailure
from tracebuild.exporters.base import TraceExporter
from tracebuild.telemetry.events import SpanRecord, SpanStatus

logger = logging.getLogger(__name__)

# Largest datagram the Jaeger agent accepts
UDP_PACKET_MAX_LENGTH = 65000

TAG_TYPE_STRING = 0
TAG_TYPE_BOOL = 2
SPAN_REF_CHILD_OF = 0
FLAG_SAMPLED = 1

TagValue = Union[str, bool]


def _signed64(value: int) -> int:
    """Thrift has no unsigned integers; ids travel as signed i64."""
    value &= (1 << 64) - 1
    return value - (1 << 64) if value >= (1 << 63) else value


def split_trace_id(trace_id: int) -> tuple[int, int]:
    """Return ``(low, high)`` signed halves of a 128-bit trace id."""
    return _signed64(trace_id), _signed64(trace_id >> 64)


def span_tags(span: SpanRecord) -> list[tuple[str, TagValue]]:
    tags: list[tuple[str, TagValue]] = list(span.attributes.items())
    tags.append(("span.kind", span.kind.otlp_kind.name.lower()))
    if span.status is SpanStatus.SUCCESS:
        tags.append(("otel.status_code", "OK"))
    elif span.status is SpanStatus.FAILURE:
        tags.append(("otel.status_code", "ERROR"))
        tags.append(("error", True))
    return tags


def _write_i64(proto: TProtocolBase, name: str, fid: int, value: int):
    proto.writeFieldBegin(name, TType.I64, fid)
    proto.writeI64(value)
    proto.writeFieldEnd()


def _write_string(proto: TProtocolBase, name: str, fid: int, value: str):
    proto.writeFieldBegin(name, TType.STRING, fid)
    proto.writeString(value)
    proto.writeFieldEnd()


def write_tag(proto: TProtocolBase, key: str, value: TagValue):
    proto.writeStructBegin("Tag")
    _write_string(proto, "key", 1, key)
    proto.writeFieldBegin("vType", TType.I32, 2)
    if isinstance(value, bool):
        proto.writeI32(TAG_TYPE_BOOL)
        proto.writeFieldEnd()
        proto.writeFieldBegin("vBool", TType.BOOL, 5)
        proto.writeBool(value)
        proto.writeFieldEnd()
    else:
        proto.writeI32(TAG_TYPE_STRING)
        proto.writeFieldEnd()
        _write_string(proto, "vStr", 3, value)
    proto.writeFieldStop()
    proto.writeStructEnd()


def write_tags(proto: TProtocolBase, fid: int, tags: list[tuple[str, TagValue]]):
    proto.writeFieldBegin("tags", TType.LIST, fid)
    proto.writeListBegin(TType.STRUCT, len(tags))
    for key, value in tags:
        write_tag(proto, key, value)
    proto.writeListEnd()
    proto.writeFieldEnd()


def write_span(proto: TProtocolBase, span: SpanRecord):
    trace_low, trace_high = split_trace_id(span.trace_id)
    parent = _signed64(span.parent_span_id) if span.parent_span_id is not None else 0

    proto.writeStructBegin("Span")
    _write_i64(proto, "traceIdLow", 1, trace_low)
    _write_i64(proto, "traceIdHigh", 2, trace_high)
    _write_i64(proto, "spanId", 3, _signed64(span.span_id))
    _write_i64(proto, "parentSpanId", 4, parent)
    _write_string(proto, "operationName", 5, span.name)

    if span.parent_span_id is not None:
        proto.writeFieldBegin("references", TType.LIST, 6)
        proto.writeListBegin(TType.STRUCT, 1)
        proto.writeStructBegin("SpanRef")
        proto.writeFieldBegin("refType", TType.I32, 1)
        proto.writeI32(SPAN_REF_CHILD_OF)
        proto.writeFieldEnd()
        _write_i64(proto, "traceIdLow", 2, trace_low)
        _write_i64(proto, "traceIdHigh", 3, trace_high)
        _write_i64(proto, "spanId", 4, parent)
        proto.writeFieldStop()
        proto.writeStructEnd()
        proto.writeListEnd()
        proto.writeFieldEnd()

    proto.writeFieldBegin("flags", TType.I32, 7)
    proto.writeI32(FLAG_SAMPLED)
    proto.writeFieldEnd()
    # Jaeger wants microseconds
    _write_i64(proto, "startTime", 8, span.start // 1000)
    _write_i64(proto, "duration", 9, span.duration_ns // 1000)
    write_tags(proto, 10, span_tags(span))
    proto.writeFieldStop()
    proto.writeStructEnd()


def write_batch(proto: TProtocolBase, service_name: str, spans: list[SpanRecord]):
    proto.writeStructBegin("Batch")

    proto.writeFieldBegin("process", TType.STRUCT, 1)
    proto.writeStructBegin("Process")
    _write_string(proto, "serviceName", 1, service_name)
    write_tags(
        proto,
        2,
        [
            ("hostname", socket.gethostname()),
            (f"{APP_NAME}.version", __version__),
        ],
    )
    proto.writeFieldStop()
    proto.writeStructEnd()
    proto.writeFieldEnd()

    proto.writeFieldBegin("spans", TType.LIST, 2)
    proto.writeListBegin(TType.STRUCT, len(spans))
    for span in spans:
        write_span(proto, span)
    proto.writeListEnd()
    proto.writeFieldEnd()

    proto.writeFieldStop()
    proto.writeStructEnd()


def encode_agent_message(service_name: str, spans: list[SpanRecord], seqid: int = 0) -> bytes:
    """Compact-encoded ``Agent.emitBatch`` oneway call for the UDP agent."""
    buffer = TTransport.TMemoryBuffer()
    proto = TCompactProtocol.TCompactProtocol(buffer)
    proto.writeMessageBegin("emitBatch", TMessageType.ONEWAY, seqid)
    proto.writeStructBegin("emitBatch_args")
    proto.writeFieldBegin("batch", TType.STRUCT, 1)
    write_batch(proto, service_name, spans)
    proto.writeFieldEnd()
    proto.writeFieldStop()
    proto.writeStructEnd()
    proto.writeMessageEnd()
    return buffer.getvalue()


def encode_collector_batch(service_name: str, spans: list[SpanRecord]) -> bytes:
    """Binary-encoded ``Batch`` for the collector's HTTP endpoint."""
    buffer = TTransport.TMemoryBuffer()
    proto = TBinaryProtocol.TBinaryProtocol(buffer)
    write_batch(proto, service_name, spans)
    return buffer.getvalue()


class JaegerTraceExporter(TraceExporter):
    name = "jaeger"

    def __init__(self, settings: JaegerSettings, service_name: str = APP_NAME):
        self.settings = settings
        self.service_name = service_name
        self._spans: list[SpanRecord] = []

    def export_span(self, span: SpanRecord) -> None:
        self._spans.append(span)

    def flush(self, timeout: float) -> None:
        if not self._spans:
            return
        timeout = min(timeout, self.settings.timeout)
        if self.settings.collector_endpoint:
            self._send_to_collector(timeout)
        else:
            self._send_to_agent(timeout)
        self._spans.clear()

    def _send_to_agent(self, timeout: float):
        payload = encode_agent_message(self.service_name, self._spans)
        if len(payload) > UDP_PACKET_MAX_LENGTH:
            raise ExportFailure(
                self.name,
                f"batch of {len(payload)} bytes exceeds the agent's "
                f"{UDP_PACKET_MAX_LENGTH} byte limit",
            )
        address = (self.settings.agent_host, self.settings.agent_port)
        logger.debug(f"Sending {len(self._spans)} span(s) to Jaeger agent {address[0]}:{address[1]}")
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
                sock.settimeout(timeout)
                sock.sendto(payload, address)
        except OSError as e:
            raise ExportFailure(self.name, f"cannot reach agent at {address[0]}:{address[1]}: {e}", e)

    def _send_to_collector(self, timeout: float):
        payload = encode_collector_batch(self.service_name, self._spans)
        auth = None
        if self.settings.user:
            auth = HTTPBasicAuth(self.settings.user, self.settings.password or "")

        endpoint = self.settings.collector_endpoint
        logger.debug(f"Sending {len(self._spans)} span(s) to Jaeger collector {endpoint}")
        try:
            response = requests.post(
                endpoint,
                data=payload,
                headers={"Content-Type": "application/x-thrift"},
                auth=auth,
                timeout=timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise ExportFailure(self.name, f"collector {endpoint} rejected the batch: {e}", e)
