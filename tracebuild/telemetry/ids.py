"""
Trace and span identifiers.

A build is identified by a ``SpanHandle``: the trace id shared by every span
of the build plus the span id of one span, serialized as 48 lowercase hex
characters (32 for the trace, 16 for the span). The calling script keeps
that text around and hands it back to later invocations.
"""

import logging
import secrets
import string
from dataclasses import dataclass
from typing import Optional

from tracebuild.errors import InvalidIdentifier

logger = logging.getLogger(__name__)

TRACE_ID_BITS = 128
SPAN_ID_BITS = 64
TRACE_ID_HEX_LEN = TRACE_ID_BITS // 4
SPAN_ID_HEX_LEN = SPAN_ID_BITS // 4
HANDLE_HEX_LEN = TRACE_ID_HEX_LEN + SPAN_ID_HEX_LEN

_HEX_DIGITS = frozenset(string.hexdigits)


def _random_nonzero(bits: int) -> int:
    # Zero is the "invalid" id for OpenTelemetry backends
    value = 0
    while value == 0:
        value = secrets.randbits(bits)
    return value


def generate_trace_id() -> int:
    """Draw a uniformly random, non-zero 128-bit trace id."""
    return _random_nonzero(TRACE_ID_BITS)


def generate_span_id() -> int:
    """Draw a uniformly random, non-zero 64-bit span id."""
    return _random_nonzero(SPAN_ID_BITS)


def encode_trace_id(trace_id: int) -> str:
    return f"{trace_id:0{TRACE_ID_HEX_LEN}x}"


def encode_span_id(span_id: int) -> str:
    return f"{span_id:0{SPAN_ID_HEX_LEN}x}"


def _decode_hex(text: str, length: int, kind: str) -> int:
    if len(text) != length:
        raise InvalidIdentifier(
            text, f"{kind} must be {length} hex characters, got {len(text)}"
        )
    if not _HEX_DIGITS.issuperset(text):
        raise InvalidIdentifier(text, f"{kind} contains non-hex characters")
    value = int(text, 16)
    if value == 0:
        logger.warning(
            f"All-zero {kind} {text} will be dropped by most tracing backends."
        )
    return value


def decode_trace_id(text: str) -> int:
    return _decode_hex(text, TRACE_ID_HEX_LEN, "trace id")


def decode_span_id(text: str) -> int:
    return _decode_hex(text, SPAN_ID_HEX_LEN, "span id")


@dataclass(frozen=True)
class SpanHandle:
    """
    A span that is open across process boundaries.

    Created by ``tracebuild id`` (and ``tracebuild now`` for the start time),
    closed by a later ``step`` or ``build`` invocation which parses it back.
    """

    trace_id: int
    span_id: int
    start: Optional[int] = None

    @classmethod
    def generate(cls, start: Optional[int] = None) -> "SpanHandle":
        return cls(generate_trace_id(), generate_span_id(), start)

    @classmethod
    def parse(cls, text: str, start: Optional[int] = None) -> "SpanHandle":
        text = text.strip()
        if len(text) != HANDLE_HEX_LEN:
            raise InvalidIdentifier(
                text,
                f"expected {HANDLE_HEX_LEN} hex characters, got {len(text)}",
            )
        trace_id = decode_trace_id(text[:TRACE_ID_HEX_LEN])
        span_id = decode_span_id(text[TRACE_ID_HEX_LEN:])
        return cls(trace_id, span_id, start)

    def with_start(self, start: Optional[int]) -> "SpanHandle":
        return SpanHandle(self.trace_id, self.span_id, start)

    @property
    def trace_id_hex(self) -> str:
        return encode_trace_id(self.trace_id)

    @property
    def span_id_hex(self) -> str:
        return encode_span_id(self.span_id)

    def serialize(self) -> str:
        return self.trace_id_hex + self.span_id_hex

    def __str__(self) -> str:
        return self.serialize()
