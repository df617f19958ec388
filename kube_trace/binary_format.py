"""
OpenCensus binary span-context format.

Layout (29 bytes, the form OpenCensus writers always produce):

    version(0) | 0 trace_id[16] | 1 span_id[8] | 2 trace_options[1]

Identifiers are big-endian, so the hex form of the integer ids matches the
hex form other implementations print. The decoder follows the reference Go
decoder: fields must appear in order, the options field is optional and
trailing bytes are ignored.
"""

from opentelemetry.trace import SpanContext, TraceFlags

from .errors import MalformedTraceBufferError

VERSION_ID = 0
TRACE_ID_FIELD = 0
SPAN_ID_FIELD = 1
TRACE_OPTIONS_FIELD = 2

TRACE_ID_SIZE = 16
SPAN_ID_SIZE = 8
FORMAT_LENGTH = 1 + (1 + TRACE_ID_SIZE) + (1 + SPAN_ID_SIZE) + (1 + 1)


def to_binary(span_context: SpanContext) -> bytes:
    """Serialize a span context into the 29-byte binary form."""
    if not span_context.is_valid:
        raise ValueError("cannot serialize an invalid span context")

    buf = bytearray()
    buf.append(VERSION_ID)
    buf.append(TRACE_ID_FIELD)
    buf += span_context.trace_id.to_bytes(TRACE_ID_SIZE, "big")
    buf.append(SPAN_ID_FIELD)
    buf += span_context.span_id.to_bytes(SPAN_ID_SIZE, "big")
    buf.append(TRACE_OPTIONS_FIELD)
    buf.append(int(span_context.trace_flags) & 0xFF)
    return bytes(buf)


def from_binary(data: bytes) -> SpanContext:
    """
    Parse the binary form into a remote SpanContext.

    Raises:
        MalformedTraceBufferError: on an unknown version, a missing or
            truncated id field, or ids that do not form a valid context.
    """
    if not data:
        raise MalformedTraceBufferError("empty trace context buffer")
    if data[0] != VERSION_ID:
        raise MalformedTraceBufferError(f"unsupported trace context version {data[0]}")

    rest = data[1:]
    if len(rest) < 1 + TRACE_ID_SIZE or rest[0] != TRACE_ID_FIELD:
        raise MalformedTraceBufferError("trace id field missing or truncated")
    trace_id = int.from_bytes(rest[1 : 1 + TRACE_ID_SIZE], "big")
    rest = rest[1 + TRACE_ID_SIZE :]

    if len(rest) < 1 + SPAN_ID_SIZE or rest[0] != SPAN_ID_FIELD:
        raise MalformedTraceBufferError("span id field missing or truncated")
    span_id = int.from_bytes(rest[1 : 1 + SPAN_ID_SIZE], "big")
    rest = rest[1 + SPAN_ID_SIZE :]

    trace_options = 0
    if len(rest) >= 2 and rest[0] == TRACE_OPTIONS_FIELD:
        trace_options = rest[1]

    span_context = SpanContext(
        trace_id=trace_id,
        span_id=span_id,
        is_remote=True,
        trace_flags=TraceFlags(trace_options),
    )
    if not span_context.is_valid:
        raise MalformedTraceBufferError("trace context has a zero trace id or span id")
    return span_context
