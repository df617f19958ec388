"""
Moving a span context in and out of a traced resource.

`encode`/`decode` are pure and touch no shared state, so any number of
threads may call them at once. `TraceContextCarrier` adds the span-starting
half, which needs a tracer and an explicit continuation mode.
"""

from __future__ import annotations

import base64
import binascii
import enum
from typing import Optional, Tuple

import structlog
from opentelemetry import context as otel_context
from opentelemetry import trace
from opentelemetry.trace import Link, NonRecordingSpan, Span, SpanContext, Tracer

from .binary_format import from_binary, to_binary
from .errors import (
    CarrierIdentityMissingError,
    EmptyContextError,
    MalformedBase64Error,
)
from .resources import TracedResource

logger = structlog.get_logger(__name__)


class ContinuationMode(str, enum.Enum):
    """How a span started from a decoded context relates to it."""

    # child span of the decoded context, same trace
    REMOTE_PARENT = "remote-parent"
    # new root span in a fresh trace, linked to the decoded context
    LINK = "link"


def encode(span_context: SpanContext) -> str:
    """Binary-serialize a span context and base64 it."""
    return base64.b64encode(to_binary(span_context)).decode("ascii")


def decode(text: str) -> SpanContext:
    """
    Turn an encoded context back into a remote SpanContext.

    Carriage returns and newlines are skipped, as Go's base64 decoder does.

    Raises:
        EmptyContextError: `text` is empty (no tracing on this object yet).
        MalformedBase64Error: `text` is not standard base64.
        MalformedTraceBufferError: the bytes are not a valid span context.
    """
    cleaned = text.replace("\r", "").replace("\n", "")
    if not cleaned:
        raise EmptyContextError("no trace context present")
    try:
        raw = base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedBase64Error(f"trace context is not valid base64: {text!r}") from e
    return from_binary(raw)


def span_context_from_resource(resource: TracedResource) -> SpanContext:
    """Decode the span context embedded in `resource`."""
    try:
        return decode(resource.get_trace_context())
    except EmptyContextError as e:
        raise EmptyContextError(f"object {resource.name!r} carries no trace context") from e


def embed(resource: TracedResource, span_context: SpanContext) -> None:
    """Encode `span_context` into the resource's trace-context field."""
    if not resource.name:
        raise CarrierIdentityMissingError("refusing to embed a trace context into an unnamed object")

    encoded = encode(span_context)
    logger.info("encoding serialized span context into object", object=resource.name)
    resource.set_trace_context(encoded)


class TraceContextCarrier:
    """Starts spans that continue the trace embedded in a resource."""

    def __init__(self, tracer: Tracer, mode: ContinuationMode = ContinuationMode.REMOTE_PARENT):
        self.tracer = tracer
        self.mode = ContinuationMode(mode)

    def start_linked_span(self, resource: TracedResource, span_name: str) -> Tuple[otel_context.Context, Span]:
        """
        Start `span_name` as a continuation of the resource's embedded context.

        The span is started, not made current. The returned Context holds it
        and can be attached or passed as `context=` to child spans. The caller
        ends the span.

        Decode errors propagate, no unparented span is ever started.
        """
        logger.info(
            "creating span from span context encoded in object",
            object=resource.name,
            span=span_name,
            mode=self.mode.value,
        )
        remote = span_context_from_resource(resource)

        if self.mode is ContinuationMode.REMOTE_PARENT:
            parent = trace.set_span_in_context(NonRecordingSpan(remote), otel_context.Context())
            span = self.tracer.start_span(span_name, context=parent)
        else:
            span = self.tracer.start_span(
                span_name,
                context=otel_context.Context(),
                links=[Link(remote, attributes={"k8s.object.name": resource.name})],
            )

        return trace.set_span_in_context(span, otel_context.Context()), span

    def embed_current_span(self, resource: TracedResource, span: Optional[Span] = None) -> None:
        """Embed the context of `span` (default: the current span) into `resource`."""
        span = span if span is not None else trace.get_current_span()
        embed(resource, span.get_span_context())
