"""
Process-wide span export, owned by the composition root.

Instead of registering an exporter on a hidden global, a `TracingRuntime`
is created once at startup and handed to whatever finishes spans. Its
provider always exports through a `SwappableSpanExporter`, so replacing
the export target is an explicit call on the runtime.

Swapping is NOT synchronized with span completion. Call `initialize`
before other threads start producing spans. A span that finishes while a
swap is in progress may be exported to either target; spans finished
after `initialize` returns always go to the new one.
"""

from __future__ import annotations

import ipaddress
import time
from typing import Optional, Sequence, Tuple, Union

import structlog
from opentelemetry import trace
from opentelemetry.exporter.cloud_trace import CloudTraceSpanExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.exporter.zipkin.json import ZipkinExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
    SpanExporter,
    SpanExportResult,
)
from opentelemetry.sdk.trace.sampling import ALWAYS_ON
from opentelemetry.trace import SpanContext, SpanKind, Status, StatusCode

from .carrier import ContinuationMode, TraceContextCarrier, span_context_from_resource
from .config import Backend, CloudBackend, CollectorBackend, ConsoleBackend, OtlpBackend, TracingConfig
from .errors import ExporterInitError
from .resources import TracedResource

logger = structlog.get_logger(__name__)


class SwappableSpanExporter(SpanExporter):
    """Forwards to whichever exporter was installed last."""

    def __init__(self, delegate: Optional[SpanExporter] = None):
        self._delegate = delegate

    @property
    def delegate(self) -> Optional[SpanExporter]:
        return self._delegate

    def swap(self, exporter: SpanExporter) -> Optional[SpanExporter]:
        previous, self._delegate = self._delegate, exporter
        return previous

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        delegate = self._delegate
        if delegate is None:
            logger.warning("dropping spans, no exporter initialized", count=len(spans))
            return SpanExportResult.FAILURE
        return delegate.export(spans)

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        delegate = self._delegate
        return delegate.force_flush(timeout_millis) if delegate is not None else True

    def shutdown(self) -> None:
        if self._delegate is not None:
            self._delegate.shutdown()


def parse_local_address(address: str) -> Tuple[Union[ipaddress.IPv4Address, ipaddress.IPv6Address], int]:
    """Split a `host:port` local endpoint; IPv6 hosts may be bracketed."""
    host, sep, port = address.rpartition(":")
    if not sep or not host:
        raise ExporterInitError(f"local endpoint {address!r} is not host:port")
    try:
        ip = ipaddress.ip_address(host.strip("[]"))
        port_number = int(port)
    except ValueError as e:
        raise ExporterInitError(f"failed to create the local endpoint {address!r}: {e}") from e
    if not 0 < port_number < 65536:
        raise ExporterInitError(f"local endpoint port out of range: {port_number}")
    return ip, port_number


def build_exporter(backend: Backend) -> SpanExporter:
    """Construct the exporter for one backend choice."""
    if isinstance(backend, CollectorBackend):
        ip, port = parse_local_address(backend.local_address)
        address_kwarg = "local_node_ipv4" if ip.version == 4 else "local_node_ipv6"
        try:
            return ZipkinExporter(endpoint=backend.url, local_node_port=port, **{address_kwarg: str(ip)})
        except Exception as e:
            raise ExporterInitError(f"failed to create the Zipkin exporter for {backend.url}: {e}") from e

    if isinstance(backend, CloudBackend):
        if not backend.project_id:
            raise ExporterInitError("cloud trace backend needs a project id")
        try:
            return CloudTraceSpanExporter(project_id=backend.project_id)
        except Exception as e:
            raise ExporterInitError(f"failed to create the Cloud Trace exporter for {backend.project_id}: {e}") from e

    if isinstance(backend, OtlpBackend):
        try:
            return OTLPSpanExporter(endpoint=backend.endpoint, insecure=backend.insecure)
        except Exception as e:
            raise ExporterInitError(f"failed to create the OTLP exporter for {backend.endpoint}: {e}") from e

    if isinstance(backend, ConsoleBackend):
        return ConsoleSpanExporter()

    raise ExporterInitError(f"unknown trace backend: {backend!r}")


class TracingRuntime:
    """
    Tracer provider plus its replaceable export target.

    Args:
        service_name: Reported as `service.name` on every span.
        batch_export: Batch spans before export (otherwise export on end).
        continuation: Default mode for carriers handed out by `carrier()`.
    """

    def __init__(
        self,
        service_name: str,
        batch_export: bool = True,
        continuation: ContinuationMode = ContinuationMode.REMOTE_PARENT,
    ):
        self.service_name = service_name
        self.continuation = continuation
        self.exporter = SwappableSpanExporter()
        self.provider = TracerProvider(
            resource=Resource.create({"service.name": service_name}),
            sampler=ALWAYS_ON,
        )
        processor = BatchSpanProcessor(self.exporter) if batch_export else SimpleSpanProcessor(self.exporter)
        self.provider.add_span_processor(processor)

    @classmethod
    def from_config(cls, config: TracingConfig) -> "TracingRuntime":
        """Build a runtime and initialize its exporter from `config`."""
        runtime = cls(config.service_name, batch_export=config.batch_export, continuation=config.continuation)
        try:
            runtime.initialize(config.backend)
        except ExporterInitError:
            runtime.shutdown()
            raise
        return runtime

    def initialize(self, backend: Backend) -> SpanExporter:
        """Build the exporter for `backend` and make it the active target."""
        logger.info(
            "trace exporter initializing",
            service=self.service_name,
            backend=type(backend).__name__,
        )
        exporter = build_exporter(backend)
        self.install_exporter(exporter)
        return exporter

    def initialize_collector(self, collector_url: str, local_address: str) -> SpanExporter:
        return self.initialize(CollectorBackend(url=collector_url, local_address=local_address))

    def install_exporter(self, exporter: SpanExporter) -> None:
        """Make `exporter` the active target and shut the replaced one down."""
        previous = self.exporter.swap(exporter)
        if previous is not None and previous is not exporter:
            logger.info("replacing active trace exporter", previous=type(previous).__name__)
            previous.shutdown()

    @property
    def active_exporter(self) -> Optional[SpanExporter]:
        return self.exporter.delegate

    def get_tracer(self, name: str = "kube-trace") -> trace.Tracer:
        return self.provider.get_tracer(name)

    def carrier(self, mode: Optional[ContinuationMode] = None, tracer_name: str = "kube-trace") -> TraceContextCarrier:
        return TraceContextCarrier(self.get_tracer(tracer_name), mode or self.continuation)

    def install_global(self) -> None:
        """Also register the provider globally, for code that only uses the API."""
        trace.set_tracer_provider(self.provider)

    def end_root_object_trace(self, resource: TracedResource, span_name: str) -> SpanExportResult:
        """
        Export the root span of an object's trace.

        The span takes the object's embedded context as its own, starts at the
        object's creation time and ends now. It is exported straight through
        the active exporter, bypassing span processors.
        """
        embedded = span_context_from_resource(resource)
        root_context = SpanContext(
            trace_id=embedded.trace_id,
            span_id=embedded.span_id,
            is_remote=False,
            trace_flags=embedded.trace_flags,
            trace_state=embedded.trace_state,
        )

        end_time = time.time_ns()
        created = resource.creation_timestamp
        start_time = int(created.timestamp() * 1e9) if created is not None else end_time

        span = ReadableSpan(
            name=span_name,
            context=root_context,
            parent=None,
            resource=self.provider.resource,
            attributes={"k8s.object.name": resource.name, "k8s.namespace.name": resource.namespace},
            kind=SpanKind.INTERNAL,
            status=Status(StatusCode.OK),
            start_time=start_time,
            end_time=end_time,
        )
        logger.info("exporting root span for object", object=resource.name, span=span_name)
        return self.exporter.export([span])

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self.provider.force_flush(timeout_millis)

    def shutdown(self) -> None:
        self.provider.shutdown()
