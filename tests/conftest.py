import pytest
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import SpanContext, TraceFlags

from kube_trace import TracingRuntime


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture
def runtime(span_exporter):
    """Runtime exporting synchronously into memory."""
    rt = TracingRuntime("test-service", batch_export=False)
    rt.install_exporter(span_exporter)
    yield rt
    rt.shutdown()


@pytest.fixture
def sampled_context() -> SpanContext:
    return SpanContext(
        trace_id=0x0AF7651916CD43DD8448EB211C80319C,
        span_id=0xB7AD6B7169203331,
        is_remote=False,
        trace_flags=TraceFlags(TraceFlags.SAMPLED),
    )
