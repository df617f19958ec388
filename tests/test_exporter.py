"""Tests for the tracing runtime and its replaceable export target."""

from datetime import datetime, timezone

import pytest
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.exporter.zipkin.json import ZipkinExporter
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SpanExportResult
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from kube_trace import (
    CloudBackend,
    ConsoleBackend,
    EmptyContextError,
    ExporterInitError,
    OtlpBackend,
    TracedRecord,
    TracingConfig,
    TracingRuntime,
    encode,
)
from kube_trace import exporter as exporter_module
from kube_trace.exporter import SwappableSpanExporter, parse_local_address


class TestInstallExporter:
    @pytest.mark.parametrize("batch_export", [False, True])
    def test_last_writer_wins(self, batch_export):
        runtime = TracingRuntime("svc", batch_export=batch_export)
        first, second = InMemorySpanExporter(), InMemorySpanExporter()
        runtime.install_exporter(first)
        runtime.install_exporter(second)

        with runtime.get_tracer().start_as_current_span("after-swap"):
            pass
        runtime.force_flush()

        assert [s.name for s in second.get_finished_spans()] == ["after-swap"]
        assert first.get_finished_spans() == ()
        runtime.shutdown()

    def test_replaced_exporter_is_shut_down(self, runtime, span_exporter):
        runtime.install_exporter(InMemorySpanExporter())
        assert span_exporter.export([]) == SpanExportResult.FAILURE

    def test_no_exporter_reports_failure(self):
        assert SwappableSpanExporter().export([]) == SpanExportResult.FAILURE

    def test_service_name_on_spans(self, runtime, span_exporter):
        with runtime.get_tracer().start_as_current_span("op"):
            pass
        (span,) = span_exporter.get_finished_spans()
        assert span.resource.attributes["service.name"] == "test-service"


class TestInitialize:
    def test_collector_backend(self, runtime):
        exporter = runtime.initialize_collector("http://localhost:9411/api/v2/spans", "127.0.0.1:5454")
        assert isinstance(exporter, ZipkinExporter)
        assert runtime.active_exporter is exporter

    def test_collector_ipv6_address(self, runtime):
        exporter = runtime.initialize_collector("http://localhost:9411/api/v2/spans", "[::1]:5454")
        assert isinstance(exporter, ZipkinExporter)

    @pytest.mark.parametrize("address", ["", "127.0.0.1", "not-an-address:80", "127.0.0.1:http", "127.0.0.1:70000"])
    def test_malformed_local_address(self, runtime, span_exporter, address):
        with pytest.raises(ExporterInitError):
            runtime.initialize_collector("http://localhost:9411/api/v2/spans", address)
        assert runtime.active_exporter is span_exporter

    def test_cloud_backend_failure_is_wrapped(self, runtime, span_exporter, monkeypatch):
        def no_credentials(project_id):
            raise RuntimeError("could not find default credentials")

        monkeypatch.setattr(exporter_module, "CloudTraceSpanExporter", no_credentials)
        with pytest.raises(ExporterInitError, match="my-project"):
            runtime.initialize(CloudBackend(project_id="my-project"))
        assert runtime.active_exporter is span_exporter

    def test_cloud_backend_requires_project(self, runtime):
        with pytest.raises(ExporterInitError):
            runtime.initialize(CloudBackend(project_id=""))

    def test_console_backend(self, runtime):
        assert isinstance(runtime.initialize(ConsoleBackend()), ConsoleSpanExporter)

    def test_otlp_backend(self, runtime):
        exporter = runtime.initialize(OtlpBackend(endpoint="http://localhost:4317"))
        assert isinstance(exporter, OTLPSpanExporter)
        assert runtime.active_exporter is exporter

    def test_from_config_shuts_down_on_failure(self, monkeypatch):
        shutdowns = []
        monkeypatch.setattr(TracingRuntime, "shutdown", lambda self: shutdowns.append(self))
        config = TracingConfig(backend=CloudBackend(project_id=""), batch_export=False)

        with pytest.raises(ExporterInitError):
            TracingRuntime.from_config(config)
        assert len(shutdowns) == 1

    def test_from_config(self):
        config = TracingConfig(service_name="kubelet", backend=ConsoleBackend(), batch_export=False)
        runtime = TracingRuntime.from_config(config)
        assert isinstance(runtime.active_exporter, ConsoleSpanExporter)
        assert runtime.continuation is config.continuation
        runtime.shutdown()


def test_parse_local_address():
    ip, port = parse_local_address("192.168.1.5:5454")
    assert str(ip) == "192.168.1.5"
    assert port == 5454


class TestEndRootObjectTrace:
    def test_exports_root_span_from_object(self, runtime, span_exporter, sampled_context):
        created = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        record = TracedRecord(
            name="pod-a",
            namespace="default",
            creation_timestamp=created,
            trace_context=encode(sampled_context),
        )

        assert runtime.end_root_object_trace(record, "pod.lifecycle") == SpanExportResult.SUCCESS

        (span,) = span_exporter.get_finished_spans()
        assert span.name == "pod.lifecycle"
        assert span.parent is None
        assert span.context.trace_id == sampled_context.trace_id
        assert span.context.span_id == sampled_context.span_id
        assert span.status.status_code == StatusCode.OK
        assert span.start_time == int(created.timestamp() * 1e9)
        assert span.end_time >= span.start_time
        assert span.attributes["k8s.object.name"] == "pod-a"

    def test_object_without_context(self, runtime, span_exporter):
        with pytest.raises(EmptyContextError):
            runtime.end_root_object_trace(TracedRecord(name="pod-a"), "pod.lifecycle")
        assert span_exporter.get_finished_spans() == ()
