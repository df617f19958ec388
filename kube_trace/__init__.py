"""
kube_trace: carry OpenTelemetry span contexts through Kubernetes objects.

A span started in one component is encoded into an object's metadata,
persisted by the API server, and continued by whichever component reads
the object next.
"""

from .carrier import (
    ContinuationMode,
    TraceContextCarrier,
    decode,
    embed,
    encode,
    span_context_from_resource,
)
from .config import (
    CloudBackend,
    CollectorBackend,
    ConsoleBackend,
    OtlpBackend,
    Service,
    TracingConfig,
)
from .errors import (
    CarrierIdentityMissingError,
    ConfigError,
    DecodeError,
    EmptyContextError,
    ExporterInitError,
    KubernetesApiError,
    MalformedBase64Error,
    MalformedTraceBufferError,
    TraceContextError,
)
from .exporter import TracingRuntime
from .pod_client import TracedPodClient
from .propagator import inject_context_to_env, span_context_from_env
from .resources import TRACE_CONTEXT_ANNOTATION, KubernetesObjectResource, TracedRecord, TracedResource

__all__ = [
    "CarrierIdentityMissingError",
    "CloudBackend",
    "CollectorBackend",
    "ConfigError",
    "ConsoleBackend",
    "ContinuationMode",
    "DecodeError",
    "EmptyContextError",
    "ExporterInitError",
    "KubernetesApiError",
    "KubernetesObjectResource",
    "MalformedBase64Error",
    "MalformedTraceBufferError",
    "OtlpBackend",
    "Service",
    "TRACE_CONTEXT_ANNOTATION",
    "TraceContextCarrier",
    "TraceContextError",
    "TracedPodClient",
    "TracedRecord",
    "TracedResource",
    "TracingConfig",
    "TracingRuntime",
    "decode",
    "embed",
    "encode",
    "inject_context_to_env",
    "span_context_from_env",
    "span_context_from_resource",
]
