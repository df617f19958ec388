"""Exception taxonomy for trace-context propagation.

Every failure is raised to the immediate caller. Whether a missing or
broken context aborts the operation, gets logged, or is ignored is up to
the call site.
"""


class TraceContextError(Exception):
    """Base class for all kube_trace errors."""


class DecodeError(TraceContextError):
    """An encoded trace context could not be turned into a SpanContext."""


class EmptyContextError(DecodeError):
    """The carrier holds no trace context (field empty or absent)."""


class MalformedBase64Error(DecodeError):
    """The stored trace context is not valid standard base64."""


class MalformedTraceBufferError(DecodeError):
    """The decoded bytes do not parse into a valid span context."""


class CarrierIdentityMissingError(TraceContextError):
    """Refused to embed a context into a resource without a name."""


class ExporterInitError(TraceContextError):
    """The process-wide span exporter could not be constructed."""


class KubernetesApiError(TraceContextError):
    """A Kubernetes API call made on behalf of tracing failed."""


class ConfigError(TraceContextError, ValueError):
    """Tracing configuration is missing or invalid."""
