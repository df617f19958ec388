"""
Environment-variable propagation for workloads started from a Pod.

The submitting side stores the encoded context in an annotation and the
Pod spec maps that annotation into `KUBERNETES_TRACE_CONTEXT` through the
Downward API. The workload reads the variable once at startup and treats
it exactly like a value read from the object itself.
"""

from __future__ import annotations

import os
from typing import Mapping, Optional

from kubernetes.client import V1EnvVar, V1EnvVarSource, V1ObjectFieldSelector
from opentelemetry import trace
from opentelemetry.trace import SpanContext

from .carrier import decode, encode
from .resources import TRACE_CONTEXT_ANNOTATION

TRACE_CONTEXT_ENV = "KUBERNETES_TRACE_CONTEXT"


def span_context_from_env(
    environ: Optional[Mapping[str, str]] = None,
    variable: str = TRACE_CONTEXT_ENV,
) -> SpanContext:
    """
    Decode the span context handed to this process through its environment.

    Raises the same errors as `carrier.decode`; an unset variable is an
    `EmptyContextError`.
    """
    environ = os.environ if environ is None else environ
    return decode(environ.get(variable, ""))


def inject_context_to_env(span_context: Optional[SpanContext] = None) -> dict[str, str]:
    """
    Capture a span context as environment variables for a Pod spec.

    Uses the current span when `span_context` is omitted.

    Returns:
        {"KUBERNETES_TRACE_CONTEXT": "<base64>"}, or {} if there is no
        valid span to propagate.
    """
    if span_context is None:
        span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return {}
    return {TRACE_CONTEXT_ENV: encode(span_context)}


def downward_env_var(annotation: str = TRACE_CONTEXT_ANNOTATION, variable: str = TRACE_CONTEXT_ENV) -> V1EnvVar:
    """Env var that exposes the trace-context annotation to a container."""
    return V1EnvVar(
        name=variable,
        value_from=V1EnvVarSource(
            field_ref=V1ObjectFieldSelector(field_path=f"metadata.annotations['{annotation}']"),
        ),
    )
