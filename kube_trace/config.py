"""
Tracing configuration.

The export destination is one configuration choice (`backend`) instead of
separate code paths per exporter. `TracingConfig.from_env` is the usual
way a component builds its configuration at startup.
"""

from __future__ import annotations

import enum
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Union

from .carrier import ContinuationMode
from .errors import ConfigError

DEFAULT_TRACE_ADDRESS = "127.0.0.1"
DEFAULT_TRACE_PORT = 5454
DEFAULT_COLLECTOR_URL = "http://localhost:9411/api/v2/spans"
DEFAULT_OTLP_ENDPOINT = "http://localhost:4317"


class Service(str, enum.Enum):
    """Kubernetes components a span may be exported from."""

    API_SERVER = "api-server"
    SCHEDULER = "scheduler"
    KUBELET = "kubelet"
    CONTAINERD_RUNTIME = "containerd-runtime"
    CRI = "containerd-cri"


@dataclass(frozen=True)
class CollectorBackend:
    """Self-hosted Zipkin collector."""

    url: str = DEFAULT_COLLECTOR_URL
    local_address: str = f"{DEFAULT_TRACE_ADDRESS}:{DEFAULT_TRACE_PORT}"


@dataclass(frozen=True)
class CloudBackend:
    """Google Cloud Trace, identified by project."""

    project_id: str


@dataclass(frozen=True)
class OtlpBackend:
    """OpenTelemetry collector over OTLP gRPC."""

    endpoint: str = DEFAULT_OTLP_ENDPOINT
    insecure: bool = True


@dataclass(frozen=True)
class ConsoleBackend:
    """Spans printed to stdout, for local runs."""


Backend = Union[CollectorBackend, CloudBackend, OtlpBackend, ConsoleBackend]


@dataclass(frozen=True)
class TracingConfig:
    service_name: str = Service.KUBELET.value
    backend: Backend = field(default_factory=CollectorBackend)
    continuation: ContinuationMode = ContinuationMode.REMOTE_PARENT
    batch_export: bool = True

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "TracingConfig":
        """Build a config from KUBE_TRACE_* variables, raising ConfigError on bad values."""
        env = os.environ if environ is None else environ

        service_name = env.get("KUBE_TRACE_SERVICE", Service.KUBELET.value).strip()
        if not service_name:
            raise ConfigError("Invalid value for KUBE_TRACE_SERVICE: expected non-empty string")

        return cls(
            service_name=service_name,
            backend=_backend_from_env(env),
            continuation=_continuation_from_env(env),
            batch_export=_as_bool(env.get("KUBE_TRACE_BATCH", "true"), "KUBE_TRACE_BATCH"),
        )


def _backend_from_env(env: Mapping[str, str]) -> Backend:
    kind = env.get("KUBE_TRACE_BACKEND", "collector").strip().lower()
    if kind == "collector":
        return CollectorBackend(
            url=env.get("KUBE_TRACE_COLLECTOR_URL", DEFAULT_COLLECTOR_URL),
            local_address=env.get("KUBE_TRACE_LOCAL_ADDRESS", f"{DEFAULT_TRACE_ADDRESS}:{DEFAULT_TRACE_PORT}"),
        )
    if kind == "cloud":
        project_id = env.get("KUBE_TRACE_GCP_PROJECT", "").strip()
        if not project_id:
            raise ConfigError("Missing required field: KUBE_TRACE_GCP_PROJECT (backend 'cloud')")
        return CloudBackend(project_id=project_id)
    if kind == "otlp":
        return OtlpBackend(endpoint=env.get("KUBE_TRACE_OTLP_ENDPOINT", DEFAULT_OTLP_ENDPOINT))
    if kind == "console":
        return ConsoleBackend()
    raise ConfigError(f"Invalid value for KUBE_TRACE_BACKEND: {kind!r}")


def _continuation_from_env(env: Mapping[str, str]) -> ContinuationMode:
    raw = env.get("KUBE_TRACE_CONTINUATION", ContinuationMode.REMOTE_PARENT.value).strip().lower()
    try:
        return ContinuationMode(raw)
    except ValueError as e:
        raise ConfigError(f"Invalid value for KUBE_TRACE_CONTINUATION: {raw!r}") from e


def _as_bool(value: str, path: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ConfigError(f"Invalid value for {path}: expected boolean")
