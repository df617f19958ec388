"""
Pod creation and patching with trace context attached.

`TracedPodClient.create_pod` is the originating side of the propagation:
  1. Opens a span representing the Pod submission.
  2. Embeds that span's context into the Pod's trace-context annotation.
  3. Maps the annotation into every container's environment through the
     Downward API, so the workload can continue the same trace.
"""

from __future__ import annotations

from typing import Optional

import structlog
from kubernetes.client import CoreV1Api, V1Pod
from kubernetes.client.rest import ApiException
from opentelemetry.trace import Status, StatusCode, Tracer

from .carrier import embed
from .errors import KubernetesApiError
from .propagator import TRACE_CONTEXT_ENV, downward_env_var
from .resources import TRACE_CONTEXT_ANNOTATION, KubernetesObjectResource

logger = structlog.get_logger(__name__)


class TracedPodClient:
    def __init__(
        self,
        core_api: CoreV1Api,
        tracer: Tracer,
        namespace: str = "default",
        annotation: str = TRACE_CONTEXT_ANNOTATION,
    ):
        self.core_api = core_api
        self.tracer = tracer
        self.namespace = namespace
        self.annotation = annotation

    def create_pod(self, pod: V1Pod) -> V1Pod:
        """Create `pod` with the submission span's context embedded in it."""
        resource = KubernetesObjectResource(pod, self.annotation)
        namespace = resource.namespace or self.namespace

        with self.tracer.start_as_current_span("pod.create", record_exception=False) as span:
            span.set_attribute("k8s.pod.name", resource.name)
            span.set_attribute("k8s.namespace.name", namespace)

            embed(resource, span.get_span_context())
            self._wire_downward_env(pod)

            try:
                created = self.core_api.create_namespaced_pod(namespace, pod)
            except ApiException as e:
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e.reason)))
                raise KubernetesApiError(f"Failed to create Pod: {namespace}/{resource.name}") from e

            span.set_status(Status(StatusCode.OK))

        logger.debug("pod created with trace context", namespace=namespace, pod=resource.name)
        return created

    def replace_trace_context(self, name: str, new_trace_context: str, namespace: Optional[str] = None) -> V1Pod:
        """Patch the trace-context annotation of an existing Pod."""
        namespace = namespace or self.namespace
        body = {"metadata": {"annotations": {self.annotation: new_trace_context}}}
        try:
            return self.core_api.patch_namespaced_pod(name, namespace, body)
        except ApiException as e:
            raise KubernetesApiError(
                f"Failed to patch trace context {new_trace_context!r} for pod {namespace}/{name}: {e.reason}"
            ) from e

    def _wire_downward_env(self, pod: V1Pod) -> None:
        if pod.spec is None:
            return
        for container in pod.spec.containers or []:
            env = container.env or []
            if any(var.name == TRACE_CONTEXT_ENV for var in env):
                continue
            container.env = env + [downward_env_var(self.annotation)]
