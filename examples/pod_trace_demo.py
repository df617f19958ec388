#!/usr/bin/env python3
"""
pod_trace_demo.py: both ends of a Pod trace, without a cluster.

This script plays two components in one process:
  • the "api-server" side starts a span and embeds its context into a Pod;
  • the "kubelet" side reads the Pod back and continues the trace.

Usage:
    # Spans printed to console:
    python examples/pod_trace_demo.py

    # Spans sent to a Zipkin collector:
    python examples/pod_trace_demo.py http://localhost:9411/api/v2/spans
    # Then open http://localhost:9411 to view traces.
"""

import os
import sys
from datetime import datetime, timezone

from kubernetes.client import V1Container, V1ObjectMeta, V1Pod, V1PodSpec

# ── Add the project root to sys.path so `kube_trace` is importable ──────────
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from kube_trace import (  # noqa: E402
    CollectorBackend,
    ConsoleBackend,
    KubernetesObjectResource,
    Service,
    TracingRuntime,
)
from kube_trace.propagator import inject_context_to_env  # noqa: E402


def run_demo(collector_url=None) -> None:
    backend = CollectorBackend(url=collector_url) if collector_url else ConsoleBackend()

    api_server = TracingRuntime(Service.API_SERVER.value, batch_export=False)
    api_server.initialize(backend)
    kubelet = TracingRuntime(Service.KUBELET.value, batch_export=False)
    kubelet.initialize(backend)

    pod = V1Pod(
        metadata=V1ObjectMeta(
            name="demo-pod",
            namespace="default",
            creation_timestamp=datetime.now(timezone.utc),
        ),
        spec=V1PodSpec(containers=[V1Container(name="app", image="busybox")]),
    )
    resource = KubernetesObjectResource(pod)

    print(f"\n🚀  kube-trace demo — exporting to: {type(backend).__name__}\n")

    # ── API server: admit the Pod and hand its context on ──
    tracer = api_server.get_tracer("api-server")
    with tracer.start_as_current_span("pod.admit") as span:
        api_server.carrier().embed_current_span(resource, span)
        print(f"  📦  Annotated pod '{resource.name}': {resource.get_trace_context()}")
        print(f"  🔗  Env for workload: {inject_context_to_env()}")

    # ── Kubelet: continue the trace carried by the Pod ──
    _, span = kubelet.carrier().start_linked_span(resource, "kubelet.sync_pod")
    span.set_attribute("k8s.pod.name", resource.name)
    span.end()
    print(f"  ✅  Continued trace {span.get_span_context().trace_id:032x}")

    kubelet.end_root_object_trace(resource, "pod.lifecycle")

    for runtime in (api_server, kubelet):
        runtime.force_flush()
        runtime.shutdown()

    print("\n🏁  Done — spans flushed.\n")


if __name__ == "__main__":
    run_demo(sys.argv[1] if len(sys.argv) > 1 else None)
