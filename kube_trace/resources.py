"""
Objects that can carry an encoded trace context through external storage.

The carrier functions only talk to the narrow `TracedResource` protocol;
each concrete resource kind gets its own small adapter.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Protocol, runtime_checkable

# ObjectMeta has no dedicated field for this, annotations are the
# free-form string map that survives create/patch/get unchanged.
TRACE_CONTEXT_ANNOTATION = "trace.kubernetes.io/context"


@runtime_checkable
class TracedResource(Protocol):
    """Anything with an identity and a settable trace-context string."""

    @property
    def name(self) -> str: ...

    @property
    def namespace(self) -> str: ...

    @property
    def creation_timestamp(self) -> Optional[datetime]: ...

    def get_trace_context(self) -> str: ...

    def set_trace_context(self, value: str) -> None: ...


class KubernetesObjectResource:
    """
    Adapter over a `kubernetes.client` model object (V1Pod, V1Job, ...).

    The encoded context is kept under `annotation` in the object's
    metadata. The wrapped object is mutated in place, so the caller can
    hand it straight to the API afterwards.
    """

    def __init__(self, obj: Any, annotation: str = TRACE_CONTEXT_ANNOTATION):
        self.obj = obj
        self.annotation = annotation

    @property
    def _metadata(self):
        return getattr(self.obj, "metadata", None)

    @property
    def name(self) -> str:
        meta = self._metadata
        return (meta.name or "") if meta is not None else ""

    @property
    def namespace(self) -> str:
        meta = self._metadata
        return (meta.namespace or "") if meta is not None else ""

    @property
    def creation_timestamp(self) -> Optional[datetime]:
        meta = self._metadata
        return meta.creation_timestamp if meta is not None else None

    def get_trace_context(self) -> str:
        meta = self._metadata
        if meta is None or not meta.annotations:
            return ""
        return meta.annotations.get(self.annotation, "")

    def set_trace_context(self, value: str) -> None:
        meta = self._metadata
        if meta is None:
            raise AttributeError(f"{type(self.obj).__name__} has no metadata to annotate")
        if meta.annotations is None:
            meta.annotations = {}
        meta.annotations[self.annotation] = value

    def __repr__(self) -> str:
        return f"KubernetesObjectResource({type(self.obj).__name__} {self.namespace}/{self.name})"


@dataclass
class TracedRecord:
    """A plain record carrying its trace context in an ordinary field."""

    name: str
    namespace: str = ""
    creation_timestamp: Optional[datetime] = None
    trace_context: str = ""

    def get_trace_context(self) -> str:
        return self.trace_context

    def set_trace_context(self, value: str) -> None:
        self.trace_context = value
