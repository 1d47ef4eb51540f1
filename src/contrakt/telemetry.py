"""Telemetry service for tracing agent runs.

Nodes talk to a single ``telemetry`` instance; the backend behind it is
OpenTelemetry in a running service and an in-memory recorder in tests.
"""

import abc
import contextlib
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from opentelemetry import context, trace
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Status, StatusCode

from common.config.env import get_env_str
from contrakt.telemetry_schema import SpanKind, TelemetryKeys

logger = logging.getLogger(__name__)

OTEL_EXPORTER_OTLP_ENDPOINT = get_env_str("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4317")
OTEL_EXPORTER_OTLP_PROTOCOL = get_env_str("OTEL_EXPORTER_OTLP_PROTOCOL", "grpc")
OTEL_SERVICE_NAME = get_env_str("OTEL_SERVICE_NAME", "contrakt-agent")

_otel_initialized = False


def _setup_otel_sdk():
    """Configure the OTEL SDK once per process."""
    global _otel_initialized
    if _otel_initialized:
        return

    provider = TracerProvider(resource=Resource.create({SERVICE_NAME: OTEL_SERVICE_NAME}))

    exporter_disabled = (get_env_str("OTEL_TRACES_EXPORTER", "") or "").lower() == "none"
    if "PYTEST_CURRENT_TEST" in os.environ or exporter_disabled:
        trace.set_tracer_provider(provider)
        _otel_initialized = True
        logger.info("OTEL SDK initialized without exporter")
        return

    if OTEL_EXPORTER_OTLP_PROTOCOL == "grpc":
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
    else:
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

    provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=OTEL_EXPORTER_OTLP_ENDPOINT))
    )
    trace.set_tracer_provider(provider)
    _otel_initialized = True
    logger.info("OTEL SDK initialized with endpoint: %s", OTEL_EXPORTER_OTLP_ENDPOINT)


@dataclass
class TelemetryContext:
    """Opaque container for a captured tracing context."""

    otel_context: Optional[Any] = None


class TelemetrySpan(abc.ABC):
    """Abstract interface for a telemetry span."""

    @abc.abstractmethod
    def set_inputs(self, inputs: Dict[str, Any]) -> None:
        """Set span inputs."""

    @abc.abstractmethod
    def set_outputs(self, outputs: Dict[str, Any]) -> None:
        """Set span outputs."""

    @abc.abstractmethod
    def set_attribute(self, key: str, value: Any) -> None:
        """Set a single span attribute."""

    def set_attributes(self, attributes: Dict[str, Any]) -> None:
        """Set multiple span attributes."""
        for key, value in attributes.items():
            self.set_attribute(key, value)


class TelemetryBackend(abc.ABC):
    """Abstract base class for telemetry backends."""

    @abc.abstractmethod
    def configure(self, **kwargs) -> None:
        """Configure the backend."""

    @abc.abstractmethod
    def start_span(
        self,
        name: str,
        span_type: SpanKind,
        attributes: Optional[Dict[str, Any]] = None,
    ):
        """Return a context manager yielding a TelemetrySpan."""

    @abc.abstractmethod
    def capture_context(self) -> TelemetryContext:
        """Capture the current tracing context."""

    @abc.abstractmethod
    def use_context(self, ctx: TelemetryContext):
        """Return a context manager activating a captured context."""


class OTELTelemetrySpan(TelemetrySpan):
    """OpenTelemetry implementation of TelemetrySpan."""

    def __init__(self, otel_span):
        """Wrap an OTEL span object."""
        self._span = otel_span

    def set_inputs(self, inputs: Dict[str, Any]) -> None:
        self._span.set_attribute(TelemetryKeys.INPUTS.value, json.dumps(inputs, default=str))

    def set_outputs(self, outputs: Dict[str, Any]) -> None:
        self._span.set_attribute(TelemetryKeys.OUTPUTS.value, json.dumps(outputs, default=str))
        error = outputs.get("error")
        if error:
            self._span.set_status(Status(StatusCode.ERROR, description=str(error)))

    def set_attribute(self, key: str, value: Any) -> None:
        if not isinstance(value, (str, bool, int, float)):
            value = str(value)
        self._span.set_attribute(str(getattr(key, "value", key)), value)


class OTELTelemetryBackend(TelemetryBackend):
    """OpenTelemetry implementation of TelemetryBackend."""

    def __init__(self, tracer_name: str = "contrakt-agent"):
        self.tracer_name = tracer_name
        self._tracer = None

    def _ensure_tracer(self):
        if self._tracer is None:
            self._tracer = trace.get_tracer(self.tracer_name)
        return self._tracer

    def configure(self, **kwargs) -> None:
        _setup_otel_sdk()
        self._ensure_tracer()

    @contextlib.contextmanager
    def start_span(
        self,
        name: str,
        span_type: SpanKind,
        attributes: Optional[Dict[str, Any]] = None,
    ):
        base_attrs = {"span.type": span_type.value, "service.name": self.tracer_name}
        if attributes:
            base_attrs.update(attributes)
        with self._ensure_tracer().start_as_current_span(
            name=name, kind=trace.SpanKind.INTERNAL, attributes=base_attrs
        ) as otel_span:
            yield OTELTelemetrySpan(otel_span)

    def capture_context(self) -> TelemetryContext:
        return TelemetryContext(otel_context=context.get_current())

    @contextlib.contextmanager
    def use_context(self, ctx: TelemetryContext):
        token = context.attach(ctx.otel_context) if ctx.otel_context else None
        try:
            yield
        finally:
            if token:
                context.detach(token)


class InMemoryTelemetrySpan(TelemetrySpan):
    """Span recorded in memory, for tests."""

    def __init__(self, name: str, span_type: SpanKind):
        self.name = name
        self.span_type = span_type
        self.inputs: Dict[str, Any] = {}
        self.outputs: Dict[str, Any] = {}
        self.attributes: Dict[str, Any] = {}
        self.is_finished = False

    def set_inputs(self, inputs: Dict[str, Any]) -> None:
        self.inputs.update(inputs)

    def set_outputs(self, outputs: Dict[str, Any]) -> None:
        self.outputs.update(outputs)

    def set_attribute(self, key: str, value: Any) -> None:
        self.attributes[str(getattr(key, "value", key))] = value


class InMemoryTelemetryBackend(TelemetryBackend):
    """In-memory implementation of TelemetryBackend for testing."""

    def __init__(self):
        self.spans: List[InMemoryTelemetrySpan] = []
        self.config: Dict[str, Any] = {}

    def configure(self, **kwargs) -> None:
        self.config.update(kwargs)

    @contextlib.contextmanager
    def start_span(
        self,
        name: str,
        span_type: SpanKind,
        attributes: Optional[Dict[str, Any]] = None,
    ):
        span = InMemoryTelemetrySpan(name, span_type)
        if attributes:
            span.set_attributes(attributes)
        self.spans.append(span)
        try:
            yield span
        finally:
            span.is_finished = True

    def capture_context(self) -> TelemetryContext:
        return TelemetryContext()

    @contextlib.contextmanager
    def use_context(self, ctx: TelemetryContext):
        yield

    def span_names(self) -> List[str]:
        """Names of recorded spans in start order."""
        return [span.name for span in self.spans]


class TelemetryService:
    """Public surface for telemetry calls."""

    def __init__(self, backend: Optional[TelemetryBackend] = None):
        self._backend = backend or OTELTelemetryBackend()

    @property
    def backend(self) -> TelemetryBackend:
        return self._backend

    def set_backend(self, backend: TelemetryBackend) -> None:
        """Switch backend at runtime (useful for testing)."""
        self._backend = backend

    def configure(self, **kwargs) -> None:
        self._backend.configure(**kwargs)

    @contextlib.contextmanager
    def start_span(
        self,
        name: str,
        span_type: SpanKind = SpanKind.AGENT_NODE,
        inputs: Optional[Dict[str, Any]] = None,
        attributes: Optional[Dict[str, Any]] = None,
    ):
        """Start a span; the event type and name attributes are always set."""
        merged = {
            TelemetryKeys.EVENT_TYPE.value: span_type.value,
            TelemetryKeys.EVENT_NAME.value: name,
        }
        if attributes:
            merged.update(attributes)
        with self._backend.start_span(name=name, span_type=span_type, attributes=merged) as span:
            if inputs:
                span.set_inputs(inputs)
            yield span

    def capture_context(self) -> TelemetryContext:
        return self._backend.capture_context()

    @contextlib.contextmanager
    def use_context(self, ctx: Optional[TelemetryContext]):
        """Use a previously captured context; a missing context is a no-op."""
        if ctx is None:
            yield
            return
        with self._backend.use_context(ctx):
            yield


# Global instance for easy access
telemetry = TelemetryService()
