"""
Telemetry sink for the Blob Event Forwarder.

The client records two kinds of telemetry: named discrete events carrying an
operation id and name, and named numeric metrics carrying dimensional tags.
Events are attached to the current OpenTelemetry span and counted; metrics
are exported as Prometheus counters. One client is created at startup and
shared by every invocation.
"""

import re
import threading
from typing import Dict, Mapping, Optional, Tuple

import structlog
from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from prometheus_client import CollectorRegistry, Counter

logger = structlog.get_logger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_INVALID_CHARS = re.compile(r"[^a-zA-Z0-9_]+")


def metric_identifier(name: str) -> str:
    """
    Convert a display name into a Prometheus identifier.

    "ProcessBlobEvents Created" becomes "process_blob_events_created".
    """
    snake = _CAMEL_BOUNDARY.sub("_", name.strip())
    return _INVALID_CHARS.sub("_", snake).strip("_").lower()


class TelemetryClient:
    """Process-wide telemetry sink with an explicit lifecycle."""

    def __init__(
            self,
            registry: CollectorRegistry,
            service_name: str = "blob-forwarder",
            service_version: str = "0.1.0",
            environment: str = "development",
            instrumentation_key: Optional[str] = None,
            enabled: bool = False,
    ) -> None:
        """
        Initialize the telemetry client.

        Args:
            registry: Prometheus registry the metric families are registered in
            service_name: Service name reported on traces
            service_version: Service version reported on traces
            environment: Deployment environment reported on traces
            instrumentation_key: Key identifying the telemetry sink
            enabled: Whether to install an OpenTelemetry tracer provider
        """
        self.registry = registry
        self.service_name = service_name
        self.service_version = service_version
        self.environment = environment
        self.instrumentation_key = instrumentation_key
        self.enabled = enabled

        self.tracer_provider: Optional[TracerProvider] = None
        self._metrics: Dict[str, Tuple[Counter, Tuple[str, ...]]] = {}
        self._lock = threading.Lock()

        self._events: Optional[Counter] = Counter(
            "telemetry_events",
            "Total number of telemetry events tracked",
            ["operation"],
            registry=self.registry,
        )

    def initialize(self) -> None:
        """Install the tracer provider. Safe to call more than once."""
        if not self.enabled or self.tracer_provider is not None:
            return

        attributes = {
            SERVICE_NAME: self.service_name,
            "service.version": self.service_version,
            "deployment.environment": self.environment,
        }
        if self.instrumentation_key:
            attributes["telemetry.key"] = self.instrumentation_key

        self.tracer_provider = TracerProvider(resource=Resource.create(attributes))

        if self.environment == "development":
            self.tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

        trace.set_tracer_provider(self.tracer_provider)
        logger.info("Telemetry initialized", service=self.service_name)

    def shutdown(self) -> None:
        """
        Flush the tracer provider and unregister the metric families.

        The registry outlives the client, so a client created by a later
        startup can register the same families again. The client must not
        be used after shutdown.
        """
        with self._lock:
            collectors = [counter for counter, _ in self._metrics.values()]
            self._metrics.clear()
            if self._events is not None:
                collectors.append(self._events)
                self._events = None

        for collector in collectors:
            self.registry.unregister(collector)

        if self.tracer_provider is not None:
            self.tracer_provider.shutdown()
            self.tracer_provider = None

        logger.info("Telemetry shut down", unregistered_metrics=len(collectors))

    def track_event(self, name: str, operation_id: str, operation_name: str) -> None:
        """
        Record a named discrete event.

        Args:
            name: Free-text event name
            operation_id: Correlation id of the current invocation
            operation_name: Name of the operation that produced the event
        """
        trace.get_current_span().add_event(
            name,
            attributes={"operation.id": operation_id, "operation.name": operation_name},
        )
        self._events.labels(operation=operation_name).inc()

        logger.info(
            "Telemetry event",
            telemetry_event=name,
            operation_id=operation_id,
            operation_name=operation_name,
        )

    def track_metric(self, name: str, value: float, properties: Mapping[str, str]) -> None:
        """
        Record a named numeric metric.

        Args:
            name: Metric display name
            value: Non-negative amount to add
            properties: Dimensional tags
        """
        counter, label_names = self._get_counter(name, properties)
        labels = {
            metric_identifier(key): str(val) for key, val in properties.items()
        }
        counter.labels(**{label: labels.get(label, "") for label in label_names}).inc(value)

        logger.info(
            "Telemetry metric",
            metric=name,
            value=value,
            dimensions=dict(properties),
        )

    def _get_counter(
            self, name: str, properties: Mapping[str, str]
    ) -> Tuple[Counter, Tuple[str, ...]]:
        """Return the counter family for a metric, registering it on first use."""
        with self._lock:
            entry = self._metrics.get(name)
            if entry is None:
                label_names = tuple(sorted(metric_identifier(key) for key in properties))
                counter = Counter(
                    metric_identifier(name),
                    f"Telemetry metric '{name}'",
                    label_names,
                    registry=self.registry,
                )
                entry = (counter, label_names)
                self._metrics[name] = entry
            return entry
