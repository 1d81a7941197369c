"""
Metrics utilities for the Blob Event Forwarder with registry uniqueness.

This module provides functions for setting up metrics collection and reporting
with safeguards to prevent duplicate metric registration.
"""

import structlog
from fastapi import FastAPI
from prometheus_client import (
    Counter, Gauge, Histogram, CONTENT_TYPE_LATEST,
    generate_latest, CollectorRegistry
)
from starlette.responses import Response

logger = structlog.get_logger(__name__)

# Create a custom registry to avoid conflicts with the global registry
custom_registry = CollectorRegistry()

# System metrics
SYSTEM_INFO = Gauge(
    "system_info",
    "Information about the Blob Event Forwarder",
    ["version", "environment"],
    registry=custom_registry
)

# Notification metrics
NOTIFICATIONS_PROCESSED = Counter(
    "notifications_processed_total",
    "Total number of Event Grid notifications handled",
    ["outcome"],
    registry=custom_registry
)

# RabbitMQ metrics
RABBITMQ_MESSAGES_PUBLISHED = Counter(
    "rabbitmq_messages_published_total",
    "Total number of messages published to RabbitMQ",
    ["queue", "label"],
    registry=custom_registry
)
RABBITMQ_MESSAGES_FAILED = Counter(
    "rabbitmq_messages_failed_total",
    "Total number of messages that failed to publish to RabbitMQ",
    ["queue", "label"],
    registry=custom_registry
)
RABBITMQ_PUBLISH_TIME = Histogram(
    "rabbitmq_publish_time_seconds",
    "Time until the broker confirmed a published message",
    ["queue"],
    registry=custom_registry
)


def setup_metrics_endpoint(app: FastAPI) -> None:
    """
    Set up the metrics endpoint for Prometheus scraping.

    Args:
        app: FastAPI application
    """

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        """Expose Prometheus metrics."""
        return Response(
            content=generate_latest(custom_registry),
            media_type=CONTENT_TYPE_LATEST,
        )

    from blob_forwarder.core.config import Environment, settings

    SYSTEM_INFO.labels(
        version=settings.VERSION,
        environment=Environment(settings.ENVIRONMENT).value,
    ).set(1)

    logger.info("Metrics endpoint configured at /metrics")


def record_notification(outcome: str) -> None:
    """
    Record a handled notification.

    Args:
        outcome: Forwarding outcome (forwarded, ignored_malformed, failed, ...)
    """
    NOTIFICATIONS_PROCESSED.labels(outcome=outcome).inc()
