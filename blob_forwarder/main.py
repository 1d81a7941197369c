"""
Main application module for the Blob Event Forwarder.

This module serves as the entry point for the forwarder service, which receives
storage blob notifications from Event Grid and forwards them to RabbitMQ.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from blob_forwarder.api.webhooks import router as webhooks_router
from blob_forwarder.core.config import Environment, settings
from blob_forwarder.forwarder.processor import EventForwarder
from blob_forwarder.middleware.logging import LoggingMiddleware
from blob_forwarder.publisher.message_publisher import MessagePublisher
from blob_forwarder.telemetry.client import TelemetryClient
from blob_forwarder.utils.logging import configure_logging
from blob_forwarder.utils.metrics import custom_registry, setup_metrics_endpoint

# Configure logging
configure_logging(log_level=settings.LOG_LEVEL)
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Context manager for FastAPI lifespan events.

    Creates the telemetry sink, the queue publisher and the forwarder once at
    startup and releases them at shutdown.
    """
    logger.info("Starting up Blob Event Forwarder")

    telemetry = TelemetryClient(
        registry=custom_registry,
        service_name=settings.PROJECT_NAME,
        service_version=settings.VERSION,
        environment=Environment(settings.ENVIRONMENT).value,
        instrumentation_key=settings.TELEMETRY_KEY,
        enabled=settings.TELEMETRY_ENABLED,
    )
    telemetry.initialize()

    publisher = MessagePublisher(
        host=settings.RABBITMQ_HOST,
        port=settings.RABBITMQ_PORT,
        username=settings.RABBITMQ_USER,
        password=settings.RABBITMQ_PASSWORD.get_secret_value(),
        queue=settings.QUEUE_NAME,
        exchange=settings.RABBITMQ_EXCHANGE,
        virtual_host=settings.RABBITMQ_VHOST,
        connection_timeout=settings.RABBITMQ_CONNECTION_TIMEOUT,
    )
    try:
        await publisher.connect()
    except ConnectionError:
        telemetry.shutdown()
        raise

    app.state.telemetry = telemetry
    app.state.publisher = publisher
    app.state.forwarder = EventForwarder(publish=publisher.publish, telemetry=telemetry)

    logger.info(
        "Blob Event Forwarder started",
        version=settings.VERSION,
        environment=settings.ENVIRONMENT,
        queue=settings.QUEUE_NAME,
    )

    try:
        yield
    finally:
        logger.info("Shutting down Blob Event Forwarder")

        app.state.forwarder = None
        await publisher.close()
        telemetry.shutdown()

        logger.info("Blob Event Forwarder shut down")


# Create FastAPI application
app = FastAPI(
    title=settings.PROJECT_NAME,
    description=settings.PROJECT_DESCRIPTION,
    version=settings.VERSION,
    lifespan=lifespan,
)

setup_metrics_endpoint(app)
app.add_middleware(LoggingMiddleware)
app.include_router(webhooks_router, prefix=settings.API_PREFIX)

if settings.TELEMETRY_ENABLED:
    FastAPIInstrumentor.instrument_app(app)


@app.get("/api/health")
async def health_check():
    """
    Health check endpoint.

    Returns:
        Service status and whether the queue connection is up
    """
    publisher = getattr(app.state, "publisher", None)
    return {
        "status": "healthy",
        "version": settings.VERSION,
        "queue_connected": bool(publisher and publisher.is_connected),
    }


def main() -> None:
    """Entry point for the service."""
    import uvicorn

    uvicorn.run(
        "blob_forwarder.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
