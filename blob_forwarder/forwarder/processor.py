"""
Event forwarder for storage blob notifications.

This module holds the EventForwarder, which validates one Event Grid
notification at a time, decodes blob created/deleted payloads, publishes an
enriched message to the queue and records telemetry about what was forwarded.
"""

import enum
import uuid
from typing import Any, Awaitable, Callable, Dict, Optional

import structlog

from blob_forwarder.core.errors import ForwardError, InvalidNotification, PublishError
from blob_forwarder.forwarder.events import (
    BlobEvent,
    Unrecognized,
    classify,
    to_compact_json,
)
from blob_forwarder.schemas.event_grid import EventGridEvent, OutboundMessage
from blob_forwarder.telemetry.client import TelemetryClient

Publish = Callable[[OutboundMessage], Awaitable[None]]


class ForwardOutcome(str, enum.Enum):
    """What a successful invocation did with the notification."""
    FORWARDED = "forwarded"
    IGNORED_MALFORMED = "ignored_malformed"
    IGNORED_UNRECOGNIZED = "ignored_unrecognized"


class EventForwarder:
    """Forwards storage blob notifications to a message queue."""

    def __init__(
            self,
            publish: Publish,
            telemetry: TelemetryClient,
            logger: Optional[Any] = None,
    ) -> None:
        """
        Initialize the event forwarder.

        Args:
            publish: Coroutine function that durably publishes an outbound message
            telemetry: Telemetry sink shared by all invocations
            logger: Structured logger (defaults to this module's logger)
        """
        self.publish = publish
        self.telemetry = telemetry
        self.logger = logger or structlog.get_logger(__name__)

    async def handle(
            self,
            notification: Optional[EventGridEvent],
            invocation_id: Optional[str] = None,
    ) -> ForwardOutcome:
        """
        Forward a single Event Grid notification.

        Args:
            notification: Notification delivered by Event Grid
            invocation_id: Correlation id of this invocation (generated if omitted)

        Returns:
            Outcome of the invocation

        Raises:
            InvalidNotification: If the notification is absent or malformed
            PayloadDecodeError: If a blob event payload cannot be decoded
            PublishError: If the queue does not accept the message
        """
        invocation_id = invocation_id or str(uuid.uuid4())
        log = self.logger.bind(invocation_id=invocation_id)

        try:
            self._validate(notification)

            log.info(
                "New Event Grid event",
                id=notification.id,
                event_type=notification.event_type,
                event_time=notification.event_time.isoformat(),
                subject=notification.subject,
                topic=notification.topic,
            )

            if not isinstance(notification.data, dict):
                log.debug(
                    "Event data is not a JSON object, skipping",
                    id=notification.id,
                    data_type=type(notification.data).__name__,
                )
                return ForwardOutcome.IGNORED_MALFORMED

            event = classify(notification.event_type, notification.data)
            if isinstance(event, Unrecognized):
                log.debug("Ignoring unrecognized event type", id=notification.id, event_type=event.event_type)
                return ForwardOutcome.IGNORED_UNRECOGNIZED

            fields = event.fields()
            log.info(f"Received {notification.event_type} event", **fields)

            message = self._build_message(notification, event)

            try:
                await self.publish(message)
            except ForwardError:
                raise
            except Exception as e:
                raise PublishError(f"Failed to publish message {message.id}: {str(e)}") from e

            self.telemetry.track_event(event.description, invocation_id, event.label)
            self.telemetry.track_metric(event.metric_name, 1, event.dimensions)

            return ForwardOutcome.FORWARDED

        except Exception as e:
            log.error(
                "Failed to process Event Grid event",
                id=getattr(notification, "id", None),
                error=str(e),
                error_type=type(e).__name__,
                cause=repr(e.__cause__) if e.__cause__ else None,
                retryable=getattr(e, "retryable", False),
                exc_info=True,
            )
            raise

    @staticmethod
    def _validate(notification: Optional[EventGridEvent]) -> None:
        """
        Check the envelope before any field is inspected.

        Raises:
            InvalidNotification: If the notification is absent, or its id or
                event type is blank
        """
        if notification is None:
            raise InvalidNotification("Null or invalid Event Grid event")
        if not notification.event_type or not notification.event_type.strip():
            raise InvalidNotification(f"Event {notification.id!r} has a blank event type")
        if not notification.id or not notification.id.strip():
            raise InvalidNotification("Event Grid event has a blank id")

    @staticmethod
    def _build_message(notification: EventGridEvent, event: BlobEvent) -> OutboundMessage:
        """Build the outbound message from the envelope and the decoded payload."""
        properties: Dict[str, Any] = {
            "id": notification.id,
            "topic": notification.topic,
            "eventType": notification.event_type,
            "eventTime": notification.event_time.isoformat(),
            "subject": notification.subject,
        }
        properties.update(event.fields())

        return OutboundMessage(
            id=notification.id,
            label=event.label,
            body=to_compact_json(notification.data).encode("utf-8"),
            properties={key: value for key, value in properties.items() if value is not None},
        )
