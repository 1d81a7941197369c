"""
Event Grid webhook endpoint for the Blob Event Forwarder.

Event Grid pushes deliveries as a JSON array of events. Each event is handed
to the EventForwarder; errors are mapped to status codes that drive Event
Grid's own retry and dead-lettering policy.
"""

import secrets
from typing import Any, List, Optional

import structlog
from fastapi import APIRouter, Body, Depends, Header, HTTPException, Query, Request, status
from pydantic import ValidationError

from blob_forwarder.core.config import settings
from blob_forwarder.core.errors import ForwardError
from blob_forwarder.forwarder.processor import EventForwarder
from blob_forwarder.schemas.event_grid import (
    SUBSCRIPTION_VALIDATION_EVENT_TYPE,
    EventGridEvent,
    SubscriptionValidationEventData,
    SubscriptionValidationResponse,
)
from blob_forwarder.utils.metrics import record_notification

logger = structlog.get_logger(__name__)

router = APIRouter()


def get_forwarder(request: Request) -> EventForwarder:
    """Return the forwarder created at application startup."""
    forwarder = getattr(request.app.state, "forwarder", None)
    if forwarder is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Forwarder is not initialized",
        )
    return forwarder


async def verify_webhook_key(
        code: Optional[str] = Query(None),
        x_functions_key: Optional[str] = Header(None),
) -> None:
    """
    Verify the shared webhook key when one is configured.

    Raises:
        HTTPException: If the key is missing or wrong
    """
    if settings.WEBHOOK_KEY is None:
        return

    expected = settings.WEBHOOK_KEY.get_secret_value()
    supplied = code or x_functions_key or ""
    if not secrets.compare_digest(supplied, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid webhook key",
        )


def _as_event_list(payload: Any) -> List[Any]:
    if isinstance(payload, list):
        return payload
    return [payload]


def _parse_events(items: List[Any]) -> List[Optional[EventGridEvent]]:
    """
    Parse raw delivery items into events; ``null`` items stay absent.

    Raises:
        HTTPException: If an item is not a valid Event Grid event
    """
    events: List[Optional[EventGridEvent]] = []
    for index, item in enumerate(items):
        if item is None:
            events.append(None)
            continue
        try:
            events.append(EventGridEvent.model_validate(item))
        except ValidationError as e:
            logger.error("Invalid Event Grid event in delivery", index=index, error=str(e))
            record_notification("invalid")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid Event Grid event at index {index}",
            )
    return events


def _validation_response(items: List[Any]) -> SubscriptionValidationResponse:
    """
    Answer the subscription validation handshake.

    Raises:
        HTTPException: If the validation event carries no validation code
    """
    try:
        event = EventGridEvent.model_validate(items[0])
        data = SubscriptionValidationEventData.model_validate(event.data)
    except (IndexError, ValidationError) as e:
        logger.error("Invalid subscription validation event", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid subscription validation event",
        )

    logger.info(
        "Subscription validation handshake",
        topic=event.topic,
        validation_url=data.validation_url,
    )
    return SubscriptionValidationResponse(validation_response=data.validation_code)


def _is_validation_request(aeg_event_type: Optional[str], items: List[Any]) -> bool:
    if aeg_event_type == "SubscriptionValidation":
        return True
    first = items[0] if items else None
    return isinstance(first, dict) and first.get("eventType") == SUBSCRIPTION_VALIDATION_EVENT_TYPE


@router.post(
    "/events",
    summary="Receive Event Grid events",
    description="Webhook endpoint for Event Grid storage blob notifications.",
    dependencies=[Depends(verify_webhook_key)],
)
async def receive_events(
        request: Request,
        payload: Any = Body(...),
        aeg_event_type: Optional[str] = Header(None),
        forwarder: EventForwarder = Depends(get_forwarder),
) -> Any:
    """
    Receive an Event Grid delivery and forward each event.

    Returns:
        The validation response for handshakes, otherwise a processing summary
    """
    items = _as_event_list(payload)

    if _is_validation_request(aeg_event_type, items):
        return _validation_response(items).model_dump(by_alias=True)

    events = _parse_events(items)
    request_id = getattr(request.state, "request_id", None)

    outcomes = []
    for index, event in enumerate(events):
        invocation_id = request_id if len(events) == 1 else f"{request_id}-{index}"
        try:
            with structlog.contextvars.bound_contextvars(invocation_id=invocation_id):
                outcome = await forwarder.handle(event, invocation_id=invocation_id)
        except ForwardError as e:
            record_notification("failed")
            raise HTTPException(
                status_code=(
                    status.HTTP_503_SERVICE_UNAVAILABLE if e.retryable
                    else status.HTTP_400_BAD_REQUEST
                ),
                detail=str(e),
            )
        record_notification(outcome.value)
        outcomes.append(outcome.value)

    return {"processed": len(outcomes), "outcomes": outcomes}
