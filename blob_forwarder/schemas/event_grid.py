"""
Event Grid schemas for the Blob Event Forwarder.

This module defines Pydantic models for inbound Event Grid notifications,
the storage blob payloads they carry and the outbound queue message.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

BLOB_CREATED_EVENT_TYPE = "Microsoft.Storage.BlobCreated"
BLOB_DELETED_EVENT_TYPE = "Microsoft.Storage.BlobDeleted"
SUBSCRIPTION_VALIDATION_EVENT_TYPE = "Microsoft.EventGrid.SubscriptionValidationEvent"

PropertyValue = Union[str, int]


class EventGridEvent(BaseModel):
    """Schema for a single Event Grid notification."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., description="Unique delivery identifier")
    event_type: str = Field(..., alias="eventType", description="Registered event type")
    event_time: datetime = Field(..., alias="eventTime", description="Time the event was generated")
    subject: str = Field("", description="Publisher-defined path to the event subject")
    topic: Optional[str] = Field(None, description="Full resource path to the event source")
    data: Any = Field(None, description="Event data specific to the event type")
    data_version: Optional[str] = Field(None, alias="dataVersion")
    metadata_version: Optional[str] = Field(None, alias="metadataVersion")


class StorageBlobEventData(BaseModel):
    """Fields shared by the storage blob event payloads."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    api: str = Field(..., description="Operation that triggered the event")
    client_request_id: Optional[str] = Field(None, alias="clientRequestId")
    request_id: Optional[str] = Field(None, alias="requestId")
    content_type: Optional[str] = Field(None, alias="contentType")
    blob_type: Optional[str] = Field(None, alias="blobType")
    url: str = Field(..., description="Path to the blob")
    sequencer: str = Field(..., description="Opaque value ordering events for a blob")
    storage_diagnostics: Any = Field(None, alias="storageDiagnostics")


class StorageBlobCreatedEventData(StorageBlobEventData):
    """Schema for the data of a Microsoft.Storage.BlobCreated event."""
    e_tag: Optional[str] = Field(None, alias="eTag")
    content_length: Optional[int] = Field(None, alias="contentLength")


class StorageBlobDeletedEventData(StorageBlobEventData):
    """Schema for the data of a Microsoft.Storage.BlobDeleted event."""


class OutboundMessage(BaseModel):
    """Message handed to the queue publisher, immutable once built."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Message identity, copied from the event id")
    label: str = Field(..., description="Message label naming the blob event kind")
    body: bytes = Field(..., description="Compact UTF-8 JSON of the event data")
    properties: Dict[str, PropertyValue] = Field(default_factory=dict)


class SubscriptionValidationEventData(BaseModel):
    """Schema for the data of a subscription validation event."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    validation_code: str = Field(..., alias="validationCode")
    validation_url: Optional[str] = Field(None, alias="validationUrl")


class SubscriptionValidationResponse(BaseModel):
    """Response echoing the validation code back to Event Grid."""
    model_config = ConfigDict(populate_by_name=True)

    validation_response: str = Field(..., alias="validationResponse")
