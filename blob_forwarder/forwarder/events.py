"""
Blob event classification.

Event Grid notifications are decoded into one of a closed set of variants.
Adding an event type means adding a variant class and registering it in
``_VARIANTS``; everything else is ignored as ``Unrecognized``.
"""

import json
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Optional, Type, Union

from pydantic import ValidationError

from blob_forwarder.core.errors import PayloadDecodeError
from blob_forwarder.schemas.event_grid import (
    BLOB_CREATED_EVENT_TYPE,
    BLOB_DELETED_EVENT_TYPE,
    PropertyValue,
    StorageBlobCreatedEventData,
    StorageBlobDeletedEventData,
    StorageBlobEventData,
)


def to_compact_json(value: Any) -> str:
    """Serialize a JSON value without insignificant whitespace."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def compact_diagnostics(value: Any) -> Optional[str]:
    """
    Re-serialize a storage diagnostics value to single-line JSON text.

    Args:
        value: Diagnostics as a JSON object or as JSON text

    Returns:
        Compact JSON text, or None if no diagnostics were supplied

    Raises:
        PayloadDecodeError: If the value is not a JSON object
    """
    if value is None:
        return None

    if isinstance(value, (str, bytes)):
        try:
            value = json.loads(value)
        except ValueError as e:
            raise PayloadDecodeError(f"storageDiagnostics is not valid JSON: {str(e)}") from e

    if not isinstance(value, dict):
        raise PayloadDecodeError(
            f"storageDiagnostics must be a JSON object, got {type(value).__name__}"
        )

    return to_compact_json(value)


@dataclass(frozen=True)
class _BlobEvent:
    """Common behaviour of the recognized blob event variants."""
    payload: StorageBlobEventData
    storage_diagnostics: Optional[str]

    label: ClassVar[str]
    action: ClassVar[str]
    metric_name: ClassVar[str]
    payload_model: ClassVar[Type[StorageBlobEventData]]

    @classmethod
    def decode(cls, data: Dict[str, Any]) -> "_BlobEvent":
        """
        Decode an event data object into this variant.

        Raises:
            PayloadDecodeError: If required fields are missing or mistyped
        """
        try:
            payload = cls.payload_model.model_validate(data)
        except ValidationError as e:
            raise PayloadDecodeError(
                f"Invalid {cls.label} payload: {e.error_count()} validation error(s): {str(e)}"
            ) from e

        return cls(
            payload=payload,
            storage_diagnostics=compact_diagnostics(payload.storage_diagnostics),
        )

    def fields(self) -> Dict[str, Optional[PropertyValue]]:
        """Fields extracted from the payload, keyed by their wire names."""
        return {
            "api": self.payload.api,
            "blobType": self.payload.blob_type,
            "clientRequestId": self.payload.client_request_id,
            "contentType": self.payload.content_type,
            "requestId": self.payload.request_id,
            "sequencer": self.payload.sequencer,
            "storageDiagnostics": self.storage_diagnostics,
            "url": self.payload.url,
        }

    @property
    def description(self) -> str:
        return f"[{self.payload.url}] blob {self.action}"

    @property
    def dimensions(self) -> Dict[str, str]:
        return {
            "BlobType": self.payload.blob_type or "",
            "ContentType": self.payload.content_type or "",
        }


@dataclass(frozen=True)
class BlobCreated(_BlobEvent):
    payload: StorageBlobCreatedEventData

    label: ClassVar[str] = "BlobCreatedEvent"
    action: ClassVar[str] = "created"
    metric_name: ClassVar[str] = "ProcessBlobEvents Created"
    payload_model: ClassVar[Type[StorageBlobEventData]] = StorageBlobCreatedEventData

    def fields(self) -> Dict[str, Optional[PropertyValue]]:
        fields = super().fields()
        fields["contentLength"] = self.payload.content_length
        fields["eTag"] = self.payload.e_tag
        return fields


@dataclass(frozen=True)
class BlobDeleted(_BlobEvent):
    payload: StorageBlobDeletedEventData

    label: ClassVar[str] = "BlobDeletedEvent"
    action: ClassVar[str] = "deleted"
    metric_name: ClassVar[str] = "ProcessBlobEvents Deleted"
    payload_model: ClassVar[Type[StorageBlobEventData]] = StorageBlobDeletedEventData


@dataclass(frozen=True)
class Unrecognized:
    """Any event type the forwarder does not handle."""
    event_type: str


BlobEvent = Union[BlobCreated, BlobDeleted, Unrecognized]

_VARIANTS: Dict[str, Type[_BlobEvent]] = {
    BLOB_CREATED_EVENT_TYPE: BlobCreated,
    BLOB_DELETED_EVENT_TYPE: BlobDeleted,
}


def classify(event_type: str, data: Dict[str, Any]) -> BlobEvent:
    """
    Decode event data into the variant registered for its event type.

    Args:
        event_type: Event Grid event type
        data: Event data object

    Returns:
        The decoded variant, or Unrecognized for unknown event types

    Raises:
        PayloadDecodeError: If a recognized event carries an invalid payload
    """
    variant = _VARIANTS.get(event_type)
    if variant is None:
        return Unrecognized(event_type=event_type)
    return variant.decode(data)
