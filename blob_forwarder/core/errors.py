"""
Error taxonomy for the Blob Event Forwarder.

Every error carries a ``retryable`` flag so the delivery surface can decide
between dead-lettering and redelivery without inspecting exception types.
"""


class ForwardError(Exception):
    """Base exception for forwarding errors."""

    retryable: bool = False


class InvalidNotification(ForwardError):
    """Raised when the inbound notification is absent or its envelope is malformed."""


class PayloadDecodeError(ForwardError):
    """Raised when the event payload cannot be decoded into the expected shape."""


class PublishError(ForwardError):
    """Raised when the queue did not accept or acknowledge the outbound message."""

    retryable = True
