"""Errors raised by the infrastructure ports.

The store and the model gateway raise these; the chat use case translates
them into the application-level ``ChatError`` taxonomy.
"""

from __future__ import annotations

from enum import StrEnum

# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class ConversationNotFoundError(LookupError):
    """Raised when an operation references a conversation that does not exist."""

    def __init__(self, conversation_id: str) -> None:
        self.conversation_id = conversation_id
        super().__init__(f"Conversation not found: {conversation_id}")


class StorageError(RuntimeError):
    """Raised for any failure below the store (I/O, constraint violation, ...)."""


# ---------------------------------------------------------------------------
# Model gateway
# ---------------------------------------------------------------------------


class GatewayErrorKind(StrEnum):
    INVALID_CREDENTIAL = "INVALID_CREDENTIAL"
    RATE_LIMITED = "RATE_LIMITED"
    TIMED_OUT = "TIMED_OUT"
    NETWORK_UNAVAILABLE = "NETWORK_UNAVAILABLE"
    CONTENT_FILTERED = "CONTENT_FILTERED"
    INVALID_REQUEST = "INVALID_REQUEST"
    UNKNOWN = "UNKNOWN"


class ModelGatewayError(Exception):
    """A provider failure with a user-safe message attached.

    Attributes:
        kind: Which failure category this is.
        message: Technical description, for logs only.
        user_message: Short text that is safe to show to the requester.
        status_code: HTTP-like status the boundary may surface.
    """

    def __init__(
        self,
        kind: GatewayErrorKind,
        message: str,
        user_message: str,
        status_code: int = 500,
    ) -> None:
        self.kind = kind
        self.message = message
        self.user_message = user_message
        self.status_code = status_code
        super().__init__(message)
