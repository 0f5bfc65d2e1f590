"""HTTP request/response schemas (Pydantic models) for the REST API.

Wire field names are camelCase (``sessionId``, ``statusCode``); Python
attributes stay snake_case through an alias generator.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Send message
# ---------------------------------------------------------------------------


class SendMessageRequest(_WireModel):
    """Request body for POST /chat/message."""

    message: str = Field(description="The user message")
    session_id: str | None = Field(
        default=None,
        description="Existing conversation ID to continue. Omit to start a new one.",
    )


class SendMessageResponse(_WireModel):
    """Response body from POST /chat/message."""

    reply: str = Field(description="The assistant's reply")
    session_id: str = Field(description="The conversation ID (new or existing)")
    timestamp: str = Field(description="ISO 8601 time the reply was returned")


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


class HistoryRequest(_WireModel):
    """Request body for POST /chat/history."""

    session_id: str = Field(description="The conversation ID")
    limit: int | None = Field(default=None, description="Only return the last N messages")


class HistoryMessage(_WireModel):
    """A single persisted message."""

    id: str
    sender: Literal["user", "assistant"]
    text: str
    timestamp: str


class HistoryResponse(_WireModel):
    """Response body from POST /chat/history."""

    session_id: str
    messages: list[HistoryMessage] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Errors / service
# ---------------------------------------------------------------------------


class ErrorResponse(_WireModel):
    """Body of every non-2xx response."""

    error: str
    message: str
    status_code: int


class HealthResponse(_WireModel):
    status: str
    timestamp: str
    uptime: float
    environment: str
