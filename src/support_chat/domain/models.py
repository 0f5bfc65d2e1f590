"""Domain entities and value objects.

These are the core data structures of the support chat domain,
independent of any infrastructure or framework concerns.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, Field

Sender = Literal["user", "assistant"]

# ---------------------------------------------------------------------------
# Persisted entities
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Conversation:
    id: str
    created_at: str


@dataclass(frozen=True)
class Message:
    id: str
    conversation_id: str
    sender: Sender
    text: str
    created_at: str


# ---------------------------------------------------------------------------
# Model context (decoupled from the stored Message shape)
# ---------------------------------------------------------------------------


class ConversationTurn(BaseModel):
    """A single prior turn handed to the model gateway as context."""

    role: Sender = Field(description="Turn author: 'user' or 'assistant'")
    content: str = Field(description="Turn text")

    @classmethod
    def from_message(cls, message: Message) -> ConversationTurn:
        return cls(role=message.sender, content=message.text)
