"""Domain service interfaces (ports).

These protocols define the contracts that infrastructure implementations
must satisfy.  The application layer depends on these abstractions,
not on concrete classes.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from support_chat.domain.models import Conversation, ConversationTurn, Message, Sender

# ---------------------------------------------------------------------------
# Conversation store
# ---------------------------------------------------------------------------


@runtime_checkable
class IConversationStore(Protocol):
    """Interface for conversation persistence.

    Implementations: ConversationStore (SQLite-backed).
    """

    def create_conversation(self) -> Conversation: ...

    def get_conversation(self, conversation_id: str) -> Conversation | None: ...

    def append_message(self, conversation_id: str, sender: Sender, text: str) -> Message: ...

    def list_messages(self, conversation_id: str) -> list[Message]: ...

    def delete_conversation(self, conversation_id: str) -> bool: ...


# ---------------------------------------------------------------------------
# Model gateway
# ---------------------------------------------------------------------------


@runtime_checkable
class IModelGateway(Protocol):
    """Interface for reply generation.

    Implementations: ModelGateway (pydantic-ai agent over Azure OpenAI).
    """

    async def generate_reply(self, history: list[ConversationTurn], new_message: str) -> str: ...
