"""Chat use case — orchestrates one support conversation turn.

This module contains all business logic for handling a chat turn:
input validation, conversation resolution, persistence ordering, reply
generation and error translation.  It has **no dependency on FastAPI** and
can be invoked from any transport layer (HTTP, CLI, queue worker, ...).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import NoReturn

from loguru import logger

from support_chat.application.exceptions import ChatError, ChatErrorKind, to_chat_error
from support_chat.domain.models import Conversation, ConversationTurn, Message
from support_chat.domain.protocols import IConversationStore, IModelGateway

MAX_MESSAGE_LENGTH = 10_000

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

_INVALID_ID_USER_MESSAGE = "Invalid session ID. Please start a new conversation."


# ---------------------------------------------------------------------------
# Result containers
# ---------------------------------------------------------------------------


@dataclass
class SendMessageResult:
    """Outcome of a successful ``send_message`` call."""

    reply: str
    conversation_id: str
    timestamp: str


@dataclass
class HistoryResult:
    """Messages of one conversation, oldest first."""

    conversation_id: str
    messages: list[Message] = field(default_factory=list)


def is_valid_conversation_id(value: str) -> bool:
    return bool(_UUID_RE.match(value))


def _utcnow() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# Use case
# ---------------------------------------------------------------------------


class ChatUseCase:
    """Orchestrates chat turns between a requester and the support model.

    The use case holds no conversation state; everything lives in the store.

    Parameters
    ----------
    store:
        Conversation persistence (``ConversationStore`` in production).
    gateway:
        Reply generator (``ModelGateway`` in production).
    """

    def __init__(self, store: IConversationStore, gateway: IModelGateway) -> None:
        self.store = store
        self.gateway = gateway

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def send_message(
        self, message: str, conversation_id: str | None = None
    ) -> SendMessageResult:
        """Persist *message*, generate a reply, persist it and return it.

        An empty *conversation_id* is treated like ``None`` and starts a new
        conversation.  The user's message stays stored even when generation
        fails afterwards.

        Raises:
            ChatError: For every failure, already classified.
        """
        try:
            self._validate_message(message)
            if conversation_id:
                self._validate_conversation_id(conversation_id)

            conversation = self._resolve_conversation(conversation_id or None)
            user_message = self.store.append_message(conversation.id, "user", message)
            history = self._turns_before(conversation.id, user_message)

            logger.info(
                "send_message | conversation={} history={} msg={}",
                conversation.id,
                len(history),
                message[:60],
            )

            reply = await self.gateway.generate_reply(history, message)
            self.store.append_message(conversation.id, "assistant", reply)
        except Exception as exc:
            self._fail("send_message", exc)

        return SendMessageResult(
            reply=reply,
            conversation_id=conversation.id,
            timestamp=_utcnow(),
        )

    async def get_history(
        self, conversation_id: str, limit: int | None = None
    ) -> HistoryResult:
        """Return the conversation's messages, optionally only the last *limit*.

        Raises:
            ChatError: For every failure, already classified.
        """
        try:
            self._validate_conversation_id(conversation_id)
            if limit is not None and (
                not isinstance(limit, int) or isinstance(limit, bool) or limit < 1
            ):
                raise ChatError.invalid_input(
                    f"Invalid history limit: {limit!r}",
                    "The history limit must be a positive number.",
                )

            # Unknown conversations raise ConversationNotFoundError here
            messages = self.store.list_messages(conversation_id)
            if limit is not None:
                messages = messages[-limit:]
        except Exception as exc:
            self._fail("get_history", exc)

        return HistoryResult(conversation_id=conversation_id, messages=messages)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_message(message: str) -> None:
        if not isinstance(message, str) or not message.strip():
            raise ChatError.invalid_input("Message is required", "Please provide a message.")
        if len(message) > MAX_MESSAGE_LENGTH:
            raise ChatError.invalid_input(
                f"Message too long ({len(message)} characters)",
                "Message is too long. Please keep it under 10,000 characters.",
            )

    @staticmethod
    def _validate_conversation_id(conversation_id: str) -> None:
        if not isinstance(conversation_id, str) or not is_valid_conversation_id(conversation_id):
            raise ChatError.invalid_input("Invalid session ID format", _INVALID_ID_USER_MESSAGE)

    def _resolve_conversation(self, conversation_id: str | None) -> Conversation:
        if conversation_id is None:
            return self.store.create_conversation()

        conversation = self.store.get_conversation(conversation_id)
        if conversation is None:
            raise ChatError.not_found(conversation_id)
        return conversation

    def _turns_before(self, conversation_id: str, current: Message) -> list[ConversationTurn]:
        """Load the turns stored before *current*, in order.

        Messages appended concurrently after *current* are left out too.
        """
        turns: list[ConversationTurn] = []
        for stored in self.store.list_messages(conversation_id):
            if stored.id == current.id:
                break
            turns.append(ConversationTurn.from_message(stored))
        return turns

    @staticmethod
    def _fail(operation: str, exc: Exception) -> NoReturn:
        error = to_chat_error(exc)

        if error.kind in (ChatErrorKind.INVALID_INPUT, ChatErrorKind.CONVERSATION_NOT_FOUND):
            logger.info("{} rejected | kind={} | {}", operation, error.kind, error.message)
        elif error.kind == ChatErrorKind.AI_SERVICE_ERROR:
            logger.warning("{} failed | kind={} | {}", operation, error.kind, error.message)
        else:
            logger.opt(exception=exc).error(
                "{} failed | kind={} | {}", operation, error.kind, error.message
            )

        if error is exc:
            raise error
        raise error from exc
