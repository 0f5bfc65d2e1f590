"""Application-level exceptions.

These are business-logic errors, not HTTP errors. The presentation layer
(e.g. FastAPI exception handlers) translates them into HTTP responses.

Every failure leaving the chat use case is a ``ChatError``; ``to_chat_error``
is the single place where lower-level exceptions are mapped onto it.
"""

from __future__ import annotations

from enum import StrEnum

from support_chat.domain.exceptions import (
    ConversationNotFoundError,
    ModelGatewayError,
    StorageError,
)

GENERIC_STORAGE_MESSAGE = "We couldn't save or load your conversation. Please try again."
GENERIC_UNKNOWN_MESSAGE = "An unexpected error occurred. Please try again."
CONVERSATION_NOT_FOUND_MESSAGE = "Conversation not found. Please start a new conversation."


class ChatErrorKind(StrEnum):
    INVALID_INPUT = "INVALID_INPUT"
    CONVERSATION_NOT_FOUND = "CONVERSATION_NOT_FOUND"
    AI_SERVICE_ERROR = "AI_SERVICE_ERROR"
    STORAGE_ERROR = "STORAGE_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class ChatError(Exception):
    """A classified, domain-safe failure of a chat operation.

    ``str(error)`` is the technical message (for logs);
    ``user_message`` is what the requester may see.
    """

    def __init__(
        self,
        kind: ChatErrorKind,
        message: str,
        user_message: str,
        status_code: int,
    ) -> None:
        self.kind = kind
        self.message = message
        self.user_message = user_message
        self.status_code = status_code
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        """True when the caller may retry after backing off."""
        return self.status_code in (408, 429, 503)

    @classmethod
    def invalid_input(cls, message: str, user_message: str) -> ChatError:
        return cls(ChatErrorKind.INVALID_INPUT, message, user_message, 400)

    @classmethod
    def not_found(cls, conversation_id: str) -> ChatError:
        return cls(
            ChatErrorKind.CONVERSATION_NOT_FOUND,
            f"Conversation not found: {conversation_id}",
            CONVERSATION_NOT_FOUND_MESSAGE,
            404,
        )


def to_chat_error(exc: BaseException) -> ChatError:
    """Classify any exception raised while serving a chat operation."""
    if isinstance(exc, ChatError):
        return exc

    if isinstance(exc, ModelGatewayError):
        # The gateway already produced a user-safe message.
        return ChatError(
            ChatErrorKind.AI_SERVICE_ERROR,
            f"LLM error ({exc.kind}): {exc.message}",
            exc.user_message,
            exc.status_code or 500,
        )

    if isinstance(exc, ConversationNotFoundError):
        return ChatError.not_found(exc.conversation_id)

    if isinstance(exc, StorageError):
        return ChatError(
            ChatErrorKind.STORAGE_ERROR,
            f"Storage failure: {exc}",
            GENERIC_STORAGE_MESSAGE,
            500,
        )

    return ChatError(
        ChatErrorKind.UNKNOWN_ERROR,
        f"Unexpected error: {type(exc).__name__}: {exc}",
        GENERIC_UNKNOWN_MESSAGE,
        500,
    )
