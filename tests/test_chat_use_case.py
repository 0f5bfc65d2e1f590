"""Tests for the ChatUseCase — pure business logic, no HTTP layer."""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from support_chat.application.exceptions import ChatError, ChatErrorKind
from support_chat.application.use_cases.chat import (
    MAX_MESSAGE_LENGTH,
    ChatUseCase,
    HistoryResult,
    SendMessageResult,
    is_valid_conversation_id,
)
from support_chat.domain.exceptions import (
    ConversationNotFoundError,
    GatewayErrorKind,
    ModelGatewayError,
    StorageError,
)
from support_chat.domain.models import ConversationTurn
from support_chat.infrastructure.conversation_store import ConversationStore


def _message_count(store: ConversationStore) -> int:
    return store.conn.execute("SELECT COUNT(*) FROM messages").fetchone()[0]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidation:
    """Input validation happens before any storage or model call."""

    @pytest.mark.parametrize("message", ["", "   ", "\n\t ", "x" * (MAX_MESSAGE_LENGTH + 1)])
    async def test_invalid_message_rejected(
        self,
        chat_use_case: ChatUseCase,
        memory_store: ConversationStore,
        mock_gateway: AsyncMock,
        message: str,
    ):
        with pytest.raises(ChatError) as exc_info:
            await chat_use_case.send_message(message)

        assert exc_info.value.kind == ChatErrorKind.INVALID_INPUT
        assert exc_info.value.status_code == 400
        assert memory_store.list_conversations() == []
        assert _message_count(memory_store) == 0
        mock_gateway.generate_reply.assert_not_awaited()

    async def test_message_at_length_cap_accepted(self, chat_use_case: ChatUseCase):
        result = await chat_use_case.send_message("x" * MAX_MESSAGE_LENGTH)
        assert result.reply == "Reply 1"

    @pytest.mark.parametrize("conversation_id", ["not-a-uuid", "123", str(uuid.uuid1())])
    async def test_malformed_conversation_id_rejected(
        self, chat_use_case: ChatUseCase, memory_store: ConversationStore, conversation_id: str
    ):
        with pytest.raises(ChatError) as exc_info:
            await chat_use_case.send_message("Hello", conversation_id)

        assert exc_info.value.kind == ChatErrorKind.INVALID_INPUT
        assert memory_store.list_conversations() == []

    def test_uuid_format(self):
        assert is_valid_conversation_id(str(uuid.uuid4()))
        assert is_valid_conversation_id(str(uuid.uuid4()).upper())
        assert not is_valid_conversation_id("")


# ---------------------------------------------------------------------------
# send_message
# ---------------------------------------------------------------------------


class TestSendMessage:
    async def test_creates_new_conversation(
        self, chat_use_case: ChatUseCase, memory_store: ConversationStore
    ):
        result = await chat_use_case.send_message("Hello")

        assert isinstance(result, SendMessageResult)
        assert result.reply == "Reply 1"
        assert is_valid_conversation_id(result.conversation_id)
        assert [c.id for c in memory_store.list_conversations()] == [result.conversation_id]

    async def test_empty_conversation_id_starts_new_conversation(
        self, chat_use_case: ChatUseCase, memory_store: ConversationStore
    ):
        result = await chat_use_case.send_message("Hello", "")
        assert memory_store.get_conversation(result.conversation_id) is not None

    async def test_persists_user_then_assistant(
        self, chat_use_case: ChatUseCase, memory_store: ConversationStore
    ):
        result = await chat_use_case.send_message("Hello")

        msgs = memory_store.list_messages(result.conversation_id)
        assert [(m.sender, m.text) for m in msgs] == [("user", "Hello"), ("assistant", "Reply 1")]

    async def test_timestamp_is_iso8601(self, chat_use_case: ChatUseCase):
        result = await chat_use_case.send_message("Hello")
        parsed = datetime.fromisoformat(result.timestamp.replace("Z", "+00:00"))
        assert parsed.tzinfo is not None

    async def test_first_message_has_empty_history(
        self, chat_use_case: ChatUseCase, mock_gateway: AsyncMock
    ):
        await chat_use_case.send_message("Hello")
        mock_gateway.generate_reply.assert_awaited_once_with([], "Hello")

    async def test_history_excludes_current_message(
        self, chat_use_case: ChatUseCase, mock_gateway: AsyncMock
    ):
        first = await chat_use_case.send_message("Hello")
        await chat_use_case.send_message("Follow-up", first.conversation_id)

        history, message = mock_gateway.generate_reply.await_args_list[1].args
        assert message == "Follow-up"
        assert history == [
            ConversationTurn(role="user", content="Hello"),
            ConversationTurn(role="assistant", content="Reply 1"),
        ]

    async def test_three_turns_alternate(
        self, chat_use_case: ChatUseCase, memory_store: ConversationStore
    ):
        first = await chat_use_case.send_message("One")
        conversation_id = first.conversation_id
        await chat_use_case.send_message("Two", conversation_id)
        await chat_use_case.send_message("Three", conversation_id)

        msgs = memory_store.list_messages(conversation_id)
        assert [m.sender for m in msgs] == ["user", "assistant"] * 3
        assert [m.text for m in msgs] == ["One", "Reply 1", "Two", "Reply 2", "Three", "Reply 3"]

    async def test_unknown_conversation(
        self, chat_use_case: ChatUseCase, memory_store: ConversationStore, mock_gateway: AsyncMock
    ):
        with pytest.raises(ChatError) as exc_info:
            await chat_use_case.send_message("Hello", str(uuid.uuid4()))

        assert exc_info.value.kind == ChatErrorKind.CONVERSATION_NOT_FOUND
        assert exc_info.value.status_code == 404
        assert _message_count(memory_store) == 0
        mock_gateway.generate_reply.assert_not_awaited()

    async def test_text_round_trips(self, chat_use_case: ChatUseCase, memory_store: ConversationStore):
        text = "  Où est ma commande ? 📦\n" + "y" * 9_000
        result = await chat_use_case.send_message(text)
        history = await chat_use_case.get_history(result.conversation_id)
        assert history.messages[0].text == text


# ---------------------------------------------------------------------------
# Gateway failures
# ---------------------------------------------------------------------------


class TestGatewayFailures:
    @pytest.mark.parametrize(
        ("kind", "status"),
        [
            (GatewayErrorKind.RATE_LIMITED, 429),
            (GatewayErrorKind.TIMED_OUT, 408),
            (GatewayErrorKind.INVALID_CREDENTIAL, 401),
            (GatewayErrorKind.NETWORK_UNAVAILABLE, 503),
            (GatewayErrorKind.UNKNOWN, 500),
        ],
    )
    async def test_maps_to_ai_service_error(
        self,
        chat_use_case: ChatUseCase,
        mock_gateway: AsyncMock,
        kind: GatewayErrorKind,
        status: int,
    ):
        mock_gateway.generate_reply.side_effect = ModelGatewayError(
            kind, f"technical {kind}", "Please try again shortly.", status
        )

        with pytest.raises(ChatError) as exc_info:
            await chat_use_case.send_message("Hello")

        error = exc_info.value
        assert error.kind == ChatErrorKind.AI_SERVICE_ERROR
        assert error.status_code == status
        assert error.user_message == "Please try again shortly."
        assert isinstance(error.__cause__, ModelGatewayError)

    async def test_rate_limit_is_retryable(self, chat_use_case: ChatUseCase, mock_gateway: AsyncMock):
        mock_gateway.generate_reply.side_effect = ModelGatewayError(
            GatewayErrorKind.RATE_LIMITED, "429", "busy", 429
        )
        with pytest.raises(ChatError) as exc_info:
            await chat_use_case.send_message("Hello")
        assert exc_info.value.retryable

    async def test_user_message_kept_when_generation_fails(
        self, chat_use_case: ChatUseCase, memory_store: ConversationStore, mock_gateway: AsyncMock
    ):
        first = await chat_use_case.send_message("Hello")
        mock_gateway.generate_reply.side_effect = ModelGatewayError(
            GatewayErrorKind.TIMED_OUT, "timeout", "Too slow.", 408
        )

        with pytest.raises(ChatError):
            await chat_use_case.send_message("Are you there?", first.conversation_id)

        history = await chat_use_case.get_history(first.conversation_id)
        assert [m.text for m in history.messages] == ["Hello", "Reply 1", "Are you there?"]

    async def test_unexpected_gateway_exception_is_unknown_error(
        self, chat_use_case: ChatUseCase, mock_gateway: AsyncMock
    ):
        mock_gateway.generate_reply.side_effect = KeyError("internal detail")

        with pytest.raises(ChatError) as exc_info:
            await chat_use_case.send_message("Hello")

        assert exc_info.value.kind == ChatErrorKind.UNKNOWN_ERROR
        assert "internal detail" not in exc_info.value.user_message
        assert "internal detail" in exc_info.value.message


# ---------------------------------------------------------------------------
# Storage failures
# ---------------------------------------------------------------------------


class TestStorageFailures:
    async def test_storage_error_is_classified(self, mock_gateway: AsyncMock):
        store = MagicMock()
        store.create_conversation.side_effect = StorageError("disk I/O error at /var/data/chat.db")
        uc = ChatUseCase(store=store, gateway=mock_gateway)

        with pytest.raises(ChatError) as exc_info:
            await uc.send_message("Hello")

        error = exc_info.value
        assert error.kind == ChatErrorKind.STORAGE_ERROR
        assert error.status_code == 500
        assert "/var/data" not in error.user_message
        assert "disk I/O error" in error.message
        mock_gateway.generate_reply.assert_not_awaited()

    async def test_reply_save_failure(self, memory_store: ConversationStore, mock_gateway: AsyncMock):
        uc = ChatUseCase(store=memory_store, gateway=mock_gateway)
        real_append = memory_store.append_message

        def failing_for_assistant(conversation_id, sender, text):
            if sender == "assistant":
                raise StorageError("database is locked")
            return real_append(conversation_id, sender, text)

        memory_store.append_message = failing_for_assistant

        with pytest.raises(ChatError) as exc_info:
            await uc.send_message("Hello")
        assert exc_info.value.kind == ChatErrorKind.STORAGE_ERROR


# ---------------------------------------------------------------------------
# get_history
# ---------------------------------------------------------------------------


class TestGetHistory:
    async def _conversation_with_turns(self, uc: ChatUseCase, turns: int) -> str:
        result = await uc.send_message("Message 1")
        for i in range(2, turns + 1):
            await uc.send_message(f"Message {i}", result.conversation_id)
        return result.conversation_id

    async def test_returns_all_messages_in_order(self, chat_use_case: ChatUseCase):
        conversation_id = await self._conversation_with_turns(chat_use_case, 2)

        result = await chat_use_case.get_history(conversation_id)
        assert isinstance(result, HistoryResult)
        assert result.conversation_id == conversation_id
        assert [m.text for m in result.messages] == ["Message 1", "Reply 1", "Message 2", "Reply 2"]

    @pytest.mark.parametrize("limit", [1, 2, 3, 6])
    async def test_limit_returns_tail(self, chat_use_case: ChatUseCase, limit: int):
        conversation_id = await self._conversation_with_turns(chat_use_case, 3)
        full = (await chat_use_case.get_history(conversation_id)).messages

        limited = (await chat_use_case.get_history(conversation_id, limit)).messages
        assert limited == full[-limit:]

    async def test_limit_larger_than_history(self, chat_use_case: ChatUseCase):
        conversation_id = await self._conversation_with_turns(chat_use_case, 1)
        full = (await chat_use_case.get_history(conversation_id)).messages
        assert (await chat_use_case.get_history(conversation_id, 50)).messages == full

    @pytest.mark.parametrize("limit", [0, -3])
    async def test_non_positive_limit_rejected(self, chat_use_case: ChatUseCase, limit: int):
        conversation_id = await self._conversation_with_turns(chat_use_case, 1)
        with pytest.raises(ChatError) as exc_info:
            await chat_use_case.get_history(conversation_id, limit)
        assert exc_info.value.kind == ChatErrorKind.INVALID_INPUT

    @pytest.mark.parametrize("limit", [2.0, "2", [2], True])
    async def test_non_integer_limit_rejected(self, chat_use_case: ChatUseCase, limit):
        conversation_id = await self._conversation_with_turns(chat_use_case, 2)
        with pytest.raises(ChatError) as exc_info:
            await chat_use_case.get_history(conversation_id, limit)
        assert exc_info.value.kind == ChatErrorKind.INVALID_INPUT
        assert exc_info.value.status_code == 400

    async def test_unknown_id_checked_once(self, mock_gateway: AsyncMock):
        store = MagicMock()
        store.list_messages.side_effect = ConversationNotFoundError("abc")
        uc = ChatUseCase(store=store, gateway=mock_gateway)

        with pytest.raises(ChatError) as exc_info:
            await uc.get_history(str(uuid.uuid4()))

        assert exc_info.value.kind == ChatErrorKind.CONVERSATION_NOT_FOUND
        store.get_conversation.assert_not_called()

    async def test_empty_conversation(
        self, chat_use_case: ChatUseCase, memory_store: ConversationStore
    ):
        conversation = memory_store.create_conversation()
        result = await chat_use_case.get_history(conversation.id)
        assert result.messages == []

    async def test_malformed_id(self, chat_use_case: ChatUseCase):
        with pytest.raises(ChatError) as exc_info:
            await chat_use_case.get_history("abc")
        assert exc_info.value.kind == ChatErrorKind.INVALID_INPUT

    async def test_unknown_id(self, chat_use_case: ChatUseCase):
        with pytest.raises(ChatError) as exc_info:
            await chat_use_case.get_history(str(uuid.uuid4()))
        assert exc_info.value.kind == ChatErrorKind.CONVERSATION_NOT_FOUND


# ---------------------------------------------------------------------------
# End-to-end scenario and concurrency
# ---------------------------------------------------------------------------


class TestScenarios:
    async def test_hello_follow_up(self, chat_use_case: ChatUseCase):
        first = await chat_use_case.send_message("Hello")
        second = await chat_use_case.send_message("Follow-up", first.conversation_id)

        assert second.conversation_id == first.conversation_id
        history = await chat_use_case.get_history(first.conversation_id)
        assert [m.text for m in history.messages] == ["Hello", first.reply, "Follow-up", second.reply]

    async def test_concurrent_sends_on_same_conversation(
        self, memory_store: ConversationStore
    ):
        async def slow_reply(history, message):
            await asyncio.sleep(0.01)
            return f"re: {message}"

        gateway = AsyncMock()
        gateway.generate_reply.side_effect = slow_reply
        uc = ChatUseCase(store=memory_store, gateway=gateway)

        first = await uc.send_message("start")
        await asyncio.gather(
            *(uc.send_message(f"burst {i}", first.conversation_id) for i in range(5))
        )

        msgs = (await uc.get_history(first.conversation_id)).messages
        assert len(msgs) == 12
        # Every reply is stored after the user message that produced it.
        for i in range(5):
            texts = [m.text for m in msgs]
            assert texts.index(f"burst {i}") < texts.index(f"re: burst {i}")
