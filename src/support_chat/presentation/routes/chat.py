"""Chat routes — send message, history, and health endpoints.

Handlers stay thin: validation and error classification happen in the use
case, and ``ChatError`` is turned into a response by the app's exception
handlers.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime

from fastapi import APIRouter, Request
from loguru import logger

from support_chat.application.use_cases.chat import ChatUseCase
from support_chat.presentation.schemas import (
    HealthResponse,
    HistoryMessage,
    HistoryRequest,
    HistoryResponse,
    SendMessageRequest,
    SendMessageResponse,
)

router = APIRouter(tags=["chat"])


def _use_case(raw_request: Request) -> ChatUseCase:
    return raw_request.app.state.chat_uc


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get("/health", response_model=HealthResponse)
async def health(raw_request: Request):
    """Simple liveness / readiness check."""
    state = raw_request.app.state
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(UTC).isoformat(),
        uptime=round(time.monotonic() - state.started_at, 3),
        environment=state.settings.environment,
    )


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


@router.post("/chat/message", response_model=SendMessageResponse)
async def send_message(request: SendMessageRequest, raw_request: Request):
    """Send a message and receive the assistant's reply.

    Omit ``sessionId`` to start a new conversation, or pass an existing ID
    to continue one.
    """
    result = await _use_case(raw_request).send_message(request.message, request.session_id)

    logger.info("POST /chat/message | session={}", result.conversation_id)
    return SendMessageResponse(
        reply=result.reply,
        session_id=result.conversation_id,
        timestamp=result.timestamp,
    )


@router.post("/chat/history", response_model=HistoryResponse)
async def get_history(request: HistoryRequest, raw_request: Request):
    """Get the messages of a conversation, oldest first."""
    result = await _use_case(raw_request).get_history(request.session_id, request.limit)

    return HistoryResponse(
        session_id=result.conversation_id,
        messages=[
            HistoryMessage(id=m.id, sender=m.sender, text=m.text, timestamp=m.created_at)
            for m in result.messages
        ],
    )
