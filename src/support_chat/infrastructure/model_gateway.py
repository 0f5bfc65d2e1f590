"""Model gateway: one bounded generation call with typed, user-safe failures.

The provider SDK does not give us a reliable typed error channel across
transports (HTTP status errors, SDK exceptions, asyncio timeouts), so
failures are classified from their textual description by
``classify_provider_error``.  Anything that matches no rule is ``UNKNOWN``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import NamedTuple

from loguru import logger
from pydantic_ai import Agent

from support_chat.config import Settings
from support_chat.domain.exceptions import GatewayErrorKind, ModelGatewayError
from support_chat.domain.models import ConversationTurn
from support_chat.infrastructure.agent import create_agent
from support_chat.infrastructure.prompts import DEFAULT_MAX_HISTORY_MESSAGES, build_prompt

DEFAULT_TIMEOUT_SECONDS = 30.0

EMPTY_RESPONSE_USER_MESSAGE = (
    "I apologize, but I'm having trouble generating a response. Please try again."
)

# ---------------------------------------------------------------------------
# Provider error classification
# ---------------------------------------------------------------------------


class _Rule(NamedTuple):
    kind: GatewayErrorKind
    patterns: tuple[str, ...]
    summary: str
    user_message: str
    status_code: int


# Checked in order; the first rule with a matching pattern wins.
_RULES: tuple[_Rule, ...] = (
    _Rule(
        GatewayErrorKind.INVALID_CREDENTIAL,
        ("api key", "invalid_api_key", "authentication", "unauthorized", "401"),
        "Invalid or expired API key",
        "AI service is unavailable. Please contact support.",
        401,
    ),
    _Rule(
        GatewayErrorKind.RATE_LIMITED,
        ("rate limit", "ratelimit", "quota", "429", "too many requests"),
        "Rate limit exceeded",
        "Our AI service is currently busy. Please try again in a moment.",
        429,
    ),
    _Rule(
        GatewayErrorKind.TIMED_OUT,
        ("timeout", "timed out", "aborted"),
        "Request timed out",
        "The AI is taking too long to respond. Please try asking again.",
        408,
    ),
    _Rule(
        GatewayErrorKind.NETWORK_UNAVAILABLE,
        ("network", "connection", "econnrefused", "enotfound", "fetch failed"),
        "Network error",
        "Unable to connect to AI service. Please check your connection and try again.",
        503,
    ),
    _Rule(
        GatewayErrorKind.CONTENT_FILTERED,
        ("blocked", "safety", "content filter", "content_filter", "harm"),
        "Content filtered by safety settings",
        "I apologize, but I can't respond to that. Please rephrase your question.",
        400,
    ),
    _Rule(
        GatewayErrorKind.INVALID_REQUEST,
        ("invalid", "400", "bad request"),
        "Invalid request",
        "I had trouble understanding your request. Could you try rephrasing?",
        400,
    ),
)

_UNKNOWN_USER_MESSAGE = (
    "I'm having technical difficulties. Please try again or contact support "
    "if the problem persists."
)


def describe_error(exc: BaseException) -> str:
    """Return the text the classifier matches against."""
    return f"{type(exc).__name__}: {exc}"


def classify_provider_error(exc: BaseException) -> ModelGatewayError:
    """Map an arbitrary provider failure onto a ``ModelGatewayError``.

    The technical ``message`` keeps the original description for logs; the
    ``user_message`` comes from a fixed table and never echoes provider text.
    """
    if isinstance(exc, ModelGatewayError):
        return exc

    description = describe_error(exc)
    lowered = description.lower()
    for rule in _RULES:
        if any(pattern in lowered for pattern in rule.patterns):
            return ModelGatewayError(
                rule.kind,
                f"{rule.summary}: {description}",
                rule.user_message,
                rule.status_code,
            )

    return ModelGatewayError(
        GatewayErrorKind.UNKNOWN,
        f"Unknown error: {description}",
        _UNKNOWN_USER_MESSAGE,
        500,
    )


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------


def _require_credential(api_key: str | None) -> None:
    if not api_key or not api_key.strip():
        raise ModelGatewayError(
            GatewayErrorKind.INVALID_CREDENTIAL,
            "API key is required",
            "AI service is not configured. Please contact support.",
            500,
        )


class ModelGateway:
    """Generates support replies through a PydanticAI agent.

    Parameters
    ----------
    agent:
        A configured ``Agent`` returning plain text.
    api_key:
        Provider credential; a blank value fails construction immediately.
    timeout_seconds:
        Upper bound on one generation call.  Exceeding it raises a
        ``TIMED_OUT`` error; nothing is retried here.
    max_history_messages:
        How many prior turns are included in the prompt.
    """

    def __init__(
        self,
        agent: Agent[None, str],
        *,
        api_key: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_history_messages: int = DEFAULT_MAX_HISTORY_MESSAGES,
    ) -> None:
        _require_credential(api_key)
        self.agent = agent
        self.timeout_seconds = timeout_seconds
        self.max_history_messages = max_history_messages

    @classmethod
    def from_settings(cls, settings: Settings) -> ModelGateway:
        """Build a gateway (and its agent) from application settings."""
        # Fail before touching the SDK so the error stays typed.
        _require_credential(settings.azure_openai_api_key)
        return cls(
            agent=create_agent(settings),
            api_key=settings.azure_openai_api_key,
            timeout_seconds=settings.llm_timeout_seconds,
            max_history_messages=settings.max_history_messages,
        )

    async def generate_reply(self, history: Sequence[ConversationTurn], new_message: str) -> str:
        """Generate a reply to *new_message* given the prior *history*.

        Returns:
            The model's reply with surrounding whitespace removed.

        Raises:
            ModelGatewayError: On empty input, an empty reply, or any
                provider failure (classified by ``classify_provider_error``).
        """
        if not new_message or not new_message.strip():
            raise ModelGatewayError(
                GatewayErrorKind.INVALID_REQUEST,
                "User message is empty",
                "Please provide a message.",
                400,
            )

        prompt = build_prompt(history, new_message, self.max_history_messages)

        try:
            result = await asyncio.wait_for(self.agent.run(prompt), timeout=self.timeout_seconds)
        except Exception as exc:
            error = classify_provider_error(exc)
            logger.warning("Model call failed | kind={} | {}", error.kind, error.message)
            raise error from exc

        text = (result.output or "").strip()
        if not text:
            raise ModelGatewayError(
                GatewayErrorKind.UNKNOWN,
                "Empty response from model",
                EMPTY_RESPONSE_USER_MESSAGE,
                500,
            )

        logger.debug("Model reply generated | history={} | chars={}", len(history), len(text))
        return text
