"""PydanticAI agent used by the model gateway to reach Azure OpenAI."""

from __future__ import annotations

from openai import AsyncAzureOpenAI
from pydantic_ai import Agent
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider
from pydantic_ai.settings import ModelSettings

from support_chat.config import Settings, get_settings


def create_agent(settings: Settings | None = None) -> Agent[None, str]:
    """Create and return the configured PydanticAI agent.

    The agent carries no system prompt of its own: the gateway sends one
    fully assembled prompt per call (see ``prompts.build_prompt``).

    Args:
        settings: Optional Settings override (defaults to get_settings()).
    """
    s = settings or get_settings()

    # Retries belong to the caller, so the SDK must not retry on its own.
    client = AsyncAzureOpenAI(
        api_key=s.azure_openai_api_key,
        azure_endpoint=s.azure_openai_endpoint,
        api_version=s.azure_openai_api_version,
        timeout=s.llm_timeout_seconds,
        max_retries=0,
    )

    model = OpenAIChatModel(
        s.azure_openai_chat_deployment,
        provider=OpenAIProvider(openai_client=client),
    )

    return Agent(
        model=model,
        output_type=str,
        model_settings=ModelSettings(
            temperature=s.llm_temperature,
            max_tokens=s.llm_max_tokens,
            timeout=s.llm_timeout_seconds,
        ),
    )
