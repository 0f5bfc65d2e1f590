"""Configuration for the support chat backend using pydantic-settings."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_PACKAGE_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _PACKAGE_DIR.parent.parent  # src/support_chat/ → project root


class Settings(BaseSettings):
    """All backend settings, loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Azure OpenAI chat model
    # ------------------------------------------------------------------
    azure_openai_api_key: str = ""
    azure_openai_endpoint: str = ""
    azure_openai_api_version: str = "2025-01-01-preview"
    azure_openai_chat_deployment: str = "gpt-4o-mini"

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------
    llm_temperature: float = 0.7
    llm_max_tokens: int = 1000
    llm_timeout_seconds: float = 30.0
    max_history_messages: int = 10

    # ------------------------------------------------------------------
    # Database
    # ------------------------------------------------------------------
    chat_db_path: Path = _PROJECT_ROOT / "data" / "chat.db"

    # ------------------------------------------------------------------
    # Server
    # ------------------------------------------------------------------
    environment: str = "development"
    log_level: str = "INFO"
    log_json: bool = False
    cors_origins: list[str] = ["http://localhost:5173"]

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------
    def validate_runtime(self) -> None:
        """Check that all required values are present.

        Call this at application startup (not at import time) so that
        tests can override settings before validation runs.
        """
        if not self.azure_openai_api_key.strip():
            raise ValueError("AZURE_OPENAI_API_KEY not set. Add it to .env")
        if not self.azure_openai_endpoint.strip():
            raise ValueError("AZURE_OPENAI_ENDPOINT not set. Add it to .env")
        if self.llm_timeout_seconds <= 0:
            raise ValueError("LLM_TIMEOUT_SECONDS must be positive")


@lru_cache
def get_settings() -> Settings:
    """Return the cached Settings singleton."""
    return Settings()
