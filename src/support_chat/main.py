"""FastAPI application for the support chat backend.

This module is a thin **presentation layer** plus wiring.  All business
logic lives in ``application.use_cases`` so it can be tested and reused
independently of any HTTP framework.

Run with::

    uvicorn support_chat.main:create_app --factory
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from support_chat import __version__
from support_chat.application.use_cases.chat import ChatUseCase
from support_chat.config import Settings, get_settings
from support_chat.domain.protocols import IModelGateway
from support_chat.infrastructure.conversation_store import ConversationStore
from support_chat.infrastructure.model_gateway import ModelGateway
from support_chat.logging_config import setup_logging
from support_chat.presentation.errors import register_error_handlers
from support_chat.presentation.routes.chat import router as chat_router


def create_app(
    settings: Settings | None = None,
    gateway: IModelGateway | None = None,
) -> FastAPI:
    """Build the application.

    Args:
        settings: Optional Settings override (defaults to get_settings()).
        gateway: Optional reply generator; when given, provider settings are
            not validated and no SDK client is created.
    """
    settings = settings or get_settings()
    setup_logging(
        level=settings.log_level, json=settings.log_json, environment=settings.environment
    )

    # ------------------------------------------------------------------
    # Lifespan: initialise shared resources once at startup
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Set up and tear down services around the application lifetime."""
        model_gateway = gateway
        if model_gateway is None:
            settings.validate_runtime()
            model_gateway = ModelGateway.from_settings(settings)

        store = ConversationStore(db_path=settings.chat_db_path)
        store.connect()
        try:
            app.state.store = store
            app.state.chat_uc = ChatUseCase(store=store, gateway=model_gateway)

            logger.info("Application startup complete | env={}", settings.environment)
            yield
        finally:
            store.close()
            logger.info("Application shutdown complete")

    app = FastAPI(
        title="Support Chat API",
        description="Customer support chat backed by a language model.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.started_at = time.monotonic()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(chat_router)

    @app.get("/")
    async def root():
        return {"message": "Support Chat API", "version": __version__, "docs": "/health"}

    return app


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("support_chat.main:create_app", factory=True, host="0.0.0.0", port=8000)
