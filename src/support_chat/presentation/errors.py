"""Exception handlers that turn every failure into a JSON error body.

No request may end in an unhandled fault: chat errors keep their own status
and user message, request-shape problems become 400s, and anything else is a
generic 500.
"""

from __future__ import annotations

from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from support_chat.application.exceptions import ChatError, ChatErrorKind
from support_chat.presentation.schemas import ErrorResponse

_ERROR_LABELS: dict[ChatErrorKind, str] = {
    ChatErrorKind.INVALID_INPUT: "Invalid Input",
    ChatErrorKind.CONVERSATION_NOT_FOUND: "Not Found",
    ChatErrorKind.AI_SERVICE_ERROR: "AI Service Error",
    ChatErrorKind.STORAGE_ERROR: "Server Error",
    ChatErrorKind.UNKNOWN_ERROR: "Unexpected Error",
}


def error_response(status_code: int, error: str, message: str) -> JSONResponse:
    body = ErrorResponse(error=error, message=message, status_code=status_code)
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True))


async def _chat_error_handler(request: Request, exc: ChatError) -> JSONResponse:
    logger.warning(
        "{} {} | ChatError kind={} status={} | {}",
        request.method,
        request.url.path,
        exc.kind,
        exc.status_code,
        exc.message,
    )
    return error_response(exc.status_code, _ERROR_LABELS.get(exc.kind, "Error"), exc.user_message)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("{} {} | validation error: {}", request.method, request.url.path, exc.errors())
    return error_response(400, "Invalid Request", "Request validation failed. Check your input.")


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    logger.warning("{} {} | HTTP {}", request.method, request.url.path, exc.status_code)
    try:
        label = HTTPStatus(exc.status_code).phrase
    except ValueError:
        label = "Error"
    return error_response(exc.status_code, label, "An error occurred processing your request.")


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error("{} {} | unexpected error", request.method, request.url.path)
    return error_response(
        500, "Internal Server Error", "An unexpected error occurred. Please try again later."
    )


def register_error_handlers(app: FastAPI) -> None:
    """Install all JSON error handlers on *app*."""
    app.add_exception_handler(ChatError, _chat_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
