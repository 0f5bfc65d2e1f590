"""Use-case layer — business logic decoupled from the HTTP transport."""

from support_chat.application.use_cases.chat import ChatUseCase, HistoryResult, SendMessageResult

__all__ = ["ChatUseCase", "HistoryResult", "SendMessageResult"]
