"""Chat conversation state."""

from genui_expenses.chat.chat_service import (
    GENERIC_ERROR_MESSAGE,
    NETWORK_ERROR_MESSAGE,
    WELCOME_MESSAGE,
    ChatService,
    friendly_error_message,
)

__all__ = [
    "ChatService",
    "GENERIC_ERROR_MESSAGE",
    "NETWORK_ERROR_MESSAGE",
    "WELCOME_MESSAGE",
    "friendly_error_message",
]
