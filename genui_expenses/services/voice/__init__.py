"""Live voice conversation."""

from genui_expenses.services.voice.session import (
    VoiceSession,
    VoiceSessionError,
    live_config,
    live_tools,
    to_live_schema,
)

__all__ = [
    "VoiceSession",
    "VoiceSessionError",
    "live_config",
    "live_tools",
    "to_live_schema",
]
