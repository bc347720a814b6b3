"""
Chat Service

Keeps the conversation shown next to the generated UI and hands user
messages to the agent.

DESIGN DECISION: Failures never leave the chat in a loading state. Any
exception from the agent removes the placeholder and is replaced by a
short, friendly message; the details go to the log and the audit trail.
"""

import asyncio
import itertools
import time
from typing import Optional

import structlog
from google.api_core import exceptions as google_exceptions

from genui_expenses.agents import ExpenseAgent
from genui_expenses.audit import AuditLogger
from genui_expenses.models.chat import AgentReply, ChatMessage, VoiceTurn
from genui_expenses.notifier import ChangeNotifier
from genui_expenses.services.voice import VoiceSession
from genui_expenses.surfaces import SurfaceRegistry


WELCOME_MESSAGE = (
    "Hi! I'm your expense tracking assistant. I can help you:\n"
    '- Add expenses (e.g., "Coffee $5")\n'
    "- Create categories\n"
    "- Show charts (pie, bar, line)\n"
    "- Display totals\n"
    "- Change backgrounds\n\n"
    "What would you like to do?"
)

NETWORK_ERROR_MESSAGE = "Unable to connect. Please check your network connection."
GENERIC_ERROR_MESSAGE = "Sorry, something went wrong. Please try again."

_CONNECTION_ERRORS = (
    ConnectionError,
    asyncio.TimeoutError,
    google_exceptions.ServiceUnavailable,
    google_exceptions.DeadlineExceeded,
)
_CONNECTION_HINTS = ("Operation not permitted", "Connection failed", "SocketException")


def friendly_error_message(error: BaseException) -> str:
    """What the user sees when a turn fails."""
    if isinstance(error, _CONNECTION_ERRORS):
        return NETWORK_ERROR_MESSAGE
    text = str(error)
    if any(hint in text for hint in _CONNECTION_HINTS):
        return NETWORK_ERROR_MESSAGE
    return GENERIC_ERROR_MESSAGE


class ChatService(ChangeNotifier):
    """Message history, typing state and dialog answers."""

    def __init__(
        self,
        agent: ExpenseAgent,
        registry: Optional[SurfaceRegistry] = None,
        audit_logger: Optional[AuditLogger] = None,
        voice: Optional[VoiceSession] = None,
        welcome: bool = True,
    ):
        super().__init__()
        self._agent = agent
        self._voice = voice
        self._registry = registry
        self._audit_logger = audit_logger
        self._messages: list[ChatMessage] = []
        self._is_typing = False
        self._ids = itertools.count(1)
        self._logger = structlog.get_logger(__name__)

        if welcome:
            self.add_ai_message(WELCOME_MESSAGE)

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    @property
    def is_typing(self) -> bool:
        return self._is_typing

    def _next_id(self, prefix: str = "msg") -> str:
        return f"{prefix}_{time.time_ns() // 1_000_000}_{next(self._ids)}"

    def add_user_message(self, text: str) -> ChatMessage:
        message = ChatMessage(id=self._next_id(), text=text, is_user=True)
        self._messages.append(message)
        self.notify_listeners()
        return message

    def add_ai_message(self, text: str) -> ChatMessage:
        message = ChatMessage(id=self._next_id(), text=text, is_user=False)
        self._messages.append(message)
        self._is_typing = False
        self.notify_listeners()
        return message

    async def send_message(self, text: str) -> Optional[AgentReply]:
        """
        Send a user message to the agent.

        Blank input is ignored. Returns the agent reply, or None when the
        input was ignored or the turn failed.
        """
        if not text or not text.strip():
            return None

        self.add_user_message(text)
        self._messages.append(ChatMessage(
            id=self._next_id("loading"),
            text="",
            is_user=False,
            is_loading=True,
        ))
        self._is_typing = True
        self.notify_listeners()

        try:
            reply = await self._agent.send(text)
        except Exception as e:
            self._logger.error("chat_turn_failed", error=str(e), error_type=type(e).__name__)
            self._remove_loading()
            self.add_ai_message(friendly_error_message(e))
            return None

        self._remove_loading()
        if reply.text:
            self.add_ai_message(reply.text)
        else:
            self._is_typing = False
            self.notify_listeners()
        return reply

    async def send_voice(self, wav: bytes) -> Optional[VoiceTurn]:
        """
        Speak one turn through the voice session.

        The transcripts join the conversation like typed messages. Returns
        the turn, or None when there is no voice session, no audio, or the
        turn failed.
        """
        if self._voice is None or not wav:
            return None

        self._is_typing = True
        self.notify_listeners()

        try:
            turn = await self._voice.converse_wav(wav)
        except Exception as e:
            self._logger.error("voice_turn_failed", error=str(e), error_type=type(e).__name__)
            self.add_ai_message(friendly_error_message(e))
            return None

        if turn.input_transcript:
            self._messages.append(ChatMessage(
                id=self._next_id(), text=turn.input_transcript, is_user=True,
            ))
        if turn.output_transcript:
            self.add_ai_message(turn.output_transcript)
        else:
            self._is_typing = False
            self.notify_listeners()
        return turn

    async def answer_dialog(self, confirmed: bool) -> Optional[AgentReply]:
        """Send the user's Yes/No to the agent and close the dialog."""
        answer = "Yes" if confirmed else "No"
        if self._registry is not None:
            self._registry.clear_dialog()
        if self._audit_logger:
            await self._audit_logger.log_dialog_answered(answer)
        return await self.send_message(answer)

    def clear_messages(self) -> None:
        self._messages.clear()
        self.notify_listeners()

    def _remove_loading(self) -> None:
        self._messages = [m for m in self._messages if not (m.is_loading and not m.is_user)]
