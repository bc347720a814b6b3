"""
Expense Agent

Drives one Gemini chat session with function calling.

FLOW for each user message:
1. Send the text to the chat session
2. While the reply contains function calls, run them ONE AT A TIME
   through the tool adapter and send the results back
3. Return the final text and the list of calls that were made

CRITICAL BOUNDARIES:
- The agent never touches the ledger or the surfaces directly; every
  change goes through the tool adapter, which validates and audits it
- Tool calls run sequentially and in the order the model issued them
- Transport errors propagate to the caller; there is no local retry
"""

from collections.abc import Mapping, Sequence
from typing import Any, Optional

import google.generativeai as genai
import structlog

from genui_expenses.agents.prompts import build_system_instruction
from genui_expenses.audit import AuditLogger, create_correlation_id
from genui_expenses.config import GeminiSettings, get_settings
from genui_expenses.models.chat import AgentReply, ToolInvocation
from genui_expenses.tools import ToolAdapter


class AgentError(Exception):
    """The model's reply could not be used."""
    pass


TOOL_ROUND_LIMIT_ERROR = "Tool round limit reached; answer the user with what you have."


_SCHEMA_TYPES = {
    "string": genai.protos.Type.STRING,
    "number": genai.protos.Type.NUMBER,
    "integer": genai.protos.Type.INTEGER,
    "boolean": genai.protos.Type.BOOLEAN,
    "array": genai.protos.Type.ARRAY,
    "object": genai.protos.Type.OBJECT,
}


def to_schema(spec: dict) -> genai.protos.Schema:
    """Convert a JSON-schema fragment into a Gemini Schema."""
    kwargs: dict[str, Any] = {"type_": _SCHEMA_TYPES[spec["type"]]}
    if spec.get("description"):
        kwargs["description"] = spec["description"]
    if spec.get("properties"):
        kwargs["properties"] = {
            name: to_schema(prop) for name, prop in spec["properties"].items()
        }
    if spec.get("required"):
        kwargs["required"] = list(spec["required"])
    if spec.get("items"):
        kwargs["items"] = to_schema(spec["items"])
    return genai.protos.Schema(**kwargs)


def to_function_declaration(declaration: dict) -> genai.protos.FunctionDeclaration:
    kwargs: dict[str, Any] = {
        "name": declaration["name"],
        "description": declaration["description"],
    }
    if declaration.get("parameters"):
        kwargs["parameters"] = to_schema(declaration["parameters"])
    return genai.protos.FunctionDeclaration(**kwargs)


def to_plain(value: Any) -> Any:
    """Turn protobuf map/list wrappers from function-call args into dicts and lists."""
    if isinstance(value, Mapping):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return [to_plain(v) for v in value]
    return value


def _parts(response: Any) -> list:
    candidates = getattr(response, "candidates", None)
    if not candidates:
        raise AgentError("Model returned no candidates")
    content = getattr(candidates[0], "content", None)
    return list(getattr(content, "parts", None) or [])


def function_calls(response: Any) -> list[tuple[str, dict]]:
    """(name, args) of every function call in the reply, in order."""
    calls = []
    for part in _parts(response):
        call = getattr(part, "function_call", None)
        if call is not None and getattr(call, "name", ""):
            calls.append((call.name, to_plain(getattr(call, "args", None) or {})))
    return calls


def reply_text(response: Any) -> str:
    texts = [getattr(part, "text", "") or "" for part in _parts(response)]
    return "".join(texts).strip()


def _function_response(name: str, result: dict) -> genai.protos.Part:
    return genai.protos.Part(
        function_response=genai.protos.FunctionResponse(name=name, response=result)
    )


class ExpenseAgent:
    """
    Conversational agent over the tool adapter.

    Pass `model` to use a preconfigured (or fake) model; it must offer
    start_chat() returning an object with send_message_async().
    """

    def __init__(
        self,
        adapter: ToolAdapter,
        model: Optional[Any] = None,
        settings: Optional[GeminiSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
        catalog_description: str = "",
        max_tool_rounds: Optional[int] = None,
    ):
        self._adapter = adapter
        self._settings = settings
        self._audit_logger = audit_logger
        self._catalog_description = catalog_description
        self._max_tool_rounds = max_tool_rounds
        self._model = model
        self._chat = None
        self._logger = structlog.get_logger(__name__)

    @property
    def max_tool_rounds(self) -> int:
        if self._max_tool_rounds is None:
            self._max_tool_rounds = self._gemini_settings().max_tool_rounds
        return self._max_tool_rounds

    def _gemini_settings(self) -> GeminiSettings:
        if self._settings is None:
            self._settings = get_settings().gemini
        return self._settings

    def _create_model(self) -> Any:
        settings = self._gemini_settings()
        genai.configure(api_key=settings.api_key)
        tool = genai.protos.Tool(function_declarations=[
            to_function_declaration(d) for d in self._adapter.declarations()
        ])
        return genai.GenerativeModel(
            model_name=settings.model_name,
            system_instruction=build_system_instruction(self._catalog_description),
            tools=[tool],
            generation_config={
                "temperature": settings.temperature,
                "max_output_tokens": settings.max_tokens,
            },
        )

    def _get_chat(self) -> Any:
        if self._chat is None:
            if self._model is None:
                self._model = self._create_model()
            self._chat = self._model.start_chat()
        return self._chat

    def reset(self) -> None:
        """Forget the conversation; the next message starts a new chat."""
        self._chat = None

    async def send(self, text: str) -> AgentReply:
        """
        Answer one user message, running every tool call it triggers.

        Raises:
            AgentError: If the model reply has no candidates
            Exception: Transport errors from the model client, unchanged
        """
        correlation_id = create_correlation_id()
        if self._audit_logger:
            await self._audit_logger.log_message_received(text, correlation_id)

        chat = self._get_chat()
        try:
            response = await chat.send_message_async(text)
            reply = await self._run_tool_loop(chat, response, correlation_id)
        except Exception as e:
            self._logger.error("agent_turn_failed", error=str(e), error_type=type(e).__name__)
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    "gemini", str(e), correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_response_generated(
                [call.name for call in reply.tool_calls], correlation_id,
            )
        return reply

    async def _run_tool_loop(self, chat: Any, response: Any, correlation_id) -> AgentReply:
        invocations: list[ToolInvocation] = []
        rounds = 0

        calls = function_calls(response)
        while calls:
            if rounds >= self.max_tool_rounds:
                self._logger.warning(
                    "tool_round_limit_reached",
                    rounds=rounds,
                    pending=[name for name, _ in calls],
                )
                return await self._stop_tool_loop(chat, calls, invocations)
            rounds += 1

            parts = []
            for name, args in calls:
                result = await self._adapter.invoke(name, args, correlation_id)
                invocations.append(ToolInvocation(name=name, arguments=args, result=result))
                parts.append(_function_response(name, result))

            response = await chat.send_message_async(parts)
            calls = function_calls(response)

        return AgentReply(text=reply_text(response), tool_calls=invocations)

    async def _stop_tool_loop(
        self,
        chat: Any,
        pending: list[tuple[str, dict]],
        invocations: list[ToolInvocation],
    ) -> AgentReply:
        """
        Answer the calls that will not run so the chat history stays valid.

        A model turn with function calls must be followed by their
        responses before the next user message is accepted.
        """
        response = await chat.send_message_async([
            _function_response(name, {"error": TOOL_ROUND_LIMIT_ERROR})
            for name, _ in pending
        ])
        if function_calls(response):
            # Still asking for tools; start the next message on a fresh chat
            self.reset()
        return AgentReply(text=reply_text(response), tool_calls=invocations, truncated=True)
