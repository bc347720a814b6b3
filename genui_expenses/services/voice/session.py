"""
Voice Session

Spoken turns against the Gemini Live API. A turn streams captured PCM to
the live model, answers its tool calls through the same tool adapter the
text agent uses, and queues the spoken reply for playback.

FLOW:
1. Open a live session configured with the voice, the system instruction
   and the tool declarations
2. Stream the captured audio in small chunks, then mark the stream ended
3. Relay every tool call to the adapter and send the results back
4. Push reply audio into the playback queue; drop it when interrupted
5. On turn complete, drain the queue into one WAV for the front end
"""

import asyncio
from typing import Any, Iterable, Optional
from uuid import UUID

import structlog
from google import genai
from google.genai import types as genai_types

from genui_expenses.audit import AuditLogger, create_correlation_id
from genui_expenses.config import GeminiSettings, get_settings
from genui_expenses.models.chat import ToolInvocation, VoiceTurn
from genui_expenses.notifier import ChangeNotifier
from genui_expenses.services.audio import (
    CAPTURE_FORMAT,
    AudioFormat,
    PlaybackQueue,
    first_channel,
    split_pcm,
    wav_to_pcm,
)
from genui_expenses.tools import ToolAdapter


DEFAULT_VOICE = "Aoede"
DEFAULT_CHUNK_MS = 100
DEFAULT_TURN_TIMEOUT_SECONDS = 60.0


class VoiceSessionError(Exception):
    """A spoken turn could not be completed."""
    pass


def to_live_schema(spec: dict) -> genai_types.Schema:
    """Convert a JSON-schema fragment into a Live API Schema."""
    kwargs: dict[str, Any] = {"type": genai_types.Type(spec["type"].upper())}
    if spec.get("description"):
        kwargs["description"] = spec["description"]
    if spec.get("properties"):
        kwargs["properties"] = {
            name: to_live_schema(prop) for name, prop in spec["properties"].items()
        }
    if spec.get("required"):
        kwargs["required"] = list(spec["required"])
    if spec.get("items"):
        kwargs["items"] = to_live_schema(spec["items"])
    return genai_types.Schema(**kwargs)


def live_tools(declarations: list[dict]) -> list[genai_types.Tool]:
    functions = []
    for declaration in declarations:
        kwargs: dict[str, Any] = {
            "name": declaration["name"],
            "description": declaration["description"],
        }
        if declaration.get("parameters"):
            kwargs["parameters"] = to_live_schema(declaration["parameters"])
        functions.append(genai_types.FunctionDeclaration(**kwargs))
    return [genai_types.Tool(function_declarations=functions)]


def live_config(
    declarations: list[dict],
    voice_name: str = DEFAULT_VOICE,
    system_instruction: str = "",
) -> genai_types.LiveConnectConfig:
    """Audio replies in the chosen voice, with transcripts both ways."""
    return genai_types.LiveConnectConfig(
        response_modalities=[genai_types.Modality.AUDIO],
        system_instruction=system_instruction or None,
        tools=live_tools(declarations),
        speech_config=genai_types.SpeechConfig(
            voice_config=genai_types.VoiceConfig(
                prebuilt_voice_config=genai_types.PrebuiltVoiceConfig(voice_name=voice_name),
            ),
        ),
        input_audio_transcription=genai_types.AudioTranscriptionConfig(),
        output_audio_transcription=genai_types.AudioTranscriptionConfig(),
    )


class VoiceSession(ChangeNotifier):
    """
    Spoken conversation with the live model.

    Pass `client` to use a preconfigured (or fake) client; it must offer
    aio.live.connect(model=..., config=...) as an async context manager.
    One turn runs at a time; listeners are notified when a turn starts
    and when it ends.
    """

    def __init__(
        self,
        adapter: ToolAdapter,
        playback: PlaybackQueue,
        client: Optional[Any] = None,
        settings: Optional[GeminiSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
        voice_name: str = DEFAULT_VOICE,
        capture_format: AudioFormat = CAPTURE_FORMAT,
        system_instruction: str = "",
        chunk_ms: int = DEFAULT_CHUNK_MS,
        turn_timeout_seconds: float = DEFAULT_TURN_TIMEOUT_SECONDS,
    ):
        super().__init__()
        self._adapter = adapter
        self._playback = playback
        self._client = client
        self._settings = settings
        self._audit_logger = audit_logger
        self._voice_name = voice_name
        self._capture_format = capture_format
        self._system_instruction = system_instruction
        self._chunk_ms = chunk_ms
        self._turn_timeout = turn_timeout_seconds
        self._is_active = False
        self._last_turn: Optional[VoiceTurn] = None
        self._logger = structlog.get_logger(__name__)

    @property
    def voice_name(self) -> str:
        return self._voice_name

    @property
    def capture_format(self) -> AudioFormat:
        return self._capture_format

    @property
    def is_active(self) -> bool:
        return self._is_active

    @property
    def last_turn(self) -> Optional[VoiceTurn]:
        return self._last_turn

    def _gemini_settings(self) -> GeminiSettings:
        if self._settings is None:
            self._settings = get_settings().gemini
        return self._settings

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = genai.Client(api_key=self._gemini_settings().api_key)
        return self._client

    def _set_active(self, active: bool) -> None:
        self._is_active = active
        self.notify_listeners()

    async def converse_wav(self, wav: bytes) -> VoiceTurn:
        """
        Run one spoken turn from a recorded WAV clip.

        Multi-channel clips are reduced to their first channel.

        Raises:
            WavFormatError: If the clip is not PCM WAV
        """
        pcm, audio_format = first_channel(*wav_to_pcm(wav))
        return await self.converse(split_pcm(pcm, audio_format, self._chunk_ms), audio_format)

    async def converse(
        self,
        pcm_chunks: Iterable[bytes],
        audio_format: Optional[AudioFormat] = None,
    ) -> VoiceTurn:
        """
        Run one spoken turn.

        Args:
            pcm_chunks: Captured little-endian PCM, in order
            audio_format: Layout of the chunks; defaults to the capture format

        Raises:
            VoiceSessionError: If the audio is not mono 16-bit, or the
                    session closed before the turn completed
            asyncio.TimeoutError: If the turn outlasted the timeout
            Exception: Transport errors from the client, unchanged
        """
        audio_format = audio_format or self._capture_format
        if audio_format.channels != 1 or audio_format.bits_per_sample != 16:
            raise VoiceSessionError(
                f"Voice input must be mono 16-bit PCM, got {audio_format.channels} "
                f"channels at {audio_format.bits_per_sample} bits"
            )

        correlation_id = create_correlation_id()
        self._set_active(True)
        try:
            turn = await asyncio.wait_for(
                self._run_turn(list(pcm_chunks), audio_format, correlation_id),
                timeout=self._turn_timeout,
            )
        except Exception as e:
            self._playback.clear()
            self._logger.error("voice_turn_failed", error=str(e), error_type=type(e).__name__)
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    "gemini_live", str(e) or type(e).__name__, correlation_id,
                )
            raise
        finally:
            self._set_active(False)

        if self._audit_logger:
            await self._audit_logger.log_message_received(turn.input_transcript, correlation_id)
            await self._audit_logger.log_response_generated(
                [call.name for call in turn.tool_calls], correlation_id,
            )
        self._logger.info(
            "voice_turn_completed",
            tool_calls=len(turn.tool_calls),
            interrupted=turn.interrupted,
            has_audio=turn.audio is not None,
        )
        self._last_turn = turn
        self.notify_listeners()
        return turn

    async def _run_turn(
        self,
        chunks: list[bytes],
        audio_format: AudioFormat,
        correlation_id: UUID,
    ) -> VoiceTurn:
        heard: list[str] = []
        spoken: list[str] = []
        invocations: list[ToolInvocation] = []
        interrupted = False
        completed = False

        config = live_config(
            self._adapter.declarations(),
            voice_name=self._voice_name,
            system_instruction=self._system_instruction,
        )
        mime_type = f"audio/pcm;rate={audio_format.sample_rate}"

        connect = self._get_client().aio.live.connect(
            model=self._gemini_settings().live_model_name,
            config=config,
        )
        async with connect as session:
            for chunk in chunks:
                if chunk:
                    await session.send_realtime_input(
                        audio=genai_types.Blob(data=chunk, mime_type=mime_type),
                    )
            await session.send_realtime_input(audio_stream_end=True)

            async for message in session.receive():
                tool_call = getattr(message, "tool_call", None)
                if tool_call is not None:
                    await self._answer_tool_call(session, tool_call, invocations, correlation_id)

                content = getattr(message, "server_content", None)
                if content is None:
                    continue
                if getattr(content, "interrupted", None):
                    interrupted = True
                    self._playback.clear()
                heard.extend(_transcript(content, "input_transcription"))
                spoken.extend(_transcript(content, "output_transcription"))
                for data in _audio_parts(content):
                    self._playback.add(data)
                if getattr(content, "turn_complete", None):
                    completed = True
                    break

        if not completed:
            raise VoiceSessionError("Live session closed before the turn completed")

        return VoiceTurn(
            input_transcript="".join(heard).strip(),
            output_transcript="".join(spoken).strip(),
            tool_calls=invocations,
            audio=self._playback.drain(),
            interrupted=interrupted,
        )

    async def _answer_tool_call(
        self,
        session: Any,
        tool_call: Any,
        invocations: list[ToolInvocation],
        correlation_id: UUID,
    ) -> None:
        responses = []
        for call in getattr(tool_call, "function_calls", None) or []:
            args = dict(call.args or {})
            result = await self._adapter.invoke(call.name, args, correlation_id)
            invocations.append(ToolInvocation(name=call.name, arguments=args, result=result))
            responses.append(genai_types.FunctionResponse(
                id=call.id, name=call.name, response=result,
            ))
        if responses:
            await session.send_tool_response(function_responses=responses)


def _transcript(content: Any, field: str) -> list[str]:
    transcription = getattr(content, field, None)
    text = getattr(transcription, "text", None)
    return [text] if text else []


def _audio_parts(content: Any) -> list[bytes]:
    model_turn = getattr(content, "model_turn", None)
    parts = getattr(model_turn, "parts", None) or []
    return [
        part.inline_data.data
        for part in parts
        if getattr(part, "inline_data", None) is not None and part.inline_data.data
    ]
