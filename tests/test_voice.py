"""Tests for the live voice session, using a fake Gemini Live client."""

import asyncio
import contextlib
from types import SimpleNamespace

import pytest
from google.genai import types as genai_types

from genui_expenses.audit import AuditLogger
from genui_expenses.config import GeminiSettings
from genui_expenses.models import AuditEventType
from genui_expenses.services.audio import (
    CAPTURE_FORMAT,
    AudioFormat,
    PlaybackQueue,
    WavFormatError,
    pcm_to_wav,
)
from genui_expenses.services.storage import InMemoryAuditStorage
from genui_expenses.services.voice import (
    VoiceSession,
    VoiceSessionError,
    live_config,
    to_live_schema,
)
from genui_expenses.tools import ToolAdapter


def tool_call(name, /, call_id="call-1", **args):
    function_call = SimpleNamespace(id=call_id, name=name, args=args)
    return SimpleNamespace(
        tool_call=SimpleNamespace(function_calls=[function_call]),
        server_content=None,
    )


def content(**fields):
    return SimpleNamespace(tool_call=None, server_content=SimpleNamespace(**fields))


def audio(data):
    part = SimpleNamespace(inline_data=SimpleNamespace(data=data))
    return content(model_turn=SimpleNamespace(parts=[part]))


def heard(text):
    return content(input_transcription=SimpleNamespace(text=text))


def said(text):
    return content(output_transcription=SimpleNamespace(text=text))


def done():
    return content(turn_complete=True)


class FakeLiveSession:
    """Records what was streamed and replays scripted server messages."""

    def __init__(self, messages):
        self.messages = list(messages)
        self.audio = []
        self.stream_ended = False
        self.tool_responses = []

    async def send_realtime_input(self, audio=None, audio_stream_end=None):
        if audio is not None:
            self.audio.append(audio)
        if audio_stream_end:
            self.stream_ended = True

    async def send_tool_response(self, function_responses):
        self.tool_responses.append(list(function_responses))

    async def receive(self):
        while self.messages:
            yield self.messages.pop(0)


class SilentLiveSession(FakeLiveSession):
    """Never answers."""

    async def receive(self):
        await asyncio.sleep(10)
        yield done()


class FakeLive:

    def __init__(self, session, error=None):
        self.session = session
        self.error = error
        self.connects = []

    @contextlib.asynccontextmanager
    async def connect(self, model, config):
        self.connects.append((model, config))
        if self.error is not None:
            raise self.error
        yield self.session


class FakeClient:

    def __init__(self, *messages, error=None, session=None):
        self.live = FakeLive(session or FakeLiveSession(messages), error=error)
        self.aio = SimpleNamespace(live=self.live)

    @property
    def session(self):
        return self.live.session


@pytest.fixture
def storage():
    return InMemoryAuditStorage()


@pytest.fixture
def adapter(ledger, host, storage):
    return ToolAdapter(ledger=ledger, host=host, audit_logger=AuditLogger(storage))


@pytest.fixture
def playback():
    return PlaybackQueue()


def make_voice(adapter, playback, client, storage=None, **kwargs):
    return VoiceSession(
        adapter,
        playback,
        client=client,
        settings=GeminiSettings(api_key="test-key"),
        audit_logger=AuditLogger(storage) if storage is not None else None,
        **kwargs,
    )


class TestLiveConfig:

    def test_voice_tools_and_transcripts(self, adapter):
        config = live_config(adapter.declarations(), voice_name="Kore", system_instruction="Be brief.")

        assert config.response_modalities == [genai_types.Modality.AUDIO]
        assert config.speech_config.voice_config.prebuilt_voice_config.voice_name == "Kore"
        names = [f.name for f in config.tools[0].function_declarations]
        assert names == [d["name"] for d in adapter.declarations()]
        assert config.input_audio_transcription is not None
        assert config.output_audio_transcription is not None

    def test_schema_conversion(self):
        schema = to_live_schema({
            "type": "object",
            "properties": {
                "amount": {"type": "number", "description": "How much"},
                "tags": {"type": "array", "items": {"type": "string"}},
            },
            "required": ["amount"],
        })

        assert schema.type == genai_types.Type.OBJECT
        assert schema.properties["amount"].type == genai_types.Type.NUMBER
        assert schema.properties["amount"].description == "How much"
        assert schema.properties["tags"].items.type == genai_types.Type.STRING
        assert schema.required == ["amount"]


class TestConverse:

    def test_streams_audio_and_returns_reply(self, adapter, playback):
        client = FakeClient(
            heard("Coffee "),
            heard("five dollars"),
            audio(b"\x01\x00"),
            audio(b"\x02\x00"),
            said("Got it."),
            done(),
        )
        voice = make_voice(adapter, playback, client)

        turn = asyncio.run(voice.converse([b"\x10\x00" * 4, b"\x20\x00" * 4]))

        session = client.session
        assert [blob.data for blob in session.audio] == [b"\x10\x00" * 4, b"\x20\x00" * 4]
        assert session.audio[0].mime_type == "audio/pcm;rate=16000"
        assert session.stream_ended
        assert turn.input_transcript == "Coffee five dollars"
        assert turn.output_transcript == "Got it."
        assert turn.audio == pcm_to_wav(b"\x01\x00\x02\x00", 24000)
        assert not turn.interrupted
        assert playback.is_empty

    def test_connects_with_configured_model_and_voice(self, adapter, playback):
        client = FakeClient(done())
        voice = make_voice(adapter, playback, client, voice_name="Puck")

        asyncio.run(voice.converse([b"\x00\x00"]))

        model, config = client.live.connects[0]
        assert model == "gemini-2.0-flash-live-001"
        assert config.speech_config.voice_config.prebuilt_voice_config.voice_name == "Puck"
        assert voice.voice_name == "Puck"

    def test_tool_calls_go_through_adapter(self, adapter, playback, ledger):
        client = FakeClient(
            tool_call("addCategory", call_id="c-7", name="Food & Drink", color="green"),
            said("Created it."),
            done(),
        )
        voice = make_voice(adapter, playback, client)

        turn = asyncio.run(voice.converse([b"\x00\x00"]))

        assert [c.name for c in ledger.categories] == ["Food & Drink"]
        [response] = client.session.tool_responses[0]
        assert response.id == "c-7"
        assert response.name == "addCategory"
        assert response.response["success"] is True
        assert [c.name for c in turn.tool_calls] == ["addCategory"]

    def test_tool_errors_are_returned_to_the_model(self, adapter, playback, ledger):
        client = FakeClient(tool_call("addExpense", title="Coffee"), done())
        voice = make_voice(adapter, playback, client)

        turn = asyncio.run(voice.converse([b"\x00\x00"]))

        [response] = client.session.tool_responses[0]
        assert "error" in response.response
        assert turn.tool_calls[0].failed
        assert ledger.expenses == ()

    def test_interruption_drops_queued_audio(self, adapter, playback):
        client = FakeClient(
            audio(b"\x01\x00"),
            content(interrupted=True),
            audio(b"\x02\x00"),
            done(),
        )
        voice = make_voice(adapter, playback, client)

        turn = asyncio.run(voice.converse([b"\x00\x00"]))

        assert turn.interrupted
        assert turn.audio == pcm_to_wav(b"\x02\x00", 24000)

    def test_no_audio_reply(self, adapter, playback):
        voice = make_voice(adapter, playback, FakeClient(said("Hmm."), done()))

        turn = asyncio.run(voice.converse([b"\x00\x00"]))

        assert turn.audio is None
        assert turn.output_transcript == "Hmm."

    def test_listeners_see_start_end_and_result(self, adapter, playback, recorder):
        voice = make_voice(adapter, playback, FakeClient(done()))
        voice.add_listener(recorder)

        turn = asyncio.run(voice.converse([b"\x00\x00"]))

        assert recorder.count == 3
        assert voice.last_turn is turn
        assert not voice.is_active

    def test_turn_is_audited_under_one_correlation_id(self, adapter, playback, storage):
        client = FakeClient(tool_call("getAllExpenses"), heard("what did I spend"), done())
        voice = make_voice(adapter, playback, client, storage=storage)

        asyncio.run(voice.converse([b"\x00\x00"]))

        events = asyncio.run(storage.get_recent_events())
        types = {e.event_type for e in events}
        assert {
            AuditEventType.TOOL_CALLED,
            AuditEventType.MESSAGE_RECEIVED,
            AuditEventType.RESPONSE_GENERATED,
        } <= types
        assert len({e.correlation_id for e in events}) == 1


class TestConverseFailures:

    def test_rejects_stereo_pcm(self, adapter, playback):
        client = FakeClient(done())
        voice = make_voice(adapter, playback, client)

        with pytest.raises(VoiceSessionError, match="mono 16-bit"):
            asyncio.run(voice.converse([b"\x00" * 4], AudioFormat(sample_rate=16000, channels=2)))

        assert client.live.connects == []

    def test_session_closed_before_turn_complete(self, adapter, playback, storage):
        client = FakeClient(heard("hello"), audio(b"\x01\x00"))
        voice = make_voice(adapter, playback, client, storage=storage)

        with pytest.raises(VoiceSessionError, match="closed before"):
            asyncio.run(voice.converse([b"\x00\x00"]))

        assert playback.is_empty
        assert not voice.is_active
        events = asyncio.run(storage.get_recent_events())
        assert events[0].event_type is AuditEventType.EXTERNAL_SERVICE_ERROR

    def test_transport_errors_propagate(self, adapter, playback):
        client = FakeClient(error=ConnectionError("offline"))
        voice = make_voice(adapter, playback, client)

        with pytest.raises(ConnectionError):
            asyncio.run(voice.converse([b"\x00\x00"]))

        assert voice.last_turn is None
        assert not voice.is_active

    def test_turn_timeout(self, adapter, playback):
        client = FakeClient(session=SilentLiveSession([]))
        voice = make_voice(adapter, playback, client, turn_timeout_seconds=0.01)

        with pytest.raises(asyncio.TimeoutError):
            asyncio.run(voice.converse([b"\x00\x00"]))


class TestConverseWav:

    def test_clip_is_streamed_in_chunks(self, adapter, playback):
        client = FakeClient(done())
        voice = make_voice(adapter, playback, client, chunk_ms=100)
        # 200 ms at 16 kHz mono 16-bit
        pcm = b"\x01\x00" * 3200

        asyncio.run(voice.converse_wav(pcm_to_wav(pcm, 16000)))

        sent = client.session.audio
        assert [len(blob.data) for blob in sent] == [3200, 3200]
        assert b"".join(blob.data for blob in sent) == pcm

    def test_stereo_clip_uses_first_channel(self, adapter, playback):
        client = FakeClient(done())
        voice = make_voice(adapter, playback, client)
        stereo = b"\x01\x00\xff\xff" * 4

        asyncio.run(voice.converse_wav(pcm_to_wav(stereo, 48000, channels=2)))

        sent = client.session.audio
        assert b"".join(blob.data for blob in sent) == b"\x01\x00" * 4
        assert sent[0].mime_type == "audio/pcm;rate=48000"

    def test_not_a_wav(self, adapter, playback):
        client = FakeClient(done())
        voice = make_voice(adapter, playback, client)

        with pytest.raises(WavFormatError):
            asyncio.run(voice.converse_wav(b"definitely not audio"))

        assert client.live.connects == []

    def test_default_capture_format(self, adapter, playback):
        voice = make_voice(adapter, playback, FakeClient(done()))
        assert voice.capture_format == CAPTURE_FORMAT
