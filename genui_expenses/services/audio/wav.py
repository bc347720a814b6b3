"""
WAV framing for raw PCM.

The voice service streams headerless little-endian PCM. Playback needs a
WAV container, so chunks are collected and wrapped in the canonical
44-byte RIFF header. Recorded clips go the other way: the PCM is
pulled back out of the WAV and cut into chunks for streaming.
"""

import struct
from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from genui_expenses.notifier import ChangeNotifier


WAV_HEADER_SIZE = 44
PCM_FORMAT_TAG = 1

# RIFF, size, WAVE, "fmt ", 16, tag, channels, rate, byte rate, align, bits, data, size
_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


class AudioFormat(BaseModel):
    """Sample layout of a PCM stream."""
    model_config = ConfigDict(frozen=True)

    sample_rate: int = Field(..., gt=0)
    channels: int = Field(default=1, ge=1)
    bits_per_sample: int = Field(default=16, gt=0)

    @property
    def block_align(self) -> int:
        return self.channels * self.bits_per_sample // 8

    @property
    def byte_rate(self) -> int:
        return self.sample_rate * self.block_align


CAPTURE_FORMAT = AudioFormat(sample_rate=16000, channels=1, bits_per_sample=16)
PLAYBACK_FORMAT = AudioFormat(sample_rate=24000, channels=1, bits_per_sample=16)


def pcm_to_wav(
    pcm: bytes,
    sample_rate: int,
    channels: int = 1,
    bits_per_sample: int = 16,
) -> bytes:
    """Prefix raw PCM with a 44-byte WAV header."""
    block_align = channels * bits_per_sample // 8
    byte_rate = sample_rate * block_align
    data_size = len(pcm)

    header = _HEADER.pack(
        b"RIFF",
        data_size + 36,
        b"WAVE",
        b"fmt ",
        16,
        PCM_FORMAT_TAG,
        channels,
        sample_rate,
        byte_rate,
        block_align,
        bits_per_sample,
        b"data",
        data_size,
    )
    return header + bytes(pcm)


def encode_wav(pcm: bytes, audio_format: AudioFormat) -> bytes:
    return pcm_to_wav(
        pcm,
        sample_rate=audio_format.sample_rate,
        channels=audio_format.channels,
        bits_per_sample=audio_format.bits_per_sample,
    )


class PlaybackQueue(ChangeNotifier):
    """
    Buffers PCM chunks from the voice service until they are played.

    drain() concatenates everything received so far into one WAV blob and
    empties the queue; clear() drops pending audio (barge-in).
    """

    def __init__(self):
        super().__init__()
        # The voice service only answers at this rate
        self._format = PLAYBACK_FORMAT
        self._chunks: list[bytes] = []
        self._logger = structlog.get_logger(__name__)

    @property
    def audio_format(self) -> AudioFormat:
        return self._format

    @property
    def pending_bytes(self) -> int:
        return sum(len(chunk) for chunk in self._chunks)

    @property
    def is_empty(self) -> bool:
        return not self._chunks

    def add(self, chunk: bytes) -> None:
        if not chunk:
            return
        self._chunks.append(bytes(chunk))
        self.notify_listeners()

    def drain(self) -> Optional[bytes]:
        """WAV of all pending audio, or None if nothing is queued."""
        if not self._chunks:
            return None
        pcm = b"".join(self._chunks)
        self._chunks.clear()
        self._logger.debug("playback_drained", pcm_bytes=len(pcm))
        self.notify_listeners()
        return encode_wav(pcm, self._format)

    def clear(self) -> None:
        if not self._chunks:
            return
        self._logger.info("playback_cleared", dropped_bytes=self.pending_bytes)
        self._chunks.clear()
        self.notify_listeners()


class WavFormatError(ValueError):
    """Bytes are not an uncompressed PCM WAV file."""
    pass


_RIFF = struct.Struct("<4sI4s")
_CHUNK = struct.Struct("<4sI")
# tag, channels, rate, byte rate, align, bits
_FMT = struct.Struct("<HHIIHH")


def wav_to_pcm(wav: bytes) -> tuple[bytes, AudioFormat]:
    """
    Split a WAV file into its raw samples and their format.

    Walks the RIFF chunks, so files with extra chunks (LIST, fact) before
    the data are accepted.

    Raises:
        WavFormatError: If the bytes are not PCM WAV
    """
    if len(wav) < _RIFF.size:
        raise WavFormatError("Too short for a WAV header")
    riff, _, wave = _RIFF.unpack_from(wav, 0)
    if riff != b"RIFF" or wave != b"WAVE":
        raise WavFormatError("Missing RIFF/WAVE signature")

    audio_format: Optional[AudioFormat] = None
    offset = _RIFF.size
    while offset + _CHUNK.size <= len(wav):
        chunk_id, size = _CHUNK.unpack_from(wav, offset)
        offset += _CHUNK.size
        if chunk_id == b"fmt ":
            if size < _FMT.size or offset + _FMT.size > len(wav):
                raise WavFormatError("Truncated fmt chunk")
            tag, channels, rate, _, _, bits = _FMT.unpack_from(wav, offset)
            if tag != PCM_FORMAT_TAG:
                raise WavFormatError(f"Unsupported WAV encoding: {tag}")
            try:
                audio_format = AudioFormat(
                    sample_rate=rate, channels=channels, bits_per_sample=bits,
                )
            except ValidationError as e:
                raise WavFormatError(f"Invalid fmt chunk: {e.error_count()} errors") from e
        elif chunk_id == b"data":
            if audio_format is None:
                raise WavFormatError("data chunk before fmt chunk")
            # Streamed recordings may leave the size unset; take what is there
            return bytes(wav[offset:offset + size]), audio_format
        # Chunks are padded to an even length
        offset += size + (size & 1)

    raise WavFormatError("No data chunk")


def first_channel(pcm: bytes, audio_format: AudioFormat) -> tuple[bytes, AudioFormat]:
    """Keep only the first channel of interleaved PCM."""
    if audio_format.channels == 1:
        return pcm, audio_format
    width = audio_format.bits_per_sample // 8
    step = audio_format.block_align
    mono = b"".join(
        pcm[i:i + width] for i in range(0, len(pcm) - step + 1, step)
    )
    return mono, audio_format.model_copy(update={"channels": 1})


def split_pcm(pcm: bytes, audio_format: AudioFormat, chunk_ms: int) -> list[bytes]:
    """Cut PCM into chunks of about chunk_ms on frame boundaries."""
    frames = max(1, audio_format.sample_rate * chunk_ms // 1000)
    size = frames * audio_format.block_align
    return [pcm[i:i + size] for i in range(0, len(pcm), size)]
