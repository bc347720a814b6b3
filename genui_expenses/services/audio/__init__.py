"""Audio framing for voice capture and playback."""

from genui_expenses.services.audio.wav import (
    CAPTURE_FORMAT,
    PLAYBACK_FORMAT,
    WAV_HEADER_SIZE,
    AudioFormat,
    PlaybackQueue,
    WavFormatError,
    encode_wav,
    first_channel,
    pcm_to_wav,
    split_pcm,
    wav_to_pcm,
)

__all__ = [
    "AudioFormat",
    "CAPTURE_FORMAT",
    "PLAYBACK_FORMAT",
    "PlaybackQueue",
    "WAV_HEADER_SIZE",
    "WavFormatError",
    "encode_wav",
    "first_channel",
    "pcm_to_wav",
    "split_pcm",
    "wav_to_pcm",
]
