"""
Configuration Management for the GenUI Expense Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Every timing constant the ledger, the surface registry and the audio
layer depend on can be tuned from the environment without code changes.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-2.0-flash",
        description="Gemini model driving the conversation"
    )
    live_model_name: str = Field(
        default="gemini-2.0-flash-live-001",
        description="Gemini Live model used for voice conversations"
    )
    prompt_model_name: str = Field(
        default="gemini-2.0-flash",
        description="Model used to expand background prompts"
    )
    image_model_name: str = Field(
        default="gemini-2.0-flash-preview-image-generation",
        description="Model used to generate background images"
    )
    max_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.4,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )
    max_tool_rounds: int = Field(
        default=8,
        ge=1,
        le=32,
        description="Maximum function-call round trips per user message"
    )


class LedgerSettings(BaseSettings):
    """Expense ledger behaviour."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        extra="ignore"
    )

    dedupe_window_seconds: float = Field(
        default=30.0,
        ge=0.0,
        description="Identical expenses added within this window are treated as one"
    )


class SurfaceSettings(BaseSettings):
    """Surface registry behaviour."""

    model_config = SettingsConfigDict(
        env_prefix="SURFACE_",
        extra="ignore"
    )

    dialog_debounce_ms: int = Field(
        default=500,
        ge=0,
        description="Minimum interval between two accepted dialog updates"
    )


class AudioSettings(BaseSettings):
    """
    Voice capture format and live voice session.

    Playback is not configurable: the voice service always answers with
    24 kHz mono 16-bit PCM.
    """

    model_config = SettingsConfigDict(
        env_prefix="AUDIO_",
        extra="ignore"
    )

    capture_sample_rate: int = Field(
        default=16000,
        description="Sample rate of raw mono PCM streamed to the voice service"
    )
    chunk_ms: int = Field(
        default=100,
        ge=10,
        le=1000,
        description="Length of each audio chunk streamed to the voice service"
    )
    turn_timeout_seconds: float = Field(
        default=60.0,
        gt=0.0,
        description="Longest a single spoken turn may take"
    )
    voice_name: str = Field(
        default="Aoede",
        description="Prebuilt voice used by the voice service"
    )

    @field_validator('capture_sample_rate')
    @classmethod
    def validate_sample_rate(cls, v: int) -> int:
        """Only rates the voice service understands."""
        if v not in (8000, 16000, 24000, 44100, 48000):
            raise ValueError(f"Unsupported sample rate: {v}")
        return v

    @field_validator('voice_name')
    @classmethod
    def validate_voice_name(cls, v: str) -> str:
        """Only prebuilt voices are accepted."""
        voices = {"Aoede", "Charon", "Fenrir", "Kore", "Puck"}
        if v not in voices:
            raise ValueError(f"Unknown voice: {v}. Available: {sorted(voices)}")
        return v


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_name: str = Field(
        default="Expense Tracker",
        description="Title shown in the front end"
    )
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    audit_history_limit: int = Field(
        default=1000,
        ge=10,
        description="Audit events kept by the in-memory audit store"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def surfaces(self) -> SurfaceSettings:
        return SurfaceSettings()

    @property
    def audio(self) -> AudioSettings:
        return AudioSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for the failures.
    """
    results = {}

    settings = get_settings()

    for name in ("gemini", "ledger", "surfaces", "audio", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
