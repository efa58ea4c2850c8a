"""Application-wide configuration loading and validation."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Literal["local", "dev", "prod"] = Field(default="local")
    log_level: str = Field(default="INFO")

    # LLM connectivity
    llm_provider: Literal["openai", "self_hosted_vllm", "aleph_alpha"] = Field(default="openai")
    llm_endpoint: str | None = Field(
        default=None,
        description="Base URL for a self-hosted server or an OpenAI-compatible proxy.",
    )
    llm_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("llm_api_key", "openai_api_key"),
    )
    llm_model: str = Field(default="gpt-4o-mini")
    llm_temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    llm_max_tokens: int = Field(default=256, ge=1)
    llm_timeout_seconds: float = Field(default=30.0, gt=0)

    # Conversation policy
    system_prompt_file: str = Field(default="system_prompt.txt")
    history_window: int = Field(
        default=5,
        ge=1,
        description="Most recent turns (including the new utterance) forwarded to the LLM.",
    )
    max_turns: int = Field(
        default=6,
        ge=2,
        description="Stored turns after which the call is closed politely.",
    )
    termination_grace_seconds: float = Field(
        default=60.0,
        ge=0.0,
        description="How long a hung-up session is kept to absorb late duplicate events.",
    )
    session_idle_seconds: float = Field(default=1800.0, gt=0)
    sweep_interval_seconds: float = Field(default=1800.0, gt=0)
    max_sessions: int = Field(
        default=1000,
        ge=1,
        description="Ceiling after which the sweep clears every unclaimed session.",
    )

    # Spoken phrases
    greeting_text: str = Field(default="बोलिए...")
    reprompt_text: str = Field(default="क्षमा करें, मैं समझ नहीं पाया। कृपया दोबारा बोलें।")
    busy_text: str = Field(default="कृपया एक क्षण रुकिए, मैं अभी जवाब तैयार कर रहा हूँ।")
    apology_text: str = Field(default="क्षमा करें, त्रुटि हुई।")
    closing_text: str = Field(default="बात करने के लिए धन्यवाद। नमस्ते!")

    # Call-control markup
    say_language: str = Field(default="hi-IN")
    say_voice: str = Field(default="Manvi")
    record_max_length: int = Field(default=30, ge=1)
    record_finish_on_key: str = Field(default="#")
    public_base_url: str | None = Field(
        default=None,
        description="Public base URL for provider callbacks (e.g. https://<ngrok>.ngrok-free.app).",
    )

    # Streaming
    stream_audio_buffer_bytes: int = Field(
        default=1_048_576,
        ge=1,
        description="Upper bound of buffered inbound audio per stream; oldest bytes are dropped.",
    )

    # Outbound call origination
    origination_api_key: str | None = Field(
        default=None,
        description="Optional API key required to trigger outbound calls.",
    )

    # Exotel
    exotel_account_sid: str | None = Field(default=None)
    exotel_api_key: str | None = Field(default=None)
    exotel_api_token: str | None = Field(default=None)
    exotel_from_number: str | None = Field(
        default=None,
        description="Exotel virtual number (ExoPhone) that triggers the voicebot flow.",
    )
    exotel_subdomain: str = Field(default="api.exotel.com")

    # Twilio (Voice)
    twilio_account_sid: str | None = Field(default=None)
    twilio_auth_token: str | None = Field(default=None)
    twilio_from_number: str | None = Field(default=None, description="E.164, e.g. +9180...")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()
