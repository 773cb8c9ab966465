"""
Deployment settings for the soul server.

Everything that differs between a laptop and production (vendor keys,
model names, the public URL clips are served from) is read here, once,
from the environment. Behavioral constants live in constants.py and are
not configurable.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from constants import AUDIO_CLIP_CAPACITY_DEFAULT, DEFAULT_SOUL_NAME


@dataclass(frozen=True)
class AppConfig:
    """
    Frozen settings snapshot.

    Built by create_app() and shared read-only by every session.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str
    log_level: str

    # ------------------------------------------------------------------
    # Soul
    # ------------------------------------------------------------------

    soul_name: str

    # ------------------------------------------------------------------
    # LLM configuration
    # ------------------------------------------------------------------

    llm_provider: str
    llm_model: str
    vision_model: str
    openai_api_key: str | None

    groq_api_key: str | None

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    enable_json_logs: bool

    # ------------------------------------------------------------------
    # TTS
    # ------------------------------------------------------------------
    tts_provider: str
    speechmatics_api_key: str | None
    speechmatics_voice: str | None
    elevenlabs_api_key: str | None
    elevenlabs_voice_id: str | None
    elevenlabs_model_id: str | None

    # ------------------------------------------------------------------
    # Audio delivery
    # ------------------------------------------------------------------

    # Base URL clients use to fetch synthesized clips (GET /audio/{id})
    public_http_base: str
    audio_clip_capacity: int

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Read every setting from os.environ, applying defaults.

        Raises:
            ValueError if AUDIO_CLIP_CAPACITY is not a positive integer.
        """
        capacity = int(os.environ.get("AUDIO_CLIP_CAPACITY", str(AUDIO_CLIP_CAPACITY_DEFAULT)))
        if capacity <= 0:
            raise ValueError("AUDIO_CLIP_CAPACITY must be positive")

        return AppConfig(
            env=os.environ.get("ENV", "dev"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),

            soul_name=os.environ.get("SOUL_NAME", DEFAULT_SOUL_NAME),

            llm_provider=os.environ.get("LLM_PROVIDER", "openai"),
            llm_model=os.environ.get("LLM_MODEL", "gpt-4o-mini"),
            vision_model=os.environ.get("VISION_MODEL", "gpt-4o-mini"),
            openai_api_key=os.environ.get("OPENAI_API_KEY"),
            groq_api_key=os.environ.get("GROQ_API_KEY"),

            enable_json_logs=os.environ.get("ENABLE_JSON_LOGS", "1") == "1",
            tts_provider=os.environ.get("TTS_PROVIDER", "elevenlabs"),
            speechmatics_api_key=os.environ.get("SPEECHMATICS_API_KEY"),
            speechmatics_voice=os.environ.get("SPEECHMATICS_VOICE", "theo"),
            elevenlabs_api_key=os.environ.get("ELEVENLABS_API_KEY"),
            elevenlabs_voice_id=os.environ.get("ELEVENLABS_VOICE_ID", "21m00Tcm4TlvDq8ikWAM"),
            elevenlabs_model_id=os.environ.get("ELEVENLABS_MODEL_ID", "eleven_turbo_v2"),

            public_http_base=os.environ.get("PUBLIC_HTTP_BASE", "http://localhost:8000").rstrip("/"),
            audio_clip_capacity=capacity,
        )
