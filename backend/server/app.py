"""
FastAPI app factory.

Responsibilities:
- Create and configure FastAPI app
- Set up middleware
- Initialize shared resources (LLM client, audio clip store)
- Build per-session adapters
- Register routes
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from openai import AsyncOpenAI

from adapters.llm.streaming import StreamingOracleAdapter
from adapters.llm.vision import OpenAIVisionAdapter
from adapters.tts.base import TTSAdapter
from adapters.tts.elevenlabs import ElevenLabsTTSAdapter
from adapters.tts.speechmatics import SpeechmaticsTTSAdapter
from audio.clip_store import AudioClipStore
from config import AppConfig
from observability import logger
from session.gateway import AdapterFactory, SessionAdapters

from server.routes import register_routes


def create_app(config: AppConfig | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    This is the app factory pattern that allows:
    - Testing with different configurations
    - Environment-specific setup
    - ASGI server compatibility
    """
    if config is None:
        config = AppConfig.load_from_env()

    logger.configure(level=config.log_level, enabled=config.enable_json_logs)

    app = FastAPI(title="Soul Agent API")

    app.state.config = config

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # tighten later
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Create LLM client ONCE per process
    llm_client = build_llm_client(config=config)
    app.state.llm_client = llm_client

    # Synthesized clips are served from here by GET /audio/{clip_id}
    clip_store = AudioClipStore(capacity=config.audio_clip_capacity)
    app.state.clip_store = clip_store

    app.state.adapter_factory = build_adapter_factory(
        config=config,
        llm_client=llm_client,
        clip_store=clip_store,
    )

    # Routes
    register_routes(app)

    return app


def build_llm_client(config: AppConfig) -> AsyncOpenAI:
    """Build an LLM client with the provider selected by environment variables."""
    if config.llm_provider.lower() == "groq":
        if not config.groq_api_key:
            raise RuntimeError("GROQ_API_KEY environment variable not set")
        return AsyncOpenAI(
            api_key=config.groq_api_key,
            base_url="https://api.groq.com/openai/v1",
        )

    if not config.openai_api_key:
        raise RuntimeError("OPENAI_API_KEY environment variable not set")
    return AsyncOpenAI(api_key=config.openai_api_key)


def build_adapter_factory(
    *,
    config: AppConfig,
    llm_client: AsyncOpenAI,
    clip_store: AudioClipStore,
) -> AdapterFactory:
    """Return a callable producing fresh adapters for one session."""

    # Vision always goes through OpenAI; Groq has no image input for our models
    vision_client = llm_client
    if config.llm_provider.lower() == "groq" and config.openai_api_key:
        vision_client = AsyncOpenAI(api_key=config.openai_api_key)

    def factory(session_id: str) -> SessionAdapters:
        return SessionAdapters(
            oracle=StreamingOracleAdapter(
                client=llm_client,
                model=config.llm_model,
                session_id=session_id,
                provider=config.llm_provider,
            ),
            vision=OpenAIVisionAdapter(
                client=vision_client,
                model=config.vision_model,
                session_id=session_id,
            ),
            tts=build_tts_adapter(config=config, session_id=session_id, clip_store=clip_store),
        )

    return factory


def build_tts_adapter(
    *,
    config: AppConfig,
    session_id: str,
    clip_store: AudioClipStore,
) -> TTSAdapter | None:
    """Build the configured TTS adapter, or None when no key is set (text-only)."""
    provider = config.tts_provider.lower()

    if provider == "speechmatics":
        if not config.speechmatics_api_key:
            return None
        return SpeechmaticsTTSAdapter(
            api_key=config.speechmatics_api_key,
            session_id=session_id,
            clip_store=clip_store,
            public_base=config.public_http_base,
            voice=config.speechmatics_voice or "theo",
        )

    if provider == "elevenlabs":
        if not config.elevenlabs_api_key:
            return None
        return ElevenLabsTTSAdapter(
            api_key=config.elevenlabs_api_key,
            session_id=session_id,
            clip_store=clip_store,
            public_base=config.public_http_base,
            voice_id=config.elevenlabs_voice_id or "21m00Tcm4TlvDq8ikWAM",
            model_id=config.elevenlabs_model_id or "eleven_turbo_v2",
        )

    raise ValueError(f"Unknown TTS_PROVIDER: {config.tts_provider}")
