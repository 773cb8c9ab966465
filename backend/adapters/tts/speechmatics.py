"""
Speechmatics TTS adapter.

Implements the one-fragment-per-call TTS contract using the Speechmatics
Async TTS API.

Role in the system:
- Receives one spoken fragment from the speech dispatcher.
- Performs one synthesis call.
- Collects RAW PCM16 16kHz output, wraps it as WAV, stores it in the
  clip store and returns the clip URL.

Architectural constraints:
- No retries, timers, or ordering logic live in this adapter.
- No direct interaction with WebSocket or UI layers.
"""
from __future__ import annotations

import asyncio
import time

from speechmatics.tts import AsyncClient, OutputFormat, Voice # pyright: ignore[reportMissingTypeStubs] # pylint: disable=no-name-in-module, import-error

from adapters.tts.base import TTSAdapter, TTSError
from audio.clip_store import AudioClipStore
from audio.pcm import pcm16_to_wav
from constants import PROVIDER_CHUNK_SIZE
from observability.logger import log_event


class SpeechmaticsTTSAdapter(TTSAdapter):
    """Speechmatics non-streaming TTS adapter."""

    _VOICE_MAP: dict[str, Voice] = {
        "sarah": Voice.SARAH,
        "theo": Voice.THEO,
        "megan": Voice.MEGAN,
    }

    def __init__(
        self,
        *,
        api_key: str,
        session_id: str,
        clip_store: AudioClipStore,
        public_base: str,
        voice: str = "theo",
    ) -> None:
        self._api_key = api_key
        self._session_id = session_id
        self._clip_store = clip_store
        self._public_base = public_base.rstrip("/")
        self._voice = self._resolve_voice(voice)

    async def synthesize(self, text: str) -> str:
        t0 = time.monotonic_ns()
        pcm = b""
        try:
            async with AsyncClient(api_key=self._api_key) as client:
                async with await client.generate(
                    text=text,
                    voice=self._voice,
                    output_format=OutputFormat.RAW_PCM_16000,
                ) as response:
                    async for chunk in response.content.iter_chunked(PROVIDER_CHUNK_SIZE):
                        pcm += chunk

        except asyncio.CancelledError:
            raise

        except Exception as exc:  # pylint: disable=broad-exception-caught
            raise TTSError(f"{type(exc).__name__}: {exc}") from exc

        if not pcm:
            raise TTSError("empty audio")

        clip_id = self._clip_store.put(pcm16_to_wav(pcm))

        log_event({
            "event_type": "TTS_SYNTH_METRICS",
            "session_id": self._session_id,
            "provider": "speechmatics",
            "chars": len(text),
            "bytes": len(pcm),
            "synth_ms": (time.monotonic_ns() - t0) // 1_000_000,
        })

        return f"{self._public_base}/audio/{clip_id}"

    @classmethod
    def _resolve_voice(cls, voice: str) -> Voice:
        """
        Convert user-facing voice string to Speechmatics Voice enum.

        Defaults to THEO if unknown.
        """
        return cls._VOICE_MAP.get(voice.lower(), Voice.THEO)
