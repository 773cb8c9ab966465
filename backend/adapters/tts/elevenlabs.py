"""
ElevenLabs TTS adapter.

Implements the one-fragment-per-call TTS contract using the ElevenLabs
streaming TTS API.

- Requests PCM16 16kHz output, wraps it as WAV, stores it in the clip
  store and returns the clip URL.
- No retries, timers, or ordering logic live here.
"""

from __future__ import annotations

import asyncio
import time

from elevenlabs.client import AsyncElevenLabs

from adapters.tts.base import TTSAdapter, TTSError
from audio.clip_store import AudioClipStore
from audio.pcm import pcm16_to_wav
from observability.logger import log_event


class ElevenLabsTTSAdapter(TTSAdapter):
    """ElevenLabs TTS adapter."""

    def __init__(
        self,
        *,
        api_key: str,
        session_id: str,
        clip_store: AudioClipStore,
        public_base: str,
        voice_id: str = "21m00Tcm4TlvDq8ikWAM",  # default ElevenLabs voice
        model_id: str = "eleven_turbo_v2",
    ) -> None:
        self._session_id = session_id
        self._clip_store = clip_store
        self._public_base = public_base.rstrip("/")
        self._voice_id = voice_id
        self._model_id = model_id

        self._client = AsyncElevenLabs(api_key=api_key)

    async def synthesize(self, text: str) -> str:
        t0 = time.monotonic_ns()
        pcm = b""
        try:
            audio_stream = self._client.text_to_speech.stream(
                voice_id=self._voice_id,
                model_id=self._model_id,
                text=text,
                output_format="pcm_16000",
            )

            async for chunk in audio_stream:
                if chunk:
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
            "provider": "elevenlabs",
            "chars": len(text),
            "bytes": len(pcm),
            "synth_ms": (time.monotonic_ns() - t0) // 1_000_000,
        })

        return f"{self._public_base}/audio/{clip_id}"
