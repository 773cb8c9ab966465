"""PCM / WAV conversion utilities."""
from __future__ import annotations

import io
import wave

import numpy as np

from constants import AUDIO_CHANNELS, AUDIO_SAMPLE_RATE_HZ, AUDIO_SAMPLE_WIDTH_BYTES


def pcm16le_to_float32(pcm_bytes: bytes) -> np.ndarray:
    """
    Convert PCM16 little-endian mono bytes to float32 in [-1.0, 1.0).

    No resampling. No channel mixing.
    """
    if len(pcm_bytes) % 2 != 0:
        # Truncated sample; drop the odd byte
        pcm_bytes = pcm_bytes[: len(pcm_bytes) - 1]

    audio_i16 = np.frombuffer(pcm_bytes, dtype="<i2")  # little-endian int16
    audio_f32 = audio_i16.astype(np.float32) / 32768.0
    return audio_f32


def pcm16_to_wav(
    pcm_bytes: bytes,
    *,
    sample_rate_hz: int = AUDIO_SAMPLE_RATE_HZ,
) -> bytes:
    """Wrap raw PCM16 mono bytes in a WAV container."""
    if len(pcm_bytes) % 2 != 0:
        pcm_bytes = pcm_bytes[: len(pcm_bytes) - 1]

    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(AUDIO_CHANNELS)
        wf.setsampwidth(AUDIO_SAMPLE_WIDTH_BYTES)
        wf.setframerate(sample_rate_hz)
        wf.writeframes(pcm_bytes)
    return buf.getvalue()


def wav_to_float32(wav_bytes: bytes) -> tuple[np.ndarray, int]:
    """
    Decode a PCM16 mono WAV into (float32 samples, sample_rate_hz).

    Raises:
        ValueError if the container is not PCM16 mono or is truncated.
    """
    try:
        with wave.open(io.BytesIO(wav_bytes), "rb") as wf:
            if wf.getsampwidth() != AUDIO_SAMPLE_WIDTH_BYTES or wf.getnchannels() != AUDIO_CHANNELS:
                raise ValueError(
                    f"unsupported wav: width={wf.getsampwidth()} channels={wf.getnchannels()}"
                )
            rate = wf.getframerate()
            frames = wf.readframes(wf.getnframes())
    except (wave.Error, EOFError) as exc:
        raise ValueError(f"invalid wav: {exc}") from exc

    return pcm16le_to_float32(frames), rate
