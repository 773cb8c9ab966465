"""
BEHAVIOR-AS-CONSTANTS
---------------------
Single source of truth for all behavioral constants in the system.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Other modules MUST import from this file.
"""

from __future__ import annotations

from typing import Final, Tuple

# =============================================================================
# Soul persona
# =============================================================================

DEFAULT_SOUL_NAME: Final[str] = "Milton"

DEFAULT_ROOM_DESCRIPTION: Final[str] = (
    "- The human is positioned in the center of the image, facing downward."
)

# =============================================================================
# Fragment planning
# =============================================================================

MIN_FRAGMENT_COUNT: Final[int] = 0
MAX_FRAGMENT_COUNT: Final[int] = 5

# Oracle answered something that is not an integer at all
DEFAULT_FRAGMENT_COUNT: Final[int] = 0

FRAGMENT_COUNT_CHOICES: Final[Tuple[str, ...]] = ("5", "4", "3", "2", "1", "0")
FRAGMENT_LENGTH_CHOICES: Final[Tuple[str, ...]] = ("very long", "long", "medium", "short")
YES_NO_CHOICES: Final[Tuple[str, ...]] = ("yes", "no")

# length class value -> (wait_ms, target_word_count)
FRAGMENT_LENGTH_TABLE: Final[dict[str, tuple[int, int]]] = {
    "short": (1000, 10),
    "medium": (2000, 20),
    "long": (4000, 40),
    "very_long": (6000, 60),
}

DEFAULT_FRAGMENT_LENGTH: Final[str] = "short"

# =============================================================================
# Working memory compaction (series-of-events notes)
# =============================================================================

SUMMARY_TRIGGER_ENTRIES: Final[int] = 10
SUMMARY_KEEP_TAIL_ENTRIES: Final[int] = 8

# =============================================================================
# TTS audio format (PCM16 mono @ 16kHz, wrapped as WAV for the client)
# =============================================================================

AUDIO_SAMPLE_RATE_HZ: Final[int] = 16_000
AUDIO_CHANNELS: Final[int] = 1
AUDIO_SAMPLE_WIDTH_BYTES: Final[int] = 2

PROVIDER_CHUNK_SIZE: Final[int] = 4096

AUDIO_CLIP_CAPACITY_DEFAULT: Final[int] = 256
AUDIO_CLIP_MEDIA_TYPE: Final[str] = "audio/wav"

# =============================================================================
# Transport
# =============================================================================

WS_POLICY_VIOLATION_CODE: Final[int] = 1008
