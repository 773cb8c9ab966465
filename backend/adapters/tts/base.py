"""
TTS adapter contract.

This module defines the *interface only*: no fragment policy, no
ordering, retries, timers, or orchestration decisions live here.

Key invariants:
- One synthesize() call per spoken fragment.
- The adapter returns an audio reference the client can load
  (a URL served by this backend); it never talks to the client.
- Ordering across fragments is NOT the adapter's concern: calls may
  complete in any order.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class TTSError(Exception):
    """Raised when synthesis fails for any reason."""


class TTSAdapter(ABC):
    """
    Abstract interface for a non-streaming TTS adapter.

    Implementations are responsible for:
    - Calling the TTS provider for exactly one text fragment
    - Converting the provider output to PCM16 16kHz mono WAV
    - Storing the clip and returning its reference

    Non-responsibilities:
    - No retries
    - No reordering
    - No direct interaction with WebSocket or UI
    """

    @abstractmethod
    async def synthesize(self, text: str) -> str:
        """
        Synthesize one fragment and return its audio reference.

        Contract:
        - Latency is unbounded; callers run this off the turn's critical path.
        - Must raise TTSError on any failure (including empty audio).
        - Must NOT retry internally.
        """
        raise NotImplementedError
