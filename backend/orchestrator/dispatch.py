"""
Fragment dispatch.

Responsibilities:
- Define the DispatchSink capability (transport boundary)
- Emit each fragment's text immediately, in sequence order
- Hand each fragment to TTS in the background and emit its audio
  reference (or an audio error) when synthesis finishes

Non-responsibilities:
- NO reordering of audio (the client playback scheduler owns that)
- NO retries
- NO abort decisions
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Protocol, runtime_checkable

from adapters.tts.base import TTSAdapter, TTSError
from observability.logger import log_event
from orchestrator.enums.length import LengthClass


@dataclass(frozen=True)
class Fragment:
    """One spoken unit of a turn. Immutable once emitted."""
    turn_id: int
    sequence_number: int
    text: str
    length_class: LengthClass | None = None


@runtime_checkable
class DispatchSink(Protocol):
    """
    Transport-facing capability.

    Implementations raise orchestrator.errors.DispatchError when a
    message cannot be delivered.
    """

    async def emit_text(self, *, turn_id: int, sequence_number: int, text: str) -> None: ...

    async def emit_audio(self, *, turn_id: int, sequence_number: int, audio_ref: str) -> None: ...

    async def emit_audio_error(self, *, turn_id: int, sequence_number: int, reason: str) -> None: ...


class SpeechDispatcher:
    """
    Turns fragments into outbound text + audio messages.

    Ordering:
    - emit_text is awaited inside speak(), so text order == call order
    - audio for a fragment is emitted only after its text
    - audio for different fragments may be emitted in any order

    Design:
    - One asyncio task per (turn_id, sequence_number)
    - Fire-and-forget: speak() returns once text is delivered
    """

    def __init__(
        self,
        *,
        sink: DispatchSink,
        tts: TTSAdapter | None,
        session_id: str,
    ) -> None:
        self._sink = sink
        self._tts = tts
        self._session_id = session_id

        # Active synthesis tasks keyed by (turn_id, sequence_number)
        self._tasks: dict[tuple[int, int], asyncio.Task[None]] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def speak(self, fragment: Fragment) -> None:
        """
        Emit text now, audio later.

        Raises:
            DispatchError if the text cannot be delivered (no TTS is
            started for an undelivered fragment).
        """
        await self._sink.emit_text(
            turn_id=fragment.turn_id,
            sequence_number=fragment.sequence_number,
            text=fragment.text,
        )

        log_event({
            "event_type": "FRAGMENT_SPOKEN",
            "session_id": self._session_id,
            "turn_id": fragment.turn_id,
            "seq": fragment.sequence_number,
            "length_class": fragment.length_class.value if fragment.length_class else None,
            "chars": len(fragment.text),
        })

        if self._tts is None:
            await self._emit_safely(
                self._sink.emit_audio_error(
                    turn_id=fragment.turn_id,
                    sequence_number=fragment.sequence_number,
                    reason="tts disabled",
                ),
                fragment,
            )
            return

        key = (fragment.turn_id, fragment.sequence_number)
        if key in self._tasks:
            return

        task = asyncio.create_task(self._synthesize(fragment))
        self._tasks[key] = task

        def _cleanup(_: asyncio.Task[None]) -> None:
            self._tasks.pop(key, None)

        task.add_done_callback(_cleanup)

    async def drain(self) -> None:
        """Wait for every in-flight synthesis to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    def force_reset(self) -> None:
        """Cancel all in-flight synthesis (session teardown)."""
        for task in self._tasks.values():
            task.cancel()
        self._tasks.clear()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _synthesize(self, fragment: Fragment) -> None:
        """
        Internal synthesis task.

        Emits exactly one of emit_audio / emit_audio_error. A failed
        emit is logged; the text was already delivered.
        """
        assert self._tts is not None
        try:
            audio_ref = await self._tts.synthesize(fragment.text)
        except asyncio.CancelledError:
            raise
        except TTSError as exc:
            log_event({
                "event_type": "TTS_ERROR",
                "level": "WARNING",
                "session_id": self._session_id,
                "turn_id": fragment.turn_id,
                "seq": fragment.sequence_number,
                "reason": str(exc),
            })
            await self._emit_safely(
                self._sink.emit_audio_error(
                    turn_id=fragment.turn_id,
                    sequence_number=fragment.sequence_number,
                    reason=str(exc),
                ),
                fragment,
            )
            return

        await self._emit_safely(
            self._sink.emit_audio(
                turn_id=fragment.turn_id,
                sequence_number=fragment.sequence_number,
                audio_ref=audio_ref,
            ),
            fragment,
        )

    async def _emit_safely(self, emit: Awaitable[None], fragment: Fragment) -> None:
        try:
            await emit
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "AUDIO_DISPATCH_FAILED",
                "level": "WARNING",
                "session_id": self._session_id,
                "turn_id": fragment.turn_id,
                "seq": fragment.sequence_number,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
