"""
Ordered playback scheduler (client side).

Responsibilities:
- Reserve one slot per fragment when its text arrives (dispatch order)
- Load each clip as soon as its audio reference arrives, in any order
- Play clips strictly in slot order, one at a time
- Toggle talking state around each clip

NOT responsible for:
- Fetching or decoding audio (Clip implementations)
- Network transport (playback.client)

A failed slot (audio_error from the server, a load failure, or a play
failure) is logged and skipped; it never stalls the queue.
"""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol

from observability.logger import log_event


SlotKey = tuple[int, int]  # (turn_id, sequence_number)


class PlaybackError(Exception):
    """A clip could not be loaded or played."""


class Clip(Protocol):
    """One playable audio clip."""

    async def load(self) -> None:
        """Fetch and decode. Should raise PlaybackError on failure; any other exception also fails the slot."""

    async def play(self) -> None:
        """Play to completion. Should raise PlaybackError on failure; any other exception also fails the slot."""


ClipFactory = Callable[[str], Clip]


class SlotState(str, Enum):
    RESERVED = "reserved"
    LOADING = "loading"
    READY = "ready"
    PLAYING = "playing"
    FAILED = "failed"


@dataclass
class AudioQueueEntry:
    """Playback slot. Mutated only by the scheduler."""
    key: SlotKey
    state: SlotState = SlotState.RESERVED
    audio_ref: str | None = None
    clip: Clip | None = None
    error: str | None = None


class PlaybackScheduler:
    """
    Single-consumer, reserve-then-ready slot queue.

    All methods must be called from the event loop thread.
    """

    def __init__(
        self,
        *,
        clip_factory: ClipFactory,
        on_talking_started: Callable[[], None] | None = None,
        on_talking_stopped: Callable[[], None] | None = None,
    ) -> None:
        self._clip_factory = clip_factory
        self._on_talking_started = on_talking_started
        self._on_talking_stopped = on_talking_stopped

        self._slots: OrderedDict[SlotKey, AudioQueueEntry] = OrderedDict()
        self._finished: set[SlotKey] = set()

        self._load_tasks: dict[SlotKey, asyncio.Task[None]] = {}
        self._play_task: asyncio.Task[None] | None = None

        self._idle = asyncio.Event()
        self._idle.set()

        self.played: list[SlotKey] = []
        self.dropped: list[SlotKey] = []

    # ------------------------------------------------------------------
    # Inbound events
    # ------------------------------------------------------------------

    def reserve(self, key: SlotKey) -> None:
        """Create an empty slot at the tail (text arrived)."""
        if key in self._slots or key in self._finished:
            return
        self._slots[key] = AudioQueueEntry(key=key)
        self._idle.clear()

    def on_audio(self, key: SlotKey, audio_ref: str) -> None:
        """Start loading the clip for `key`; reserves at the tail if unknown."""
        if key in self._finished:
            return
        self.reserve(key)
        entry = self._slots[key]
        if entry.state is not SlotState.RESERVED:
            return

        entry.audio_ref = audio_ref
        entry.clip = self._clip_factory(audio_ref)
        entry.state = SlotState.LOADING

        task = asyncio.create_task(self._load(entry))
        self._load_tasks[key] = task
        task.add_done_callback(lambda _t, k=key: self._load_tasks.pop(k, None))

    def on_audio_error(self, key: SlotKey, reason: str) -> None:
        """Mark the slot failed so playback skips it."""
        if key in self._finished:
            return
        self.reserve(key)
        entry = self._slots[key]
        if entry.state in (SlotState.PLAYING, SlotState.FAILED):
            return
        entry.state = SlotState.FAILED
        entry.error = reason
        self.advance()

    # ------------------------------------------------------------------
    # Consumer
    # ------------------------------------------------------------------

    def advance(self) -> None:
        """
        Move the queue forward.

        - If a clip is playing, do nothing.
        - Drop failed slots at the head.
        - Play the head if it is ready; otherwise wait for it.
        """
        if self._play_task is not None and not self._play_task.done():
            return

        while self._slots:
            entry = next(iter(self._slots.values()))
            if entry.state is not SlotState.FAILED:
                break
            self._drop_head(entry)

        if not self._slots:
            self._idle.set()
            return

        head = next(iter(self._slots.values()))
        if head.state is not SlotState.READY:
            return

        head.state = SlotState.PLAYING
        self._play_task = asyncio.create_task(self._play(head))

    async def drain(self) -> None:
        """Wait until every reserved slot has been played or dropped."""
        await self._idle.wait()

    def force_reset(self) -> None:
        """Cancel loading and playback and forget all slots."""
        for task in self._load_tasks.values():
            task.cancel()
        self._load_tasks.clear()
        if self._play_task is not None:
            self._play_task.cancel()
            self._play_task = None
        self._slots.clear()
        self._finished.clear()
        self._idle.set()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def talking(self) -> bool:
        return self._play_task is not None and not self._play_task.done()

    def __len__(self) -> int:
        return len(self._slots)

    def state_of(self, key: SlotKey) -> SlotState | None:
        entry = self._slots.get(key)
        return entry.state if entry is not None else None

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _load(self, entry: AudioQueueEntry) -> None:
        assert entry.clip is not None
        try:
            await entry.clip.load()
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # pylint: disable=broad-exception-caught
            entry.state = SlotState.FAILED
            entry.error = _describe(exc)
            log_event({
                "event_type": "PLAYBACK_ERROR",
                "level": "WARNING",
                "phase": "load",
                "turn_id": entry.key[0],
                "seq": entry.key[1],
                "reason": entry.error,
            })
        else:
            if entry.state is SlotState.LOADING:
                entry.state = SlotState.READY
        self.advance()

    async def _play(self, entry: AudioQueueEntry) -> None:
        assert entry.clip is not None
        self._signal(self._on_talking_started)
        log_event({
            "event_type": "PLAYBACK_STARTED",
            "level": "DEBUG",
            "turn_id": entry.key[0],
            "seq": entry.key[1],
        })
        try:
            await entry.clip.play()
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # pylint: disable=broad-exception-caught
            entry.state = SlotState.FAILED
            entry.error = _describe(exc)
            self.dropped.append(entry.key)
            log_event({
                "event_type": "PLAYBACK_ERROR",
                "level": "WARNING",
                "phase": "play",
                "turn_id": entry.key[0],
                "seq": entry.key[1],
                "reason": entry.error,
            })
        else:
            self.played.append(entry.key)
        finally:
            self._signal(self._on_talking_stopped)

        self._slots.pop(entry.key, None)
        self._mark_finished(entry.key)
        self._play_task = None
        self.advance()

    def _drop_head(self, entry: AudioQueueEntry) -> None:
        self._slots.popitem(last=False)
        self._mark_finished(entry.key)
        self.dropped.append(entry.key)
        log_event({
            "event_type": "PLAYBACK_SLOT_DROPPED",
            "level": "WARNING",
            "turn_id": entry.key[0],
            "seq": entry.key[1],
            "reason": entry.error,
        })

    def _mark_finished(self, key: SlotKey) -> None:
        # Slots leave in order, so every older turn has already had its
        # single audio or audio_error message.
        turn_id = key[0]
        self._finished = {k for k in self._finished if k[0] >= turn_id}
        self._finished.add(key)

    @staticmethod
    def _signal(callback: Callable[[], None] | None) -> None:
        if callback is None:
            return
        try:
            callback()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "TALKING_CALLBACK_FAILED",
                "level": "WARNING",
                "exception": type(exc).__name__,
                "message": str(exc),
            })


def _describe(exc: BaseException) -> str:
    if isinstance(exc, PlaybackError):
        return str(exc)
    return f"{type(exc).__name__}: {exc}"
