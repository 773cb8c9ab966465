# pylint: disable=missing-module-docstring,missing-function-docstring

from __future__ import annotations

import asyncio

from playback.scheduler import PlaybackError, PlaybackScheduler, SlotState


class FakeClip:
    """Clip whose load finishes when its gate opens."""

    def __init__(self, url: str, log: list[str], *, fail_load: bool = False, fail_play: bool = False) -> None:
        self.url = url
        self.log = log
        self.gate = asyncio.Event()
        self.fail_load = fail_load
        self.fail_play = fail_play

    async def load(self) -> None:
        await self.gate.wait()
        self.log.append(f"loaded {self.url}")
        if self.fail_load:
            raise PlaybackError("404")

    async def play(self) -> None:
        self.log.append(f"play {self.url}")
        await asyncio.sleep(0)
        if self.fail_play:
            raise PlaybackError("device gone")


class ClipBox:
    """Clip factory that keeps every clip it created by URL."""

    def __init__(self, **flags: dict[str, bool]) -> None:
        self.clips: dict[str, FakeClip] = {}
        self.log: list[str] = []
        self.flags = flags

    def __call__(self, url: str) -> FakeClip:
        clip = FakeClip(url, self.log, **self.flags.get(url, {}))
        self.clips[url] = clip
        return clip

    def open_all(self) -> None:
        for clip in self.clips.values():
            clip.gate.set()


A = (1, 0)
B = (1, 1)
C = (1, 2)


def test_clip_loaded_later_still_plays_first() -> None:
    """
    Ordering contract:
    - B finishes loading before A
    - A still plays before B
    """
    async def _go() -> tuple[list[str], list[tuple[int, int]]]:
        box = ClipBox()
        scheduler = PlaybackScheduler(clip_factory=box)
        scheduler.reserve(A)
        scheduler.reserve(B)

        scheduler.on_audio(B, "b")
        scheduler.on_audio(A, "a")

        box.clips["b"].gate.set()
        for _ in range(5):
            await asyncio.sleep(0)
        assert scheduler.state_of(B) is SlotState.READY
        assert not scheduler.talking

        box.clips["a"].gate.set()
        await scheduler.drain()
        return box.log, scheduler.played

    log, played = asyncio.run(_go())

    assert played == [A, B]
    assert log.index("loaded b") < log.index("loaded a")
    assert [line for line in log if line.startswith("play")] == ["play a", "play b"]


def test_audio_error_releases_the_slot() -> None:
    async def _go() -> PlaybackScheduler:
        box = ClipBox()
        scheduler = PlaybackScheduler(clip_factory=box)
        scheduler.reserve(A)
        scheduler.reserve(B)

        scheduler.on_audio(B, "b")
        box.open_all()
        scheduler.on_audio_error(A, "tts failed")
        await scheduler.drain()
        return scheduler

    scheduler = asyncio.run(_go())

    assert scheduler.dropped == [A]
    assert scheduler.played == [B]
    assert len(scheduler) == 0


def test_load_and_play_failures_never_stall_the_queue() -> None:
    async def _go() -> PlaybackScheduler:
        box = ClipBox(a={"fail_load": True}, b={"fail_play": True})
        scheduler = PlaybackScheduler(clip_factory=box)
        for key, url in ((A, "a"), (B, "b"), (C, "c")):
            scheduler.reserve(key)
            scheduler.on_audio(key, url)
        box.open_all()
        await scheduler.drain()
        return scheduler

    scheduler = asyncio.run(_go())

    assert scheduler.played == [C]
    assert scheduler.dropped == [A, B]


def test_talking_toggles_around_each_clip() -> None:
    signals: list[str] = []

    async def _go() -> None:
        box = ClipBox()
        scheduler = PlaybackScheduler(
            clip_factory=box,
            on_talking_started=lambda: signals.append("start"),
            on_talking_stopped=lambda: signals.append("stop"),
        )
        scheduler.reserve(A)
        scheduler.reserve(B)
        scheduler.on_audio(A, "a")
        scheduler.on_audio(B, "b")
        box.open_all()
        await scheduler.drain()

    asyncio.run(_go())

    assert signals == ["start", "stop", "start", "stop"]


def test_unknown_key_is_reserved_at_the_tail() -> None:
    async def _go() -> list[tuple[int, int]]:
        box = ClipBox()
        scheduler = PlaybackScheduler(clip_factory=box)
        scheduler.reserve(A)
        scheduler.on_audio(C, "c")   # never reserved
        scheduler.on_audio(A, "a")
        box.open_all()
        await scheduler.drain()
        return scheduler.played

    assert asyncio.run(_go()) == [A, C]


def test_late_duplicate_audio_is_ignored() -> None:
    async def _go() -> list[tuple[int, int]]:
        box = ClipBox()
        scheduler = PlaybackScheduler(clip_factory=box)
        scheduler.reserve(A)
        scheduler.on_audio(A, "a")
        box.open_all()
        await scheduler.drain()

        scheduler.on_audio(A, "a-again")
        await scheduler.drain()
        return scheduler.played

    assert asyncio.run(_go()) == [A]


def test_drain_returns_immediately_when_empty() -> None:
    async def _go() -> None:
        scheduler = PlaybackScheduler(clip_factory=ClipBox())
        await asyncio.wait_for(scheduler.drain(), timeout=1)

    asyncio.run(_go())


class BrokenClip:
    """Clip that raises something other than PlaybackError."""

    def __init__(self, *, on_load: Exception | None = None, on_play: Exception | None = None) -> None:
        self.on_load = on_load
        self.on_play = on_play

    async def load(self) -> None:
        await asyncio.sleep(0)
        if self.on_load is not None:
            raise self.on_load

    async def play(self) -> None:
        await asyncio.sleep(0)
        if self.on_play is not None:
            raise self.on_play


def test_unexpected_load_exception_drops_the_slot() -> None:
    """
    A truncated body surfaces as EOFError from the decoder:
    - the slot fails instead of staying LOADING
    - the next clip still plays and drain() returns
    """
    async def _go() -> PlaybackScheduler:
        clips = {
            "a": BrokenClip(on_load=EOFError("truncated wav")),
            "b": BrokenClip(),
        }
        scheduler = PlaybackScheduler(clip_factory=clips.__getitem__)
        scheduler.reserve(A)
        scheduler.reserve(B)
        scheduler.on_audio(A, "a")
        scheduler.on_audio(B, "b")
        await asyncio.wait_for(scheduler.drain(), timeout=1)
        return scheduler

    scheduler = asyncio.run(_go())

    assert scheduler.dropped == [A]
    assert scheduler.played == [B]
    assert len(scheduler) == 0


def test_unexpected_play_exception_stops_talking_and_moves_on() -> None:
    signals: list[str] = []

    async def _go() -> PlaybackScheduler:
        clips = {
            "a": BrokenClip(on_play=RuntimeError("stream closed")),
            "b": BrokenClip(),
        }
        scheduler = PlaybackScheduler(
            clip_factory=clips.__getitem__,
            on_talking_started=lambda: signals.append("start"),
            on_talking_stopped=lambda: signals.append("stop"),
        )
        scheduler.reserve(A)
        scheduler.reserve(B)
        scheduler.on_audio(A, "a")
        scheduler.on_audio(B, "b")
        await asyncio.wait_for(scheduler.drain(), timeout=1)
        return scheduler

    scheduler = asyncio.run(_go())

    assert scheduler.dropped == [A]
    assert scheduler.played == [B]
    assert signals == ["start", "stop", "start", "stop"]
    assert not scheduler.talking


def test_finished_keys_are_pruned_by_turn_and_cleared_on_reset() -> None:
    first_turn = (1, 0)
    second_turn = (2, 0)

    async def _go() -> PlaybackScheduler:
        box = ClipBox()
        scheduler = PlaybackScheduler(clip_factory=box)
        scheduler.reserve(first_turn)
        scheduler.on_audio(first_turn, "a")
        box.open_all()
        await scheduler.drain()

        scheduler.reserve(second_turn)
        scheduler.on_audio_error(second_turn, "tts disabled")
        await scheduler.drain()
        return scheduler

    scheduler = asyncio.run(_go())

    assert scheduler._finished == {second_turn}  # pylint: disable=protected-access

    scheduler.force_reset()
    assert scheduler._finished == set()  # pylint: disable=protected-access

    scheduler.reserve(second_turn)
    assert scheduler.state_of(second_turn) is SlotState.RESERVED
