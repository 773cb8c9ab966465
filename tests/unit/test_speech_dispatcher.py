# pylint: disable=missing-module-docstring,missing-function-docstring

from __future__ import annotations

import asyncio
from typing import Any

import pytest

import orchestrator.dispatch as dispatch_mod
from orchestrator.dispatch import Fragment, SpeechDispatcher
from orchestrator.errors import DispatchError

from fakes import FakeTTS, RecordingSink


def test_text_is_emitted_before_synthesis_finishes() -> None:
    async def _go() -> list[tuple[Any, ...]]:
        gate = asyncio.Event()
        sink = RecordingSink()
        dispatcher = SpeechDispatcher(sink=sink, tts=FakeTTS(gates={"hello": gate}), session_id="s1")

        await dispatcher.speak(Fragment(turn_id=1, sequence_number=0, text="hello"))
        assert sink.events == [("text", 1, 0, "hello")]
        assert dispatcher.in_flight == 1

        gate.set()
        await dispatcher.drain()
        return sink.events

    events = asyncio.run(_go())

    assert events == [("text", 1, 0, "hello"), ("audio", 1, 0, "clip://hello")]


def test_audio_may_complete_out_of_order_but_text_never_does() -> None:
    async def _go() -> RecordingSink:
        slow = asyncio.Event()
        sink = RecordingSink()
        dispatcher = SpeechDispatcher(sink=sink, tts=FakeTTS(gates={"first": slow}), session_id="s1")

        await dispatcher.speak(Fragment(turn_id=1, sequence_number=0, text="first"))
        await dispatcher.speak(Fragment(turn_id=1, sequence_number=1, text="second"))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        slow.set()
        await dispatcher.drain()
        return sink

    sink = asyncio.run(_go())

    assert [e[2] for e in sink.of_kind("text")] == [0, 1]
    assert [e[2] for e in sink.of_kind("audio")] == [1, 0]


def test_tts_failure_sends_audio_error(monkeypatch: pytest.MonkeyPatch) -> None:
    emitted: list[dict[str, Any]] = []
    monkeypatch.setattr(dispatch_mod, "log_event", emitted.append)

    async def _go() -> RecordingSink:
        sink = RecordingSink()
        dispatcher = SpeechDispatcher(sink=sink, tts=FakeTTS(fail=["nope"]), session_id="s1")
        await dispatcher.speak(Fragment(turn_id=2, sequence_number=0, text="nope"))
        await dispatcher.drain()
        return sink

    sink = asyncio.run(_go())

    assert sink.of_kind("audio") == []
    assert [e[:3] for e in sink.of_kind("audio_error")] == [("audio_error", 2, 0)]
    assert any(e["event_type"] == "TTS_ERROR" for e in emitted)


def test_no_tts_releases_slot_immediately() -> None:
    async def _go() -> RecordingSink:
        sink = RecordingSink()
        dispatcher = SpeechDispatcher(sink=sink, tts=None, session_id="s1")
        await dispatcher.speak(Fragment(turn_id=1, sequence_number=0, text="hi"))
        return sink

    sink = asyncio.run(_go())

    assert sink.events == [("text", 1, 0, "hi"), ("audio_error", 1, 0, "tts disabled")]


def test_text_delivery_failure_raises_and_skips_tts() -> None:
    tts = FakeTTS()

    async def _go() -> None:
        dispatcher = SpeechDispatcher(sink=RecordingSink(fail_text=True), tts=tts, session_id="s1")
        await dispatcher.speak(Fragment(turn_id=1, sequence_number=0, text="hi"))

    with pytest.raises(DispatchError):
        asyncio.run(_go())

    assert tts.calls == []


def test_audio_delivery_failure_is_logged_not_raised(monkeypatch: pytest.MonkeyPatch) -> None:
    emitted: list[dict[str, Any]] = []
    monkeypatch.setattr(dispatch_mod, "log_event", emitted.append)

    async def _go() -> None:
        dispatcher = SpeechDispatcher(sink=RecordingSink(fail_audio=True), tts=FakeTTS(), session_id="s1")
        await dispatcher.speak(Fragment(turn_id=1, sequence_number=0, text="hi"))
        await dispatcher.drain()

    asyncio.run(_go())

    assert any(e["event_type"] == "AUDIO_DISPATCH_FAILED" for e in emitted)


def test_force_reset_cancels_synthesis() -> None:
    async def _go() -> tuple[int, RecordingSink]:
        sink = RecordingSink()
        dispatcher = SpeechDispatcher(
            sink=sink,
            tts=FakeTTS(gates={"hi": asyncio.Event()}),
            session_id="s1",
        )
        await dispatcher.speak(Fragment(turn_id=1, sequence_number=0, text="hi"))
        dispatcher.force_reset()
        await asyncio.sleep(0)
        return dispatcher.in_flight, sink

    in_flight, sink = asyncio.run(_go())

    assert in_flight == 0
    assert sink.of_kind("audio") == []
