# pylint: disable=missing-module-docstring,missing-function-docstring

import json
from typing import Any

import pytest

from observability import logger, metrics


@pytest.fixture(name="captured")
def fixture_captured(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    lines: list[str] = []

    # Patch the explicit output sink used by logger
    monkeypatch.setattr(logger, "_print", lines.append)

    # configure() mutates module state; restore it after each test
    monkeypatch.setattr(logger, "_min_level", logger._min_level)  # pylint: disable=protected-access
    monkeypatch.setattr(logger, "_enabled", logger._enabled)  # pylint: disable=protected-access
    return lines


def test_log_event_emits_valid_jsonl(captured: list[str]) -> None:
    """
    Contract:
    - log_event emits exactly one JSONL line
    - payload is serialized as-is, plus ts_ms when missing
    - output sink is patchable
    """
    payload: dict[str, Any] = {
        "event_type": "TEST",
        "value": 123,
    }

    logger.log_event(payload)

    # Exactly one line emitted
    assert len(captured) == 1

    decoded = json.loads(captured[0])
    ts_ms = decoded.pop("ts_ms")
    assert isinstance(ts_ms, int)
    assert decoded == payload


def test_explicit_ts_ms_is_kept(captured: list[str]) -> None:
    logger.log_event({"event_type": "TEST", "ts_ms": 42})

    assert json.loads(captured[0])["ts_ms"] == 42


def test_events_below_level_are_dropped(captured: list[str]) -> None:
    logger.configure(level="WARNING")

    logger.log_event({"event_type": "QUIET"})
    logger.log_event({"event_type": "DEBUGGY", "level": "DEBUG"})
    logger.log_event({"event_type": "LOUD", "level": "ERROR"})

    assert [json.loads(line)["event_type"] for line in captured] == ["LOUD"]


def test_disabled_logger_writes_nothing(captured: list[str]) -> None:
    logger.configure(enabled=False)

    logger.log_event({"event_type": "TEST", "level": "ERROR"})

    assert captured == []


def test_unserializable_payload_never_raises(captured: list[str]) -> None:
    logger.log_event({"event_type": "TEST", "obj": {1, 2}})

    decoded = json.loads(captured[0])
    assert decoded["event_type"] == "LOGGER_SERIALIZATION_ERROR"
    assert "TEST" in decoded["original_event_repr"]


def test_timed_emits_one_metric_and_marks_failures(captured: list[str]) -> None:
    with metrics.timed("ok_block", session_id="s1", details={"k": "v"}):
        pass

    with pytest.raises(RuntimeError):
        with metrics.timed("bad_block"):
            raise RuntimeError("boom")

    events = [json.loads(line) for line in captured]
    assert [e["metric"] for e in events] == ["ok_block", "bad_block"]
    assert [e["failed"] for e in events] == [False, True]
    assert events[0]["details"] == {"k": "v"}
    assert all(e["event_type"] == "METRIC_TIMER" and e["value_ms"] >= 0 for e in events)
