# pylint: disable=missing-module-docstring,missing-function-docstring

import pytest

from orchestrator.perceptions import (
    PendingPerceptions,
    Perception,
    PerceptionError,
    PerceptionKind,
)


def test_add_object_with_image_and_description() -> None:
    p = Perception.from_message({
        "action": "addObject",
        "content": "lamp",
        "_metadata": {"image": "data:image/png;base64,AAAA", "description": "- a lamp"},
    })

    assert p.kind is PerceptionKind.OBJECT_ADDED
    assert p.image == "data:image/png;base64,AAAA"
    assert p.description == "- a lamp"
    assert p.content == "lamp"


@pytest.mark.parametrize("action", ["said", "message", "wave"])
def test_any_other_action_is_a_text_message(action: str) -> None:
    p = Perception.from_message({"action": action, "content": "hello"})

    assert p.kind is PerceptionKind.TEXT_MESSAGE
    assert p.action == action
    assert p.summary() == f"{action}: hello"


@pytest.mark.parametrize(
    "data",
    [
        {},
        {"action": ""},
        {"action": 3},
        {"action": "said", "content": 5},
        {"action": "addObject", "_metadata": "nope"},
        {"action": "addObject", "_metadata": {"image": ["x"]}},
    ],
)
def test_malformed_messages_are_rejected(data: dict) -> None:
    with pytest.raises(PerceptionError):
        Perception.from_message(data)


def test_summary_never_contains_the_image() -> None:
    p = Perception.from_message({"action": "addObject", "_metadata": {"image": "A" * 500}})

    assert "AAAA" not in p.summary()


def test_pending_perceptions_are_fifo() -> None:
    pending = PendingPerceptions()
    assert not pending
    assert pending.pop_next() is None

    first = Perception.from_message({"action": "said", "content": "1"})
    second = Perception.from_message({"action": "said", "content": "2"})
    pending.append(first)
    pending.append(second)

    assert len(pending) == 2
    assert list(pending) == [first, second]
    assert pending.pop_next() is first
    assert pending.pop_next() is second
    assert not pending
