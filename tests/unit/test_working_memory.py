# pylint: disable=missing-module-docstring,missing-function-docstring

import pytest

from context.serialization import serialize_for_llm, serialize_image_request
from context.working_memory import (
    Role,
    WorkingMemory,
    assistant_entry,
    system_entry,
    user_entry,
)


def _memory() -> WorkingMemory:
    return WorkingMemory(entries=(system_entry("bp"),), soul_name="Milton")


def test_with_memory_returns_new_value() -> None:
    base = _memory()

    grown = base.with_memory([assistant_entry("a"), assistant_entry("b")])

    assert len(base) == 1
    assert [e.content for e in grown.entries] == ["bp", "a", "b"]
    assert grown.soul_name == "Milton"


def test_trim_trailing() -> None:
    memory = _memory().with_memory([assistant_entry("a"), assistant_entry("b")])

    assert [e.content for e in memory.trim_trailing(2).entries] == ["bp"]
    assert memory.trim_trailing(0) is memory
    with pytest.raises(ValueError):
        memory.trim_trailing(-1)


def test_only_a_speculative_last_entry_is_trimmed() -> None:
    speculative_last = _memory().with_memory([user_entry("said: hi", speculative=True)])
    assert len(speculative_last.without_speculative_tail()) == 1

    older_speculative = _memory().with_memory([
        user_entry("said: hi", speculative=True),
        assistant_entry("Milton thought: hm"),
    ])
    assert older_speculative.without_speculative_tail() is older_speculative

    assert WorkingMemory().without_speculative_tail() == WorkingMemory()


def test_with_updated_applies_transform() -> None:
    memory = _memory().with_memory([assistant_entry("a"), assistant_entry("b")])

    reversed_memory = memory.with_updated(lambda entries: reversed(entries))

    assert [e.content for e in reversed_memory.entries] == ["b", "a", "bp"]


def test_serialize_for_llm_appends_instruction_without_storing_it() -> None:
    memory = _memory().with_memory([assistant_entry("Milton said: hi")])

    messages = serialize_for_llm(memory=memory, instruction="do the thing")

    assert messages == [
        {"role": Role.SYSTEM.value, "content": "bp"},
        {"role": "assistant", "content": "Milton said: hi"},
        {"role": "user", "content": "do the thing"},
    ]
    assert len(memory) == 2


def test_serialize_image_request_keeps_only_blueprint() -> None:
    memory = _memory().with_memory([assistant_entry("noise")])

    messages = serialize_image_request(
        memory=memory,
        image_url="data:image/png;base64,AAAA",
        instruction="describe",
    )

    assert messages[0] == {"role": "system", "content": "bp"}
    assert len(messages) == 2
    assert messages[1]["content"] == [
        {"type": "image_url", "image_url": {"url": "data:image/png;base64,AAAA"}},
        {"type": "text", "text": "describe"},
    ]
