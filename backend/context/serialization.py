"""
Working memory serialization for oracle consumption.

Responsibilities:
- Convert working memory + a step instruction into LLM-ready message format.

Non-responsibilities:
- No trimming or summarization
- No entry storage
- No logging
- No orchestration decisions
"""

from __future__ import annotations

from context.working_memory import WorkingMemory


def serialize_for_llm(
    *,
    memory: WorkingMemory,
    instruction: str,
) -> list[dict[str, str]]:
    """
    Serialize working memory into LLM message format.

    Output format:
    [
        {"role": "system", "content": "..."},
        {"role": "assistant", "content": "..."},
        ...
        {"role": "user", "content": "<step instruction>"},
    ]

    Rules:
    - Memory entries come first, in order (system blueprint is entry 0)
    - The step instruction is appended last as a fresh user message
    - The instruction is never stored in memory
    """
    messages = memory.serialize()

    messages.append({
        "role": "user",
        "content": instruction,
    })

    return messages


def serialize_image_request(
    *,
    memory: WorkingMemory,
    image_url: str,
    instruction: str,
) -> list[dict[str, object]]:
    """
    Build a vision request: blueprint entry + image + instruction.

    Only the first memory entry is kept so the vision model is not
    distracted by the conversation so far.
    """
    messages: list[dict[str, object]] = memory.serialize()[:1]  # type: ignore[assignment]

    messages.append({
        "role": "user",
        "content": [
            {"type": "image_url", "image_url": {"url": image_url}},
            {"type": "text", "text": instruction},
        ],
    })

    return messages
