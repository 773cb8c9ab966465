"""
Perception definitions and the pending-perception queue.

Rules:
- Perceptions describe facts that have occurred.
- Perceptions carry data only (no behavior beyond parsing).
- A perception is consumed exactly once and never dropped.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, Mapping


class PerceptionError(ValueError):
    """Inbound message is not a valid perception."""


class PerceptionKind(str, Enum):
    """
    Kind of incoming event.

    OBJECT_ADDED:
        The user drew an object into the room; carries an image.

    TEXT_MESSAGE:
        Anything else; carries a description or free-text content.
    """

    OBJECT_ADDED = "addObject"
    TEXT_MESSAGE = "said"


@dataclass(frozen=True)
class Perception:
    """One incoming event. Immutable once received."""
    kind: PerceptionKind
    action: str
    content: str | None = None
    image: str | None = None
    description: str | None = None

    @staticmethod
    def from_message(data: Mapping[str, Any]) -> Perception:
        """
        Parse the wire format:

            {"action": str, "content"?: str,
             "_metadata"?: {"image"?: str, "description"?: str}}

        Raises:
            PerceptionError if action is missing or fields have wrong types.
        """
        action = data.get("action")
        if not isinstance(action, str) or not action:
            raise PerceptionError("missing 'action'")

        metadata = data.get("_metadata") or {}
        if not isinstance(metadata, Mapping):
            raise PerceptionError("'_metadata' must be an object")

        content = _optional_str(data, "content")
        image = _optional_str(metadata, "image")
        description = _optional_str(metadata, "description")

        kind = (
            PerceptionKind.OBJECT_ADDED
            if action == PerceptionKind.OBJECT_ADDED.value
            else PerceptionKind.TEXT_MESSAGE
        )

        return Perception(
            kind=kind,
            action=action,
            content=content,
            image=image,
            description=description,
        )

    def summary(self) -> str:
        """Short memory-friendly rendering (never the raw image)."""
        if self.content:
            return f"{self.action}: {self.content}"
        if self.image:
            return f"{self.action}: (image - {len(self.image)} bytes)"
        return self.action


def _optional_str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise PerceptionError(f"'{key}' must be a string")
    return value


class PendingPerceptions:
    """
    FIFO of perceptions that arrived while a turn is executing.

    The only structure mutated concurrently with a turn: the receive loop
    appends, the orchestrator reads at fragment boundaries. deque append
    and len are atomic, so no lock is held across suspend points.
    """

    def __init__(self) -> None:
        self._items: deque[Perception] = deque()

    def append(self, perception: Perception) -> None:
        self._items.append(perception)

    def pop_next(self) -> Perception | None:
        """Remove and return the oldest pending perception, if any."""
        if not self._items:
            return None
        return self._items.popleft()

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __iter__(self) -> Iterator[Perception]:
        return iter(tuple(self._items))
