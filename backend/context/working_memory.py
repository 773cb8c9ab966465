"""
Working memory.

Responsibilities:
- Store the ordered log of everything said/perceived so far
- Derive new memory values (append, trim, transform); never mutate in place
- Provide a serializable representation for oracle consumption

Non-responsibilities:
- No oracle calls
- No summarization policy
- No orchestration decisions
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Mapping

from constants import DEFAULT_SOUL_NAME


class Role(str, Enum):
    """Author of a memory entry."""

    SYSTEM = "system"
    ASSISTANT = "assistant"
    USER = "user"


@dataclass(frozen=True)
class MemoryEntry:
    """Single working-memory entry."""
    role: Role
    content: str
    metadata: Mapping[str, Any] = field(default_factory=lambda: {})

    @property
    def speculative(self) -> bool:
        """True if the entry may be dropped once better information arrives."""
        return bool(self.metadata.get("speculative", False))


@dataclass(frozen=True)
class WorkingMemory:
    """
    Immutable, append-only conversation log.

    Invariants:
    - Entry order is the sole source of truth for what has been said so far
    - Every operation returns a new WorkingMemory; the receiver is untouched
    """

    entries: tuple[MemoryEntry, ...] = ()
    soul_name: str = DEFAULT_SOUL_NAME

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def with_memory(self, entries: Iterable[MemoryEntry]) -> WorkingMemory:
        """Return a new memory with `entries` appended."""
        return WorkingMemory(
            entries=self.entries + tuple(entries),
            soul_name=self.soul_name,
        )

    def trim_trailing(self, count: int) -> WorkingMemory:
        """Return a new memory without its last `count` entries."""
        if count < 0:
            raise ValueError("count must be >= 0")
        if count == 0:
            return self
        return WorkingMemory(
            entries=self.entries[:-count],
            soul_name=self.soul_name,
        )

    def with_updated(
        self,
        fn: Callable[[tuple[MemoryEntry, ...]], Iterable[MemoryEntry]],
    ) -> WorkingMemory:
        """Return a new memory whose entries are `fn(entries)`."""
        return WorkingMemory(
            entries=tuple(fn(self.entries)),
            soul_name=self.soul_name,
        )

    def without_speculative_tail(self) -> WorkingMemory:
        """
        Drop the most recent entry iff it is flagged speculative.

        Only ever one entry: older speculative entries have already been
        built upon and are no longer safe to remove.
        """
        last = self.last
        if last is not None and last.speculative:
            return self.trim_trailing(1)
        return self

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def last(self) -> MemoryEntry | None:
        return self.entries[-1] if self.entries else None

    def serialize(self) -> list[dict[str, str]]:
        """
        Serialize entries into a role/content structure.

        Output format:
        [
          {"role": "system", "content": "..."},
          {"role": "assistant", "content": "..."},
        ]
        """
        return [
            {"role": e.role.value, "content": e.content}
            for e in self.entries
        ]


def system_entry(content: str) -> MemoryEntry:
    return MemoryEntry(role=Role.SYSTEM, content=content)


def assistant_entry(content: str, **metadata: Any) -> MemoryEntry:
    return MemoryEntry(role=Role.ASSISTANT, content=content, metadata=metadata)


def user_entry(content: str, **metadata: Any) -> MemoryEntry:
    return MemoryEntry(role=Role.USER, content=content, metadata=metadata)
