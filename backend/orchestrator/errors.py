"""
Turn error taxonomy.

FatalTurnError:
    Required input missing or the first fragment could not be generated.
    The turn ends, nothing is spoken for that perception.

RecoverableStepError:
    A mid-turn oracle step (diff, monologue, decision) failed.
    Logged; the step is treated as identity and the turn continues.

DispatchError:
    The transport refused an outbound message. Surfaced to the caller;
    fragments already delivered are not retried.

Client-side PlaybackError lives with the playback scheduler.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from orchestrator.soul_state import SoulState


class TurnError(Exception):
    """Base class for turn pipeline errors."""


class FatalTurnError(TurnError):
    """
    The turn cannot proceed.

    soul_state carries per-session state already updated before the
    failure (the remembered room description is updated unconditionally),
    or None if nothing changed.
    """

    def __init__(self, reason: str, *, soul_state: SoulState | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.soul_state = soul_state


class RecoverableStepError(TurnError):
    """An oracle step failed; `step` names which one."""

    def __init__(self, step: str, reason: str) -> None:
        super().__init__(f"{step}: {reason}")
        self.step = step
        self.reason = reason


class DispatchError(TurnError):
    """An outbound message could not be delivered."""
