"""
Turn state enumeration.

Rules:
- This enum defines ONLY the turn pipeline states.
- No behavior, no helper methods, no side effects.
- Transitions are defined exclusively in the turn orchestrator.
"""

from __future__ import annotations

from enum import Enum


class TurnState(str, Enum):
    """
    Sequential states of a single turn.

    ABORTED is reachable from any state that checks pending perceptions,
    and from SPEAKING_FRAGMENT / CONCLUDING_CHECK when a later fragment
    fails to generate.
    """

    INIT = "INIT"
    DESCRIBING_INPUT = "DESCRIBING_INPUT"
    COMPUTING_CHANGE = "COMPUTING_CHANGE"
    MONOLOGUING = "MONOLOGUING"
    SPEAKING_FIRST_FRAGMENT = "SPEAKING_FIRST_FRAGMENT"
    PLANNING_ADDITIONAL = "PLANNING_ADDITIONAL"
    SPEAKING_FRAGMENT = "SPEAKING_FRAGMENT"
    CONCLUDING_CHECK = "CONCLUDING_CHECK"
    DONE = "DONE"
    ABORTED = "ABORTED"


class AbortReason(str, Enum):
    """Why a turn ended in ABORTED."""

    PENDING_PERCEPTION = "pending_perception"
    GENERATION_FAILED = "generation_failed"
