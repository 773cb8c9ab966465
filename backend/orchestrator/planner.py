"""
Fragment planning.

Purpose:
- Constrain a categorical oracle to a fixed answer set
- Map its answer onto internal types, clamping anything out of range

The parse_* functions are PURE and never raise: an oracle that answers
"7", "-1", "abc" or "Very Long!" must never crash a turn. Oracle failures
(RecoverableStepError) propagate to the orchestrator, which owns defaults
for failed steps.
"""
from __future__ import annotations

import re

from adapters.llm.base import OracleAdapter
from adapters.llm.prompts import (
    CONCLUSION_QUESTION,
    FRAGMENT_COUNT_QUESTION,
    FRAGMENT_LENGTH_QUESTION,
)
from constants import (
    DEFAULT_FRAGMENT_COUNT,
    DEFAULT_FRAGMENT_LENGTH,
    FRAGMENT_COUNT_CHOICES,
    FRAGMENT_LENGTH_CHOICES,
    MAX_FRAGMENT_COUNT,
    MIN_FRAGMENT_COUNT,
    YES_NO_CHOICES,
)
from context.working_memory import WorkingMemory
from orchestrator.enums.length import LengthClass
from orchestrator.steps import decision


_INT_RE = re.compile(r"[-+]?\d+")


# =============================================================================
# Pure mapping
# =============================================================================

def parse_fragment_count(answer: str) -> int:
    """
    Map an oracle answer onto a fragment count in [0, 5].

    - Any integer is clamped ("7" -> 5, "-3" -> 0)
    - The first integer in a sentence is used ("I think 2" -> 2)
    - No integer at all yields DEFAULT_FRAGMENT_COUNT
    """
    match = _INT_RE.search(answer)
    if match is None:
        return DEFAULT_FRAGMENT_COUNT
    value = int(match.group())
    return max(MIN_FRAGMENT_COUNT, min(MAX_FRAGMENT_COUNT, value))


def parse_length_class(answer: str) -> LengthClass:
    """
    Map an oracle answer onto a LengthClass.

    Case, separators and trailing punctuation are ignored
    ("Very Long", "very_long", "very-long." all -> VERY_LONG).
    Unknown answers yield DEFAULT_FRAGMENT_LENGTH.
    """
    normalized = re.sub(r"[\s\-_]+", "_", answer.strip().strip("\"'.!").strip().lower())
    for length in LengthClass:
        if normalized == length.value:
            return length
    return LengthClass(DEFAULT_FRAGMENT_LENGTH)


def parse_yes_no(answer: str) -> bool:
    """Only an explicit yes counts as yes."""
    return answer.strip().strip("\"'.!").strip().lower() == "yes"


# =============================================================================
# Planner
# =============================================================================

class FragmentPlanner:
    """
    Decides how many fragments a turn should contain and how long each is.

    Distribution intent (a hint given to the oracle, not enforced):
    typically 0 additional fragments, occasionally 1-2, rarely 3-5.
    """

    def __init__(self, *, oracle: OracleAdapter) -> None:
        self._oracle = oracle

    async def plan_fragment_count(
        self,
        memory: WorkingMemory,
        previous_count: int,
    ) -> int:
        answer = await decision(
            memory,
            self._oracle,
            FRAGMENT_COUNT_QUESTION.format(
                soul_name=memory.soul_name,
                previous_count=previous_count,
            ),
            FRAGMENT_COUNT_CHOICES,
        )
        return parse_fragment_count(answer)

    async def plan_fragment_length(self, memory: WorkingMemory) -> LengthClass:
        answer = await decision(
            memory,
            self._oracle,
            FRAGMENT_LENGTH_QUESTION,
            FRAGMENT_LENGTH_CHOICES,
        )
        return parse_length_class(answer)

    async def plan_conclusion(self, memory: WorkingMemory) -> bool:
        answer = await decision(
            memory,
            self._oracle,
            CONCLUSION_QUESTION.format(soul_name=memory.soul_name),
            YES_NO_CHOICES,
        )
        return parse_yes_no(answer)
