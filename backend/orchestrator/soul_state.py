"""
Per-session remembered state.

Replaces process-wide "soul memory" globals: the orchestrator receives a
SoulState and returns an updated copy, so sessions never share values.
"""

from __future__ import annotations

from dataclasses import dataclass

from adapters.llm.prompts import SERIES_NOTES_SEED_V1
from constants import DEFAULT_ROOM_DESCRIPTION, DEFAULT_SOUL_NAME


@dataclass(frozen=True)
class SoulState:
    """Immutable snapshot of what a soul remembers between turns."""

    room_description: str = DEFAULT_ROOM_DESCRIPTION

    # Fragment count planned by the previous turn (hint for the next plan)
    previous_fragment_count: int = 0

    # Running notes maintained by the series-of-events summarizer
    series_notes: str = SERIES_NOTES_SEED_V1.format(soul_name=DEFAULT_SOUL_NAME)

    @staticmethod
    def initial(soul_name: str = DEFAULT_SOUL_NAME) -> SoulState:
        return SoulState(series_notes=SERIES_NOTES_SEED_V1.format(soul_name=soul_name))
