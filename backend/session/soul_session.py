"""
Soul session container.

- Owns working memory and per-session remembered state between turns
- Owns the pending-perception queue
- Owns connection status (gateway-controlled)
- Owned and mutated by SessionGateway
- NOT a state machine
- Contains no orchestration logic
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from adapters.llm.prompts import BLUEPRINT_V1
from constants import DEFAULT_SOUL_NAME
from context.working_memory import WorkingMemory, system_entry
from orchestrator.dispatch import SpeechDispatcher
from orchestrator.perceptions import PendingPerceptions
from orchestrator.soul_state import SoulState
from orchestrator.turn import TurnOrchestrator
from session.connection_status import ConnectionStatus


# ---------------------------------------------------------------------
# SoulSession
# ---------------------------------------------------------------------


@dataclass
class SoulSession:
    """Mutable runtime container for a single client session."""

    # ------------------------------------------------------------------
    # Identity / lifecycle
    # ------------------------------------------------------------------

    session_id: str
    soul_name: str = DEFAULT_SOUL_NAME
    created_at: float = field(default_factory=time.time)

    # ------------------------------------------------------------------
    # Conversation state (replaced wholesale at the end of each turn)
    # ------------------------------------------------------------------

    memory: WorkingMemory = field(init=False)
    soul_state: SoulState = field(init=False)
    turn_count: int = 0

    # ------------------------------------------------------------------
    # Perceptions that arrived while a turn was running
    # ------------------------------------------------------------------

    pending: PendingPerceptions = field(default_factory=PendingPerceptions)

    # ------------------------------------------------------------------
    # Connection / gateway-controlled state
    # ------------------------------------------------------------------

    connection_status: ConnectionStatus = ConnectionStatus.DOWN

    # ------------------------------------------------------------------
    # Turn machinery (attached by SessionGateway)
    # ------------------------------------------------------------------

    orchestrator: TurnOrchestrator | None = None
    dispatcher: SpeechDispatcher | None = None
    oracle: Any = None  # Type: OracleAdapter in practice

    def __post_init__(self) -> None:
        """Seed memory with the soul blueprint."""
        self.memory = WorkingMemory(
            entries=(system_entry(BLUEPRINT_V1.format(soul_name=self.soul_name)),),
            soul_name=self.soul_name,
        )
        self.soul_state = SoulState.initial(self.soul_name)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def next_turn_id(self) -> int:
        """Monotonic turn id, starting at 1."""
        self.turn_count += 1
        return self.turn_count

    def log_context(self) -> dict[str, Any]:
        """Standard logging context for this session."""
        return {
            "session_id": self.session_id,
            "connection_status": self.connection_status.value,
            "turn_count": self.turn_count,
            "pending": len(self.pending),
        }
