"""
Turn orchestrator.

Drives one turn for one session:

    INIT -> DESCRIBING_INPUT -> COMPUTING_CHANGE -> MONOLOGUING
         -> SPEAKING_FIRST_FRAGMENT -> PLANNING_ADDITIONAL
         -> SPEAKING_FRAGMENT* -> CONCLUDING_CHECK -> DONE

ABORTED is entered whenever pending perceptions are observed at a
fragment boundary, or when a later fragment fails to generate.

Guarantees:
- Fragments are emitted in strictly increasing sequence order from 0
- An aborted fragment is never emitted; emitted fragments and their
  memory entries are never revoked
- On abort the returned memory is exactly the memory captured before
  the discarded fragment's generation began
- Per-session state flows in and out explicitly (SoulState)

Interruption is polled at fragment boundaries only; a long generation
cannot be interrupted until it returns.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from typing import Awaitable, Callable

from adapters.llm.base import OracleAdapter, VisionAdapter, VisionError
from adapters.llm.prompts import (
    CONCLUDING_FRAGMENT,
    FIRST_FRAGMENT,
    NEXT_FRAGMENT,
    NOTICE_CHANGE,
    REFLECT_ON_SITUATION,
    VISION_DESCRIBE_V1,
)
from adapters.llm.vision import to_image_url
from constants import DEFAULT_FRAGMENT_COUNT, DEFAULT_FRAGMENT_LENGTH
from context.serialization import serialize_image_request
from context.working_memory import WorkingMemory, assistant_entry, user_entry
from observability.logger import log_event
from observability.metrics import timed
from orchestrator.dispatch import Fragment, SpeechDispatcher
from orchestrator.enums.length import LengthClass
from orchestrator.enums.state import AbortReason, TurnState
from orchestrator.errors import FatalTurnError, RecoverableStepError
from orchestrator.perceptions import PendingPerceptions, Perception
from orchestrator.planner import FragmentPlanner
from orchestrator.soul_state import SoulState
from orchestrator.steps import brainstorm, external_dialog, internal_monologue


Sleeper = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class TurnResult:
    """Outcome of one turn, handed back to the session."""
    memory: WorkingMemory
    soul_state: SoulState
    state: TurnState
    fragments: tuple[Fragment, ...] = ()
    abort_reason: AbortReason | None = None


class TurnOrchestrator:
    """
    Sequential generate / check-interrupt / emit pipeline.

    One instance per session; run_turn() must not be called concurrently
    (the session gateway runs turns one at a time).
    """

    def __init__(
        self,
        *,
        oracle: OracleAdapter,
        vision: VisionAdapter | None,
        dispatcher: SpeechDispatcher,
        session_id: str,
        planner: FragmentPlanner | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._oracle = oracle
        self._vision = vision
        self._dispatcher = dispatcher
        self._session_id = session_id
        self._planner = planner or FragmentPlanner(oracle=oracle)
        self._sleep = sleep

        self._state = TurnState.INIT
        self._turn_id = 0
        self._fragments: list[Fragment] = []

    @property
    def state(self) -> TurnState:
        return self._state

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run_turn(
        self,
        *,
        turn_id: int,
        perception: Perception,
        memory: WorkingMemory,
        soul_state: SoulState,
        pending: PendingPerceptions,
    ) -> TurnResult:
        """
        Run one full turn triggered by `perception`.

        Raises:
            FatalTurnError: no usable input, or fragment 0 failed.
            DispatchError: the transport refused a text message.
        """
        self._turn_id = turn_id
        self._fragments = []
        self._state = TurnState.INIT

        log_event({
            "event_type": "TURN_STARTED",
            "session_id": self._session_id,
            "turn_id": turn_id,
            "action": perception.action,
            "memory_entries": len(memory),
        })

        with timed("turn", session_id=self._session_id, details={"turn_id": turn_id}):
            return await self._run(
                perception=perception,
                memory=memory,
                soul_state=soul_state,
                pending=pending,
            )

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def _run(
        self,
        *,
        perception: Perception,
        memory: WorkingMemory,
        soul_state: SoulState,
        pending: PendingPerceptions,
    ) -> TurnResult:
        if pending:
            # Superseded before any step ran; the perception is still remembered
            memory = memory.with_memory([
                user_entry(perception.summary(), action=perception.action),
            ])
            return self._abort(memory, soul_state, AbortReason.PENDING_PERCEPTION)

        # The invoking perception is recorded until the description replaces it
        memory = memory.with_memory([
            user_entry(perception.summary(), speculative=True, action=perception.action),
        ])

        self._enter(TurnState.DESCRIBING_INPUT)
        description = await self._describe(perception, memory)

        self._enter(TurnState.COMPUTING_CHANGE)
        memory = memory.without_speculative_tail()
        memory = await self._notice_change(memory, soul_state.room_description, description)
        soul_state = replace(soul_state, room_description=description)

        self._enter(TurnState.MONOLOGUING)
        memory = await self._reflect(memory)

        self._enter(TurnState.SPEAKING_FIRST_FRAGMENT)
        try:
            spoken, text = await external_dialog(
                memory,
                self._oracle,
                FIRST_FRAGMENT.format(soul_name=memory.soul_name),
            )
        except RecoverableStepError as exc:
            raise FatalTurnError(f"first fragment: {exc}", soul_state=soul_state) from exc

        if pending:
            return self._abort(memory, soul_state, AbortReason.PENDING_PERCEPTION)
        await self._emit(text, None)
        memory = spoken

        self._enter(TurnState.PLANNING_ADDITIONAL)
        count = await self._plan_count(memory, soul_state.previous_fragment_count)
        soul_state = replace(soul_state, previous_fragment_count=count)

        if count == 0:
            return self._finish(memory, soul_state)

        remaining = count
        while remaining > 1:
            self._enter(TurnState.SPEAKING_FRAGMENT)
            length = await self._plan_length(memory)

            log_event({
                "event_type": "FRAGMENT_WAIT",
                "session_id": self._session_id,
                "turn_id": self._turn_id,
                "wait_ms": length.wait_ms,
                "length_class": length.value,
            })
            await self._sleep(length.wait_ms / 1000.0)

            try:
                spoken, text = await external_dialog(
                    memory,
                    self._oracle,
                    NEXT_FRAGMENT.format(
                        soul_name=memory.soul_name,
                        words=length.target_words,
                        previous=text,
                    ),
                )
            except RecoverableStepError as exc:
                self._log_step_failure(exc)
                return self._abort(memory, soul_state, AbortReason.GENERATION_FAILED)

            if pending:
                return self._abort(memory, soul_state, AbortReason.PENDING_PERCEPTION)
            await self._emit(text, length)
            memory = spoken
            remaining -= 1

        self._enter(TurnState.CONCLUDING_CHECK)
        if await self._plan_conclusion(memory):
            try:
                spoken, text = await external_dialog(
                    memory,
                    self._oracle,
                    CONCLUDING_FRAGMENT.format(soul_name=memory.soul_name),
                )
            except RecoverableStepError as exc:
                self._log_step_failure(exc)
                return self._abort(memory, soul_state, AbortReason.GENERATION_FAILED)

            if pending:
                return self._abort(memory, soul_state, AbortReason.PENDING_PERCEPTION)
            await self._emit(text, None)
            memory = spoken

        return self._finish(memory, soul_state)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _describe(self, perception: Perception, memory: WorkingMemory) -> str:
        """Turn the perception into a room description (fatal on failure)."""
        if perception.image:
            if self._vision is None:
                raise FatalTurnError("image perception but no vision adapter")

            log_event({
                "event_type": "DESCRIBING_IMAGE",
                "session_id": self._session_id,
                "turn_id": self._turn_id,
                "image_prefix": perception.image[:30],
                "image_len": len(perception.image),
            })
            messages = serialize_image_request(
                memory=memory,
                image_url=to_image_url(perception.image),
                instruction=VISION_DESCRIBE_V1,
            )
            try:
                return await self._vision.describe(messages=messages)
            except VisionError as exc:
                raise FatalTurnError(f"vision: {exc}") from exc

        description = perception.description or perception.content
        if not description:
            raise FatalTurnError("no description found")
        return description

    async def _notice_change(
        self,
        memory: WorkingMemory,
        before: str,
        after: str,
    ) -> WorkingMemory:
        """
        Ask what changed between two room descriptions.

        The before/after entries exist only in the probe memory; only the
        answer is kept.
        """
        probe = memory.with_memory([
            assistant_entry(f"Room before change: {before}"),
            assistant_entry(f"Room after change: {after}"),
        ])
        try:
            change = await brainstorm(probe, self._oracle, NOTICE_CHANGE)
        except RecoverableStepError as exc:
            self._log_step_failure(exc)
            return memory

        log_event({
            "event_type": "CHANGE_NOTICED",
            "session_id": self._session_id,
            "turn_id": self._turn_id,
            "change": change,
        })
        return memory.with_memory([
            assistant_entry(f"{memory.soul_name} noticed: {change}"),
        ])

    async def _reflect(self, memory: WorkingMemory) -> WorkingMemory:
        try:
            reflected, _ = await internal_monologue(
                memory,
                self._oracle,
                REFLECT_ON_SITUATION.format(soul_name=memory.soul_name),
            )
        except RecoverableStepError as exc:
            self._log_step_failure(exc)
            return memory
        return reflected

    async def _plan_count(self, memory: WorkingMemory, previous_count: int) -> int:
        try:
            count = await self._planner.plan_fragment_count(memory, previous_count)
        except RecoverableStepError as exc:
            self._log_step_failure(exc)
            count = DEFAULT_FRAGMENT_COUNT

        log_event({
            "event_type": "FRAGMENTS_PLANNED",
            "session_id": self._session_id,
            "turn_id": self._turn_id,
            "count": count,
            "previous_count": previous_count,
        })
        return count

    async def _plan_length(self, memory: WorkingMemory) -> LengthClass:
        try:
            return await self._planner.plan_fragment_length(memory)
        except RecoverableStepError as exc:
            self._log_step_failure(exc)
            return LengthClass(DEFAULT_FRAGMENT_LENGTH)

    async def _plan_conclusion(self, memory: WorkingMemory) -> bool:
        try:
            return await self._planner.plan_conclusion(memory)
        except RecoverableStepError as exc:
            self._log_step_failure(exc)
            return False

    async def _emit(self, text: str, length: LengthClass | None) -> None:
        fragment = Fragment(
            turn_id=self._turn_id,
            sequence_number=len(self._fragments),
            text=text,
            length_class=length,
        )
        await self._dispatcher.speak(fragment)
        self._fragments.append(fragment)

    # ------------------------------------------------------------------
    # Terminal states
    # ------------------------------------------------------------------

    def _finish(self, memory: WorkingMemory, soul_state: SoulState) -> TurnResult:
        self._enter(TurnState.DONE)
        return TurnResult(
            memory=memory,
            soul_state=soul_state,
            state=TurnState.DONE,
            fragments=tuple(self._fragments),
        )

    def _abort(
        self,
        memory: WorkingMemory,
        soul_state: SoulState,
        reason: AbortReason,
    ) -> TurnResult:
        log_event({
            "event_type": "TURN_ABORTED",
            "session_id": self._session_id,
            "turn_id": self._turn_id,
            "from_state": self._state.value,
            "reason": reason.value,
            "fragments_emitted": len(self._fragments),
        })
        self._state = TurnState.ABORTED
        return TurnResult(
            memory=memory,
            soul_state=soul_state,
            state=TurnState.ABORTED,
            fragments=tuple(self._fragments),
            abort_reason=reason,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _enter(self, state: TurnState) -> None:
        log_event({
            "event_type": "TURN_STATE",
            "level": "DEBUG",
            "session_id": self._session_id,
            "turn_id": self._turn_id,
            "from_state": self._state.value,
            "to_state": state.value,
        })
        self._state = state

    def _log_step_failure(self, exc: RecoverableStepError) -> None:
        log_event({
            "event_type": "STEP_FAILED",
            "level": "WARNING",
            "session_id": self._session_id,
            "turn_id": self._turn_id,
            "state": self._state.value,
            "step": exc.step,
            "reason": exc.reason,
        })
