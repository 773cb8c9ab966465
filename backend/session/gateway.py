"""
Session gateway.

Responsibilities:
- Owns SoulSession lifecycle
- Tracks connection_status independently of turn state
- Routes inbound JSON perception messages
- Runs turns one at a time; perceptions that arrive mid-turn are queued
  as pending (the running turn observes them at its next fragment
  boundary) and processed in arrival order afterwards
- Delivers outbound text / audio messages to the client
- Runs the series-of-events summarizer after each completed turn

NOT responsible for:
- Turn logic (TurnOrchestrator)
- Vendor clients (injected as adapters)
- WebSocket framing (server.routes)
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, TYPE_CHECKING

from adapters.llm.base import OracleAdapter, VisionAdapter
from adapters.tts.base import TTSAdapter
from context.summarizer import summarize_series_of_events
from observability.logger import log_event
from orchestrator.dispatch import SpeechDispatcher
from orchestrator.enums.state import TurnState
from orchestrator.errors import DispatchError, FatalTurnError
from orchestrator.perceptions import Perception, PerceptionError
from orchestrator.turn import Sleeper, TurnOrchestrator
from session.connection_status import ConnectionStatus
from session.soul_session import SoulSession

if TYPE_CHECKING:
    from config import AppConfig


SendJson = Callable[[dict[str, Any]], Awaitable[None]]


# ------------------------------------------------------------------
# Adapter bundle
# ------------------------------------------------------------------

@dataclass(frozen=True)
class SessionAdapters:
    """External collaborators for one session."""
    oracle: OracleAdapter
    vision: VisionAdapter | None = None
    tts: TTSAdapter | None = None


AdapterFactory = Callable[[str], SessionAdapters]


# ------------------------------------------------------------------
# Outbound sink
# ------------------------------------------------------------------

class JsonDispatchSink:
    """
    DispatchSink over a JSON send callable.

    Wire format:
        {"text": str, "turn_id": int, "seq": int}
        {"audio": str, "turn_id": int, "seq": int}
        {"audio_error": str, "turn_id": int, "seq": int}
    """

    def __init__(self, send_json: SendJson) -> None:
        self._send_json = send_json

    async def emit_text(self, *, turn_id: int, sequence_number: int, text: str) -> None:
        await self._send({"text": text, "turn_id": turn_id, "seq": sequence_number})

    async def emit_audio(self, *, turn_id: int, sequence_number: int, audio_ref: str) -> None:
        await self._send({"audio": audio_ref, "turn_id": turn_id, "seq": sequence_number})

    async def emit_audio_error(self, *, turn_id: int, sequence_number: int, reason: str) -> None:
        await self._send({"audio_error": reason, "turn_id": turn_id, "seq": sequence_number})

    async def _send(self, msg: dict[str, Any]) -> None:
        try:
            await self._send_json(msg)
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # pylint: disable=broad-exception-caught
            raise DispatchError(f"{type(exc).__name__}: {exc}") from exc


# ------------------------------------------------------------------
# SessionGateway
# ------------------------------------------------------------------

class SessionGateway:
    """One gateway == one client == one soul session."""

    def __init__(
        self,
        *,
        config: AppConfig,
        client_id: str,
        send_json: SendJson,
        adapter_factory: AdapterFactory,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._config = config
        self._client_id = client_id
        self._send_json = send_json
        self._adapter_factory = adapter_factory
        self._sleep = sleep

        self.session: SoulSession | None = None
        self._turn_task: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def on_ws_connect(self) -> None:
        """Called when a WebSocket connection is established."""
        session_id = self._client_id
        adapters = self._adapter_factory(session_id)

        self.session = SoulSession(session_id=session_id, soul_name=self._config.soul_name)
        self.session.connection_status = ConnectionStatus.UP
        self.session.oracle = adapters.oracle

        dispatcher = SpeechDispatcher(
            sink=JsonDispatchSink(self._send_json),
            tts=adapters.tts,
            session_id=session_id,
        )
        self.session.dispatcher = dispatcher
        self.session.orchestrator = TurnOrchestrator(
            oracle=adapters.oracle,
            vision=adapters.vision,
            dispatcher=dispatcher,
            session_id=session_id,
            sleep=self._sleep,
        )

        log_event({
            "event_type": "SESSION_STARTED",
            **self.session.log_context(),
        })

    async def on_ws_disconnect(self, *, reason: str) -> None:
        """
        Tear down the session.

        The running turn (if any) and all in-flight synthesis are cancelled;
        pending perceptions are discarded with the session.
        """
        if self.session is None:
            return

        self.session.connection_status = ConnectionStatus.DOWN

        if self._turn_task is not None and not self._turn_task.done():
            self._turn_task.cancel()
            try:
                await self._turn_task
            except asyncio.CancelledError:
                pass

        if self.session.dispatcher is not None:
            self.session.dispatcher.force_reset()

        log_event({
            "event_type": "SESSION_ENDED",
            "reason": reason,
            **self.session.log_context(),
        })

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    async def on_json_message(self, raw: str) -> None:
        """
        Handle one inbound perception message.

        Malformed messages are logged and ignored.
        """
        if self.session is None:
            log_event({
                "event_type": "MESSAGE_WITHOUT_SESSION",
                "level": "WARNING",
                "payload_len": len(raw),
            })
            return

        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise PerceptionError("message must be a JSON object")
            perception = Perception.from_message(data)
        except (json.JSONDecodeError, PerceptionError) as exc:
            log_event({
                "event_type": "PERCEPTION_REJECTED",
                "level": "WARNING",
                "session_id": self.session.session_id,
                "error": str(exc),
            })
            return

        await self.perceive(perception)

    async def perceive(self, perception: Perception) -> None:
        """Start a turn for `perception`, or queue it if a turn is running."""
        assert self.session is not None, "Session must exist before perceiving"

        if self.turn_running:
            self.session.pending.append(perception)
            log_event({
                "event_type": "PERCEPTION_QUEUED",
                "action": perception.action,
                **self.session.log_context(),
            })
            return

        self._turn_task = asyncio.create_task(self._turn_loop(perception))

    @property
    def turn_running(self) -> bool:
        return self._turn_task is not None and not self._turn_task.done()

    async def wait_idle(self) -> None:
        """Wait until no turn is running and all synthesis has finished."""
        while self.turn_running:
            assert self._turn_task is not None
            await asyncio.gather(self._turn_task, return_exceptions=True)
        if self.session is not None and self.session.dispatcher is not None:
            await self.session.dispatcher.drain()

    # ------------------------------------------------------------------
    # Turn execution
    # ------------------------------------------------------------------

    async def _turn_loop(self, first: Perception) -> None:
        """Run turns until no perception is pending."""
        assert self.session is not None

        perception: Perception | None = first
        while perception is not None:
            await self._run_turn(perception)
            perception = self.session.pending.pop_next()

    async def _run_turn(self, perception: Perception) -> None:
        session = self.session
        assert session is not None
        assert session.orchestrator is not None, "Orchestrator must exist before a turn"

        turn_id = session.next_turn_id()
        try:
            result = await session.orchestrator.run_turn(
                turn_id=turn_id,
                perception=perception,
                memory=session.memory,
                soul_state=session.soul_state,
                pending=session.pending,
            )
        except FatalTurnError as exc:
            if exc.soul_state is not None:
                session.soul_state = exc.soul_state
            log_event({
                "event_type": "TURN_FAILED",
                "level": "ERROR",
                "turn_id": turn_id,
                "reason": exc.reason,
                **session.log_context(),
            })
            return
        except DispatchError as exc:
            log_event({
                "event_type": "TURN_DISPATCH_FAILED",
                "level": "ERROR",
                "turn_id": turn_id,
                "error": str(exc),
                **session.log_context(),
            })
            return
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "TURN_CRASHED",
                "level": "ERROR",
                "turn_id": turn_id,
                "exception": type(exc).__name__,
                "message": str(exc),
                **session.log_context(),
            })
            return

        session.memory = result.memory
        session.soul_state = result.soul_state

        log_event({
            "event_type": "TURN_FINISHED",
            "turn_id": turn_id,
            "state": result.state.value,
            "abort_reason": result.abort_reason.value if result.abort_reason else None,
            "fragments": len(result.fragments),
            "memory_entries": len(result.memory),
            **session.log_context(),
        })

        if result.state is TurnState.DONE:
            memory, notes = await summarize_series_of_events(
                session.memory,
                notes=session.soul_state.series_notes,
                oracle=session.oracle,
                session_id=session.session_id,
            )
            session.memory = memory
            session.soul_state = replace(session.soul_state, series_notes=notes)
