"""
Series-of-events summarizer.

Runs after every completed turn. Once working memory grows past
SUMMARY_TRIGGER_ENTRIES entries it:
- lets the soul reflect on what it has learned,
- folds that into the running series notes,
- compacts memory to: first entry (blueprint) + notes entry + last
  SUMMARY_KEEP_TAIL_ENTRIES entries.

Failures leave memory and notes unchanged (logged, never raised).
"""

from __future__ import annotations

from adapters.llm.base import OracleAdapter, OracleError
from adapters.llm.prompts import LEARNED_SO_FAR, SUMMARY_V1
from constants import SUMMARY_KEEP_TAIL_ENTRIES, SUMMARY_TRIGGER_ENTRIES
from context.serialization import serialize_for_llm
from context.working_memory import MemoryEntry, WorkingMemory, assistant_entry
from observability.logger import log_event
from orchestrator.errors import RecoverableStepError
from orchestrator.steps import internal_monologue


async def summarize_series_of_events(
    memory: WorkingMemory,
    *,
    notes: str,
    oracle: OracleAdapter,
    session_id: str | None = None,
) -> tuple[WorkingMemory, str]:
    """
    Return (compacted memory, updated notes), or the inputs unchanged
    when memory is still short or a step fails.
    """
    if len(memory) <= SUMMARY_TRIGGER_ENTRIES:
        return memory, notes

    log_event({
        "event_type": "SUMMARY_STARTED",
        "session_id": session_id,
        "memory_entries": len(memory),
    })

    try:
        reflected, _ = await internal_monologue(memory, oracle, LEARNED_SO_FAR)
        updated_notes = await _update_notes(reflected, notes, oracle)
    except RecoverableStepError as exc:
        log_event({
            "event_type": "SUMMARY_FAILED",
            "level": "WARNING",
            "session_id": session_id,
            "step": exc.step,
            "reason": exc.reason,
        })
        return memory, notes

    compacted = memory.with_updated(
        lambda entries: _compact(entries, updated_notes)
    )

    log_event({
        "event_type": "SUMMARY_COMPACTED",
        "session_id": session_id,
        "entries_before": len(memory),
        "entries_after": len(compacted),
    })
    return compacted, updated_notes


async def _update_notes(memory: WorkingMemory, existing: str, oracle: OracleAdapter) -> str:
    messages = serialize_for_llm(
        memory=memory,
        instruction=SUMMARY_V1.format(existing=existing, soul_name=memory.soul_name),
    )
    try:
        text = (await oracle.generate(messages=messages)).strip()
    except OracleError as exc:
        raise RecoverableStepError("summary", str(exc)) from exc
    if not text:
        raise RecoverableStepError("summary", "empty notes")
    return text


def _compact(entries: tuple[MemoryEntry, ...], notes: str) -> list[MemoryEntry]:
    """
    Keep entry 0, a notes entry, and the most recent tail.

    Older notes entries in the tail are dropped; the new one replaces them.
    """
    tail = [e for e in entries[1:][-SUMMARY_KEEP_TAIL_ENTRIES:]
            if not e.metadata.get("conversation_summary")]
    return [
        entries[0],
        assistant_entry(f"## Events so far\n{notes}", conversation_summary=True),
        *tail,
    ]
