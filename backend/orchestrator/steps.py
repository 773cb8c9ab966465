"""
Cognitive steps.

Each step is one oracle call over the current working memory:
- external_dialog / internal_monologue return a NEW memory with the
  utterance appended, plus the utterance text
- brainstorm / decision return a value and leave memory untouched

Every oracle failure is re-raised as RecoverableStepError(step, reason);
callers decide whether that is recoverable for them.
"""

from __future__ import annotations

import re
from typing import Sequence

from adapters.llm.base import OracleAdapter, OracleError
from adapters.llm.prompts import (
    BRAINSTORM_V1,
    DECISION_V1,
    EXTERNAL_DIALOG_V1,
    INTERNAL_MONOLOGUE_V1,
    format_choices,
)
from context.serialization import serialize_for_llm
from context.working_memory import WorkingMemory, assistant_entry
from orchestrator.errors import RecoverableStepError


async def external_dialog(
    memory: WorkingMemory,
    oracle: OracleAdapter,
    instructions: str,
) -> tuple[WorkingMemory, str]:
    """Generate something the soul says out loud."""
    text = await _generate(
        "external_dialog",
        memory,
        oracle,
        EXTERNAL_DIALOG_V1.format(soul_name=memory.soul_name, instructions=instructions),
    )
    text = strip_verb_prefix(text, memory.soul_name, "said")
    if not text:
        raise RecoverableStepError("external_dialog", "empty utterance")

    entry = assistant_entry(f'{memory.soul_name} said: "{text}"', utterance=True)
    return memory.with_memory([entry]), text


async def internal_monologue(
    memory: WorkingMemory,
    oracle: OracleAdapter,
    instructions: str,
) -> tuple[WorkingMemory, str]:
    """Generate a private thought."""
    text = await _generate(
        "internal_monologue",
        memory,
        oracle,
        INTERNAL_MONOLOGUE_V1.format(soul_name=memory.soul_name, instructions=instructions),
    )
    text = strip_verb_prefix(text, memory.soul_name, "thought")
    if not text:
        raise RecoverableStepError("internal_monologue", "empty thought")

    entry = assistant_entry(f'{memory.soul_name} thought: "{text}"')
    return memory.with_memory([entry]), text


async def brainstorm(
    memory: WorkingMemory,
    oracle: OracleAdapter,
    instructions: str,
) -> str:
    """Compute a short free-text answer without touching memory."""
    text = await _generate(
        "brainstorm",
        memory,
        oracle,
        BRAINSTORM_V1.format(soul_name=memory.soul_name, instructions=instructions),
    )
    if not text:
        raise RecoverableStepError("brainstorm", "empty answer")
    return text


async def decision(
    memory: WorkingMemory,
    oracle: OracleAdapter,
    question: str,
    choices: Sequence[str],
) -> str:
    """
    Ask the oracle to pick one of `choices`.

    The raw answer is returned as-is; mapping it onto an internal type
    (and clamping) is the caller's job.
    """
    messages = serialize_for_llm(
        memory=memory,
        instruction=DECISION_V1.format(
            soul_name=memory.soul_name,
            question=question.strip(),
            choices=format_choices(choices),
        ),
    )
    try:
        return await oracle.decide(messages=messages, choices=choices)
    except OracleError as exc:
        raise RecoverableStepError("decision", str(exc)) from exc


async def _generate(
    step: str,
    memory: WorkingMemory,
    oracle: OracleAdapter,
    instruction: str,
) -> str:
    messages = serialize_for_llm(memory=memory, instruction=instruction)
    try:
        return (await oracle.generate(messages=messages)).strip()
    except OracleError as exc:
        raise RecoverableStepError(step, str(exc)) from exc


def strip_verb_prefix(text: str, soul_name: str, verb: str) -> str:
    """
    Remove a leading '<soul> <verb>:' and surrounding quotes.

    Models echo the requested format back about half the time.
    """
    pattern = rf"^\s*{re.escape(soul_name)}\s+{re.escape(verb)}\s*:\s*"
    text = re.sub(pattern, "", text, flags=re.IGNORECASE).strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
        text = text[1:-1].strip()
    return text
