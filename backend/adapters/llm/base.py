"""
Oracle and vision adapter contracts (v1).

Purpose:
- Define the interface for text generation, categorical decisions and
  image description.
- Keep all orchestration, retries, timing, and abort semantics
  OUT of the adapter.

Rules:
- This file contains NO logic.
- No retries.
- No clamping of categorical answers (the planner owns that).
- No knowledge of TTS, UI, or the turn state machine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Sequence


class OracleError(Exception):
    """Raised by adapters when the vendor call fails for any reason."""


class VisionError(Exception):
    """Raised by vision adapters when an image cannot be described."""


class OracleAdapter(ABC):
    """
    Abstract base class for language-model oracles.

    The adapter is a *dumb pipe*:
    messages -> vendor -> text.

    Orchestrator responsibilities (NOT here):
    - When to call
    - Whether to abort afterwards
    - Retry policy
    - Interpreting categorical answers
    """

    @abstractmethod
    async def generate(
        self,
        *,
        messages: list[dict[str, Any]],
    ) -> str:
        """
        Produce free text for the given serialized memory + instruction.

        Contract:
        - Returns the full completion text, stripped.
        - Must raise OracleError on any vendor failure.
        - Must NOT retry internally.
        """
        raise NotImplementedError

    @abstractmethod
    async def decide(
        self,
        *,
        messages: list[dict[str, Any]],
        choices: Sequence[str],
    ) -> str:
        """
        Ask the model to pick one of `choices`.

        Contract:
        - SHOULD return one of `choices`, but callers must tolerate
          any string (out-of-enumeration answers are clamped upstream).
        - Must raise OracleError on any vendor failure.
        - Must NOT retry internally.
        """
        raise NotImplementedError


class VisionAdapter(ABC):
    """Abstract base class for image description."""

    @abstractmethod
    async def describe(
        self,
        *,
        messages: list[dict[str, Any]],
    ) -> str:
        """
        Describe the image contained in `messages`.

        Contract:
        - Returns the description text, stripped.
        - Must raise VisionError on any vendor failure or empty answer.
        """
        raise NotImplementedError
