"""Streaming oracle adapter (OpenAI-compatible chat completions)."""
from __future__ import annotations

import asyncio
import re
from typing import Any, Sequence

from adapters.llm.base import OracleAdapter, OracleError
from observability.metrics import timed


class StreamingOracleAdapter(OracleAdapter):
    """
    Concrete oracle adapter over an OpenAI-compatible client.

    Design notes:
    - One adapter instance serves every step of every turn of one session.
    - Completions are streamed and accumulated; callers get the full text.
    - Adapter is responsible ONLY for:
        - Talking to the LLM provider
        - Accumulating deltas
        - Best-effort matching of a decision answer onto the choices
    - Adapter does NOT:
        - Retry
        - Clamp or default categorical answers
        - Decide orchestration outcomes
    """

    def __init__(
        self,
        *,
        client: Any,
        model: str,
        session_id: str,
        provider: str,
    ) -> None:
        """
        Args:
            client:
                Vendor client (openai.AsyncOpenAI, or Groq through its
                OpenAI-compatible endpoint).
            model:
                Model identifier string.
            session_id:
                Session identifier for logging/correlation.
            provider:
                "openai" or "groq" (observability only).
        """
        self._client = client
        self._model = model
        self._session_id = session_id
        self._provider = provider

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate(self, *, messages: list[dict[str, Any]]) -> str:
        return await self._complete(messages, purpose="generate")

    async def decide(
        self,
        *,
        messages: list[dict[str, Any]],
        choices: Sequence[str],
    ) -> str:
        raw = await self._complete(messages, purpose="decide")
        return self.match_choice(raw, choices)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _complete(
        self,
        messages: list[dict[str, Any]],
        *,
        purpose: str,
    ) -> str:
        """
        Run one streamed completion and return the accumulated text.

        Raises:
            OracleError on any vendor failure.
        """
        parts: list[str] = []
        try:
            with timed(
                "oracle_completion",
                session_id=self._session_id,
                details={
                    "purpose": purpose,
                    "model": self._model,
                    "provider": self._provider,
                },
            ):
                stream = await self._client.chat.completions.create(
                    model=self._model,
                    messages=messages,
                    stream=True,
                )

                async for chunk in stream:
                    delta = self._extract_delta(chunk)
                    if delta:
                        parts.append(delta)

        except asyncio.CancelledError:
            raise

        except Exception as exc:  # pylint: disable=broad-exception-caught
            raise OracleError(f"{type(exc).__name__}: {exc}") from exc

        return "".join(parts).strip()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def match_choice(raw: str, choices: Sequence[str]) -> str:
        """
        Map a free-form answer onto one of `choices` when unambiguous.

        - Exact match (case/quote/punctuation-insensitive) wins.
        - Otherwise the longest choice found as a whole phrase wins
          ("very long" before "long").
        - Otherwise the cleaned answer is returned unchanged.
        """
        cleaned = raw.strip().strip("\"'`.!").strip().lower()

        for choice in choices:
            if cleaned == choice.lower():
                return choice

        for choice in sorted(choices, key=len, reverse=True):
            pattern = r"(?<![\w-])" + re.escape(choice.lower()) + r"(?!\w)"
            if re.search(pattern, cleaned):
                return choice

        return cleaned

    @staticmethod
    def _extract_delta(chunk: Any) -> str:
        """
        Extract token delta from vendor response (OpenAI format).
        """
        try:
            delta = chunk.choices[0].delta
            return delta.content or ""
        except (AttributeError, IndexError):
            return ""
