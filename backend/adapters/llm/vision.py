"""OpenAI vision adapter: image in, bulleted room description out."""
from __future__ import annotations

import asyncio
from typing import Any

from adapters.llm.base import VisionAdapter, VisionError
from observability.metrics import timed


class OpenAIVisionAdapter(VisionAdapter):
    """
    Non-streaming image description through chat completions.

    One call per image; the response is small, so streaming buys nothing.
    """

    def __init__(
        self,
        *,
        client: Any,
        model: str,
        session_id: str,
    ) -> None:
        self._client = client
        self._model = model
        self._session_id = session_id

    async def describe(self, *, messages: list[dict[str, Any]]) -> str:
        try:
            with timed(
                "vision_describe",
                session_id=self._session_id,
                details={"model": self._model},
            ):
                response = await self._client.chat.completions.create(
                    model=self._model,
                    messages=messages,
                )
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # pylint: disable=broad-exception-caught
            raise VisionError(f"{type(exc).__name__}: {exc}") from exc

        text = self._extract_text(response)
        if not text:
            raise VisionError("empty description")
        return text

    @staticmethod
    def _extract_text(response: Any) -> str:
        try:
            return (response.choices[0].message.content or "").strip()
        except (AttributeError, IndexError):
            return ""


def to_image_url(image: str) -> str:
    """
    Normalize a perception image payload into something the API accepts.

    Browsers send canvas data URLs; bare base64 is assumed to be PNG.
    """
    if image.startswith(("data:", "http://", "https://")):
        return image
    return f"data:image/png;base64,{image}"
