"""
Command-line soul client.

Responsibilities:
- Connect to /ws?client_id=... and send perception messages
- Print spoken text as it arrives
- Drive the PlaybackScheduler: reserve on text, load on audio,
  release on audio_error
- Fetch clips over HTTP (aiohttp) and play them with sounddevice

Usage:
    python -m playback.client --say "hello" --image lamp.png
"""

from __future__ import annotations

import argparse
import asyncio
import base64
import json
import mimetypes
import sys
import uuid
from pathlib import Path
from typing import Any

import aiohttp
import numpy as np
import sounddevice as sd
from websockets.asyncio.client import connect
from websockets.exceptions import ConnectionClosed

from audio.pcm import wav_to_float32
from observability import logger
from observability.logger import log_event
from playback.scheduler import PlaybackError, PlaybackScheduler


# ------------------------------------------------------------------
# Clip
# ------------------------------------------------------------------

class HttpClip:
    """WAV clip fetched over HTTP and played on the default output device."""

    def __init__(self, http: aiohttp.ClientSession, url: str) -> None:
        self._http = http
        self._url = url
        self._samples: np.ndarray | None = None
        self._rate: int = 0

    async def load(self) -> None:
        try:
            async with self._http.get(self._url) as resp:
                if resp.status != 200:
                    raise PlaybackError(f"GET {self._url} -> {resp.status}")
                body = await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise PlaybackError(f"{type(exc).__name__}: {exc}") from exc

        try:
            self._samples, self._rate = wav_to_float32(body)
        except ValueError as exc:
            raise PlaybackError(str(exc)) from exc

    async def play(self) -> None:
        if self._samples is None:
            raise PlaybackError("clip not loaded")
        if len(self._samples) == 0:
            return
        try:
            sd.play(self._samples, samplerate=self._rate)
            await asyncio.to_thread(sd.wait)
        except sd.PortAudioError as exc:
            raise PlaybackError(f"PortAudioError: {exc}") from exc


# ------------------------------------------------------------------
# Perception builders
# ------------------------------------------------------------------

def said(text: str) -> dict[str, Any]:
    return {"action": "said", "content": text}


def object_added(
    *,
    name: str | None = None,
    image_path: Path | None = None,
    description: str | None = None,
) -> dict[str, Any]:
    """Build an addObject perception. Images are sent as data URLs."""
    metadata: dict[str, str] = {}
    if image_path is not None:
        mime = mimetypes.guess_type(image_path.name)[0] or "image/png"
        encoded = base64.b64encode(image_path.read_bytes()).decode("ascii")
        metadata["image"] = f"data:{mime};base64,{encoded}"
    if description is not None:
        metadata["description"] = description

    msg: dict[str, Any] = {"action": "addObject", "_metadata": metadata}
    if name is not None:
        msg["content"] = name
    return msg


# ------------------------------------------------------------------
# Session
# ------------------------------------------------------------------

class SoulClient:
    """One WebSocket session feeding one PlaybackScheduler."""

    def __init__(
        self,
        *,
        url: str,
        client_id: str,
        scheduler: PlaybackScheduler,
        out=sys.stdout,
    ) -> None:
        self._url = url
        self._client_id = client_id
        self._scheduler = scheduler
        self._out = out

    def handle_message(self, msg: dict[str, Any]) -> None:
        """Route one server message to the scheduler."""
        try:
            key = (int(msg["turn_id"]), int(msg["seq"]))
        except (KeyError, TypeError, ValueError):
            log_event({
                "event_type": "CLIENT_MESSAGE_IGNORED",
                "level": "WARNING",
                "keys": sorted(msg),
            })
            return

        if "text" in msg:
            self._scheduler.reserve(key)
            self._out.write(f"[{key[0]}.{key[1]}] {msg['text']}\n")
            self._out.flush()
        elif "audio" in msg:
            self._scheduler.on_audio(key, str(msg["audio"]))
        elif "audio_error" in msg:
            self._scheduler.on_audio_error(key, str(msg["audio_error"]))

    async def run(self, perceptions: list[dict[str, Any]], *, idle_s: float) -> None:
        """
        Send every perception, then print and play until the server has
        been quiet for `idle_s` seconds and playback has drained.
        """
        async with connect(f"{self._url}?client_id={self._client_id}") as ws:
            for perception in perceptions:
                await ws.send(json.dumps(perception))

            while True:
                try:
                    raw = await asyncio.wait_for(ws.recv(), timeout=idle_s)
                except asyncio.TimeoutError:
                    break
                except ConnectionClosed:
                    break

                try:
                    msg = json.loads(raw)
                except json.JSONDecodeError:
                    continue
                if isinstance(msg, dict):
                    self.handle_message(msg)

        await self._scheduler.drain()


# ------------------------------------------------------------------
# Entry point
# ------------------------------------------------------------------

def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Talk to a soul in a room.")
    parser.add_argument("--url", default="ws://localhost:8000/ws")
    parser.add_argument("--client-id", default=None)
    parser.add_argument("--say", action="append", default=[], help="text message (repeatable)")
    parser.add_argument("--image", type=Path, default=None, help="image of an object to add")
    parser.add_argument("--describe", default=None, help="text description of an object to add")
    parser.add_argument("--object-name", default=None)
    parser.add_argument("--idle", type=float, default=15.0, help="seconds of silence before exit")
    parser.add_argument("--log-level", default="WARNING")
    return parser.parse_args(argv)


async def _main(args: argparse.Namespace) -> None:
    perceptions: list[dict[str, Any]] = []
    if args.image is not None or args.describe is not None:
        perceptions.append(object_added(
            name=args.object_name,
            image_path=args.image,
            description=args.describe,
        ))
    perceptions.extend(said(text) for text in args.say)
    if not perceptions:
        raise SystemExit("nothing to send: use --say, --image or --describe")

    async with aiohttp.ClientSession() as http:
        scheduler = PlaybackScheduler(
            clip_factory=lambda url: HttpClip(http, url),
            on_talking_started=lambda: log_event({"event_type": "TALKING", "talking": True}),
            on_talking_stopped=lambda: log_event({"event_type": "TALKING", "talking": False}),
        )
        client = SoulClient(
            url=args.url,
            client_id=args.client_id or uuid.uuid4().hex,
            scheduler=scheduler,
        )
        await client.run(perceptions, idle_s=args.idle)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    logger.configure(level=args.log_level)
    asyncio.run(_main(args))


if __name__ == "__main__":
    main()
