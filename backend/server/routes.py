"""
Route registration for the soul agent API.

Responsibilities:
- Define HTTP and WebSocket endpoints
- Wire gateway to WebSocket lifecycle
- Serve synthesized audio clips
- Pull dependencies from app.state
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import FastAPI, HTTPException, Response, WebSocket, WebSocketDisconnect

from audio.clip_store import AudioClipStore
from constants import WS_POLICY_VIOLATION_CODE
from observability.logger import log_event
from session.gateway import SessionGateway


def register_routes(app: FastAPI) -> None:
    """Register all routes on the FastAPI app."""
    @app.get("/health")
    async def health() -> dict[str, str]: # pyright: ignore[reportUnusedFunction]
        return {"status": "ok"}

    @app.get("/audio/{clip_id}")
    async def audio_clip(clip_id: str) -> Response: # pyright: ignore[reportUnusedFunction]
        clip_store: AudioClipStore = app.state.clip_store
        clip = clip_store.get(clip_id)
        if clip is None:
            raise HTTPException(status_code=404, detail="unknown clip")
        return Response(content=clip.data, media_type=clip.media_type)

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket) -> None: # pyright: ignore[reportUnusedFunction]
        client_id = ws.query_params.get("client_id")
        await ws.accept()

        if not client_id:
            log_event({
                "event_type": "WS_REJECTED",
                "level": "WARNING",
                "reason": "missing client_id",
            })
            await ws.close(code=WS_POLICY_VIOLATION_CODE)
            return

        async def send_json(msg: dict[str, Any]) -> None:
            await ws.send_text(json.dumps(msg))

        gateway = SessionGateway(
            config=app.state.config,
            client_id=client_id,
            send_json=send_json,
            adapter_factory=app.state.adapter_factory,
        )

        try:
            await gateway.on_ws_connect()

            while True:
                msg = await ws.receive()

                if msg["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect()

                if msg.get("text") is not None:
                    await gateway.on_json_message(msg["text"])

                elif msg.get("bytes") is not None:
                    log_event({
                        "event_type": "WS_BINARY_IGNORED",
                        "level": "WARNING",
                        "session_id": client_id,
                        "bytes": len(msg["bytes"]),
                    })

        except WebSocketDisconnect:
            await gateway.on_ws_disconnect(reason="client_disconnect")

        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "WS_FATAL_ERROR",
                "level": "ERROR",
                "session_id": gateway.session.session_id if gateway.session else None,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            await gateway.on_ws_disconnect(reason="server_error")
