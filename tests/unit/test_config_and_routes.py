# pylint: disable=missing-module-docstring,missing-function-docstring

from __future__ import annotations

import dataclasses

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from config import AppConfig
from server.app import build_tts_adapter, create_app

from fakes import app_config


def test_load_from_env_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("SOUL_NAME", "TTS_PROVIDER", "PUBLIC_HTTP_BASE", "AUDIO_CLIP_CAPACITY", "LLM_PROVIDER"):
        monkeypatch.delenv(name, raising=False)

    config = AppConfig.load_from_env()

    assert config.soul_name == "Milton"
    assert config.llm_provider == "openai"
    assert config.tts_provider == "elevenlabs"
    assert config.audio_clip_capacity == 256


def test_load_from_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SOUL_NAME", "Ada")
    monkeypatch.setenv("PUBLIC_HTTP_BASE", "https://soul.example/")
    monkeypatch.setenv("AUDIO_CLIP_CAPACITY", "3")

    config = AppConfig.load_from_env()

    assert config.soul_name == "Ada"
    assert config.public_http_base == "https://soul.example"
    assert config.audio_clip_capacity == 3


def test_load_from_env_rejects_bad_capacity(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUDIO_CLIP_CAPACITY", "0")

    with pytest.raises(ValueError):
        AppConfig.load_from_env()


def test_tts_adapter_is_optional_without_key() -> None:
    config = app_config()

    assert build_tts_adapter(config=config, session_id="s", clip_store=None) is None  # type: ignore[arg-type]

    with pytest.raises(ValueError):
        build_tts_adapter(
            config=dataclasses.replace(config, tts_provider="carrier-pigeon"),
            session_id="s",
            clip_store=None,  # type: ignore[arg-type]
        )


def test_create_app_requires_llm_key() -> None:
    with pytest.raises(RuntimeError):
        create_app(dataclasses.replace(app_config(), openai_api_key=None))


def test_health_and_audio_routes() -> None:
    app = create_app(app_config())
    client = TestClient(app)

    assert client.get("/health").json() == {"status": "ok"}

    clip_id = app.state.clip_store.put(b"RIFF....")
    resp = client.get(f"/audio/{clip_id}")
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "audio/wav"
    assert resp.content == b"RIFF...."

    assert client.get("/audio/unknown").status_code == 404


def test_websocket_without_client_id_is_closed() -> None:
    client = TestClient(create_app(app_config()))

    with client.websocket_connect("/ws") as ws:
        with pytest.raises(WebSocketDisconnect) as excinfo:
            ws.receive_text()

    assert excinfo.value.code == 1008
