"""
Structured event log.

Every event is a flat dict rendered as one compact JSON line on stdout,
so logs can be grepped per session_id / turn_id and replayed. Events
carry an optional "level" (DEBUG..ERROR, default INFO) used for
process-wide filtering.
"""

from __future__ import annotations

import json
import sys
import time
from typing import Any, Mapping, Callable


_LEVELS: dict[str, int] = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
}


# ------------------------------------------------------------------
# Explicit output sink (patchable in tests)
# ------------------------------------------------------------------

def _stdout_print(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()

_print: Callable[[str], None] = _stdout_print

_min_level: int = _LEVELS["DEBUG"]
_enabled: bool = True


def configure(*, level: str = "INFO", enabled: bool = True) -> None:
    """
    Set process-wide filtering.

    Called once at startup from the app factory. Events without a
    "level" field are treated as INFO.
    """
    global _min_level, _enabled  # pylint: disable=global-statement
    _min_level = _LEVELS.get(level.upper(), _LEVELS["INFO"])
    _enabled = enabled


def log_event(event: Mapping[str, Any]) -> None:
    """
    Emit one event.

    Callers pass the whole event (event_type plus context such as
    session_id and turn_id). A missing ts_ms is stamped with wall-clock
    milliseconds. Events below the configured level are dropped.
    Unserializable payloads degrade to a LOGGER_SERIALIZATION_ERROR
    line; this function never raises.
    """
    if not _enabled:
        return

    level = str(event.get("level", "INFO")).upper()
    if _LEVELS.get(level, _LEVELS["INFO"]) < _min_level:
        return

    payload = dict(event)
    payload.setdefault("ts_ms", int(time.time() * 1000))

    try:
        line = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        # Last-resort fallback; logging must never crash the runtime
        fallback: dict[str, Any] = {
            "ts_ms": payload.get("ts_ms"),
            "event_type": "LOGGER_SERIALIZATION_ERROR",
            "error": str(e),
            "original_event_repr": repr(event),
        }
        line = json.dumps(fallback, ensure_ascii=False, separators=(",", ":"))

    _print(line)
