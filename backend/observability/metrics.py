"""
Duration metrics.

Each measured block becomes one METRIC_TIMER log event (DEBUG level);
aggregation happens downstream, not here. Durations come from the
monotonic clock, ts_ms from the wall clock.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Iterator

from observability.logger import log_event


def emit_timer(
    name: str,
    *,
    duration_ms: int,
    session_id: str | None = None,
    details: dict[str, Any] | None = None,
    failed: bool = False,
) -> None:
    """Emit one METRIC_TIMER event."""
    log_event({
        "ts_ms": int(time.time() * 1000),
        "event_type": "METRIC_TIMER",
        "level": "DEBUG",
        "metric": name,
        "value_ms": duration_ms,
        "session_id": session_id,
        "failed": failed,
        "details": details or {},
    })


@contextmanager
def timed(
    name: str,
    *,
    session_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> Iterator[None]:
    """
    Time the enclosed block.

    One METRIC_TIMER per block, emitted on the way out. An exception
    propagates unchanged and the metric is flagged failed=True.

    Usage:
        with timed("oracle_completion", session_id=session_id):
            await oracle.generate(...)
    """
    start_ns = time.monotonic_ns()
    failed = False
    try:
        yield
    except BaseException:
        failed = True
        raise
    finally:
        emit_timer(
            name,
            duration_ms=(time.monotonic_ns() - start_ns) // 1_000_000,
            session_id=session_id,
            details=details,
            failed=failed,
        )
