"""
Per-request timing for the image endpoints.

A RequestTimer lives in a context variable for the duration of one request.
Handlers wrap work in stage(); the collected stages become the Server-Timing
header, and with PERF_STAGE_LOGS on, finish_request() prints one orjson
summary line per request.
"""

from __future__ import annotations

import contextvars
import os
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

import orjson

_LOGS_ENABLED = os.getenv("PERF_STAGE_LOGS", "false").strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class RequestTimer:
    request_id: str
    started: float = field(default_factory=time.perf_counter)
    stages: dict[str, float] = field(default_factory=dict)

    def add(self, name: str, ms: float) -> None:
        self.stages[name] = round(self.stages.get(name, 0.0) + ms, 3)

    @property
    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self.started) * 1000.0


_current: contextvars.ContextVar[RequestTimer | None] = contextvars.ContextVar(
    "imagefeed_request_timer", default=None
)


def new_request_id() -> str:
    return uuid.uuid4().hex[:16]


def start_request(request_id: str) -> contextvars.Token:
    return _current.set(RequestTimer(request_id))


def finish_request(token: contextvars.Token, **fields: Any) -> None:
    """Drop the timer; `fields` (cache layer, status) go into the summary line."""
    timer = _current.get()
    _current.reset(token)
    if timer is None or not _LOGS_ENABLED:
        return
    print(
        orjson.dumps(
            {
                "event": "request_timing",
                "request_id": timer.request_id,
                "total_ms": round(timer.elapsed_ms, 3),
                "stages": timer.stages,
                **fields,
            }
        ).decode()
    )


@contextmanager
def stage(name: str):
    start = time.perf_counter()
    try:
        yield
    finally:
        timer = _current.get()
        if timer is not None:
            timer.add(name, (time.perf_counter() - start) * 1000.0)


def server_timing_header() -> str:
    """Server-Timing value, e.g. `image_cache;dur=12.3, total;dur=12.9`."""
    timer = _current.get()
    if timer is None:
        return ""
    parts = [f"{name.replace(' ', '_')};dur={ms:.1f}" for name, ms in timer.stages.items()]
    parts.append(f"total;dur={timer.elapsed_ms:.1f}")
    return ", ".join(parts)
