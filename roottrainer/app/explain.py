from __future__ import annotations

"""Minimal tracing helpers (Explain Mode).

Enable with the --explain flag to print one terse line per milestone:
round start, each question, each answer, round end.
"""

import json
from typing import Any, Dict

_ENABLED = False


def enable(flag: bool = True) -> None:
    global _ENABLED
    _ENABLED = bool(flag)


def enabled() -> bool:
    return _ENABLED


def trace(event: str, payload: Dict[str, Any] | None = None) -> None:
    if not _ENABLED:
        return
    try:
        data = json.dumps(payload or {}, separators=(",", ":"), default=str)
    except (TypeError, ValueError):
        data = "{}"
    print(f"[EXPLAIN] {event} :: {data}")
