from __future__ import annotations

"""Tiny pub/sub event bus between the session state machine and the UI."""

from typing import Any, Callable, Dict, List

QUESTION_READY = "question_ready"
ANSWER_RECORDED = "answer_recorded"
ROUND_COMPLETE = "round_complete"
SETUP = "setup"


class EventBus:
    def __init__(self) -> None:
        self._subs: Dict[str, List[Callable[[Any], None]]] = {}

    def subscribe(self, event: str, handler: Callable[[Any], None]) -> None:
        self._subs.setdefault(event, []).append(handler)

    def unsubscribe(self, event: str, handler: Callable[[Any], None]) -> None:
        handlers = self._subs.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event: str, payload: Any = None) -> None:
        for h in list(self._subs.get(event, [])):
            try:
                h(payload)
            except Exception as exc:
                # One broken view must not stall the round.
                print(f"WARNING: handler for '{event}' failed: {exc}")
