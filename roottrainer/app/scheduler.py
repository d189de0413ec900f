from __future__ import annotations

"""Cancellable delayed callbacks.

The session manager only ever needs one: the short pause after a correct
answer before the next question appears. ``ThreadingScheduler`` runs it on a
timer thread; ``ManualScheduler`` runs it when the owner moves its clock
forward, which keeps tests and single-threaded front-ends deterministic.
"""

import threading
from dataclasses import dataclass, field
from typing import Callable, List, Protocol


class ScheduledTask(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> ScheduledTask: ...


class _TimerTask:
    def __init__(self, timer: threading.Timer) -> None:
        self._timer = timer

    def cancel(self) -> None:
        self._timer.cancel()


class ThreadingScheduler:
    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> ScheduledTask:
        timer = threading.Timer(max(0, delay_ms) / 1000.0, callback)
        timer.daemon = True
        timer.start()
        return _TimerTask(timer)


@dataclass
class _ManualTask:
    due_ms: int
    callback: Callable[[], None]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class ManualScheduler:
    """Scheduler driven by ``advance(ms)`` instead of wall time."""

    now_ms: int = 0
    _tasks: List[_ManualTask] = field(default_factory=list)

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> ScheduledTask:
        task = _ManualTask(self.now_ms + max(0, delay_ms), callback)
        self._tasks.append(task)
        return task

    def pending(self) -> int:
        return sum(1 for t in self._tasks if not t.cancelled)

    def advance(self, ms: int) -> int:
        """Move time forward and run every task that came due. Returns the count run."""
        self.now_ms += ms
        ran = 0
        while True:
            due = [t for t in self._tasks if not t.cancelled and t.due_ms <= self.now_ms]
            if not due:
                break
            task = min(due, key=lambda t: t.due_ms)
            self._tasks.remove(task)
            task.callback()
            ran += 1
        self._tasks = [t for t in self._tasks if not t.cancelled]
        return ran

    def flush(self) -> int:
        """Run everything pending regardless of due time."""
        pending = [t.due_ms for t in self._tasks if not t.cancelled]
        if not pending:
            return 0
        return self.advance(max(0, max(pending) - self.now_ms))
