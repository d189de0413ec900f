from __future__ import annotations

"""Session Manager: the round state machine behind every front-end.

Phases::

    CONFIGURING -> AWAITING_ANSWER <-> SHOWING_FEEDBACK -> ROUND_COMPLETE
                                                            |-> CONFIGURING (back to setup)
                                                            |-> AWAITING_ANSWER (replay / similar)

A correct answer schedules an automatic advance after a short pause; a wrong
answer waits for ``advance`` so the learner can read the hint and optionally
ask for a similar question. The pending advance is cancelled by every other
transition, and a timer that fires late is ignored.

The front-end owns no rules: it calls the operations below and listens on
``bus`` for ``question_ready``, ``answer_recorded``, ``round_complete`` and
``setup``.
"""

import random
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set, Union

from ..config.config import InputType, SessionConfig, default_session_config
from ..drills.distractors import FAR_CLUSTER_PROBABILITY, build_options
from ..drills.hints import hint_lines
from ..drills.questions import Question, generate_question, similar_question
from ..stats.stats import AnswerRecord, RoundProgress, RoundSummary, progress, summarize
from ..storage.store import PREFERENCES_KEY, JsonFileStore, KeyValueStore, MemoryStore, load_preferences, save_preferences
from ..util.randomness import make_rng
from . import events
from .events import EventBus
from .explain import trace as xtrace
from .scheduler import ScheduledTask, Scheduler, ThreadingScheduler

AUTO_ADVANCE_MS = 1200


class Phase(str, Enum):
    CONFIGURING = "configuring"
    AWAITING_ANSWER = "awaiting_answer"
    SHOWING_FEEDBACK = "showing_feedback"
    ROUND_COMPLETE = "round_complete"


IN_ROUND = frozenset({Phase.AWAITING_ANSWER, Phase.SHOWING_FEEDBACK})


class InvalidTransition(RuntimeError):
    """An operation was called in a phase that does not allow it."""

    def __init__(self, operation: str, phase: Phase) -> None:
        super().__init__(f"{operation}() is not allowed while {phase.value}")
        self.operation = operation
        self.phase = phase


@dataclass
class RoundState:
    config: SessionConfig
    used_roots: Set[int] = field(default_factory=set)
    results: List[AnswerRecord] = field(default_factory=list)
    current: Optional[Question] = None
    shown_at: Optional[float] = None


def parse_answer(raw: Union[int, str, None]) -> Optional[int]:
    """Integer value of a submitted answer, or None when it is not a number."""
    if isinstance(raw, bool) or raw is None:
        return None
    if isinstance(raw, int):
        return raw
    s = str(raw).strip()
    if s and s.isascii() and s.isdigit():
        return int(s)
    return None


class SessionManager:
    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        *,
        rng: Optional[random.Random] = None,
        scheduler: Optional[Scheduler] = None,
        clock: Callable[[], float] = time.perf_counter,
        bus: Optional[EventBus] = None,
        auto_advance_ms: int = AUTO_ADVANCE_MS,
        far_cluster_probability: float = FAR_CLUSTER_PROBABILITY,
        preferences_key: str = PREFERENCES_KEY,
        default_config: Optional[SessionConfig] = None,
    ) -> None:
        self.store = store if store is not None else MemoryStore()
        self.rng = rng if rng is not None else make_rng()
        self.scheduler = scheduler if scheduler is not None else ThreadingScheduler()
        self.clock = clock
        self.bus = bus if bus is not None else EventBus()
        self.auto_advance_ms = int(auto_advance_ms)
        self.far_cluster_probability = float(far_cluster_probability)
        self.preferences_key = preferences_key

        self.config = load_preferences(self.store, preferences_key, default_config)
        self.phase = Phase.CONFIGURING
        self.round = RoundState(config=self.config)

        self._lock = threading.RLock()
        self._pending: Optional[ScheduledTask] = None
        self._token = 0
        self._last_root: Optional[int] = None

    @classmethod
    def from_settings(cls, cfg: Dict[str, Any], store: Optional[KeyValueStore] = None, **kwargs: Any) -> "SessionManager":
        """Build a manager from validated settings (see ``validate_config``)."""
        feedback = cfg.get("feedback", {})
        storage = cfg.get("storage", {})
        if store is None:
            store = JsonFileStore(storage.get("preferences_path", "~/.roottrainer/preferences.json"))
        kwargs.setdefault("auto_advance_ms", feedback.get("auto_advance_ms", AUTO_ADVANCE_MS))
        kwargs.setdefault("far_cluster_probability", feedback.get("far_cluster_probability", FAR_CLUSTER_PROBABILITY))
        kwargs.setdefault("preferences_key", storage.get("preferences_key", PREFERENCES_KEY))
        kwargs.setdefault("default_config", default_session_config(cfg))
        return cls(store, **kwargs)

    # --- read-only views ---

    @property
    def current_question(self) -> Optional[Question]:
        return self.round.current

    @property
    def results(self) -> List[AnswerRecord]:
        return list(self.round.results)

    @property
    def used_roots(self) -> frozenset:
        return frozenset(self.round.used_roots)

    @property
    def in_round(self) -> bool:
        return self.phase in IN_ROUND

    def summary(self) -> RoundSummary:
        return summarize(self.round.results)

    def progress(self) -> RoundProgress:
        return progress(self.round.results, self.round.config.fixed_length)

    def hint(self) -> List[str]:
        """Hint lines for the last answer; empty unless it was wrong."""
        results = self.round.results
        if self.phase is not Phase.SHOWING_FEEDBACK or not results or results[-1].correct:
            return []
        return hint_lines(self.round.config.mode, results[-1].question)

    # --- configuration ---

    def configure(self, **changes: Any) -> SessionConfig:
        """Change individual settings, e.g. ``configure(mode="cube")``."""
        merged = {**self.config.model_dump(), **changes}
        return self.set_config(SessionConfig.model_validate(merged))

    def set_config(self, config: Union[SessionConfig, Dict[str, Any]]) -> SessionConfig:
        with self._lock:
            if self.phase in IN_ROUND:
                raise InvalidTransition("set_config", self.phase)
            return self._apply_config(config)

    def _apply_config(self, config: Union[SessionConfig, Dict[str, Any]]) -> SessionConfig:
        if not isinstance(config, SessionConfig):
            config = SessionConfig.model_validate(config)
        self.config = config
        save_preferences(self.store, config, self.preferences_key)
        xtrace("config_saved", config.to_record())
        return config

    # --- round lifecycle ---

    def start_round(self, config: Union[SessionConfig, Dict[str, Any], None] = None) -> Question:
        with self._lock:
            self._cancel_pending()
            if config is not None:
                self._apply_config(config)
            self._reset_round()
            xtrace("round_started", self.config.to_record())
            return self._next_question(None)

    def submit_answer(self, raw: Union[int, str]) -> AnswerRecord:
        with self._lock:
            if self.phase is not Phase.AWAITING_ANSWER or self.round.current is None:
                raise InvalidTransition("submit_answer", self.phase)
            question = self.round.current
            shown_at = self.round.shown_at if self.round.shown_at is not None else self.clock()
            elapsed_ms = max(0.0, (self.clock() - shown_at) * 1000.0)
            value = parse_answer(raw)
            record = AnswerRecord(
                question=question,
                answer=raw,
                correct=value is not None and value == question.root,
                elapsed_ms=elapsed_ms,
            )
            self.round.results.append(record)
            self._last_root = question.root
            self.phase = Phase.SHOWING_FEEDBACK
            xtrace(
                "graded",
                {"index": len(self.round.results), "answer": raw, "truth": question.root, "correct": record.correct},
            )
            self.bus.emit(events.ANSWER_RECORDED, record)
            if record.correct:
                self._schedule_auto_advance()
            return record

    def advance(self, prefer_similar: bool = False) -> Optional[Question]:
        """Leave feedback: next question, or None when the round is over."""
        with self._lock:
            if self.phase is not Phase.SHOWING_FEEDBACK:
                raise InvalidTransition("advance", self.phase)
            self._cancel_pending()
            return self._advance(prefer_similar)

    def end_round(self) -> RoundSummary:
        with self._lock:
            if self.phase not in IN_ROUND:
                raise InvalidTransition("end_round", self.phase)
            self._cancel_pending()
            return self._complete()

    def replay(self) -> Question:
        with self._lock:
            if self.phase is not Phase.ROUND_COMPLETE:
                raise InvalidTransition("replay", self.phase)
            return self.start_round()

    def practice_similar(self) -> Question:
        """New round opening with a question close to the last one answered."""
        with self._lock:
            if self.phase is not Phase.ROUND_COMPLETE:
                raise InvalidTransition("practice_similar", self.phase)
            last = self._last_root
            self._reset_round()
            xtrace("round_started", {**self.config.to_record(), "similar_to": last})
            return self._next_question(last)

    def back_to_setup(self) -> None:
        with self._lock:
            self._cancel_pending()
            self.phase = Phase.CONFIGURING
            self.round.current = None
            self.round.shown_at = None
            xtrace("setup", {})
            self.bus.emit(events.SETUP, self.config)

    # --- internals ---

    def _reset_round(self) -> None:
        self.round = RoundState(config=self.config)

    def _next_question(self, similar_to: Optional[int]) -> Question:
        cfg = self.round.config
        if similar_to is not None:
            q = similar_question(cfg.mode, similar_to, self.rng)
        else:
            q = generate_question(cfg.mode, self.round.used_roots, self.rng)
        if cfg.input_type is InputType.MULTIPLE_CHOICE:
            q = q.with_options(build_options(q.root, None, self.rng, self.far_cluster_probability))
        self.round.used_roots.add(q.root)
        self.round.current = q
        self.round.shown_at = self.clock()
        self.phase = Phase.AWAITING_ANSWER
        xtrace("question_created", {"index": len(self.round.results) + 1, "prompt": q.prompt, "truth": q.root})
        self.bus.emit(events.QUESTION_READY, q)
        return q

    def _advance(self, prefer_similar: bool) -> Optional[Question]:
        fixed = self.round.config.fixed_length
        results = self.round.results
        if fixed is not None and len(results) >= fixed:
            self._complete()
            return None
        similar_to = results[-1].question.root if prefer_similar and results else None
        return self._next_question(similar_to)

    def _complete(self) -> RoundSummary:
        self.phase = Phase.ROUND_COMPLETE
        self.round.current = None
        self.round.shown_at = None
        summary = self.summary()
        xtrace(
            "round_ended",
            {"correct": summary.correct_count, "wrong": summary.wrong_count, "avg_s": summary.average_elapsed_seconds},
        )
        self.bus.emit(events.ROUND_COMPLETE, summary)
        return summary

    def _schedule_auto_advance(self) -> None:
        self._cancel_pending()
        token = self._token
        self._pending = self.scheduler.schedule(self.auto_advance_ms, lambda: self._auto_advance(token))

    def _auto_advance(self, token: int) -> None:
        with self._lock:
            if token != self._token or self.phase is not Phase.SHOWING_FEEDBACK:
                xtrace("stale_advance_ignored", {"token": token})
                return
            self._pending = None
            self._token += 1
            self._advance(False)

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        self._token += 1
