from __future__ import annotations

"""Console front-end for Root Trainer.

Renders questions, options and feedback as text and forwards the learner's
input to the SessionManager; all rules live there.
"""

import argparse
import sys
import threading
from typing import Callable, Dict, List, Optional

from . import __version__
from .analytics.plots import plot_round_timeline
from .app import events
from .app.explain import enable as enable_explain
from .app.session_manager import Phase, SessionManager
from .config.config import InputType, load_config, validate_config
from .drills.questions import Mode
from .stats.stats import format_summary
from .util.randomness import make_rng

UI = Dict[str, Callable]


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="roottrainer", description="Square and cube root drills")
    p.add_argument("--config", type=str, default=None, help="Path to YAML config")
    p.add_argument("--version", action="store_true", help="Print version and exit")
    p.add_argument("--explain", action="store_true", help="Trace state transitions")
    p.add_argument("--seed", type=int, default=None, help="Seed the question generator")
    p.add_argument("--mode", choices=[m.value for m in Mode], default=None)
    p.add_argument("--input", dest="input_type", choices=[t.value for t in InputType], default=None)
    p.add_argument("--length", dest="round_length", default=None, help="5, 10, 15 or open")
    p.add_argument("--plot", type=str, default=None, help="Save the round summary chart to this path")
    return p.parse_args(argv)


def _describe(manager: SessionManager) -> str:
    cfg = manager.config
    answer = "multiple choice" if cfg.input_type is InputType.MULTIPLE_CHOICE else "typed"
    return f"{cfg.mode.value} roots, {answer}, round length {cfg.round_length}"


def _status_line(manager: SessionManager) -> str:
    p = manager.progress()
    if p.total is None:
        return f"Correct {p.correct} · Wrong {p.wrong} · Total {p.correct + p.wrong}"
    return f"Correct: {p.correct}  Wrong: {p.wrong}  Remaining: {p.remaining}"


def _ask_answer(manager: SessionManager, ui: UI) -> Optional[int]:
    """Prompt until the input is a usable answer; None means end the round."""
    q = manager.current_question
    assert q is not None
    while True:
        if q.options:
            raw = ui["ask"]("Pick 1-4 (or q to end the round): ").strip().lower()
            if raw == "q":
                return None
            if raw in ("1", "2", "3", "4"):
                return q.options[int(raw) - 1]
        else:
            raw = ui["ask"]("Type the root (1-100, q to end the round): ").strip().lower()
            if raw == "q":
                return None
            digits = "".join(ch for ch in raw if ch.isascii() and ch.isdigit())
            if digits:
                return int(digits)
        ui["inform"]("Please enter a number.")


def play_round(manager: SessionManager, ui: UI, *, similar: bool = False) -> None:
    """Drive one round from first question to summary."""
    changed = threading.Event()

    def on_change(_payload=None) -> None:
        changed.set()

    manager.bus.subscribe(events.QUESTION_READY, on_change)
    manager.bus.subscribe(events.ROUND_COMPLETE, on_change)
    try:
        if similar:
            manager.practice_similar()
        else:
            manager.start_round()
        while manager.phase is Phase.AWAITING_ANSWER:
            q = manager.current_question
            assert q is not None
            ui["inform"](_status_line(manager))
            ui["inform"](f"Find the {manager.round.config.mode.value} root of {q.prompt:,}")
            if q.options:
                ui["inform"]("   ".join(f"{i}) {opt}" for i, opt in enumerate(q.options, start=1)))
            value = _ask_answer(manager, ui)
            if value is None:
                manager.end_round()
                break
            changed.clear()
            record = manager.submit_answer(value)
            if record.correct:
                ui["inform"]("Nice! That's correct.\n")
                flush = getattr(manager.scheduler, "flush", None)
                if flush is not None:
                    flush()
                else:
                    changed.wait()
                continue
            for line in manager.hint():
                ui["inform"](line)
            choice = ui["ask"]("Enter to continue, 's' for a similar one, 'q' to end: ").strip().lower()
            if choice == "q":
                manager.end_round()
            else:
                manager.advance(prefer_similar=(choice == "s"))
    finally:
        manager.bus.unsubscribe(events.QUESTION_READY, on_change)
        manager.bus.unsubscribe(events.ROUND_COMPLETE, on_change)


def setup(manager: SessionManager, ui: UI) -> None:
    """Ask for mode, answer type and round length; blank keeps the saved value."""
    cfg = manager.config
    mode = ui["ask"](f"Mode [square/cube] ({cfg.mode.value}): ").strip().lower() or cfg.mode.value
    input_type = ui["ask"](f"Answer type [typed/mc] ({cfg.input_type.value}): ").strip().lower() or cfg.input_type.value
    length = ui["ask"](f"Round length [5/10/15/open] ({cfg.round_length}): ").strip().lower() or cfg.round_length
    try:
        manager.configure(mode=mode, input_type=input_type, round_length=length)
    except ValueError as exc:
        ui["inform"](f"Keeping previous settings: {exc}")


def run(manager: SessionManager, ui: UI, *, plot_path: Optional[str] = None, show_summary: bool = True) -> None:
    similar = False
    while True:
        ui["inform"](f"Starting: {_describe(manager)}")
        play_round(manager, ui, similar=similar)
        summary = manager.summary()
        if show_summary:
            ui["inform"]("\nRound summary:")
            ui["inform"](format_summary(summary))
        if plot_path and plot_round_timeline(summary, save_path=plot_path):
            ui["inform"](f"Chart saved to {plot_path}")
        choice = ui["ask"]("[p]lay again, [s]imilar, [c]hange setup, [q]uit: ").strip().lower()
        if choice == "s":
            similar = manager.results != []
            if not similar:
                ui["inform"]("Nothing answered yet; starting a fresh round.")
        elif choice == "c":
            manager.back_to_setup()
            setup(manager, ui)
            similar = False
        elif choice == "q":
            manager.back_to_setup()
            return
        else:
            similar = False


def cli(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    if args.version:
        print(f"roottrainer {__version__}")
        return 0
    enable_explain(args.explain)

    cfg = validate_config(load_config(args.config))
    manager = SessionManager.from_settings(cfg, rng=make_rng(args.seed))

    overrides = {
        k: v
        for k, v in (("mode", args.mode), ("input_type", args.input_type), ("round_length", args.round_length))
        if v is not None
    }
    if overrides:
        try:
            manager.configure(**overrides)
        except ValueError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 2

    ui: UI = {"ask": input, "inform": print}
    plot_path = args.plot or cfg["stats"].get("plot_path")
    try:
        run(manager, ui, plot_path=plot_path, show_summary=bool(cfg["stats"].get("show_summary", True)))
    except (KeyboardInterrupt, EOFError):
        manager.back_to_setup()
        print()
    return 0


if __name__ == "__main__":
    sys.exit(cli())
