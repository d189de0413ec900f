import json
import random
import unittest

from pydantic import ValidationError

from roottrainer.app import events
from roottrainer.app.scheduler import ManualScheduler
from roottrainer.app.session_manager import InvalidTransition, Phase, SessionManager, parse_answer
from roottrainer.config.config import InputType, SessionConfig
from roottrainer.drills.questions import Mode
from roottrainer.storage.store import PREFERENCES_KEY, MemoryStore


class FakeClock:
    def __init__(self) -> None:
        self.t = 0.0

    def __call__(self) -> float:
        return self.t

    def tick(self, seconds: float) -> None:
        self.t += seconds


class NonCancellingScheduler(ManualScheduler):
    """Scheduler whose cancel() does nothing, to exercise the stale-timer guard."""

    def schedule(self, delay_ms, callback):
        task = super().schedule(delay_ms, callback)

        class _Handle:
            def cancel(self_inner) -> None:
                pass

        return _Handle()


def make_manager(config=None, *, scheduler=None, store=None, seed=11):
    clock = FakeClock()
    manager = SessionManager(
        store if store is not None else MemoryStore(),
        rng=random.Random(seed),
        scheduler=scheduler if scheduler is not None else ManualScheduler(),
        clock=clock,
    )
    if config is not None:
        manager.set_config(config)
    return manager, clock


def wrong_answer(manager) -> int:
    root = manager.current_question.root
    return root + 1 if root < 100 else root - 1


class ParseAnswerTests(unittest.TestCase):
    def test_parse(self) -> None:
        self.assertEqual(parse_answer(12), 12)
        self.assertEqual(parse_answer(" 12 "), 12)
        self.assertIsNone(parse_answer(""))
        self.assertIsNone(parse_answer("abc"))
        self.assertIsNone(parse_answer("1.5"))
        self.assertIsNone(parse_answer(True))


class SessionManagerTests(unittest.TestCase):
    def test_defaults_when_store_empty(self) -> None:
        manager, _ = make_manager()
        self.assertEqual(manager.phase, Phase.CONFIGURING)
        self.assertEqual(manager.config, SessionConfig(mode="square", inputType="mc", roundLength=10))

    def test_reads_saved_preferences_once(self) -> None:
        store = MemoryStore({PREFERENCES_KEY: json.dumps({"mode": "cube", "inputType": "typed", "roundLength": "open"})})
        manager, _ = make_manager(store=store)
        self.assertEqual(manager.config.mode, Mode.CUBE)
        self.assertEqual(manager.config.input_type, InputType.TYPED)
        self.assertIsNone(manager.config.fixed_length)

    def test_configure_persists_and_validates(self) -> None:
        store = MemoryStore()
        manager, _ = make_manager(store=store)
        manager.configure(mode="cube", round_length=5)
        self.assertEqual(
            json.loads(store.get(PREFERENCES_KEY)),
            {"mode": "cube", "inputType": "mc", "roundLength": 5},
        )
        with self.assertRaises(ValidationError):
            manager.configure(round_length=7)
        self.assertEqual(manager.config.round_length, 5)

    def test_configure_rejected_mid_round(self) -> None:
        manager, _ = make_manager()
        manager.start_round()
        with self.assertRaises(InvalidTransition):
            manager.configure(mode="cube")

    def test_start_round_multiple_choice(self) -> None:
        manager, _ = make_manager()
        q = manager.start_round()
        self.assertEqual(manager.phase, Phase.AWAITING_ANSWER)
        self.assertEqual(len(q.options), 4)
        self.assertEqual(q.options.count(q.root), 1)
        self.assertEqual(manager.used_roots, frozenset({q.root}))
        self.assertEqual(q.prompt, q.root ** 2)

    def test_typed_round_has_no_options(self) -> None:
        manager, _ = make_manager({"mode": "cube", "inputType": "typed", "roundLength": 5})
        q = manager.start_round()
        self.assertIsNone(q.options)
        self.assertEqual(q.prompt, q.root ** 3)

    def test_five_wrong_answers_complete_round(self) -> None:
        manager, _ = make_manager({"mode": "square", "inputType": "typed", "roundLength": 5})
        completed = []
        manager.bus.subscribe(events.ROUND_COMPLETE, completed.append)
        manager.start_round()
        for i in range(1, 6):
            manager.submit_answer(wrong_answer(manager))
            self.assertEqual(len(manager.results), i)
            self.assertEqual(manager.phase, Phase.SHOWING_FEEDBACK)
            nxt = manager.advance()
            if i < 5:
                self.assertIsNotNone(nxt)
                self.assertEqual(manager.phase, Phase.AWAITING_ANSWER)
        self.assertEqual(manager.phase, Phase.ROUND_COMPLETE)
        summary = manager.summary()
        self.assertEqual(summary.correct_count, 0)
        self.assertEqual(summary.wrong_count, 5)
        self.assertEqual(len(summary.timeline), 5)
        self.assertTrue(all(not p.correct for p in summary.timeline))
        self.assertEqual([p.index for p in summary.timeline], [1, 2, 3, 4, 5])
        self.assertEqual(completed, [summary])

    def test_double_submit_rejected(self) -> None:
        manager, _ = make_manager()
        manager.start_round()
        manager.submit_answer(wrong_answer(manager))
        with self.assertRaises(InvalidTransition):
            manager.submit_answer(1)
        self.assertEqual(len(manager.results), 1)

    def test_non_numeric_answer_is_wrong(self) -> None:
        manager, _ = make_manager({"inputType": "typed"})
        manager.start_round()
        record = manager.submit_answer("")
        self.assertFalse(record.correct)
        manager.advance()
        record = manager.submit_answer("twelve")
        self.assertFalse(record.correct)
        self.assertEqual(record.answer, "twelve")

    def test_typed_string_answer_graded_numerically(self) -> None:
        manager, _ = make_manager({"inputType": "typed"})
        q = manager.start_round()
        self.assertTrue(manager.submit_answer(str(q.root)).correct)

    def test_elapsed_time_recorded(self) -> None:
        manager, clock = make_manager({"inputType": "typed", "roundLength": 5})
        manager.start_round()
        clock.tick(2.5)
        record = manager.submit_answer(wrong_answer(manager))
        self.assertAlmostEqual(record.elapsed_ms, 2500.0)
        manager.advance()
        clock.tick(0.5)
        manager.submit_answer(wrong_answer(manager))
        self.assertAlmostEqual(manager.summary().average_elapsed_seconds, 1.5)

    def test_correct_answer_auto_advances_after_delay(self) -> None:
        scheduler = ManualScheduler()
        manager, _ = make_manager(scheduler=scheduler)
        q = manager.start_round()
        manager.submit_answer(q.root)
        self.assertEqual(manager.phase, Phase.SHOWING_FEEDBACK)
        self.assertEqual(scheduler.pending(), 1)
        self.assertEqual(scheduler.advance(1199), 0)
        self.assertEqual(manager.phase, Phase.SHOWING_FEEDBACK)
        self.assertEqual(scheduler.advance(1), 1)
        self.assertEqual(manager.phase, Phase.AWAITING_ANSWER)
        self.assertNotEqual(manager.current_question.root, q.root)

    def test_wrong_answer_waits_for_advance(self) -> None:
        scheduler = ManualScheduler()
        manager, _ = make_manager(scheduler=scheduler)
        manager.start_round()
        manager.submit_answer(wrong_answer(manager))
        self.assertEqual(scheduler.pending(), 0)
        scheduler.advance(10_000)
        self.assertEqual(manager.phase, Phase.SHOWING_FEEDBACK)
        self.assertTrue(manager.hint())

    def test_last_correct_answer_auto_completes_fixed_round(self) -> None:
        scheduler = ManualScheduler()
        manager, _ = make_manager({"inputType": "typed", "roundLength": 5}, scheduler=scheduler)
        manager.start_round()
        for _ in range(5):
            manager.submit_answer(manager.current_question.root)
            scheduler.flush()
        self.assertEqual(manager.phase, Phase.ROUND_COMPLETE)
        self.assertEqual(manager.summary().correct_count, 5)

    def test_explicit_advance_cancels_timer(self) -> None:
        scheduler = ManualScheduler()
        manager, _ = make_manager(scheduler=scheduler)
        shown = []
        manager.bus.subscribe(events.QUESTION_READY, shown.append)
        q = manager.start_round()
        manager.submit_answer(q.root)
        manager.advance()
        self.assertEqual(scheduler.pending(), 0)
        scheduler.advance(5000)
        self.assertEqual(len(shown), 2)
        self.assertEqual(manager.phase, Phase.AWAITING_ANSWER)

    def test_back_to_setup_cancels_timer(self) -> None:
        scheduler = ManualScheduler()
        manager, _ = make_manager(scheduler=scheduler)
        q = manager.start_round()
        manager.submit_answer(q.root)
        manager.back_to_setup()
        self.assertEqual(scheduler.pending(), 0)
        scheduler.advance(5000)
        self.assertEqual(manager.phase, Phase.CONFIGURING)
        self.assertIsNone(manager.current_question)

    def test_stale_timer_is_ignored(self) -> None:
        scheduler = NonCancellingScheduler()
        manager, _ = make_manager(scheduler=scheduler)
        q = manager.start_round()
        manager.submit_answer(q.root)
        summary = manager.end_round()
        scheduler.advance(5000)
        self.assertEqual(manager.phase, Phase.ROUND_COMPLETE)
        self.assertEqual(manager.summary(), summary)

    def test_stale_timer_from_previous_round_is_ignored(self) -> None:
        scheduler = NonCancellingScheduler()
        manager, _ = make_manager(scheduler=scheduler)
        q = manager.start_round()
        manager.submit_answer(q.root)
        manager.start_round()
        q2 = manager.current_question
        manager.submit_answer(wrong_answer(manager))
        scheduler.advance(5000)
        self.assertEqual(manager.phase, Phase.SHOWING_FEEDBACK)
        self.assertEqual(manager.results[-1].question, q2)

    def test_open_round_never_repeats_until_exhausted(self) -> None:
        manager, _ = make_manager({"inputType": "typed", "roundLength": "open"})
        manager.start_round()
        roots = []
        for _ in range(100):
            roots.append(manager.current_question.root)
            manager.submit_answer(wrong_answer(manager))
            manager.advance()
        self.assertEqual(sorted(roots), list(range(1, 101)))
        self.assertEqual(manager.phase, Phase.AWAITING_ANSWER)
        self.assertTrue(1 <= manager.current_question.root <= 100)
        self.assertEqual(manager.progress().remaining, 0)
        summary = manager.end_round()
        self.assertEqual(summary.wrong_count, 100)

    def test_similar_question_after_wrong_answer(self) -> None:
        manager, _ = make_manager({"inputType": "typed", "roundLength": 15})
        for _ in range(20):
            q = manager.start_round()
            manager.submit_answer(wrong_answer(manager))
            nxt = manager.advance(prefer_similar=True)
            self.assertLessEqual(abs(nxt.root - q.root), 2)

    def test_progress_counts(self) -> None:
        manager, _ = make_manager({"inputType": "typed", "roundLength": 10})
        q = manager.start_round()
        manager.submit_answer(q.root)
        manager.advance()
        manager.submit_answer(wrong_answer(manager))
        p = manager.progress()
        self.assertEqual((p.correct, p.wrong, p.remaining, p.total), (1, 1, 8, 10))

    def test_round_complete_transitions(self) -> None:
        manager, _ = make_manager({"inputType": "typed", "roundLength": 5})
        with self.assertRaises(InvalidTransition):
            manager.replay()
        manager.start_round()
        manager.submit_answer(wrong_answer(manager))
        last_root = manager.results[-1].question.root
        manager.end_round()
        with self.assertRaises(InvalidTransition):
            manager.advance()

        q = manager.practice_similar()
        self.assertEqual(manager.phase, Phase.AWAITING_ANSWER)
        self.assertEqual(manager.results, [])
        self.assertLessEqual(abs(q.root - last_root), 2)

        manager.end_round()
        manager.replay()
        self.assertEqual(manager.phase, Phase.AWAITING_ANSWER)
        self.assertEqual(len(manager.used_roots), 1)

        manager.back_to_setup()
        self.assertEqual(manager.phase, Phase.CONFIGURING)
        manager.configure(mode="cube")
        self.assertEqual(manager.start_round().prompt, manager.current_question.root ** 3)

    def test_hint_only_after_wrong_answer(self) -> None:
        manager, _ = make_manager({"inputType": "typed"})
        q = manager.start_round()
        self.assertEqual(manager.hint(), [])
        manager.submit_answer(q.root)
        self.assertEqual(manager.hint(), [])
        manager.advance()
        q = manager.current_question
        manager.submit_answer(wrong_answer(manager))
        self.assertEqual(manager.hint()[0], f"The correct root is {q.root}.")

    def test_from_settings(self) -> None:
        cfg = {
            "session": {"mode": "cube", "inputType": "typed", "roundLength": 15},
            "feedback": {"auto_advance_ms": 300, "far_cluster_probability": 0.5},
            "storage": {"preferences_key": "other"},
        }
        manager = SessionManager.from_settings(cfg, store=MemoryStore(), scheduler=ManualScheduler())
        self.assertEqual(manager.auto_advance_ms, 300)
        self.assertEqual(manager.far_cluster_probability, 0.5)
        self.assertEqual(manager.preferences_key, "other")
        self.assertEqual(manager.config.mode, Mode.CUBE)
        self.assertEqual(manager.config.round_length, 15)


if __name__ == "__main__":
    unittest.main()
