from __future__ import annotations

"""Round results: answer records, aggregation and formatting."""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from ..drills.questions import Question


@dataclass(frozen=True)
class AnswerRecord:
    question: Question
    answer: Union[int, str]
    correct: bool
    elapsed_ms: float


@dataclass(frozen=True)
class TimelinePoint:
    index: int
    seconds: float
    correct: bool


@dataclass(frozen=True)
class RoundSummary:
    correct_count: int
    wrong_count: int
    average_elapsed_seconds: float
    timeline: List[TimelinePoint] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.correct_count + self.wrong_count


@dataclass(frozen=True)
class RoundProgress:
    correct: int
    wrong: int
    remaining: int
    total: Optional[int]


def ms_to_seconds(ms: float) -> float:
    return round(ms) / 1000


def summarize(results: Sequence[AnswerRecord]) -> RoundSummary:
    """Aggregate a result log into counts, mean time and a per-answer timeline."""
    correct = sum(1 for r in results if r.correct)
    times = np.array([r.elapsed_ms for r in results], dtype="float64")
    avg_ms = float(times.mean()) if times.size else 0.0
    timeline = [
        TimelinePoint(index=i, seconds=ms_to_seconds(r.elapsed_ms), correct=r.correct)
        for i, r in enumerate(results, start=1)
    ]
    return RoundSummary(
        correct_count=correct,
        wrong_count=len(results) - correct,
        average_elapsed_seconds=ms_to_seconds(avg_ms),
        timeline=timeline,
    )


def progress(results: Sequence[AnswerRecord], fixed_length: Optional[int]) -> RoundProgress:
    correct = sum(1 for r in results if r.correct)
    remaining = max(fixed_length - len(results), 0) if fixed_length is not None else 0
    return RoundProgress(correct=correct, wrong=len(results) - correct, remaining=remaining, total=fixed_length)


def timeline_frame(summary: RoundSummary) -> pd.DataFrame:
    """Timeline as a DataFrame with columns index, seconds, correct."""
    df = pd.DataFrame(
        {
            "index": pd.Series([p.index for p in summary.timeline], dtype="int64"),
            "seconds": pd.Series([p.seconds for p in summary.timeline], dtype="float64"),
            "correct": pd.Series([p.correct for p in summary.timeline], dtype="bool"),
        }
    )
    return df


def format_summary(summary: RoundSummary) -> str:
    """Return a human-readable summary of a round."""
    lines = [
        f"Correct: {summary.correct_count}",
        f"Wrong: {summary.wrong_count}",
        f"Average time: {summary.average_elapsed_seconds:.2f}s",
    ]
    for p in summary.timeline:
        mark = "+" if p.correct else "-"
        lines.append(f"  Q{p.index}: {mark} {p.seconds:.2f}s")
    return "\n".join(lines)
