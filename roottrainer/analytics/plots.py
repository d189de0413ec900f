from __future__ import annotations

"""Matplotlib scatter of answer times across a round."""

import os
from typing import Optional

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt

from ..stats.stats import RoundSummary, timeline_frame

CORRECT_COLOR = "#16a34a"
WRONG_COLOR = "#dc2626"


def plot_round_timeline(
    summary: RoundSummary,
    *,
    save_path: Optional[str | bytes | "os.PathLike[str]"] = None,
) -> bool:
    """Plot seconds per question, '+' for correct and '-' for wrong answers.

    Returns False when there is nothing to plot.
    """
    df = timeline_frame(summary)
    if df.empty:
        return False
    fig = plt.figure()
    for is_correct, marker, color, label in (
        (True, "P", CORRECT_COLOR, "Correct"),
        (False, "_", WRONG_COLOR, "Wrong"),
    ):
        g = df[df["correct"] == is_correct]
        if g.empty:
            continue
        plt.scatter(g["index"], g["seconds"], marker=marker, color=color, s=120, linewidths=2.5, label=label)
    plt.axhline(summary.average_elapsed_seconds, linestyle="--", linewidth=1, color="#64748b", label="Average")
    plt.xlabel("Question")
    plt.ylabel("Seconds")
    plt.xticks(df["index"].tolist())
    plt.title(f"Round summary: {summary.correct_count}/{summary.total} correct")
    plt.grid(linestyle="--", alpha=0.4)
    plt.legend()
    if save_path:
        plt.savefig(save_path, bbox_inches="tight", dpi=150)
    plt.close(fig)
    return True
