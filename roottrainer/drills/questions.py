from __future__ import annotations

"""Question generation for square and cube root drills."""

import random
from dataclasses import dataclass, replace
from enum import Enum
from typing import AbstractSet, Optional, Tuple

from ..util.randomness import all_roots, choice, clamp, roots_except


class Mode(str, Enum):
    SQUARE = "square"
    CUBE = "cube"

    @property
    def exponent(self) -> int:
        return 2 if self is Mode.SQUARE else 3

    def power(self, root: int) -> int:
        return root ** self.exponent


@dataclass(frozen=True)
class Question:
    """One prompt shown to the learner.

    ``options`` is only set in multiple-choice rounds and always holds four
    unique roots, one of them ``root``.
    """

    prompt: int
    root: int
    options: Optional[Tuple[int, ...]] = None

    def with_options(self, options) -> "Question":
        return replace(self, options=tuple(options))


def make_question(mode: Mode, root: int) -> Question:
    mode = Mode(mode)
    return Question(prompt=mode.power(root), root=root)


def generate_question(mode: Mode, used_roots: AbstractSet[int], rng: random.Random) -> Question:
    """Pick an unused root uniformly; once all are used, any root may repeat.

    Does not touch ``used_roots``; the caller records the returned root.
    """
    available = roots_except(used_roots)
    root = choice(rng, available if available else all_roots())
    return make_question(mode, root)


def similar_question(mode: Mode, last_root: int, rng: random.Random) -> Question:
    """Nudge ``last_root`` by 1 or 2 in a random direction, clamped to range."""
    direction = -1 if rng.random() < 0.5 else 1
    step = rng.randint(1, 2)
    return make_question(mode, clamp(last_root + direction * step))
