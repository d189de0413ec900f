from __future__ import annotations

"""Randomness helpers for root selection and seeding.

Every generator takes an explicit ``random.Random`` so tests can pass a
seeded instance and the app can share one source per session.
"""

import os
import random
from typing import Iterable, List, Optional, Sequence, TypeVar

T = TypeVar("T")

ROOT_MIN = 1
ROOT_MAX = 100


def make_rng(seed: Optional[int] = None) -> random.Random:
    """Return a random source, seeded from ``seed`` or the SEED env var."""
    if seed is None:
        env = os.environ.get("SEED")
        if env is not None:
            try:
                seed = int(env)
            except ValueError:
                seed = None
    return random.Random(seed)


def all_roots() -> List[int]:
    return list(range(ROOT_MIN, ROOT_MAX + 1))


def roots_except(exclude: Iterable[int]) -> List[int]:
    """Roots in [ROOT_MIN, ROOT_MAX] not in ``exclude``, ascending."""
    skip = set(exclude)
    return [n for n in range(ROOT_MIN, ROOT_MAX + 1) if n not in skip]


def choice(rng: random.Random, items: Sequence[T]) -> T:
    return items[rng.randrange(len(items))]


def shuffled(rng: random.Random, items: Iterable[T]) -> List[T]:
    """Return a shuffled copy; the input is left untouched."""
    out = list(items)
    rng.shuffle(out)
    return out


def clamp(n: int, lo: int = ROOT_MIN, hi: int = ROOT_MAX) -> int:
    return max(lo, min(hi, n))
