from __future__ import annotations

"""Multiple-choice option synthesis.

Two flavours of wrong answers:

- near: two neighbours of the correct root plus one far outlier, so the
  learner has to pin down the exact value;
- far cluster: all three decoys grouped around a second, distant root, so a
  learner who only estimates the magnitude is drawn to the wrong group.
"""

import random
from typing import Iterable, List, Optional, Set, Tuple

from ..util.randomness import choice, roots_except, shuffled

OPTION_COUNT = 4
FAR_CLUSTER_PROBABILITY = 0.2

NEAR_DISTANCE = 3
NEAR_FALLBACK_DISTANCE = 5
FAR_DISTANCE = 10
CLUSTER_DISTANCE = 8


def _pick_near(center: int, count: int, exclude: Set[int], rng: random.Random) -> List[int]:
    """Pick up to ``count`` roots around ``center`` and add them to ``exclude``.

    Distance 1-3 first; when that runs dry (range edges, crowded exclude set)
    anything within 5 of the centre qualifies.
    """
    primary = [n for n in roots_except(exclude) if 1 <= abs(n - center) <= NEAR_DISTANCE]
    picked = shuffled(rng, primary)[:count]
    if len(picked) < count:
        taken = exclude | set(picked)
        fallback = [n for n in roots_except(taken) if abs(n - center) <= NEAR_FALLBACK_DISTANCE]
        picked += shuffled(rng, fallback)[: count - len(picked)]
    exclude.update(picked)
    return picked


def _pick_far(center: int, exclude: Set[int], rng: random.Random) -> int:
    pool = [n for n in roots_except(exclude) if abs(n - center) >= FAR_DISTANCE]
    pick = choice(rng, pool or roots_except(exclude))
    exclude.add(pick)
    return pick


def cluster_decoys(
    correct_root: int,
    rng: random.Random,
    exclude: Optional[Iterable[int]] = None,
) -> Tuple[int, List[int]]:
    """Return ``(center, decoys)`` for the far-cluster trap.

    The centre is at least CLUSTER_DISTANCE away from the correct root and
    up to three decoys sit around it.
    """
    taken = set(exclude or ()) | {correct_root}
    candidates = roots_except(taken)
    far = [n for n in candidates if abs(n - correct_root) >= CLUSTER_DISTANCE]
    center = choice(rng, far or candidates)
    return center, _pick_near(center, OPTION_COUNT - 1, taken, rng)


def build_options(
    correct_root: int,
    far_cluster: Optional[bool],
    rng: random.Random,
    far_cluster_probability: float = FAR_CLUSTER_PROBABILITY,
) -> List[int]:
    """Four unique roots including ``correct_root`` once, in random order.

    ``far_cluster=None`` draws the flavour from ``rng`` with
    ``far_cluster_probability``.
    """
    if far_cluster is None:
        far_cluster = rng.random() < far_cluster_probability

    if far_cluster:
        _, decoys = cluster_decoys(correct_root, rng)
    else:
        exclude = {correct_root}
        decoys = _pick_near(correct_root, 2, exclude, rng)
        decoys.append(_pick_far(correct_root, exclude, rng))

    options = shuffled(rng, [correct_root, *decoys[: OPTION_COUNT - 1]])

    unique = list(dict.fromkeys(options))
    while len(unique) < OPTION_COUNT:
        unique.append(choice(rng, roots_except(unique)))
    return shuffled(rng, unique)
