from __future__ import annotations

"""Worked hints shown after a wrong answer."""

from dataclasses import dataclass
from typing import List

from ..util.randomness import ROOT_MAX
from .questions import Mode, Question

# last digit of n**3 -> last digit of n
CUBE_LAST_DIGIT = {0: 0, 1: 1, 2: 8, 3: 7, 4: 4, 5: 5, 6: 6, 7: 3, 8: 2, 9: 9}


@dataclass(frozen=True)
class SquareHint:
    lower_root: int
    lower_square: int
    upper_root: int
    upper_square: int
    root: int

    def lines(self, prompt: int) -> List[str]:
        return [
            "Think in ranges: find consecutive squares around the number.",
            f"{self.lower_root}² = {self.lower_square} and {self.upper_root}² = {self.upper_square}",
            f"Since {prompt:,} is exactly {self.root}², the root is {self.root}.",
        ]


@dataclass(frozen=True)
class CubeHint:
    leading: int
    last_three: str
    tens: int
    last_digit: int
    root: int

    @property
    def recombined(self) -> int:
        return self.tens * 10 + self.last_digit

    def lines(self, prompt: int) -> List[str]:
        return [
            "Split the cube into the leading part and the last three digits.",
            f"Leading: {self.leading} → largest cube ≤ this is {self.tens}³.",
            f"Last three digits: {self.last_three} → last digit {self.last_three[-1]} "
            f"maps to root last digit {self.last_digit}.",
            f"Put together: {self.recombined} = {self.root}.",
        ]


def square_hint(prompt: int, root: int) -> SquareHint:
    """Bracket ``prompt`` between the square just below it and the one at or above it."""
    lower = 0
    for n in range(1, ROOT_MAX + 1):
        if n * n < prompt:
            lower = n
        else:
            break
    upper = lower + 1
    return SquareHint(lower, lower * lower, upper, upper * upper, root)


def cube_hint(prompt: int, root: int) -> CubeHint:
    digits = str(prompt)
    leading = int(digits[:-3] or "0")
    last_three = digits[-3:]
    tens = 0
    for t in range(1, 11):
        if t ** 3 <= leading:
            tens = t
    return CubeHint(leading, last_three, tens, CUBE_LAST_DIGIT[int(last_three[-1])], root)


def hint_lines(mode: Mode, question: Question) -> List[str]:
    if Mode(mode) is Mode.SQUARE:
        hint = square_hint(question.prompt, question.root)
    else:
        hint = cube_hint(question.prompt, question.root)
    return [f"The correct root is {question.root}.", *hint.lines(question.prompt)]
