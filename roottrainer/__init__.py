"""Root Trainer package initialization.

Square and cube root drills: question generation, multiple-choice
distractors, and the round state machine driving a presentation layer.
"""

from __future__ import annotations

__version__ = "0.3.0"

__all__ = ["__version__"]
