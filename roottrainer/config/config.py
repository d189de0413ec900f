from __future__ import annotations

"""Configuration loading and validation for Root Trainer.

Two layers:

- app settings from YAML (``defaults.yml`` or ``--config``), normalised by
  ``validate_config`` which warns and falls back on bad values;
- ``SessionConfig``, the per-round choice the learner makes on the setup
  screen, validated strictly with pydantic so a bad round length never
  reaches a running round.
"""

import sys
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..drills.questions import Mode


ALLOWED_MODES = {m.value for m in Mode}
ALLOWED_INPUT_TYPES = {"typed", "mc"}
ROUND_LENGTHS = (5, 10, 15)
OPEN_ROUND = "open"

RoundLength = Union[Literal[5, 10, 15], Literal["open"]]


class InputType(str, Enum):
    TYPED = "typed"
    MULTIPLE_CHOICE = "mc"


class SessionConfig(BaseModel):
    """Mode, answer type and round length for one round.

    Serialised flat with the stored names ``mode``, ``inputType`` and
    ``roundLength``; python code uses the snake_case attributes.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    mode: Mode = Mode.SQUARE
    input_type: InputType = Field(InputType.MULTIPLE_CHOICE, alias="inputType")
    round_length: RoundLength = Field(10, alias="roundLength")

    @field_validator("input_type", mode="before")
    @classmethod
    def _input_alias(cls, v: Any) -> Any:
        if isinstance(v, str) and v.replace("_", "").lower() in ("multiplechoice", "choice"):
            return InputType.MULTIPLE_CHOICE
        return v

    @field_validator("round_length", mode="before")
    @classmethod
    def _round_length(cls, v: Any) -> Any:
        if isinstance(v, bool):
            raise ValueError("roundLength must be 5, 10, 15 or 'open'")
        if isinstance(v, str):
            s = v.strip().lower()
            if s.isdigit():
                return int(s)
            return s
        return v

    @property
    def fixed_length(self) -> Optional[int]:
        """Number of questions in the round, or None for an open round."""
        return None if self.round_length == OPEN_ROUND else int(self.round_length)

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError:
        print(f"ERROR: Config file not found: {path}", file=sys.stderr)
        sys.exit(1)


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML or defaults.

    Args:
        path: Optional path to a YAML config. If None, use package defaults.

    Returns:
        A dictionary with configuration values.
    """
    if path:
        return _load_yaml(Path(path))
    return _load_yaml(Path(__file__).with_name("defaults.yml"))


def validate_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Apply defaults and validate configuration values in place.

    Unsupported values are reported as warnings and replaced by defaults.
    """
    cfg.setdefault("session", {})
    cfg.setdefault("feedback", {})
    cfg.setdefault("storage", {})
    cfg.setdefault("stats", {})

    session = cfg["session"]
    feedback = cfg["feedback"]
    storage = cfg["storage"]
    stats = cfg["stats"]

    session.setdefault("mode", "square")
    session.setdefault("inputType", "mc")
    session.setdefault("roundLength", 10)

    feedback.setdefault("auto_advance_ms", 1200)
    feedback.setdefault("far_cluster_probability", 0.2)

    storage.setdefault("preferences_path", "~/.roottrainer/preferences.json")
    storage.setdefault("preferences_key", "ert_config")

    stats.setdefault("show_summary", True)
    stats.setdefault("plot_path", None)

    if session.get("mode") not in ALLOWED_MODES:
        print(f"WARNING: Unsupported mode '{session.get('mode')}', using 'square'.")
        session["mode"] = "square"

    if session.get("inputType") not in ALLOWED_INPUT_TYPES:
        print(f"WARNING: Unsupported inputType '{session.get('inputType')}', using 'mc'.")
        session["inputType"] = "mc"

    length = session.get("roundLength")
    if length != OPEN_ROUND and length not in ROUND_LENGTHS:
        print(f"WARNING: Unsupported roundLength '{length}', using 10.")
        session["roundLength"] = 10

    try:
        delay = int(feedback.get("auto_advance_ms"))
    except (TypeError, ValueError):
        delay = -1
    if delay < 0:
        print(f"WARNING: Invalid auto_advance_ms '{feedback.get('auto_advance_ms')}', using 1200.")
        delay = 1200
    feedback["auto_advance_ms"] = delay

    try:
        p = float(feedback.get("far_cluster_probability"))
    except (TypeError, ValueError):
        p = -1.0
    if not 0.0 <= p <= 1.0:
        print(
            f"WARNING: far_cluster_probability must be within [0, 1], got "
            f"'{feedback.get('far_cluster_probability')}'; using 0.2."
        )
        p = 0.2
    feedback["far_cluster_probability"] = p

    return cfg


def default_session_config(cfg: Optional[Dict[str, Any]] = None) -> SessionConfig:
    """SessionConfig from the ``session`` section of validated settings."""
    if not cfg:
        return SessionConfig()
    return SessionConfig.model_validate(cfg.get("session", {}))
