from __future__ import annotations

"""Key-value preference store.

Holds one flat JSON record per key, the same shape a browser keeps in local
storage. The session configuration is the only thing saved between runs.

File layout::

    {"ert_config": "{\\"mode\\":\\"square\\",\\"inputType\\":\\"mc\\",\\"roundLength\\":10}"}
"""

import json
from pathlib import Path
from typing import Dict, Optional, Protocol

from pydantic import ValidationError

from ..app.explain import trace as xtrace
from ..config.config import SessionConfig

PREFERENCES_KEY = "ert_config"


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStore:
    def __init__(self, data: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(data or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStore:
    """Store backed by a single JSON object on disk.

    A missing, unreadable or non-object file reads as empty.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)


def load_preferences(
    store: KeyValueStore,
    key: str = PREFERENCES_KEY,
    default: Optional[SessionConfig] = None,
) -> SessionConfig:
    """Read the saved SessionConfig; missing or corrupt data gives the default."""
    fallback = default if default is not None else SessionConfig()
    raw = store.get(key)
    if raw is None:
        return fallback
    try:
        return SessionConfig.model_validate(json.loads(raw))
    except (ValueError, TypeError, ValidationError):
        xtrace("preferences_reset", {"key": key})
        return fallback


def save_preferences(store: KeyValueStore, config: SessionConfig, key: str = PREFERENCES_KEY) -> None:
    store.set(key, json.dumps(config.to_record(), separators=(",", ":")))
