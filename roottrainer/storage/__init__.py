from .store import (
    PREFERENCES_KEY,
    KeyValueStore,
    JsonFileStore,
    MemoryStore,
    load_preferences,
    save_preferences,
)

__all__ = [
    "PREFERENCES_KEY",
    "KeyValueStore",
    "JsonFileStore",
    "MemoryStore",
    "load_preferences",
    "save_preferences",
]
