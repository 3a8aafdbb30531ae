"""
Key-value persistence for user settings.

The aggregation core never inspects what is stored; it only calls get / set /
clear and tolerates any key being absent.
"""

import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

SETTINGS_KEY = 'settings'

DEFAULT_SETTINGS: Dict[str, Any] = {
    'dataSaver': False,
    'preferredLanguage': None,
}


class KeyValueStore(ABC):
    """Contract shared by every store backend."""

    @abstractmethod
    def get(self, key: str, default: Optional[Any] = None) -> Optional[Any]:
        """Stored value, or `default` when the key is absent."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        pass

    @abstractmethod
    def clear(self) -> None:
        """Drop every key."""


class MemoryStore(KeyValueStore):
    """Process-local store, mostly for tests."""

    def __init__(self):
        self._data: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key, default=None):
        with self._lock:
            return self._data.get(key, default)

    def set(self, key, value):
        with self._lock:
            self._data[key] = value

    def clear(self):
        with self._lock:
            self._data.clear()


class JsonFileStore(KeyValueStore):
    """Store persisted as one JSON document on disk."""

    def __init__(self, filepath: str):
        self.filepath = filepath
        self._lock = threading.RLock()

    def _load(self) -> Dict[str, Any]:
        if not os.path.exists(self.filepath):
            return {}
        try:
            with open(self.filepath, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Store file unreadable, starting empty: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: Dict[str, Any]) -> None:
        directory = os.path.dirname(self.filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.filepath, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=4, ensure_ascii=False)

    def get(self, key, default=None):
        with self._lock:
            return self._load().get(key, default)

    def set(self, key, value):
        with self._lock:
            data = self._load()
            data[key] = value
            self._save(data)

    def clear(self):
        with self._lock:
            self._save({})


def load_settings(store: KeyValueStore) -> Dict[str, Any]:
    """User settings merged over the defaults."""
    stored = store.get(SETTINGS_KEY)
    settings = dict(DEFAULT_SETTINGS)
    if isinstance(stored, dict):
        settings.update({k: v for k, v in stored.items() if k in DEFAULT_SETTINGS})
    return settings


def save_settings(store: KeyValueStore, updates: Dict[str, Any]) -> Dict[str, Any]:
    """Apply known keys from `updates` and persist the result."""
    settings = load_settings(store)
    settings.update({k: v for k, v in updates.items() if k in DEFAULT_SETTINGS})
    store.set(SETTINGS_KEY, settings)
    return settings
