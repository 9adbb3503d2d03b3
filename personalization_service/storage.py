"""
Key-value storage used by every stateful component.

Components only see the small KeyValueStore protocol, so the same code runs
against an in-memory store in tests and a per-user JSON file in the web app.
Stores may raise StorageError subclasses; the helpers at the bottom of this
module catch them so components degrade to "no history" instead of failing.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from .exceptions import StorageError, StorageQuotaExceeded

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Synchronous, best-effort string store."""

    def get(self, key: str) -> Optional[str]:
        """Return the stored string or None."""

    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``. May raise StorageError."""

    def remove(self, key: str) -> None:
        """Delete ``key`` if present."""


class MemoryStore:
    """In-process store.

    Used for session-scoped data and in tests. ``quota_bytes`` caps the total
    size of stored values so quota-exceeded handling can be exercised.
    """

    def __init__(self, quota_bytes: Optional[int] = None):
        self._data: Dict[str, str] = {}
        self._lock = threading.Lock()
        self.quota_bytes = quota_bytes

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            if self.quota_bytes is not None:
                used = sum(len(v) for k, v in self._data.items() if k != key)
                if used + len(value) > self.quota_bytes:
                    raise StorageQuotaExceeded(
                        f"Writing {len(value)} bytes to '{key}' exceeds quota of {self.quota_bytes}"
                    )
            self._data[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._data.keys())

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


class JsonFileStore:
    """Persistent store backed by one JSON document on disk.

    The web app keeps one file per user, mirroring how user data files are
    laid out elsewhere in the project.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, str]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Ignoring corrupt store file {self.path}: {e}")
            return {}
        except OSError as e:
            raise StorageError(f"Failed to read {self.path}: {e}") from e
        if not isinstance(data, dict):
            logger.warning(f"Ignoring store file {self.path} with non-object root")
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _save(self, data: Dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to write {self.path}: {e}") from e

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._save(data)

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if key in data:
                del data[key]
                self._save(data)


# ---------------------------------------------------------------------------
# Failure-tolerant JSON helpers
# ---------------------------------------------------------------------------
# Stores supplied by collaborators may raise anything on quota or disk
# problems, so the helpers catch broadly and report through the logger.


def read_json(store: KeyValueStore, key: str, default: Any = None) -> Any:
    """Load and decode ``key``; return ``default`` when missing, corrupt or unreadable."""
    try:
        raw = store.get(key)
    except Exception as e:
        logger.warning(f"Storage read failed for '{key}': {e}")
        return default
    if raw is None:
        return default
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError, ValueError) as e:
        logger.warning(f"Malformed data under '{key}', treating as empty: {e}")
        return default


def write_json(store: KeyValueStore, key: str, value: Any) -> bool:
    """Encode and store ``value``. Returns False (and logs) on failure."""
    try:
        payload = json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        logger.warning(f"Could not serialize value for '{key}': {e}")
        return False
    try:
        store.set(key, payload)
        return True
    except Exception as e:
        logger.warning(f"Storage write failed for '{key}': {e}")
        return False


def remove_key(store: KeyValueStore, key: str) -> bool:
    try:
        store.remove(key)
        return True
    except Exception as e:
        logger.warning(f"Storage remove failed for '{key}': {e}")
        return False
