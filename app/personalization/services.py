"""
Per-user engine registry.

Each user gets a PersonalizationEngine backed by ``<user_data_dir>/<uid>.json``
for durable state and an in-process store standing in for browser session
storage.
"""

import logging
import re
import threading
from pathlib import Path
from typing import Dict, Optional

from personalization_service.config import PersonalizationConfig
from personalization_service.models.utils import Clock, now_ms
from personalization_service.recommendations.engine import PersonalizationEngine, build_engine
from personalization_service.storage import JsonFileStore, MemoryStore

logger = logging.getLogger(__name__)

_UID_PATTERN = re.compile(r"^[A-Za-z0-9_-][A-Za-z0-9_.-]{0,127}$")


def is_valid_uid(uid: str) -> bool:
    """Only ids that are safe to use as a file name."""
    return bool(uid) and bool(_UID_PATTERN.match(uid))


class EngineRegistry:
    """Creates engines lazily and keeps one per uid."""

    def __init__(
        self,
        user_data_dir: Path,
        config: Optional[PersonalizationConfig] = None,
        clock: Clock = now_ms,
    ):
        self.user_data_dir = Path(user_data_dir)
        self.user_data_dir.mkdir(parents=True, exist_ok=True)
        self.config = config or PersonalizationConfig()
        self.clock = clock
        self._engines: Dict[str, PersonalizationEngine] = {}
        self._lock = threading.Lock()

    def get(self, uid: str) -> PersonalizationEngine:
        if not is_valid_uid(uid):
            raise ValueError(f"invalid uid: {uid!r}")
        with self._lock:
            engine = self._engines.get(uid)
            if engine is None:
                store = JsonFileStore(self.user_data_dir / f"{uid}.json")
                engine = build_engine(self.config, store, MemoryStore(), self.clock)
                self._engines[uid] = engine
                logger.debug(f"Created personalization engine for {uid}")
            return engine

    def close_all(self) -> None:
        """Flush every engine's pending interactions."""
        with self._lock:
            engines = list(self._engines.values())
            self._engines.clear()
        for engine in engines:
            engine.close()
