from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Optional

from .errors import PersistenceError

logger = logging.getLogger("routine_advisor.store")


class LocalStore:
    """Scoped string key-value store backed by a single JSON file."""

    def __init__(self, path: Optional[Path] = None) -> None:
        """Purpose: Initialize the store and hydrate from disk if available.
        Inputs/Outputs: Input is an optional file path (None keeps data in memory only).
        Side Effects / State: Loads and caches all key/value pairs in memory.
        Dependencies: Calls _load.
        Failure Modes: Unreadable or malformed files leave the cache empty.
        If Removed: Selection and conversation are lost on every restart.
        Testing Notes: Write a value, create a second store on the same path, read it back.
        """
        # Keep configuration and preload persisted values if present.
        self._path = path
        self._items: Dict[str, str] = {}
        self._load()

    def _load(self) -> None:
        """Purpose: Load persisted items from disk into memory.
        Inputs/Outputs: Reads from self._path; no return value.
        Side Effects / State: Populates _items.
        Dependencies: Uses json.loads.
        Failure Modes: Missing file, OSError or JSONDecodeError results in an empty cache.
        If Removed: Previously stored values are never restored on startup.
        Testing Notes: Corrupt JSON should not crash; valid JSON should hydrate the cache.
        """
        # Read and decode persisted JSON if present.
        if not self._path or not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.debug("ignoring unreadable store %s: %s", self._path, exc)
            return
        if isinstance(data, dict):
            self._items = {str(key): value for key, value in data.items() if isinstance(value, str)}

    def _persist(self) -> None:
        """Purpose: Write the in-memory items to disk.
        Inputs/Outputs: Writes to self._path; no return value.
        Side Effects / State: Creates the parent directory and rewrites the JSON file.
        Dependencies: Uses json.dumps and Path.write_text.
        Failure Modes: OSError is wrapped in PersistenceError.
        If Removed: Values are never saved across restarts.
        Testing Notes: Ensure the file is created and contains every key.
        """
        # Serialize the whole snapshot; values are already JSON strings.
        if not self._path:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(self._items, ensure_ascii=False, indent=2), encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"cannot write {self._path}: {exc}") from exc

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        """Store a value and flush the snapshot; raises PersistenceError on write failure."""
        self._items[key] = value
        self._persist()
