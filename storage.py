"""
Key-value persistence for session state and workflow collections.

Purpose
-------
The identity and workflow layers never touch files or cookies directly. They
receive a store object with three methods and read/write plain JSON-able
values by key:

    load(key, default=None) -> value or default
    save(key, value)        -> None
    remove(key)             -> None

Stores
------
* `JsonFileStore`    one `<key>.json` file per key under a data directory.
* `MemoryStore`      dict-backed; used by tests and scripts.
* `FlaskSessionStore` the signed Flask cookie session of the current request,
  so each browser keeps its own `currentUser` / `isLoggedIn` pair.

Design & invariants
-------------------
* Reads are best-effort: a missing or corrupt file yields `default`.
* Writes are atomic (temp file + os.replace) so readers never observe a
  half-written collection.
* There is no locking. Two writers against the same directory race and the
  last write wins.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
from typing import Any, Dict

from flask import session

logger = logging.getLogger(__name__)

# Storage keys
CURRENT_USER_KEY = "currentUser"
LOGGED_IN_KEY = "isLoggedIn"
SUBMISSIONS_KEY = "submissions"
LEAVES_KEY = "leaves"


class JsonFileStore:
    """JSON file per key, rooted at `data_dir` (created on first write)."""

    def __init__(self, data_dir: str):
        # Resolve once so a later cwd change does not move the store
        self.data_dir = os.path.abspath(data_dir)

    def _path(self, key: str) -> str:
        """Map a storage key to its file; rejects keys that could escape the dir."""
        # Keys are fixed identifiers ("submissions", "leaves", ...); no separators or dotfiles
        if not key or os.sep in key or key.startswith("."):
            raise ValueError(f"invalid storage key: {key!r}")
        # One human-readable file per key, e.g. data/submissions.json
        return os.path.join(self.data_dir, f"{key}.json")

    def load(self, key: str, default: Any = None) -> Any:
        """Best-effort JSON reader.
        Returns `default` when the file is missing, unreadable or not valid JSON,
        so callers can assume a value and the app keeps serving requests.
        """
        path = self._path(key)
        try:
            # Small UTF-8 text file expected; parse straight into Python objects
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            # Nothing written yet for this key; not worth a log line
            return default
        except (json.JSONDecodeError, OSError) as exc:
            # Corrupt or hand-edited into an invalid state: note it and fall back
            logger.warning("Unreadable store file %s (%s); using default", path, exc)
            return default

    def save(self, key: str, value: Any) -> None:
        """Write JSON atomically using a temp file + os.replace(...).
        Readers never observe a half-written file. The temp file lives in the
        same directory so the replace stays on one filesystem.
        """
        path = self._path(key)
        # First write creates the data directory
        os.makedirs(self.data_dir, exist_ok=True)
        # Unique sibling temp file; returns a low-level descriptor plus its path
        fd, tmp = tempfile.mkstemp(dir=self.data_dir, prefix=f".{key}-", suffix=".json")
        try:
            # Wrap the descriptor in a file object so it is closed after the dump
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                # Pretty-print for human diffing; collections stay small
                json.dump(value, f, indent=2)
            # Atomic swap: either the old file stays or the new one fully appears
            os.replace(tmp, path)
        finally:
            # Only left behind if something failed before the replace
            if os.path.exists(tmp):
                os.remove(tmp)

    def remove(self, key: str) -> None:
        """Delete the file for `key`; a missing file is already the desired state."""
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            pass


class MemoryStore:
    """In-process store. Values are deep-copied so callers cannot alias state."""

    def __init__(self, initial: Dict[str, Any] = None):
        # Copy the seed so the caller's dict is never mutated through the store
        self._data: Dict[str, Any] = copy.deepcopy(initial or {})

    def load(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def save(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class FlaskSessionStore:
    """Store backed by `flask.session`; only valid inside a request context."""

    def load(self, key: str, default: Any = None) -> Any:
        return session.get(key, default)

    def save(self, key: str, value: Any) -> None:
        session[key] = value

    def remove(self, key: str) -> None:
        session.pop(key, None)
