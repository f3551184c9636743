"""Disk-backed storage collaborator for configuration snapshots.

The store itself never performs I/O. Callers that want persistence (the CLI,
an application shell) pair a :class:`StateStore` with a storage object and
decide when to save.

- Default file: `CONFSTATE_STORAGE_PATH` env var or `artifacts/config.json`
- Content:      `{"version": ..., "timestamp": ..., "settings": <tree>}`

Timestamp format
----------------
UTC, ISO-8601 with a trailing `"Z"` and millisecond precision, e.g.
`"2025-11-12T02:02:37.104Z"`.

Usage
-----
>>> storage = JsonFileStorage()
>>> storage.save(store.get_state())
True
>>> store.initialize(storage.load())
True
"""

from __future__ import annotations

import json
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from confstate import __version__
from confstate.core.settings import get_logger

logger = get_logger("confstate.storage")

_ENVELOPE_KEYS = frozenset({"version", "timestamp", "settings"})


def _default_path() -> Path:
    """Return the default location of the persisted tree."""
    root = os.getenv("CONFSTATE_STORAGE_PATH")
    return Path(root) if root else Path("artifacts") / "config.json"


def _jsonify(value: Any, _seen: frozenset[int] = frozenset()) -> Any:
    """
    Return a JSON-safe representation of ``value``.

    Strategies:
    - Primitives (None, bool, int, float, str) -> returned as-is.
    - dict -> new dict with keys coerced to str.
    - list/tuple -> new list with recursive conversion.
    - objects -> ``repr(obj)`` fallback.

    A container reached again along its own ancestry raises ``ValueError``;
    a cyclic tree has no plain-document form.
    """
    if value is None or isinstance(value, bool | int | float | str):
        return value
    if id(value) in _seen:
        raise ValueError("Circular reference cannot be persisted")
    if isinstance(value, dict):
        seen = _seen | {id(value)}
        return {str(k): _jsonify(v, seen) for k, v in value.items()}
    if isinstance(value, list | tuple):
        seen = _seen | {id(value)}
        return [_jsonify(v, seen) for v in value]
    return repr(value)


class JsonFileStorage:
    """Persist one configuration tree as a JSON document."""

    def __init__(self, path: Path | None = None) -> None:
        self.path: Path = path if path is not None else _default_path()

    def exists(self) -> bool:
        return self.path.is_file()

    def save(self, tree: dict[str, Any]) -> bool:
        """Write ``tree`` to disk. Returns False (logged) on any failure."""
        if not isinstance(tree, dict):
            logger.error("Refusing to save non-mapping settings: %s", type(tree).__name__)
            return False
        try:
            payload = {
                "version": __version__,
                "timestamp": datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
                "settings": _jsonify(tree),
            }
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
                f.write("\n")
        except (OSError, ValueError) as exc:
            logger.error("Failed to save settings to %s: %s", self.path, exc)
            return False
        return True

    def load(self) -> dict[str, Any] | None:
        """Return the stored tree, or None when missing or unreadable.

        Only a document with exactly the envelope keys (``version``,
        ``timestamp``, ``settings``) is unwrapped. Any other JSON object is a
        bare document and loads whole, so hand-written config files load
        directly even when they have a ``settings`` key of their own.
        """
        if not self.exists():
            return None
        try:
            with self.path.open("r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, ValueError) as exc:
            # ValueError covers malformed JSON and undecodable bytes
            logger.error("Failed to load settings from %s: %s", self.path, exc)
            return None
        if not isinstance(payload, dict):
            logger.error("Stored settings in %s are not an object", self.path)
            return None
        if set(payload) == _ENVELOPE_KEYS and isinstance(payload["settings"], dict):
            return payload["settings"]
        return payload

    def clear(self) -> bool:
        """Delete the stored file. Returns False if it could not be removed."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError as exc:
            logger.error("Failed to clear settings at %s: %s", self.path, exc)
            return False
        return True


__all__ = ["JsonFileStorage"]
