"""
Listener Registry: global and path-scoped change subscribers.

Global listeners receive ``(state, changes, metadata)`` after every
committed write. Path listeners receive ``(value, path)`` when their path,
one of its descendants, or one of its ancestors changed in a way that
touches the value they watch.

Delivery is synchronous, in registration order, with per-listener fault
isolation: an exception is logged and the remaining listeners still run.
The mutation has already committed by the time any listener is called.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any, TypedDict

from .clone import deep_clone
from .diff import ROOT, ChangeRecord, clone_record
from .equality import deep_equal
from .paths import NOT_FOUND, ancestors, depth, get_path, is_descendant


class ChangeMetadata(TypedDict):
    """Metadata handed to global listeners."""

    type: str
    path: str | None


GlobalListener = Callable[[dict[str, Any], ChangeRecord | None, ChangeMetadata], None]
PathListener = Callable[[Any, str], None]
Unsubscribe = Callable[[], None]


class ListenerRegistry:
    """Holds subscribers and fans out notifications."""

    __slots__ = ("_global", "_paths", "_logger")

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._global: list[GlobalListener] = []
        self._paths: dict[str, list[PathListener]] = {}
        self._logger = logger or logging.getLogger("confstate.listeners")

    # ------------------------------ Registration ----------------------------

    def subscribe(self, listener: GlobalListener) -> Unsubscribe:
        """Register a global listener; returns an idempotent unsubscribe callable."""
        if not callable(listener):
            raise TypeError("Listener must be callable")
        self._global.append(listener)

        def unsubscribe() -> None:
            if listener in self._global:
                self._global.remove(listener)

        return unsubscribe

    def subscribe_path(self, path: str, listener: PathListener) -> Unsubscribe:
        """Register a listener for ``path`` and everything beneath it."""
        if not path:
            raise ValueError("Path listeners require a non-empty path")
        if not callable(listener):
            raise TypeError("Listener must be callable")
        self._paths.setdefault(path, []).append(listener)

        def unsubscribe() -> None:
            bucket = self._paths.get(path)
            if bucket and listener in bucket:
                bucket.remove(listener)
                if not bucket:
                    del self._paths[path]

        return unsubscribe

    def listener_count(self, path: str | None = None) -> int:
        """Number of global listeners, or of listeners on ``path``."""
        if path is None:
            return len(self._global)
        return len(self._paths.get(path, ()))

    def watched_paths(self) -> tuple[str, ...]:
        return tuple(self._paths)

    # ------------------------------ Delivery --------------------------------

    def notify(
        self,
        state: dict[str, Any],
        changes: ChangeRecord | None,
        metadata: ChangeMetadata,
    ) -> None:
        """Call every global listener with its own copy of ``state`` and ``changes``."""
        for listener in list(self._global):
            own = clone_record(changes) if changes is not None else None
            try:
                listener(deep_clone(state), own, metadata)
            except Exception:
                self._logger.exception("Error in state listener during %s", metadata["type"])

    def affected_paths(
        self,
        changed: Iterable[str],
        current: Any,
        previous: Any,
    ) -> list[str]:
        """Return the watched paths a commit touches, most specific first."""
        changed = list(changed)
        hit: dict[str, None] = {}
        for path in changed:
            if path == ROOT:
                continue
            for candidate in (path, *ancestors(path)):
                if candidate in self._paths:
                    hit.setdefault(candidate)

        for watched in self._paths:
            if watched in hit:
                continue
            beneath = any(p == ROOT or is_descendant(watched, p) for p in changed)
            if beneath and not deep_equal(get_path(current, watched), get_path(previous, watched)):
                hit.setdefault(watched)

        return sorted(hit, key=depth, reverse=True)

    def notify_paths(self, changed: Iterable[str], current: Any, previous: Any) -> list[str]:
        """Fire path listeners for ``changed``; returns the paths that fired."""
        fired = self.affected_paths(changed, current, previous)
        for path in fired:
            value = get_path(current, path)
            value = None if value is NOT_FOUND else value
            for listener in list(self._paths.get(path, ())):
                try:
                    listener(deep_clone(value), path)
                except Exception:
                    self._logger.exception('Error in path listener for "%s"', path)
        return fired

    def clear(self) -> None:
        self._global.clear()
        self._paths.clear()


__all__ = [
    "ChangeMetadata",
    "GlobalListener",
    "ListenerRegistry",
    "PathListener",
    "Unsubscribe",
]
