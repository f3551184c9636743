"""
Trace recorder: an opt-in debug observer for a :class:`StateStore`.

Nothing in the engine is globally reachable. When you want to see what a
store did (in a REPL, a test, or the CLI) attach a recorder; it subscribes
like any other listener and keeps an in-memory log of revisioned snapshots.

Design Notes
------------
- **Immutability**: :class:`TraceSnapshot` is frozen; ``data`` is a private
  deep copy taken at capture time.
- **Serialization**: timestamps are ISO strings captured immediately, so a
  trace can be dumped with ``dataclasses.asdict`` + ``json`` as-is.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from confstate.core.settings import get_logger

from .diff import ChangeRecord
from .listeners import ChangeMetadata, Unsubscribe

if TYPE_CHECKING:
    from .store import StateStore

logger = get_logger("confstate.trace")


@dataclass(frozen=True, slots=True)
class TraceSnapshot:
    """
    Immutable record of one committed store event.

    Attributes
    ----------
    timestamp : str
        ISO-8601 UTC capture time, e.g. "2025-11-12T02:02:37.104000Z".
    revision : int
        1-based sequence number within this recorder.
    event : str
        Metadata type reported by the store ("initialize", "set", "undo", ...).
    path : str | None
        Path addressed by the write, when there was one.
    changed_paths : tuple[str, ...]
        Keys of the change record (empty for initialize).
    data : dict[str, Any]
        Full tree after the event.
    """

    timestamp: str
    revision: int
    event: str
    path: str | None
    changed_paths: tuple[str, ...] = ()
    data: dict[str, Any] = field(default_factory=dict)


class TraceRecorder:
    """Collects :class:`TraceSnapshot` objects from one store at a time."""

    __slots__ = ("_traces", "_unsubscribe", "_limit", "_revision")

    def __init__(self, limit: int | None = None) -> None:
        self._traces: list[TraceSnapshot] = []
        self._unsubscribe: Unsubscribe | None = None
        self._limit = limit
        self._revision = 0

    @property
    def attached(self) -> bool:
        return self._unsubscribe is not None

    def attach(self, store: StateStore) -> TraceRecorder:
        """Start recording ``store``; detaches from any previous store first."""
        self.detach()
        self._unsubscribe = store.subscribe(self._record)
        logger.debug("Trace recorder attached")
        return self

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _record(
        self,
        state: dict[str, Any],
        changes: ChangeRecord | None,
        metadata: ChangeMetadata,
    ) -> None:
        self._revision += 1
        snap = TraceSnapshot(
            timestamp=datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            revision=self._revision,
            event=metadata["type"],
            path=metadata.get("path"),
            changed_paths=tuple(changes or ()),
            data=state,
        )
        self._traces.append(snap)
        if self._limit is not None and len(self._traces) > self._limit:
            del self._traces[: len(self._traces) - self._limit]
        logger.debug("trace #%d %s %s", snap.revision, snap.event, ", ".join(snap.changed_paths))

    def traces(self) -> tuple[TraceSnapshot, ...]:
        """Return all recorded snapshots (immutable tuple)."""
        return tuple(self._traces)

    def clear(self) -> None:
        self._traces.clear()


__all__ = ["TraceRecorder", "TraceSnapshot"]
