"""
History Manager: a bounded, cursor-addressed stack of change records.

The cursor points at the entry whose effect is currently applied. Entry 0
is the undo floor: it is never inverted, which is why the store seeds the
stack with an empty ``"initialize"`` record before the first real write.

Layout
------
::

    entries:  [init] [set a] [set b] [set c]
    cursor:                    ^              can_undo -> True, can_redo -> True

Pushing while the cursor is not at the end discards the redo branch. When
the stack grows past ``max_entries`` the oldest entries are dropped and the
cursor shifts down by the same amount.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from .diff import ChangeRecord


def _utc_stamp() -> str:
    return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """
    One recorded change.

    Attributes
    ----------
    record : ChangeRecord
        The self-invertible change record.
    position : int
        Index in the stack at the time the entry was pushed. Positions are
        not renumbered after truncation; use :meth:`HistoryManager.entries`
        order for the live index.
    label : str
        Short reason for the change, e.g. ``"set"`` or ``"merge"``.
    timestamp : str
        ISO-8601 UTC capture time with a trailing ``"Z"``.
    """

    record: ChangeRecord
    position: int
    label: str = "change"
    timestamp: str = ""


class HistoryManager:
    """Bounded undo/redo stack of :class:`HistoryEntry` objects."""

    __slots__ = ("_entries", "_cursor", "_max_entries")

    def __init__(self, max_entries: int = 20) -> None:
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self._entries: list[HistoryEntry] = []
        self._cursor: int = -1
        self._max_entries = max_entries

    # ------------------------------ Introspection ---------------------------

    @property
    def cursor(self) -> int:
        """Current position; ``-1`` when the stack is empty."""
        return self._cursor

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def __len__(self) -> int:
        return len(self._entries)

    def entries(self) -> tuple[HistoryEntry, ...]:
        """Return the live stack, oldest first."""
        return tuple(self._entries)

    def current(self) -> HistoryEntry | None:
        """Entry at the cursor, or None when empty."""
        return self._entries[self._cursor] if self._cursor >= 0 else None

    def can_undo(self) -> bool:
        return self._cursor > 0

    def can_redo(self) -> bool:
        return self._cursor < len(self._entries) - 1

    def peek_back(self) -> HistoryEntry | None:
        """Entry :meth:`step_back` would return, without moving the cursor."""
        return self._entries[self._cursor] if self.can_undo() else None

    def peek_forward(self) -> HistoryEntry | None:
        """Entry :meth:`step_forward` would return, without moving the cursor."""
        return self._entries[self._cursor + 1] if self.can_redo() else None

    # ------------------------------ Mutation --------------------------------

    def push(self, record: ChangeRecord, label: str = "change") -> HistoryEntry:
        """Append ``record`` after the cursor, pruning any redo branch."""
        if self._cursor < len(self._entries) - 1:
            del self._entries[self._cursor + 1 :]

        entry = HistoryEntry(
            record=record,
            position=len(self._entries),
            label=label,
            timestamp=_utc_stamp(),
        )
        self._entries.append(entry)
        self._cursor = len(self._entries) - 1

        overflow = len(self._entries) - self._max_entries
        if overflow > 0:
            del self._entries[:overflow]
            self._cursor -= overflow
        return entry

    def step_back(self) -> HistoryEntry | None:
        """Return the entry to invert and move the cursor down one step."""
        if not self.can_undo():
            return None
        entry = self._entries[self._cursor]
        self._cursor -= 1
        return entry

    def step_forward(self) -> HistoryEntry | None:
        """Move the cursor up one step and return the entry to re-apply."""
        if not self.can_redo():
            return None
        self._cursor += 1
        return self._entries[self._cursor]

    def clear(self) -> None:
        self._entries.clear()
        self._cursor = -1


__all__ = ["HistoryEntry", "HistoryManager"]
