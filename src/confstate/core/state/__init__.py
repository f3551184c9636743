"""Configuration state engine.

Leaves first: clone -> paths / equality -> diff -> history / listeners ->
store. Only :class:`StateStore` is meant for callers; the rest is exported
for tests and for collaborators that want the primitives.
"""

from __future__ import annotations

from .clone import deep_clone
from .diff import (
    ROOT,
    Add,
    ChangeEntry,
    ChangeKind,
    ChangeRecord,
    Delete,
    Replace,
    apply_diff,
    clone_record,
    diff,
    invert_diff,
    record_to_dict,
)
from .equality import deep_equal
from .history import HistoryEntry, HistoryManager
from .listeners import ChangeMetadata, ListenerRegistry
from .paths import NOT_FOUND, delete_path, get_path, has_path, set_path
from .storage import JsonFileStorage
from .store import StateStore, deep_merge
from .trace import TraceRecorder, TraceSnapshot
from .writes import DeleteValue, MergeState, ReplaceState, SetValue, Write

__all__ = [
    "Add",
    "ChangeEntry",
    "ChangeKind",
    "ChangeMetadata",
    "ChangeRecord",
    "Delete",
    "DeleteValue",
    "HistoryEntry",
    "HistoryManager",
    "JsonFileStorage",
    "ListenerRegistry",
    "MergeState",
    "NOT_FOUND",
    "ROOT",
    "Replace",
    "ReplaceState",
    "SetValue",
    "StateStore",
    "TraceRecorder",
    "TraceSnapshot",
    "Write",
    "apply_diff",
    "clone_record",
    "deep_clone",
    "deep_equal",
    "deep_merge",
    "delete_path",
    "diff",
    "get_path",
    "has_path",
    "invert_diff",
    "record_to_dict",
    "set_path",
]
