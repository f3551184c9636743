"""
Diff Engine: structural change records between two configuration trees.

A *change record* is a read-only mapping from a dotted path (or the
:data:`ROOT` sentinel) to one change entry:

- :class:`Add`     -- key present only in the newer tree (carries ``new``).
- :class:`Replace` -- value differs (carries ``old`` and ``new``).
- :class:`Delete`  -- key present only in the older tree (carries ``old``).

Because every entry carries the value it displaces, an entry can produce its
own inverse, and undo never has to reconstruct history structurally.

Walk rules
----------
- Kind mismatch at a node (mapping vs. list vs. scalar, or bool vs. number)
  yields a single ``Replace`` at that node, without recursing further.
- Sequences are atomic: any length or content difference replaces the whole
  sequence.
- Mappings recurse key-wise. Paths in one record never overlap.

Example
-------
>>> rec = diff({"x": {"y": 2}}, {"x": {"y": 1}})
>>> rec["x.y"].to_dict()
{'type': 'changed', 'value': 2, 'old_value': 1}
"""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Final, TypeAlias

from .clone import deep_clone
from .equality import deep_equal
from .paths import delete_path, depth, join_path, set_path

ROOT: Final = "/"


class ChangeKind(str, Enum):
    """Structural operation carried by a change entry."""

    ADD = "add"
    REPLACE = "replace"
    DELETE = "delete"


@dataclass(frozen=True, slots=True)
class Add:
    """Key introduced by the newer tree."""

    path: str
    new: Any

    kind = ChangeKind.ADD

    @property
    def type(self) -> str:
        return "added"

    @property
    def value(self) -> Any:
        return self.new

    @property
    def old_value(self) -> Any:
        return None

    def inverse(self) -> Delete:
        return Delete(self.path, old=self.new)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "value": self.new}


@dataclass(frozen=True, slots=True)
class Replace:
    """Value changed in place (or changed kind)."""

    path: str
    old: Any
    new: Any

    kind = ChangeKind.REPLACE

    @property
    def type(self) -> str:
        return "changed"

    @property
    def value(self) -> Any:
        return self.new

    @property
    def old_value(self) -> Any:
        return self.old

    def inverse(self) -> Replace:
        return Replace(self.path, old=self.new, new=self.old)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "value": self.new, "old_value": self.old}


@dataclass(frozen=True, slots=True)
class Delete:
    """Key removed by the newer tree."""

    path: str
    old: Any

    kind = ChangeKind.DELETE

    @property
    def type(self) -> str:
        return "deleted"

    @property
    def value(self) -> Any:
        return None

    @property
    def old_value(self) -> Any:
        return self.old

    def inverse(self) -> Add:
        return Add(self.path, new=self.old)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "old_value": self.old}


ChangeEntry: TypeAlias = Add | Replace | Delete
ChangeRecord: TypeAlias = Mapping[str, ChangeEntry]

EMPTY_RECORD: Final[ChangeRecord] = MappingProxyType({})


def _kind(value: Any) -> str:
    if isinstance(value, Mapping):
        return "mapping"
    if isinstance(value, list | tuple):
        return "sequence"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int | float):
        return "number"
    if value is None:
        return "null"
    return type(value).__name__


def _walk(
    current: Any,
    previous: Any,
    path: str,
    out: dict[str, ChangeEntry],
    active: set[tuple[int, int]],
) -> None:
    key = path or ROOT
    kind = _kind(current)
    if kind != _kind(previous):
        out[key] = Replace(key, old=deep_clone(previous), new=deep_clone(current))
        return

    if kind != "mapping":
        if not deep_equal(current, previous):
            out[key] = Replace(key, old=deep_clone(previous), new=deep_clone(current))
        return

    pair = (id(current), id(previous))
    if pair in active:
        return
    active.add(pair)
    for name, value in current.items():
        child = join_path(path, name)
        if name not in previous:
            out[child] = Add(child, new=deep_clone(value))
        else:
            _walk(value, previous[name], child, out, active)
    for name, value in previous.items():
        if name not in current:
            child = join_path(path, name)
            out[child] = Delete(child, old=deep_clone(value))
    active.discard(pair)


def diff(current: Any, previous: Any) -> ChangeRecord:
    """Return the change record that turns ``previous`` into ``current``."""
    out: dict[str, ChangeEntry] = {}
    _walk(current, previous, "", out, set())
    return MappingProxyType(out)


def apply_diff(tree: Any, record: ChangeRecord) -> Any:
    """Return a clone of ``tree`` with ``record`` applied.

    A ``ROOT`` entry short-circuits: ``Add``/``Replace`` yield a clone of the
    new value, ``Delete`` yields an empty mapping.
    """
    root = record.get(ROOT)
    if root is not None:
        return {} if isinstance(root, Delete) else deep_clone(root.new)

    result = deep_clone(tree)
    if not isinstance(result, MutableMapping):
        result = {}
    for path, entry in record.items():
        if isinstance(entry, Delete):
            delete_path(result, path)
        else:
            set_path(result, path, deep_clone(entry.new))
    return result


def invert_diff(record: ChangeRecord) -> ChangeRecord:
    """Return the record that undoes ``record``."""
    return MappingProxyType({path: entry.inverse() for path, entry in record.items()})


def clone_record(record: ChangeRecord) -> ChangeRecord:
    """Return a copy of ``record`` whose entries share no values with it."""
    out: dict[str, ChangeEntry] = {}
    for path, entry in record.items():
        if isinstance(entry, Add):
            out[path] = Add(entry.path, new=deep_clone(entry.new))
        elif isinstance(entry, Replace):
            out[path] = Replace(entry.path, old=deep_clone(entry.old), new=deep_clone(entry.new))
        else:
            out[path] = Delete(entry.path, old=deep_clone(entry.old))
    return MappingProxyType(out)


def changed_paths(record: ChangeRecord) -> list[str]:
    """Return the record's paths, most specific first (``ROOT`` last)."""
    paths = [p for p in record if p != ROOT]
    paths.sort(key=depth, reverse=True)
    if ROOT in record:
        paths.append(ROOT)
    return paths


def record_to_dict(record: ChangeRecord | None) -> dict[str, dict[str, Any]]:
    """Plain-dict view of a record, suitable for JSON or logging."""
    if not record:
        return {}
    return {path: entry.to_dict() for path, entry in record.items()}


__all__ = [
    "Add",
    "ChangeEntry",
    "ChangeKind",
    "ChangeRecord",
    "Delete",
    "EMPTY_RECORD",
    "ROOT",
    "Replace",
    "apply_diff",
    "changed_paths",
    "clone_record",
    "diff",
    "invert_diff",
    "record_to_dict",
]
