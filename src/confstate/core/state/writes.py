"""
Write requests accepted by :meth:`StateStore.apply`.

Each operation is its own frozen type, so the store dispatches on the
request type instead of guessing intent from the shape of the payload:

- :class:`ReplaceState` -- the tree becomes ``tree`` wholesale.
- :class:`MergeState`   -- ``tree`` is deep-merged over the current tree.
- :class:`SetValue`     -- assign ``value`` at ``path``.
- :class:`DeleteValue`  -- remove the key at ``path``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeAlias


@dataclass(frozen=True, slots=True)
class ReplaceState:
    tree: Any

    label = "replace"


@dataclass(frozen=True, slots=True)
class MergeState:
    tree: Any

    label = "merge"


@dataclass(frozen=True, slots=True)
class SetValue:
    path: str
    value: Any

    label = "set"


@dataclass(frozen=True, slots=True)
class DeleteValue:
    path: str

    label = "delete"


Write: TypeAlias = ReplaceState | MergeState | SetValue | DeleteValue

__all__ = ["DeleteValue", "MergeState", "ReplaceState", "SetValue", "Write"]
