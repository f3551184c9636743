"""
Path Accessor: dotted-path reads and writes over nested mappings.

A path is a dot-separated string such as ``"appearance.colors.background"``.
There is no wildcard or list-index syntax; only mapping keys are addressed,
so a key that itself contains ``"."`` cannot be reached by path.

Reads return the :data:`NOT_FOUND` sentinel (never raise) when the walk
falls off the tree. Writes mutate the tree handed to them; callers clone
first when isolation matters.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, MutableMapping
from typing import Any, Final

SEPARATOR: Final = "."


class _NotFound:
    """Singleton marker for a path that does not resolve."""

    _instance: _NotFound | None = None
    __slots__ = ()

    def __new__(cls) -> _NotFound:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_FOUND"

    def __copy__(self) -> _NotFound:
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> _NotFound:
        return self


NOT_FOUND: Final = _NotFound()


def split_path(path: str) -> list[str]:
    """Split ``path`` into segments; the empty path yields ``[]``."""
    if not path:
        return []
    return path.split(SEPARATOR)


def join_path(parent: str, key: str) -> str:
    """Join a parent path and a child key (parent may be empty)."""
    return f"{parent}{SEPARATOR}{key}" if parent else str(key)


def get_path(tree: Any, path: str) -> Any:
    """Return the value at ``path`` or :data:`NOT_FOUND`.

    The walk stops as soon as an intermediate node is missing or is not a
    mapping. The value is returned by reference; the store clones it.
    """
    segments = split_path(path)
    if not segments:
        return NOT_FOUND
    current = tree
    for segment in segments:
        if not isinstance(current, MutableMapping) or segment not in current:
            return NOT_FOUND
        current = current[segment]
    return current


def has_path(tree: Any, path: str) -> bool:
    """Return True if ``path`` resolves inside ``tree``."""
    return get_path(tree, path) is not NOT_FOUND


def set_path(tree: MutableMapping[str, Any], path: str, value: Any) -> MutableMapping[str, Any]:
    """Assign ``value`` at ``path``, creating intermediate mappings.

    Any intermediate node that is missing or not a mapping is replaced by a
    fresh ``dict``. Returns ``tree`` for chaining.
    """
    segments = split_path(path)
    if not segments:
        raise ValueError("Cannot set a value at an empty path")
    current: MutableMapping[str, Any] = tree
    for segment in segments[:-1]:
        child = current.get(segment)
        if not isinstance(child, MutableMapping):
            child = {}
            current[segment] = child
        current = child
    current[segments[-1]] = value
    return tree


def delete_path(tree: MutableMapping[str, Any], path: str) -> bool:
    """Remove the key at ``path``. Returns False (no-op) when it is absent."""
    segments = split_path(path)
    if not segments:
        return False
    parent = get_path(tree, SEPARATOR.join(segments[:-1])) if len(segments) > 1 else tree
    if not isinstance(parent, MutableMapping) or segments[-1] not in parent:
        return False
    del parent[segments[-1]]
    return True


def is_addressable_key(key: Any) -> bool:
    """Return True if a dotted path can name ``key`` exactly."""
    return isinstance(key, str) and key != "" and SEPARATOR not in key


def is_valid_path(path: str) -> bool:
    """Return True for a non-empty path without empty segments."""
    return bool(path) and all(split_path(path))


def unaddressable_key(tree: Any, parent: str = "", _seen: set[int] | None = None) -> str | None:
    """Locate the first mapping key that no dotted path can reach.

    Only mappings nested in mappings are walked; sequences are atomic values
    and their contents are never addressed by path. Returns a label such as
    ``"theme.'v.1'"`` for logging, or None when every key is addressable.
    """
    if not isinstance(tree, Mapping):
        return None
    seen: set[int] = set() if _seen is None else _seen
    if id(tree) in seen:
        return None
    seen.add(id(tree))
    for key, value in tree.items():
        if not is_addressable_key(key):
            return join_path(parent, repr(key))
        found = unaddressable_key(value, join_path(parent, key), seen)
        if found is not None:
            return found
    return None


def ancestors(path: str) -> Iterator[str]:
    """Yield the ancestors of ``path``, most specific first.

    >>> list(ancestors("a.b.c"))
    ['a.b', 'a']
    """
    segments = split_path(path)
    for end in range(len(segments) - 1, 0, -1):
        yield SEPARATOR.join(segments[:end])


def is_descendant(path: str, ancestor: str) -> bool:
    """Return True if ``path`` lies strictly beneath ``ancestor``."""
    return path.startswith(ancestor + SEPARATOR)


def depth(path: str) -> int:
    """Number of segments in ``path``."""
    return len(split_path(path))


__all__ = [
    "NOT_FOUND",
    "SEPARATOR",
    "ancestors",
    "delete_path",
    "depth",
    "get_path",
    "has_path",
    "is_addressable_key",
    "is_descendant",
    "is_valid_path",
    "join_path",
    "set_path",
    "split_path",
    "unaddressable_key",
]
