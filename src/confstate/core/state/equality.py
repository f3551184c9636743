"""Deep structural equality for configuration trees.

Python's ``==`` already compares dicts and lists structurally, but it treats
``True == 1`` and recurses forever on self-referential trees. The comparator
here keeps booleans distinct from numbers and tolerates cycles.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def deep_equal(a: Any, b: Any, _active: set[tuple[int, int]] | None = None) -> bool:
    """Return True if ``a`` and ``b`` are structurally equal.

    Sequences compare by length then index, mappings by key set then per-key,
    scalars by value. A pair of containers already being compared higher up
    the stack is assumed equal, which is what makes cycles terminate.
    """
    if a is b:
        return True

    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if _is_number(a) and _is_number(b):
        return bool(a == b)

    a_map, b_map = isinstance(a, Mapping), isinstance(b, Mapping)
    a_seq, b_seq = isinstance(a, list | tuple), isinstance(b, list | tuple)
    if not (a_map or a_seq) or not (b_map or b_seq):
        if a_map or a_seq or b_map or b_seq:
            return False
        return bool(a == b)
    if a_map != b_map:
        return False

    if _active is None:
        _active = set()
    pair = (id(a), id(b))
    if pair in _active:
        return True
    _active.add(pair)
    try:
        if a_map:
            if a.keys() != b.keys():
                return False
            return all(deep_equal(a[key], b[key], _active) for key in a)
        if len(a) != len(b):
            return False
        return all(deep_equal(x, y, _active) for x, y in zip(a, b, strict=True))
    finally:
        _active.discard(pair)


__all__ = ["deep_equal"]
