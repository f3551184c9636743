"""
Clone Engine: cycle-safe deep copies of configuration trees.

Every snapshot boundary in the store goes through :func:`deep_clone`, so a
caller can never hold a live reference into internal state.

Strategies
----------
- Scalars (None, bool, int, float, str, bytes) -> returned as-is.
- dict -> new dict, values cloned key-wise.
- list / tuple -> new container, items cloned element-wise.
- anything else -> ``copy.deepcopy`` with the shared memo.

Cycles
------
A memo keyed by ``id(source)`` maps each container to its (possibly still
partial) clone. Revisiting a container returns that clone, so
``a["self"] = a`` produces a clone whose ``"self"`` entry is the clone
itself. Tuples are immutable, so their clone is registered only after the
items are cloned; when an item reaches the tuple again (``t = ([],)``,
``t[0].append(t)``) the inner visit builds the clone and the outer one
reuses it, keeping the shared structure.

Lossy boundary
--------------
The ``copy.deepcopy`` fallback is only as good as the object's own copy
protocol. Objects that refuse to be copied (open files, locks, sockets)
raise ``TypeError``; the store catches that and rejects the write.
"""

from __future__ import annotations

import copy
from typing import Any

_SCALARS = (type(None), bool, int, float, complex, str, bytes)


def deep_clone(value: Any, memo: dict[int, Any] | None = None) -> Any:
    """Return an independent deep copy of ``value``.

    Parameters
    ----------
    value : Any
        A JSON-like tree (or any object supporting ``copy.deepcopy``).
    memo : dict[int, Any] | None
        Identity map from source node id to its clone. Callers normally omit
        it; recursion passes it down.
    """
    if isinstance(value, _SCALARS):
        return value

    if memo is None:
        memo = {}
    node_id = id(value)
    if node_id in memo:
        return memo[node_id]

    if isinstance(value, dict):
        out: dict[Any, Any] = {}
        memo[node_id] = out
        for key, item in value.items():
            out[key] = deep_clone(item, memo)
        return out

    if isinstance(value, list):
        items: list[Any] = []
        memo[node_id] = items
        items.extend(deep_clone(item, memo) for item in value)
        return items

    if type(value) is tuple:
        cloned = tuple(deep_clone(item, memo) for item in value)
        # An item that leads back here has already built this tuple's clone.
        if node_id in memo:
            return memo[node_id]
        memo[node_id] = cloned
        return cloned

    return copy.deepcopy(value, memo)


__all__ = ["deep_clone"]
