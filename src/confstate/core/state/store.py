"""
State Store: the façade over the configuration state engine.

The store owns the current snapshot, the snapshot before the last write, a
:class:`HistoryManager` and a :class:`ListenerRegistry`. It is the only
component callers talk to; everything below it is an implementation detail.

Write pipeline
--------------
Every accepted write runs the same steps:

1. clone and stash the current snapshot as *previous*;
2. build the next snapshot on a fresh clone;
3. diff next vs. previous (this is what :meth:`get_changes` reports);
4. push the record to history (unless empty, replaying undo/redo, or
   written with ``record_history=False``);
5. run the validator, logging warnings only;
6. notify global listeners, then path listeners bottom-up (skipped with
   ``notify=False``).

Error policy
------------
No public method raises on bad data. Shape errors, keys that a dotted path
cannot name (``""``, ``"v.1"``, non-strings) and uncloneable values return
``False`` with an ``ERROR`` log line; validation problems are
``WARNING``s; listener crashes are logged and isolated. Registration misuse
(``subscribe(None)``) is a programming error and raises ``TypeError``.

Example
-------
>>> store = StateStore({"x": {"y": 1}})
>>> store.set_value("x.y", 2)
True
>>> store.get_changes()["x.y"].to_dict()
{'type': 'changed', 'value': 2, 'old_value': 1}
>>> store.undo(), store.get_value("x.y")
(True, 1)
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from confstate.core.contracts.validation import (
    ValidationResult,
    Validator,
    coerce_result,
    looks_like_validation_result,
)
from confstate.core.settings import get_logger, load_settings

from .clone import deep_clone
from .diff import (
    EMPTY_RECORD,
    ROOT,
    ChangeRecord,
    apply_diff,
    changed_paths,
    diff,
    invert_diff,
)
from .history import HistoryManager
from .listeners import ChangeMetadata, GlobalListener, ListenerRegistry, PathListener, Unsubscribe
from .paths import (
    NOT_FOUND,
    delete_path,
    get_path,
    is_valid_path,
    set_path,
    split_path,
    unaddressable_key,
)
from .writes import DeleteValue, MergeState, ReplaceState, SetValue, Write

logger = get_logger("confstate.store")

DefaultProvider = Callable[[], Mapping[str, Any]]


def _as_dict(tree: Mapping[str, Any]) -> dict[str, Any]:
    return tree if isinstance(tree, dict) else dict(tree)


def deep_merge(base: Mapping[str, Any], overlay: Mapping[str, Any]) -> dict[str, Any]:
    """Return ``base`` with ``overlay`` merged on top (both left untouched).

    Nested mappings merge key-wise; sequences and scalars in ``overlay``
    replace whatever ``base`` held.
    """
    out = _as_dict(deep_clone(base))
    for key, value in overlay.items():
        current = out.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            out[key] = deep_merge(current, value)
        else:
            out[key] = deep_clone(value)
    return out


class StateStore:
    """
    Hierarchical configuration state with diffing, undo/redo and observers.

    Parameters
    ----------
    initial : Mapping | None
        Starting tree. ``None`` falls back to ``defaults()`` (or ``{}``).
    validator : Validator | None
        Optional callable returning a :class:`ValidationResult`.
    defaults : DefaultProvider | None
        Zero-argument callable producing the default tree.
    max_history : int | None
        History bound; defaults to ``Settings.max_history``.
    record_history : bool
        Set False to disable undo/redo bookkeeping entirely.
    validate_on_change : bool | None
        Validate after every write; defaults to ``Settings.validate_on_change``.
    notify_only_on_change : bool | None
        Skip notifications for no-op writes; defaults to
        ``Settings.notify_only_on_change``.
    """

    def __init__(
        self,
        initial: Mapping[str, Any] | None = None,
        *,
        validator: Validator | None = None,
        defaults: DefaultProvider | None = None,
        max_history: int | None = None,
        record_history: bool = True,
        validate_on_change: bool | None = None,
        notify_only_on_change: bool | None = None,
    ) -> None:
        cfg = load_settings()
        self._validator = validator
        self._defaults = defaults
        self._record_history = record_history
        self._validate_on_change = (
            cfg.validate_on_change if validate_on_change is None else validate_on_change
        )
        self._notify_only_on_change = (
            cfg.notify_only_on_change if notify_only_on_change is None else notify_only_on_change
        )
        self._history = HistoryManager(cfg.max_history if max_history is None else max_history)
        self._listeners = ListenerRegistry(logger)

        self._state: dict[str, Any] = {}
        self._previous: dict[str, Any] | None = None

        if not self.initialize(initial):
            logger.warning("Falling back to an empty state after rejected initial state")
            self.initialize({})

    # ------------------------------ Lifecycle -------------------------------

    def initialize(self, state: Mapping[str, Any] | None = None) -> bool:
        """Load ``state`` (or the defaults), clear history and notify.

        Validation failures are logged, never refused. Only shape errors
        (non-mapping, validation verdicts) make this return False.
        """
        if state is None:
            state = self._default_tree()
        if not self._acceptable_tree(state, "initialize"):
            return False
        try:
            fresh = _as_dict(deep_clone(state))
        except (TypeError, ValueError, RecursionError):
            logger.exception("Cannot clone initial state")
            return False

        self._run_validator(fresh, "Initial state")
        self._state = fresh
        self._previous = None
        self._history.clear()
        if self._record_history:
            self._history.push(EMPTY_RECORD, label="initialize")

        self._listeners.notify(self._state, None, {"type": "initialize", "path": None})
        return True

    def reset_to_defaults(self, *, record_history: bool = True, notify: bool = True) -> bool:
        """Replace the tree with the default tree (undoable unless told otherwise)."""
        return self._commit(
            ReplaceState(self._default_tree()),
            label="reset",
            event="reset",
            record_history=record_history,
            notify=notify,
        )

    # ------------------------------ Reads -----------------------------------

    def get_state(self) -> dict[str, Any]:
        """Return a deep copy of the whole tree."""
        return deep_clone(self._state)

    def get_value(self, path: str, default: Any = None) -> Any:
        """Return a deep copy of the value at ``path`` or ``default``."""
        value = get_path(self._state, path)
        if value is NOT_FOUND:
            return default
        return deep_clone(value)

    def has_path(self, path: str) -> bool:
        return get_path(self._state, path) is not NOT_FOUND

    def get_changes(self) -> ChangeRecord | None:
        """Record of what the last write changed, or None if nothing did."""
        if self._previous is None:
            return None
        record = diff(self._state, self._previous)
        return record or None

    @property
    def history(self) -> HistoryManager:
        return self._history

    # ------------------------------ Writes ----------------------------------
    #
    # Every write accepts two keyword options:
    #   record_history=False  apply without an undo entry (the write itself
    #                         cannot be undone; older entries still can)
    #   notify=False          apply without calling any listener

    def apply(self, write: Write, *, record_history: bool = True, notify: bool = True) -> bool:
        """Execute one write request. Returns True if it was accepted."""
        return self._commit(
            write,
            label=write.label,
            event=write.label,
            record_history=record_history,
            notify=notify,
        )

    def set_state(
        self,
        new_state_or_value: Any,
        path: str | None = None,
        *,
        record_history: bool = True,
        notify: bool = True,
    ) -> bool:
        """Set the value at ``path``, or replace the whole tree when no path is given."""
        write: Write = (
            SetValue(path, new_state_or_value)
            if path is not None
            else ReplaceState(new_state_or_value)
        )
        return self.apply(write, record_history=record_history, notify=notify)

    def replace_state(
        self, tree: Mapping[str, Any], *, record_history: bool = True, notify: bool = True
    ) -> bool:
        return self.apply(ReplaceState(tree), record_history=record_history, notify=notify)

    def merge_state(
        self, tree: Mapping[str, Any], *, record_history: bool = True, notify: bool = True
    ) -> bool:
        return self.apply(MergeState(tree), record_history=record_history, notify=notify)

    def set_value(
        self, path: str, value: Any, *, record_history: bool = True, notify: bool = True
    ) -> bool:
        return self.apply(SetValue(path, value), record_history=record_history, notify=notify)

    def delete_value(self, path: str, *, record_history: bool = True, notify: bool = True) -> bool:
        return self.apply(DeleteValue(path), record_history=record_history, notify=notify)

    # ------------------------------ Undo / Redo -----------------------------

    def can_undo(self) -> bool:
        return self._history.can_undo()

    def can_redo(self) -> bool:
        return self._history.can_redo()

    def undo(self) -> bool:
        """Revert the most recent recorded change. False when there is none."""
        entry = self._history.peek_back()
        if entry is None:
            return False
        reverted = self._replay(invert_diff(entry.record), "undo")
        if reverted is None:
            return False
        self._history.step_back()
        self._swap(reverted, event="undo", path=None)
        return True

    def redo(self) -> bool:
        """Re-apply the most recently undone change. False when there is none."""
        entry = self._history.peek_forward()
        if entry is None:
            return False
        restored = self._replay(entry.record, "redo")
        if restored is None:
            return False
        self._history.step_forward()
        self._swap(restored, event="redo", path=None)
        return True

    def clear_history(self) -> None:
        """Forget all undo/redo entries; the current state becomes the floor."""
        self._history.clear()
        if self._record_history:
            self._history.push(EMPTY_RECORD, label="initialize")

    # ------------------------------ Observers -------------------------------

    def subscribe(self, listener: GlobalListener) -> Unsubscribe:
        """Call ``listener(state, changes, metadata)`` after every commit."""
        return self._listeners.subscribe(listener)

    def subscribe_path(self, path: str, listener: PathListener) -> Unsubscribe:
        """Call ``listener(value, path)`` when ``path`` or a descendant changes."""
        return self._listeners.subscribe_path(path, listener)

    # ------------------------------ Internals -------------------------------

    def _default_tree(self) -> Mapping[str, Any]:
        if self._defaults is None:
            return {}
        try:
            return self._defaults()
        except Exception:
            logger.exception("Default provider failed; using an empty tree")
            return {}

    def _acceptable_tree(self, tree: Any, operation: str) -> bool:
        if isinstance(tree, list | tuple):
            logger.error("Invalid state: sequence passed to %s(): %r", operation, tree)
            return False
        if looks_like_validation_result(tree):
            logger.error("Invalid state: validation result passed to %s(): %r", operation, tree)
            return False
        if not isinstance(tree, Mapping):
            logger.error(
                "Invalid state: %s() expects a mapping, got %s", operation, type(tree).__name__
            )
            return False
        if ROOT in tree:
            logger.error("Invalid state: top-level key %r is reserved", ROOT)
            return False
        return self._addressable(tree, operation)

    def _addressable(self, value: Any, operation: str, parent: str = "") -> bool:
        """Reject mappings holding keys that no dotted path can name exactly."""
        bad = unaddressable_key(value, parent)
        if bad is not None:
            logger.error("Invalid %s: key %s cannot be addressed by a dotted path", operation, bad)
            return False
        return True

    def _build(self, write: Write) -> dict[str, Any] | None:
        """Produce the next tree for ``write``, or None when it is rejected."""
        if isinstance(write, ReplaceState | MergeState):
            if not self._acceptable_tree(write.tree, write.label):
                return None
            if isinstance(write, MergeState):
                return deep_merge(self._state, write.tree)
            return _as_dict(deep_clone(write.tree))

        if not is_valid_path(write.path) or split_path(write.path)[0] == ROOT:
            logger.error("Invalid %s: bad path %r", write.label, write.path)
            return None
        nxt = deep_clone(self._state)
        if isinstance(write, SetValue):
            if not self._addressable(write.value, write.label, write.path):
                return None
            set_path(nxt, write.path, deep_clone(write.value))
        else:
            delete_path(nxt, write.path)
        return nxt

    def _commit(
        self,
        write: Write,
        *,
        label: str,
        event: str,
        record_history: bool = True,
        notify: bool = True,
    ) -> bool:
        try:
            nxt = self._build(write)
        except (TypeError, ValueError, RecursionError):
            logger.exception("Error building next state for %s", label)
            return False
        if nxt is None:
            return False

        self._swap(
            nxt,
            event=event,
            path=getattr(write, "path", None),
            history_label=label if record_history else None,
            notify=notify,
        )
        return True

    def _replay(self, record: ChangeRecord, event: str) -> dict[str, Any] | None:
        """Apply a history record to a clone of the tree; None if it cannot be applied."""
        try:
            result = apply_diff(self._state, record)
        except (TypeError, ValueError, RecursionError):
            logger.exception("Cannot %s: history entry does not apply", event)
            return None
        if not isinstance(result, dict):
            logger.error("Cannot %s: history entry yields a %s", event, type(result).__name__)
            return None
        return result

    def _swap(
        self,
        nxt: dict[str, Any],
        *,
        event: str,
        path: str | None,
        history_label: str | None = None,
        notify: bool = True,
    ) -> ChangeRecord:
        """Commit ``nxt`` as the current tree, record, validate and notify."""
        self._previous = deep_clone(self._state)
        self._state = nxt
        record = diff(self._state, self._previous)

        if record and history_label is not None and self._record_history:
            self._history.push(record, label=history_label)

        if self._validate_on_change:
            self._run_validator(self._state, f"State after {event}")

        if not notify:
            return record
        if not record and self._notify_only_on_change:
            logger.debug("No-op %s; listeners not notified", event)
            return record

        metadata: ChangeMetadata = {"type": event, "path": path}
        self._listeners.notify(self._state, record or None, metadata)
        self._listeners.notify_paths(changed_paths(record), self._state, self._previous)
        return record

    def _run_validator(self, tree: dict[str, Any], what: str) -> ValidationResult | None:
        if self._validator is None:
            return None
        try:
            result = coerce_result(self._validator(deep_clone(tree)))
        except Exception:
            logger.exception("Validator crashed; treating as no verdict")
            return None
        if not result.is_valid:
            logger.warning(
                "%s validation warnings: %s",
                what,
                "; ".join(f"{e.path}: {e.message}" for e in result.errors),
            )
        return result


__all__ = ["DefaultProvider", "StateStore", "deep_merge"]
