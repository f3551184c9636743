"""
Tests for the StateStore façade.

Scope
-----
1.  **Snapshots**: reads are deep copies; caller mutation never leaks in.
2.  **Writes**: path writes, replace vs. merge, delete, no-op writes.
3.  **Guards**: sequences and validation verdicts are refused as state.
4.  **History**: undo/redo, redo-branch pruning, the history bound.
5.  **Observers**: global metadata, ancestor propagation, fault isolation.
"""

from __future__ import annotations

from typing import Any

import pytest

from confstate.core.contracts.validation import ValidationIssue, ValidationResult
from confstate.core.state.diff import ROOT, Delete
from confstate.core.state.store import StateStore, deep_merge
from confstate.core.state.writes import DeleteValue, MergeState, ReplaceState, SetValue


@pytest.fixture  # type: ignore[misc]
def store(sample_tree: dict[str, Any]) -> StateStore:
    """A store seeded with the sample tree and explicit options."""
    return StateStore(sample_tree, max_history=20, notify_only_on_change=True)


# --------------------------------------------------------------------------- #
# Snapshots
# --------------------------------------------------------------------------- #


def test_initial_state_is_a_private_copy(sample_tree: dict[str, Any]) -> None:
    """Mutating the tree handed to the constructor does not reach the store."""
    s = StateStore(sample_tree)
    sample_tree["theme"]["dark"] = True
    assert s.get_value("theme.dark") is False


def test_returned_snapshots_are_copies(store: StateStore) -> None:
    """get_state()/get_value() hand out deep copies."""
    state = store.get_state()
    state["theme"]["dark"] = True
    labels = store.get_value("display.labels")
    labels["show"] = False

    assert store.get_value("theme.dark") is False
    assert store.get_value("display.labels.show") is True


def test_get_value_default_and_has_path(store: StateStore) -> None:
    """Missing paths return the default; falsy values are still found."""
    assert store.get_value("nope.nothing", default="fallback") == "fallback"
    assert store.get_value("theme.dark", default="fallback") is False
    assert store.has_path("search.minChars")
    assert not store.has_path("search.maxChars")


def test_defaults_provider_used_when_no_initial_state() -> None:
    """initialize() with nothing falls back to the default provider."""
    s = StateStore(defaults=lambda: {"mode": "auto"})
    assert s.get_state() == {"mode": "auto"}

    s.set_value("mode", "manual")
    assert s.reset_to_defaults() is True
    assert s.get_value("mode") == "auto"
    assert s.undo() is True
    assert s.get_value("mode") == "manual"


def test_failing_default_provider_yields_empty_state() -> None:
    """A crashing provider is logged and treated as an empty tree."""

    def broken() -> dict[str, Any]:
        raise RuntimeError("no defaults today")

    s = StateStore(defaults=broken)
    assert s.get_state() == {}


# --------------------------------------------------------------------------- #
# Writes
# --------------------------------------------------------------------------- #


def test_end_to_end_scenario() -> None:
    """initialize -> set -> changes -> undo -> redo."""
    s = StateStore({"x": {"y": 1}})

    assert s.set_value("x.y", 2) is True
    changes = s.get_changes()
    assert changes is not None
    assert {p: e.to_dict() for p, e in changes.items()} == {
        "x.y": {"type": "changed", "value": 2, "old_value": 1}
    }

    assert s.undo() is True
    assert s.get_value("x.y") == 1
    assert s.redo() is True
    assert s.get_value("x.y") == 2


def test_set_state_with_path_creates_intermediates(store: StateStore) -> None:
    """A path write creates missing containers along the way."""
    assert store.set_state(5, "a.b.c") is True
    assert store.get_value("a") == {"b": {"c": 5}}
    changes = store.get_changes()
    assert changes is not None and list(changes) == ["a"]


def test_value_written_is_copied(store: StateStore) -> None:
    """Mutating a written value afterwards does not change the store."""
    payload = {"items": [1, 2]}
    store.set_value("custom", payload)
    payload["items"].append(3)
    assert store.get_value("custom.items") == [1, 2]


def test_set_state_without_path_replaces_wholesale(store: StateStore) -> None:
    """set_state(tree) means replace: keys absent from the new tree are gone."""
    assert store.set_state({"theme": {"dark": True}}) is True
    assert store.get_state() == {"theme": {"dark": True}}


def test_merge_state_keeps_unmentioned_keys(store: StateStore) -> None:
    """merge_state deep-merges; lists are replaced, not concatenated."""
    assert store.merge_state({"theme": {"dark": True}, "search": {"fields": ["body"]}})
    assert store.get_value("theme") == {"dark": True, "accent": "#3366ff"}
    assert store.get_value("search") == {"minChars": 2, "fields": ["body"]}
    assert store.has_path("display.labels.max")


def test_apply_accepts_each_write_type(store: StateStore) -> None:
    """The tagged write requests dispatch to the matching operation."""
    assert store.apply(SetValue("theme.dark", True))
    assert store.apply(DeleteValue("display"))
    assert not store.has_path("display")
    assert store.apply(MergeState({"extra": 1}))
    assert store.get_value("extra") == 1
    assert store.apply(ReplaceState({"only": True}))
    assert store.get_state() == {"only": True}


def test_delete_value(store: StateStore) -> None:
    """Deleting reports a 'deleted' change with the removed value."""
    assert store.delete_value("display.labels.max") is True
    changes = store.get_changes()
    assert changes is not None
    assert changes["display.labels.max"].to_dict() == {"type": "deleted", "old_value": 40}


def test_no_op_write_reports_no_change(store: StateStore) -> None:
    """Writing back an unchanged value does not report the path as changed."""
    before = len(store.history)
    assert store.set_state(store.get_value("search.minChars"), "search.minChars") is True
    assert store.get_changes() is None
    assert len(store.history) == before


def test_get_changes_is_none_before_any_write(store: StateStore) -> None:
    """There is nothing to compare against right after initialize."""
    assert store.get_changes() is None


# --------------------------------------------------------------------------- #
# Guards
# --------------------------------------------------------------------------- #


@pytest.mark.parametrize(  # type: ignore[misc]
    "bad",
    [
        [1, 2, 3],
        (1, 2),
        "not a tree",
        42,
        {"isValid": False, "errors": []},
        {"is_valid": True, "errors": [{"path": "a", "message": "m"}]},
        ValidationResult(is_valid=False, errors=[ValidationIssue(path="a", message="m")]),
    ],
)
def test_malformed_whole_state_is_rejected(store: StateStore, bad: Any) -> None:
    """Shape errors return False and leave the state untouched."""
    before = store.get_state()
    assert store.set_state(bad) is False
    assert store.merge_state(bad) is False
    assert store.get_state() == before


def test_mapping_with_errors_key_only_is_accepted(store: StateStore) -> None:
    """A tree that merely has an `errors` key is ordinary configuration."""
    assert store.merge_state({"errors": ["shown in banner"]}) is True


def test_empty_path_write_is_rejected(store: StateStore) -> None:
    """Path writes need a path."""
    before = store.get_state()
    assert store.set_value("", 1) is False
    assert store.delete_value("") is False
    assert store.get_state() == before


def test_uncloneable_value_is_rejected(store: StateStore) -> None:
    """A value whose deep copy fails is refused instead of raising."""
    import threading

    assert store.set_value("lock", threading.Lock()) is False
    assert not store.has_path("lock")


def test_rejected_initial_state_falls_back_to_empty() -> None:
    """The constructor never raises on a bad initial tree."""
    s = StateStore([1, 2, 3])  # type: ignore[arg-type]
    assert s.get_state() == {}
    assert s.initialize([4]) is False  # type: ignore[arg-type]


# --------------------------------------------------------------------------- #
# History
# --------------------------------------------------------------------------- #


def test_undo_redo_boundaries() -> None:
    """Nothing to undo or redo returns False."""
    s = StateStore({"a": 1})
    assert s.can_undo() is False and s.undo() is False
    assert s.can_redo() is False and s.redo() is False


def test_undo_restores_deleted_and_replaced_values(store: StateStore) -> None:
    """Self-invertible entries make undo exact, including deletions."""
    original = store.get_state()
    store.delete_value("display")
    store.set_value("theme", "plain")
    store.merge_state({"search": {"minChars": 9}, "new": {"k": 1}})

    while store.can_undo():
        assert store.undo()

    assert store.get_state() == original

    while store.can_redo():
        assert store.redo()
    assert store.get_value("theme") == "plain"
    assert store.get_value("new.k") == 1
    assert not store.has_path("display")


def test_root_replacement_is_undoable() -> None:
    """Replacing a tree with a different shape round-trips through undo."""
    s = StateStore({"a": {"b": 1}})
    s.replace_state({"z": [1, 2]})
    assert s.undo()
    assert s.get_state() == {"a": {"b": 1}}


def test_new_write_prunes_redo(store: StateStore) -> None:
    """After undo, a fresh write discards the redo branch."""
    store.set_value("theme.dark", True)
    store.set_value("theme.accent", "red")
    store.undo()
    assert store.can_redo()

    store.set_value("theme.accent", "blue")

    assert not store.can_redo()
    assert store.redo() is False
    assert store.get_value("theme.accent") == "blue"


def test_history_bound_limits_undo_depth() -> None:
    """With bound N, only N-1 steps can be undone (entry 0 is the floor)."""
    n = 5
    s = StateStore({"v": 0}, max_history=n)
    for i in range(1, n + 6):
        s.set_value("v", i)

    assert len(s.history) == n
    undos = 0
    while s.undo():
        undos += 1
    assert undos == n - 1
    assert s.get_value("v") == n + 5 - (n - 1)


def test_record_history_disabled() -> None:
    """With history off there is never anything to undo."""
    s = StateStore({"a": 1}, record_history=False)
    s.set_value("a", 2)
    assert len(s.history) == 0
    assert s.undo() is False


def test_clear_history_makes_current_state_the_floor(store: StateStore) -> None:
    """After clear_history() the latest write can no longer be undone."""
    store.set_value("theme.dark", True)
    store.clear_history()
    assert store.undo() is False
    assert store.get_value("theme.dark") is True


# --------------------------------------------------------------------------- #
# Observers
# --------------------------------------------------------------------------- #


def test_global_listener_receives_state_changes_and_metadata(store: StateStore) -> None:
    """Global listeners get (state, changes, {type, path}) after commit."""
    events: list[tuple[dict[str, Any], Any, dict[str, Any]]] = []
    store.subscribe(lambda state, changes, meta: events.append((state, changes, dict(meta))))

    store.set_value("theme.dark", True)
    store.undo()
    store.redo()

    assert [e[2]["type"] for e in events] == ["set", "undo", "redo"]
    state, changes, meta = events[0]
    assert meta["path"] == "theme.dark"
    assert state["theme"]["dark"] is True
    assert list(changes) == ["theme.dark"]


def test_initialize_notifies_with_null_changes(store: StateStore) -> None:
    """Re-initializing notifies with changes=None and type 'initialize'."""
    events: list[Any] = []
    store.subscribe(lambda state, changes, meta: events.append((changes, meta["type"])))
    assert store.initialize({"fresh": True}) is True
    assert events == [(None, "initialize")]
    assert store.get_changes() is None


def test_no_op_write_does_not_notify(store: StateStore) -> None:
    """notify_only_on_change suppresses notifications for no-op writes."""
    calls: list[Any] = []
    store.subscribe(lambda *a: calls.append(a))
    store.set_value("theme.dark", False)
    assert calls == []


def test_no_op_write_notifies_when_configured(sample_tree: dict[str, Any]) -> None:
    """With notify_only_on_change=False listeners hear about every write."""
    s = StateStore(sample_tree, notify_only_on_change=False)
    calls: list[Any] = []
    s.subscribe(lambda state, changes, meta: calls.append(changes))
    s.set_value("theme.dark", False)
    assert calls == [None]


def test_ancestor_listener_sees_new_descendant(store: StateStore) -> None:
    """Subscribing to 'a' then writing 'a.b.c' delivers the current 'a'."""
    seen: list[tuple[Any, str]] = []
    store.subscribe_path("a", lambda value, path: seen.append((value, path)))

    store.set_state(5, "a.b.c")

    assert seen == [({"b": {"c": 5}}, "a")]


def test_path_listeners_fire_deepest_first(store: StateStore) -> None:
    """Leaf, then parent, then grandparent."""
    order: list[str] = []
    for path in ("display", "display.labels", "display.labels.max"):
        store.subscribe_path(path, lambda value, p: order.append(p))

    store.set_value("display.labels.max", 80)

    assert order == ["display.labels.max", "display.labels", "display"]


def test_path_listener_fires_on_undo(store: StateStore) -> None:
    """Undo/redo commits notify path listeners like any other write."""
    values: list[Any] = []
    store.set_value("theme.dark", True)
    store.subscribe_path("theme.dark", lambda value, path: values.append(value))

    store.undo()
    store.redo()

    assert values == [False, True]


def test_listener_fault_does_not_roll_back(store: StateStore) -> None:
    """A raising listener neither aborts others nor undoes the commit."""
    later: list[str] = []

    def boom(*_: Any) -> None:
        raise RuntimeError("listener crashed")

    store.subscribe(boom)
    store.subscribe(lambda s, c, m: later.append(m["type"]))
    store.subscribe_path("theme", boom)

    assert store.set_value("theme.dark", True) is True
    assert store.get_value("theme.dark") is True
    assert later == ["set"]


def test_unsubscribe_stops_delivery(store: StateStore) -> None:
    """The returned callable detaches the listener."""
    calls: list[Any] = []
    off = store.subscribe_path("theme", lambda v, p: calls.append(v))
    off()
    store.set_value("theme.dark", True)
    assert calls == []


def test_subscribe_rejects_non_callable(store: StateStore) -> None:
    """Registration misuse raises TypeError."""
    with pytest.raises(TypeError):
        store.subscribe("not callable")  # type: ignore[arg-type]


# --------------------------------------------------------------------------- #
# Validation hook
# --------------------------------------------------------------------------- #


def test_validator_warnings_never_block_writes() -> None:
    """An invalid tree is still accepted; the validator sees every commit."""
    seen: list[dict[str, Any]] = []

    def validator(tree: dict[str, Any]) -> dict[str, Any]:
        seen.append(tree)
        ok = isinstance(tree.get("size"), int)
        return {"isValid": ok, "errors": [] if ok else [{"path": "size", "message": "int"}]}

    s = StateStore({"size": "big"}, validator=validator, validate_on_change=True)
    assert s.set_value("size", "huge") is True
    assert s.get_value("size") == "huge"
    assert len(seen) == 2


def test_validator_skipped_on_change_when_disabled() -> None:
    """validate_on_change=False still validates the initial state only."""
    calls: list[Any] = []

    def validator(tree: dict[str, Any]) -> ValidationResult:
        calls.append(tree)
        return ValidationResult.ok()

    s = StateStore({"a": 1}, validator=validator, validate_on_change=False)
    s.set_value("a", 2)
    assert len(calls) == 1


def test_crashing_validator_is_contained() -> None:
    """A validator exception is logged, not propagated."""

    def validator(tree: dict[str, Any]) -> ValidationResult:
        raise RuntimeError("schema exploded")

    s = StateStore({"a": 1}, validator=validator)
    assert s.set_value("a", 2) is True


# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #


def test_deep_merge_leaves_inputs_untouched() -> None:
    """deep_merge builds a new tree."""
    base = {"a": {"b": 1, "c": [1]}, "d": 1}
    overlay = {"a": {"c": [2], "e": {"f": 1}}}
    merged = deep_merge(base, overlay)

    assert merged == {"a": {"b": 1, "c": [2], "e": {"f": 1}}, "d": 1}
    assert base == {"a": {"b": 1, "c": [1]}, "d": 1}
    merged["a"]["e"]["f"] = 2
    assert overlay["a"]["e"]["f"] == 1


def test_root_sentinel_not_used_for_mapping_writes(store: StateStore) -> None:
    """Mapping-to-mapping replacements diff key-wise, never at ROOT."""
    store.replace_state({"theme": {"dark": False}})
    changes = store.get_changes()
    assert changes is not None and ROOT not in changes


# --------------------------------------------------------------------------- #
# Key addressability
# --------------------------------------------------------------------------- #


@pytest.mark.parametrize(  # type: ignore[misc]
    "tree",
    [
        {"a": 1, "": 2},
        {"a": 1, "v.1": True},
        {"a": {"b": {"": 1}}},
        {"a": {"x.y": 1}},
        {1: "int key"},
        {ROOT: "reserved"},
    ],
)
def test_keys_a_path_cannot_name_are_rejected(tree: dict[Any, Any]) -> None:
    """Whole-tree writes refuse keys that undo could not address."""
    s = StateStore({"a": 1})
    assert s.replace_state(tree) is False
    assert s.merge_state(tree) is False
    assert s.initialize(tree) is False
    assert s.get_state() == {"a": 1}
    assert s.can_undo() is False


def test_rejected_initial_keys_fall_back_to_empty() -> None:
    s = StateStore({"a": 1, "": 2})
    assert s.get_state() == {}


@pytest.mark.parametrize("path", ["a..b", ".a", "a.", ROOT, f"{ROOT}.x"])  # type: ignore[misc]
def test_malformed_paths_are_rejected(store: StateStore, path: str) -> None:
    before = store.get_state()
    assert store.set_value(path, 1) is False
    assert store.delete_value(path) is False
    assert store.get_state() == before


def test_set_value_rejects_unaddressable_nested_keys(store: StateStore) -> None:
    assert store.set_value("theme", {"v.1": True}) is False
    assert store.set_value("theme", {"": True}) is False
    assert store.get_value("theme.dark") is False


def test_every_accepted_write_undoes_exactly(store: StateStore) -> None:
    """After rejecting odd keys, each accepted write round-trips through undo."""
    original = store.get_state()
    assert store.replace_state({"a": 1, "v_1": True})
    assert store.undo() is True
    assert store.get_state() == original


def test_inapplicable_history_entry_leaves_cursor_alone() -> None:
    """undo() returns False without moving the cursor when replay fails."""
    s = StateStore({"a": 1})
    s.history.push({"": Delete("", old=1)}, label="foreign")
    cursor = s.history.cursor

    assert s.undo() is False
    assert s.history.cursor == cursor
    assert s.get_state() == {"a": 1}


# --------------------------------------------------------------------------- #
# Listener isolation from history
# --------------------------------------------------------------------------- #


def test_listener_mutating_changes_cannot_rewrite_history() -> None:
    """Listeners get their own change record; redo restores the real value."""
    s = StateStore({"a": 1})

    def vandal(state: dict[str, Any], changes: Any, meta: Any) -> None:
        if changes and "a" in changes and isinstance(changes["a"].new, dict):
            changes["a"].new["k"] = 999

    s.subscribe(vandal)
    s.set_value("a", {"k": 2})
    assert s.undo() and s.redo()

    assert s.get_state() == {"a": {"k": 2}}


def test_each_listener_gets_an_independent_record() -> None:
    s = StateStore({"a": 1})
    seen: list[Any] = []

    def first(state: dict[str, Any], changes: Any, meta: Any) -> None:
        changes["a"].new.append("tampered")

    s.subscribe(first)
    s.subscribe(lambda state, changes, meta: seen.append(changes["a"].new))
    s.set_value("a", [1])

    assert seen == [[1]]


# --------------------------------------------------------------------------- #
# Per-call write options
# --------------------------------------------------------------------------- #


def test_write_without_history_entry(store: StateStore) -> None:
    """record_history=False applies the write but leaves no undo entry."""
    before = len(store.history)
    assert store.set_value("theme.dark", True, record_history=False) is True
    assert store.get_value("theme.dark") is True
    assert len(store.history) == before
    assert store.can_undo() is False


def test_write_without_notification(store: StateStore) -> None:
    """notify=False commits silently; the change is still recorded."""
    calls: list[Any] = []
    store.subscribe(lambda *a: calls.append(a))
    store.subscribe_path("theme", lambda v, p: calls.append(v))

    assert store.set_value("theme.dark", True, notify=False) is True
    assert store.merge_state({"theme": {"accent": "red"}}, notify=False) is True
    assert store.delete_value("display", notify=False) is True

    assert calls == []
    assert store.get_changes() is not None
    assert store.can_undo()


def test_options_through_apply_and_set_state(store: StateStore) -> None:
    calls: list[Any] = []
    store.subscribe(lambda *a: calls.append(a))
    before = len(store.history)

    store.apply(SetValue("x", 1), record_history=False, notify=False)
    store.set_state({"y": 2}, record_history=False, notify=False)
    store.replace_state({"z": 3}, record_history=False)

    assert store.get_state() == {"z": 3}
    assert len(store.history) == before
    assert len(calls) == 1


def test_reset_to_defaults_options() -> None:
    calls: list[Any] = []
    s = StateStore({"mode": "manual"}, defaults=lambda: {"mode": "auto"})
    s.subscribe(lambda state, changes, meta: calls.append(meta["type"]))

    assert s.reset_to_defaults(record_history=False, notify=False) is True
    assert s.get_value("mode") == "auto"
    assert s.can_undo() is False
    assert calls == []
