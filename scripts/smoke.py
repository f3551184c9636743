# scripts/smoke.py
"""
Smoke Test Script for the confstate engine.

Usage
-----
1. Run against a built-in sample tree:
    $ python scripts/smoke.py

2. Run against a JSON configuration file (it is never written back):
    $ python scripts/smoke.py --file settings.json --path theme.dark --value true
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from confstate.core.state import JsonFileStorage, StateStore, TraceRecorder

# --------------------------------------------------------------------------- #
# Environment Setup
# --------------------------------------------------------------------------- #
env_path = Path(".env")
if env_path.exists():
    load_dotenv(env_path)
    print("✅ Loaded .env file")

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

# --------------------------------------------------------------------------- #
# Test Data
# --------------------------------------------------------------------------- #
DEFAULT_TREE = {
    "theme": {"dark": False, "accent": "#3366ff"},
    "search": {"minChars": 2, "fields": ["title", "tags"]},
}


def main() -> None:
    """Execute the smoke test workflow."""
    parser = argparse.ArgumentParser(description="Run confstate Smoke Test")
    parser.add_argument("--file", "-f", type=str, help="Path to a JSON configuration file")
    parser.add_argument("--path", "-p", type=str, default="theme.dark", help="Path to write")
    parser.add_argument("--value", "-v", type=str, default="true", help="JSON value to write")
    args = parser.parse_args()

    # 1. Prepare Input Data
    tree = DEFAULT_TREE
    if args.file:
        loaded = JsonFileStorage(Path(args.file)).load()
        if loaded is None:
            print(f"❌ Cannot read: {args.file}")
            return
        print(f"\n📂 Using input file: {args.file}")
        tree = loaded

    store = StateStore(tree)
    recorder = TraceRecorder().attach(store)
    store.subscribe_path(args.path, lambda value, path: print(f"  👀 {path} -> {value!r}"))

    # 2. Execution Phase
    value = json.loads(args.value)
    print(f"\n... set_value({args.path!r}, {value!r}) ...")
    if not store.set_value(args.path, value):
        print("❌ Write rejected")
        return

    changes = store.get_changes() or {}
    print("\n📌 Changes:")
    for path, entry in changes.items():
        print(f"  - {path}: {entry.to_dict()}")

    print("\n... undo() / redo() ...")
    print(f"  undo -> {store.undo()}, value = {store.get_value(args.path)!r}")
    print(f"  redo -> {store.redo()}, value = {store.get_value(args.path)!r}")

    # 3. Inspection Phase
    print("\n🕵️  Trace Log:")
    for snap in recorder.traces():
        print(f"  {snap.revision}. {snap.event} {', '.join(snap.changed_paths)}")


if __name__ == "__main__":
    main()
