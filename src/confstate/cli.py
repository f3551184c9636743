# src/confstate/cli.py
"""
confstate Command Line Interface (CLI).

This module implements a small terminal front-end over the state engine using
`typer` and `rich`. Every command loads a persisted tree through
:class:`JsonFileStorage`, drives a :class:`StateStore`, and (for writes)
saves the result back.

Features
--------
- **Inspect**: pretty-print a stored tree or one sub-value.
- **Edit**: set or remove a dotted path and show exactly what changed.
- **Compare**: render the change record between two stored files.

Usage
-----
    $ confstate show settings.json --path theme
    $ confstate set settings.json theme.dark true
    $ confstate unset settings.json legacy.flag
    $ confstate diff old.json new.json
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.pretty import Pretty
from rich.table import Table

from confstate.core.state.diff import ChangeRecord, diff
from confstate.core.state.storage import JsonFileStorage
from confstate.core.state.store import StateStore

# Pick up CONFSTATE_* / LOG_LEVEL from .env before any store is built
load_dotenv()

app = typer.Typer(
    help="confstate: inspect and edit hierarchical configuration files.",
    rich_markup_mode="markdown",
)
console = Console()

ConfigFile = Annotated[
    Path,
    typer.Argument(
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        help="Path to a JSON configuration file.",
    ),
]


# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #


def _parse_value(raw: str) -> Any:
    """Interpret ``raw`` as JSON, falling back to the literal string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _load_store(file: Path) -> tuple[StateStore, JsonFileStorage]:
    """Helper: hydrate a store from ``file`` or exit with code 1."""
    storage = JsonFileStorage(file)
    tree = storage.load()
    if tree is None:
        console.print(f"[bold red]❌ Cannot read configuration:[/bold red] {file}")
        raise typer.Exit(code=1)
    store = StateStore()
    if not store.initialize(tree):
        console.print(f"[bold red]❌ Cannot load configuration:[/bold red] {file}")
        raise typer.Exit(code=1)
    return store, storage


def _render_changes(changes: ChangeRecord | None, title: str = "Changes") -> None:
    """Helper: render a change record as a table (or a dim note when empty)."""
    if not changes:
        console.print("[dim]No changes.[/dim]")
        return
    table = Table(title=title)
    table.add_column("Path", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Old")
    table.add_column("New")
    for path, entry in changes.items():
        old = "" if entry.type == "added" else json.dumps(entry.old_value, default=str)
        new = "" if entry.type == "deleted" else json.dumps(entry.value, default=str)
        table.add_row(path, entry.type, old, new)
    console.print(table)


def _save(store: StateStore, storage: JsonFileStorage) -> None:
    if not storage.save(store.get_state()):
        console.print(f"[bold red]❌ Failed to save:[/bold red] {storage.path}")
        raise typer.Exit(code=1)
    console.print(f"[dim]Saved to: {storage.path}[/dim]")


# --------------------------------------------------------------------------- #
# Commands
# --------------------------------------------------------------------------- #


@app.command()  # type: ignore[misc]
def show(
    file: ConfigFile,
    path: Annotated[
        str | None,
        typer.Option("--path", "-p", help="Dotted path of the sub-tree to show."),
    ] = None,
) -> None:
    """Pretty-print a stored configuration, or one branch of it."""
    store, _ = _load_store(file)
    if path is None:
        console.print(Panel(Pretty(store.get_state()), title=file.name, border_style="cyan"))
        return
    if not store.has_path(path):
        console.print(f"[bold red]❌ Path not found:[/bold red] {path}")
        raise typer.Exit(code=1)
    console.print(Panel(Pretty(store.get_value(path)), title=path, border_style="cyan"))


@app.command()  # type: ignore[misc]
def get(file: ConfigFile, path: Annotated[str, typer.Argument(help="Dotted path.")]) -> None:
    """Print the value at PATH as JSON."""
    store, _ = _load_store(file)
    if not store.has_path(path):
        console.print(f"[bold red]❌ Path not found:[/bold red] {path}")
        raise typer.Exit(code=1)
    typer.echo(json.dumps(store.get_value(path), default=str))


@app.command("set")  # type: ignore[misc]
def set_(
    file: ConfigFile,
    path: Annotated[str, typer.Argument(help="Dotted path to assign.")],
    value: Annotated[str, typer.Argument(help="JSON value (plain text is stored as a string).")],
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", "-n", help="Show the changes without saving."),
    ] = False,
) -> None:
    """Assign VALUE at PATH and save the file."""
    store, storage = _load_store(file)
    if not store.set_value(path, _parse_value(value)):
        console.print(f"[bold red]❌ Write rejected:[/bold red] {path}")
        raise typer.Exit(code=1)
    changes = store.get_changes()
    _render_changes(changes)
    if changes and not dry_run:
        _save(store, storage)


@app.command()  # type: ignore[misc]
def unset(
    file: ConfigFile,
    path: Annotated[str, typer.Argument(help="Dotted path to remove.")],
) -> None:
    """Remove the key at PATH and save the file."""
    store, storage = _load_store(file)
    if not store.has_path(path):
        console.print(f"[bold yellow]⚠️ Nothing to remove at:[/bold yellow] {path}")
        return
    store.delete_value(path)
    _render_changes(store.get_changes())
    _save(store, storage)


@app.command("diff")  # type: ignore[misc]
def diff_(old: ConfigFile, new: ConfigFile) -> None:
    """Show what changed from OLD to NEW."""
    before, _ = _load_store(old)
    after, _ = _load_store(new)
    _render_changes(diff(after.get_state(), before.get_state()), title=f"{old.name} → {new.name}")


if __name__ == "__main__":
    app()
