"""Core package initializer for confstate.

Settings live in `confstate.core.settings`; the state engine in
`confstate.core.state`; validator contracts in `confstate.core.contracts`.
"""

from __future__ import annotations

__all__ = ["__doc__"]
