"""confstate: hierarchical configuration state with diffing, undo/redo and observers.

The engine lives in :mod:`confstate.core.state`; :class:`StateStore` is the
entry point. Configuration defaults come from :mod:`confstate.core.settings`.
"""

from __future__ import annotations

__all__ = ["__version__"]
__version__ = "0.1.0"
