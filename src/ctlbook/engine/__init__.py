"""Command interpretation, navigation and widget reconciliation."""

from importlib import import_module
from typing import Any

__all__ = ["interpreter", "navigation", "reconcile", "context"]


def __getattr__(name: str) -> Any:
    # Loaded lazily: these modules import ctlbook.ui, which imports engine.knobs.
    if name in __all__:
        module = import_module(f"{__name__}.{name}")
        globals()[name] = module
        return module
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
