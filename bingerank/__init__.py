"""BingeRank: rank TV shows by answering "which did you like more?" questions.

The HTTP application lives in :mod:`bingerank.main`; it is imported lazily so
the ranking services can be used without building the FastAPI app.
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

__all__ = ["app", "create_app"]


def __getattr__(name: str) -> Any:
    if name in __all__:
        return getattr(import_module("bingerank.main"), name)
    raise AttributeError(f"module 'bingerank' has no attribute {name}")
