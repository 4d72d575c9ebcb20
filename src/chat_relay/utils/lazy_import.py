"""Deferred imports for heavy optional SDKs (motor, google-generativeai)."""

from collections.abc import Callable
from functools import cache
from importlib import import_module
from typing import Any

__all__ = [
    "lazy_import",
]


def lazy_import(
    module_name: str,
    name: str | None = None,
) -> Callable[[], Any]:
    """Lazily import a module or an attribute from a module.

    The import runs on the first call of the returned loader and is
    memoised afterwards.
    """

    @cache
    def _load() -> Any:
        mod = import_module(module_name)
        return getattr(mod, name) if name else mod

    return _load
