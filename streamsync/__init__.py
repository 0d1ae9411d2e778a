"""Catalog and program-guide synchronization engine for the TV client."""

from __future__ import annotations

from importlib import import_module
from typing import Any

__all__ = ["Settings", "SyncEngine", "get_settings"]

_EXPORTS = {
    "Settings": "streamsync.config",
    "get_settings": "streamsync.config",
    "SyncEngine": "streamsync.engine",
}


def __getattr__(name: str) -> Any:
    module_name = _EXPORTS.get(name)
    if module_name is not None:
        return getattr(import_module(module_name), name)
    raise AttributeError(f"module 'streamsync' has no attribute {name}")
