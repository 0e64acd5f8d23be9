"""
Directory-scoped lookup over the Doppler CLI ``scoped`` settings map.

The Doppler CLI stores settings keyed by absolute directory path. A setting
recorded for a directory applies to everything below it unless a deeper
directory overrides it, so a lookup walks from the starting directory up to
the filesystem root and returns the first non-empty value.
"""

from __future__ import annotations

import os
from typing import Any, Callable, Mapping

ScopeRecord = Mapping[str, Any]
ScopeTree = Mapping[str, ScopeRecord | None]
Selector = Callable[[ScopeRecord | None], Any]


def get_scoped_value(
    scopes: ScopeTree | None,
    path: str | os.PathLike[str],
    selector: Selector,
) -> Any | None:
    """
    Find the nearest non-empty value for ``selector`` at or above ``path``.

    Args:
        scopes: Mapping of absolute directory path to settings record
        path: Directory to start from
        selector: Extracts a candidate from a record (receives None when
            no record exists for a directory)

    Returns:
        The first truthy candidate, or None once the root has been checked
    """
    scopes = scopes or {}
    current = os.path.abspath(os.fspath(path))

    while True:
        value = selector(scopes.get(current))
        if value:
            return value

        parent, _ = os.path.split(current)
        if parent == current:
            return None
        current = parent


def select_token(record: ScopeRecord | None) -> Any:
    return record.get("token") if record else None


def select_project(record: ScopeRecord | None) -> Any:
    return record.get("enclave.project") if record else None


def select_config(record: ScopeRecord | None) -> Any:
    return record.get("enclave.config") if record else None
