"""Dotted-path access over a nested Content Map."""

from __future__ import annotations

import copy
import json
from collections.abc import Iterator
from typing import Any

from sitevault.content.models import ContentMap


def _split(path: str) -> list[str]:
    if not path:
        raise ValueError("Content path must not be empty")
    return path.split(".")


def get_path(tree: ContentMap, path: str, default: Any = None) -> Any:
    """Return the value at ``path``, or ``default``.

    The default is returned when a segment is missing, when a non-object
    sits where descent is required, or when the resolved value is None.
    """
    result: Any = tree
    for key in _split(path):
        if isinstance(result, dict) and key in result:
            result = result[key]
        else:
            return default
    return default if result is None else result


def set_path(tree: ContentMap, path: str, value: Any) -> None:
    """Assign ``value`` at ``path``, creating intermediate objects.

    An intermediate segment holding a non-object is replaced with a fresh
    object.  ``value`` is stored as a deep copy, so later changes to the
    caller's object do not leak into the map.

    Raises TypeError if ``value`` is not strict JSON (NaN and infinities
    included).
    """
    keys = _split(path)
    try:
        json.dumps(value, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise TypeError(f"Value for {path!r} is not JSON-serializable: {exc}") from exc

    current = tree
    for key in keys[:-1]:
        if not isinstance(current.get(key), dict):
            current[key] = {}
        current = current[key]
    current[keys[-1]] = copy.deepcopy(value)


def merge_draft(remote: ContentMap, local: ContentMap) -> ContentMap:
    """Shallow merge: local top-level keys override remote ones."""
    return {**remote, **local}


def flatten(tree: ContentMap, prefix: str = "") -> Iterator[tuple[str, Any]]:
    """Yield ``(dotted_path, leaf)`` pairs in key order."""
    for key in sorted(tree):
        path = f"{prefix}.{key}" if prefix else key
        value = tree[key]
        if isinstance(value, dict) and value:
            yield from flatten(value, path)
        else:
            yield path, value
