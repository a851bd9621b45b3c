"""Nested dict helpers used to merge provider settings into live config."""

import copy
from typing import Any

KeyPath = tuple[str, ...]


def deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge overlay onto base. Overlay wins for scalars/lists.

    Args:
        base: Base dictionary (not mutated).
        overlay: Overlay dictionary whose values take precedence.

    Returns:
        New merged dictionary.
    """
    result = dict(base)
    for key, value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def leaf_paths(data: dict[str, Any], prefix: KeyPath = ()) -> set[KeyPath]:
    """Return the key paths of all non-dict values.

    Empty dicts contribute no path: a provider that sets ``{"permissions": {}}``
    does not own whatever the user keeps under ``permissions``.
    """
    paths: set[KeyPath] = set()
    for key, value in data.items():
        path = (*prefix, key)
        if isinstance(value, dict):
            paths |= leaf_paths(value, path)
        else:
            paths.add(path)
    return paths


def remove_path(data: dict[str, Any], path: KeyPath) -> bool:
    """Delete the value at ``path`` and prune parents left empty by the removal.

    Returns:
        True if something was removed.
    """
    if not path:
        return False
    head, *rest = path
    if head not in data:
        return False
    if not rest:
        del data[head]
        return True
    child = data[head]
    if not isinstance(child, dict):
        return False
    removed = remove_path(child, tuple(rest))
    if removed and not child:
        del data[head]
    return removed


def is_prefix(prefix: KeyPath, path: KeyPath) -> bool:
    return len(prefix) < len(path) and path[: len(prefix)] == prefix
