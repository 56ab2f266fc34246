"""Utility functions for variant-bridge."""

from typing import Any


def deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries with overlay precedence.

    Recursively merges nested dictionaries. Non-dict values in overlay
    completely replace corresponding values in base.

    Args:
        base: Base dictionary
        overlay: Overlay dictionary (takes precedence)

    Returns:
        New merged dictionary (base and overlay are not modified)

    Examples:
        >>> deep_merge({"bridge": {"channel": "a", "backend": "b"}}, {"bridge": {"channel": "c"}})
        {'bridge': {'channel': 'c', 'backend': 'b'}}
    """
    result = base.copy()

    for key, value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def is_valid_key(key: Any) -> bool:
    """Check property key syntax.

    A key starts with "/", has no empty segments and no trailing "/".
    The root "/" itself is not a property key.

    Examples:
        >>> is_valid_key("/module/count")
        True
        >>> is_valid_key("/module//count")
        False
    """
    if not isinstance(key, str) or len(key) < 2 or not key.startswith("/"):
        return False
    return all(key.split("/")[1:])


def is_descendant(key: str, ancestor: str) -> bool:
    """Check whether key lies strictly below ancestor in the key tree."""
    prefix = ancestor.rstrip("/") + "/"
    return key != ancestor and key.startswith(prefix)


def ancestors(key: str) -> list[str]:
    """List the keys above key, nearest first.

    Examples:
        >>> ancestors("/a/b/c")
        ['/a/b', '/a']
    """
    parts = key.split("/")[1:-1]
    return ["/" + "/".join(parts[:i]) for i in range(len(parts), 0, -1)]


def relative_key(key: str, path: str) -> str:
    """Express key relative to path ("/a/b" under "/" is "a/b")."""
    prefix = path if path.endswith("/") else path + "/"
    if not key.startswith(prefix):
        raise ValueError(f"Key '{key}' is not below '{path}'")
    return key[len(prefix) :]
