"""Validated accessors for JSON-shaped cluster objects."""

from typing import Any, Dict, List, Optional, Sequence

from ..errors import ArtifactError


class PathError(ArtifactError):
    """A path element exists but has an unexpected type."""

    def __init__(self, path: Sequence[str], expected: str, actual: Any):
        self.path = list(path)
        super().__init__(
            f"{'.'.join(self.path)}: expected {expected}, got {type(actual).__name__}"
        )


def _walk(obj: Dict[str, Any], path: Sequence[str]) -> Optional[Any]:
    current: Any = obj
    for i, key in enumerate(path):
        if current is None:
            return None
        if not isinstance(current, dict):
            raise PathError(path[:i], "map", current)
        current = current.get(key)
    return current


def nested_map(obj: Dict[str, Any], *path: str) -> Optional[Dict[str, Any]]:
    """Return the map at path; raise PathError if something else is there."""
    value = _walk(obj, path)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise PathError(path, "map", value)
    return value


def nested_list(obj: Dict[str, Any], *path: str) -> Optional[List[Any]]:
    """Return the list at path; raise PathError if something else is there."""
    value = _walk(obj, path)
    if value is None:
        return None
    if not isinstance(value, list):
        raise PathError(path, "list", value)
    return value


def nested_str(obj: Dict[str, Any], *path: str, default: str = "") -> str:
    """Return the string at path or default."""
    value = _walk(obj, path)
    if value is None:
        return default
    if not isinstance(value, str):
        raise PathError(path, "string", value)
    return value
