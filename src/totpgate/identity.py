"""Pull a display identifier out of an authenticated user object."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_MISSING = object()


def resolve_path(obj: Any, path: str, default: Any = None) -> Any:
    """Follow a dotted path through attributes, mapping keys and list indices.

    ``resolve_path(user, "profile.emails.0")`` works for dicts, pydantic
    models and plain objects alike.
    """
    current = obj
    for part in path.split("."):
        if current is None:
            return default
        if isinstance(current, Mapping):
            current = current.get(part, _MISSING)
        elif isinstance(current, (list, tuple)) and part.lstrip("-").isdigit():
            try:
                current = current[int(part)]
            except IndexError:
                current = _MISSING
        else:
            current = getattr(current, part, _MISSING)
        if current is _MISSING:
            return default
    return current
