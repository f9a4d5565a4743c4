# packsmith/core/dictpath.py
from __future__ import annotations
from typing import Any
from collections.abc import Mapping, MutableMapping

__all__ = ["splitPath", "getByPath", "setByPath"]



def splitPath(path: str) -> list[str]:
    r"""
    "http.timeoutMs" -> ["http", "timeoutMs"]. A backslash escapes the next
    character, so r"a\.b.c" -> ["a.b", "c"]. Empty segments are rejected.
    """
    if not isinstance(path, str) or not path:
        raise ValueError("Path must be a non-empty string")
    segments = [""]
    chars = iter(path)
    for ch in chars:
        if ch == "\\":
            nxt = next(chars, None)
            if nxt is None:
                raise ValueError(f"Path {path!r} ends with a dangling backslash")
            segments[-1] += nxt
        elif ch == ".":
            segments.append("")
        else:
            segments[-1] += ch
    if "" in segments:
        raise ValueError(f"Path {path!r} contains an empty segment")
    return segments



def getByPath(obj: Any, path: str, default: Any | None = None) -> Any:
    """Value at `path` in nested mappings; `default` if any hop is missing or the path is invalid."""
    try:
        segments = splitPath(path)
    except ValueError:
        return default
    node = obj
    for segment in segments:
        if not isinstance(node, Mapping) or segment not in node:
            return default
        node = node[segment]
    return node



def setByPath(obj: MutableMapping[str, Any], path: str, value: Any, *, createIfMissing: bool = False) -> None:
    """
    Assign `value` at `path`. Missing intermediate mappings are created with
    createIfMissing, otherwise they raise KeyError. Descending into a
    non-mapping raises TypeError.
    """
    *parents, leaf = splitPath(path)
    node: Any = obj
    for segment in parents:
        if segment not in node:
            if not createIfMissing:
                raise KeyError(f"Path segment {segment!r} not found")
            node[segment] = {}
        node = node[segment]
        if not isinstance(node, MutableMapping):
            raise TypeError(f"Cannot descend into {segment!r}: {type(node).__name__} is not a mapping")
    node[leaf] = value
