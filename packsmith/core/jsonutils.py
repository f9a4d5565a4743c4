# packsmith/core/jsonutils.py
from __future__ import annotations

import json
from enum import Enum
from pathlib import PurePath
from typing import Any

__all__ = ["safeJsonDumps"]



def _jsonDefault(obj: Any) -> Any:
    """Fallback encoder for the values that end up in log records and lock dumps."""
    if hasattr(obj, "model_dump") and not isinstance(obj, type):
        return obj.model_dump(mode="json")
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, PurePath):
        return obj.as_posix()
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=str)
    if isinstance(obj, BaseException):
        return {"type": type(obj).__name__, "message": str(obj)}
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return f"<{len(bytes(obj))} bytes>"
    return repr(obj)



def safeJsonDumps(obj: object) -> str:
    """
    Compact single-line JSON. Never raises: values json cannot encode go
    through _jsonDefault, and a payload that still fails (cycles, NaN) is
    replaced by its repr.
    """
    try:
        return json.dumps(obj, default=_jsonDefault, ensure_ascii=False, allow_nan=False, separators=(",", ":"))
    except (TypeError, ValueError):
        return json.dumps({"unserializable": repr(obj)}, ensure_ascii=False)
