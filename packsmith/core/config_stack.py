# packsmith/core/config_stack.py
from __future__ import annotations
from typing import Any, Literal
from collections.abc import Mapping
from dataclasses import dataclass, field
import copy

from packsmith.core.dictpath import getByPath, setByPath

__all__ = [
    "Scope", "SCOPE_ORDER", "mergeWithStrategy", "ConfigLayer", "ConfigStack",
]



Scope = Literal["defaults", "user", "runtime"]

# Lowest precedence first
SCOPE_ORDER: tuple[Scope, ...] = ("defaults", "user", "runtime")

_MERGE_KEY = "__merge"



def mergeWithStrategy(left: Any, right: Any) -> Any:
    """
    Merge config value `right` over `left` without mutating either.

    Two mappings merge key by key, unless `right` carries "__merge": "replace",
    in which case it replaces `left` whole. Anything else in `right` replaces
    `left`.
    """
    if not (isinstance(left, Mapping) and isinstance(right, Mapping)):
        return copy.deepcopy(right)

    strategy = right.get(_MERGE_KEY, "deep")
    if strategy not in ("deep", "replace"):
        raise ValueError(f"Invalid {_MERGE_KEY}={strategy!r}; expected 'deep' or 'replace'")

    merged: dict[str, Any] = {} if strategy == "replace" else copy.deepcopy(dict(left))
    for key, value in right.items():
        if key == _MERGE_KEY:
            continue
        merged[key] = mergeWithStrategy(merged[key], value) if key in merged else copy.deepcopy(value)
    return merged



@dataclass(frozen=True)
class ConfigLayer:
    """One immutable layer, e.g. name="user:/home/me/.config/packsmith/config.json5", scope="user"."""
    name: str
    scope: Scope
    data: dict[str, Any] = field(default_factory=dict)



class ConfigStack:
    """
    Layers merged by scope (defaults <- user <- runtime); within a scope, later
    layers win. Runtime overrides live in a single layer named "runtime". The
    merged view is cached per stack version.
    """

    RUNTIME_LAYER = "runtime"

    def __init__(self) -> None:
        self._layers: list[ConfigLayer] = []
        self._version = 0
        self._cache: tuple[int, dict[str, Any]] | None = None

    def _changed(self) -> None:
        self._version += 1

    def addLayer(self, layer: ConfigLayer) -> None:
        self._layers.append(layer)
        self._changed()

    def setOverride(self, path: str, value: Any) -> None:
        """Set `path` in the runtime layer, creating the layer on first use."""
        current = next((layer for layer in self._layers if layer.name == self.RUNTIME_LAYER), None)
        data = copy.deepcopy(current.data) if current is not None else {}
        setByPath(data, path, value, createIfMissing=True)
        replacement = ConfigLayer(name=self.RUNTIME_LAYER, scope="runtime", data=data)
        if current is None:
            self._layers.append(replacement)
        else:
            self._layers[self._layers.index(current)] = replacement
        self._changed()

    def effective(self) -> dict[str, Any]:
        if self._cache is not None and self._cache[0] == self._version:
            return self._cache[1]
        merged: dict[str, Any] = {}
        for scope in SCOPE_ORDER:
            for layer in self._layers:
                if layer.scope == scope:
                    merged = mergeWithStrategy(merged, layer.data)
        if not isinstance(merged, dict):
            raise TypeError("Config layers must keep an object at the top level")
        self._cache = (self._version, merged)
        return merged

    def get(self, path: str, default: Any = None) -> Any:
        value = getByPath(self.effective(), path)
        return default if value is None else value
