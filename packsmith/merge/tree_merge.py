# packsmith/merge/tree_merge.py
from __future__ import annotations

import copy
import json
from collections.abc import Iterator, MutableMapping
from enum import Enum
from pathlib import PurePath
from typing import Any, Protocol

import json5
import toml
import yaml

from packsmith.core.errors import StructuralMismatch

__all__ = [
    "TreeAdapter",
    "MappingAdapter",
    "MAPPING_ADAPTER",
    "mergeTrees",
    "FileType",
    "mergeFiles",
]



class TreeAdapter(Protocol):
    """The handful of tree operations the merge needs, per document model."""

    def isMapping(self, node: Any) -> bool:
        ...

    def iterItems(self, node: Any) -> Iterator[tuple[Any, Any]]:
        ...

    def hasKey(self, node: Any, key: Any) -> bool:
        ...

    def getOrInsertMapping(self, node: Any, key: Any) -> Any:
        ...

    def setItem(self, node: Any, key: Any, value: Any) -> None:
        ...



class MappingAdapter:
    """
    Adapter for plain Python documents (dict/list/scalars).

    json, json5, PyYAML and toml all parse into this shape, so one adapter serves
    every supported format; the per-format part is the codec in FileType.
    """

    def isMapping(self, node: Any) -> bool:
        return isinstance(node, MutableMapping)

    def iterItems(self, node: Any) -> Iterator[tuple[Any, Any]]:
        return iter(list(node.items()))

    def hasKey(self, node: Any, key: Any) -> bool:
        return key in node

    def getOrInsertMapping(self, node: Any, key: Any) -> Any:
        if key not in node:
            node[key] = {}
        return node[key]

    def setItem(self, node: Any, key: Any, value: Any) -> None:
        node[key] = copy.deepcopy(value)



MAPPING_ADAPTER = MappingAdapter()



def mergeTrees(
    src: Any,
    dst: Any,
    overwriteExisting: bool,
    *,
    adapter: TreeAdapter = MAPPING_ADAPTER,
    _path: tuple[str, ...] = (),
) -> Any:
    """
    Merge `src` into `dst` in place and return `dst`.

    - Both nodes must be mappings, else StructuralMismatch (with the key path).
    - Mapping values in `src` recurse, creating an empty mapping in `dst` first.
      If `dst` already holds a non-mapping there, the recursion raises.
    - Any other value (scalar, list, ...) is copied over when overwriteExisting
      is set or the key is missing from `dst`. Lists are replaced whole.
    - Keys only present in `dst` are left alone.
    """
    if not adapter.isMapping(src) or not adapter.isMapping(dst):
        raise StructuralMismatch(_path, type(src).__name__, type(dst).__name__)

    for key, value in adapter.iterItems(src):
        if adapter.isMapping(value):
            child = adapter.getOrInsertMapping(dst, key)
            mergeTrees(value, child, overwriteExisting, adapter=adapter, _path=_path + (str(key),))
        elif overwriteExisting or not adapter.hasKey(dst, key):
            adapter.setItem(dst, key, value)
    return dst



class FileType(Enum):
    JSON = "json"
    JSON5 = "json5"
    YAML = "yaml"
    TOML = "toml"

    @classmethod
    def fromName(cls, name: str | PurePath) -> FileType:
        """Detect a mergeable format from a file name; raises ValueError otherwise."""
        found = cls.tryFromName(name)
        if found is None:
            raise ValueError(f"Unmergeable file type: {name}")
        return found

    @classmethod
    def tryFromName(cls, name: str | PurePath) -> FileType | None:
        suffix = PurePath(name).suffix.lower()
        return _SUFFIXES.get(suffix)

    def loads(self, text: str) -> Any:
        if not text.strip():
            # An empty target behaves like an empty document
            return {}
        if self is FileType.JSON:
            return json.loads(text)
        if self is FileType.JSON5:
            return json5.loads(text)
        if self is FileType.YAML:
            data = yaml.safe_load(text)
            return {} if data is None else data
        return toml.loads(text)

    def dumps(self, data: Any) -> str:
        if self is FileType.JSON:
            return json.dumps(data, ensure_ascii=False, indent=2) + "\n"
        if self is FileType.JSON5:
            return json5.dumps(data, ensure_ascii=False, indent=2) + "\n"
        if self is FileType.YAML:
            return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
        return toml.dumps(data)



_SUFFIXES: dict[str, FileType] = {
    ".json": FileType.JSON,
    ".json5": FileType.JSON5,
    ".yaml": FileType.YAML,
    ".yml": FileType.YAML,
    ".toml": FileType.TOML,
}



def mergeFiles(srcText: str, dstText: str, overwriteExisting: bool, fileType: FileType) -> str:
    """Merge the document in `srcText` into the one in `dstText` and render the result."""
    srcTree = fileType.loads(srcText)
    dstTree = fileType.loads(dstText)
    merged = mergeTrees(srcTree, dstTree, overwriteExisting)
    return fileType.dumps(merged)
