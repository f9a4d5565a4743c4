# packsmith/pack/manifest.py
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import json5
from pydantic import ValidationError

from packsmith.core.errors import (
    ForbiddenModError,
    InvalidPathError,
    ManifestNotFoundError,
    PacksmithError,
    ProjectExistsError,
)
from packsmith.pack.models import FileEntry, ModProvider, ModSpec, PackManifest

logger = logging.getLogger(__name__)

__all__ = [
    "MANIFEST_FILENAME",
    "manifestPath",
    "readJson5",
    "writeTextJson5",
    "loadManifest",
    "saveManifest",
    "initProject",
    "addMod",
    "removeMod",
    "forbidMod",
    "addDefaultProvider",
    "normaliseRelativePath",
    "addFile",
    "removeFile",
]



MANIFEST_FILENAME = "modpack.json5"



# ------------------------------------------------------------------ #
# Document IO
# ------------------------------------------------------------------ #

def writeTextJson5(path: Path, obj: Any) -> None:
    text = json5.dumps(obj, ensure_ascii=False, indent=2)
    path.write_text(text + "\n", encoding="utf-8")



def readJson5(path: Path) -> Any:
    return json5.loads(path.read_text(encoding="utf-8"))



def manifestPath(directory: Path) -> Path:
    return Path(directory) / MANIFEST_FILENAME



def loadManifest(directory: Path) -> PackManifest:
    path = manifestPath(directory)
    if not path.exists():
        raise ManifestNotFoundError(
            f"Directory '{directory}' does not seem to be a valid modpack project directory."
        )
    try:
        return PackManifest.model_validate(readJson5(path))
    except (ValueError, ValidationError) as err:
        raise PacksmithError(f"Invalid modpack manifest {path}: {err}") from err



def saveManifest(manifest: PackManifest, directory: Path) -> None:
    writeTextJson5(manifestPath(directory), manifest.model_dump(mode="json", exclude_none=True))
    logger.debug("Saved modpack manifest to %s", manifestPath(directory))



def initProject(manifest: PackManifest, directory: Path) -> None:
    path = manifestPath(directory)
    if path.exists():
        raise ProjectExistsError(f"{MANIFEST_FILENAME} already exists at {path}")
    Path(directory).mkdir(parents=True, exist_ok=True)
    saveManifest(manifest, directory)
    logger.info("Modpack project initialized at %s", directory)



# ------------------------------------------------------------------ #
# Mods
# ------------------------------------------------------------------ #
# Every mutation returns a new manifest, so callers keep their snapshot.

def addMod(manifest: PackManifest, spec: ModSpec) -> PackManifest:
    if spec.name in manifest.forbiddenMods:
        raise ForbiddenModError(f"Cannot add forbidden mod {spec.name} to modpack")
    updated = manifest.model_copy(deep=True)
    updated.mods[spec.name] = spec.model_copy(deep=True)
    return updated



def removeMod(manifest: PackManifest, name: str) -> PackManifest:
    updated = manifest.model_copy(deep=True)
    updated.mods.pop(name, None)
    return updated



def forbidMod(manifest: PackManifest, name: str) -> PackManifest:
    updated = manifest.model_copy(deep=True)
    updated.mods.pop(name, None)
    updated.forbiddenMods.add(name)
    logger.info("Mod %s has been forbidden from the modpack", name)
    return updated



def addDefaultProvider(manifest: PackManifest, provider: ModProvider | str) -> PackManifest:
    provider = ModProvider.parse(provider)
    updated = manifest.model_copy(deep=True)
    if provider not in updated.defaultProviders:
        updated.defaultProviders.append(provider)
    return updated



# ------------------------------------------------------------------ #
# Packaged files
# ------------------------------------------------------------------ #

def normaliseRelativePath(path: str | Path, base: Path, *, mustExist: bool = True) -> str:
    """
    Normalise `path` (relative to `base`) into a "./a/b" style key.

    Absolute paths and paths escaping `base` are rejected.
    """
    path = Path(path)
    if path.is_absolute():
        raise InvalidPathError(f"Absolute paths are not supported! Will not normalise {path}")
    basePath = Path(base).resolve(strict=True)
    try:
        fullPath = (basePath / path).resolve(strict=mustExist)
    except FileNotFoundError as err:
        raise InvalidPathError(f"Path {path} does not exist under {basePath}") from err
    if not fullPath.is_relative_to(basePath):
        raise InvalidPathError(f"Path {path} points outside of {basePath}")
    relative = Path(os.path.relpath(fullPath, basePath)).as_posix()
    if relative == ".":
        raise InvalidPathError("The pack root itself cannot be added as a file")
    return f"./{relative}"



def addFile(manifest: PackManifest, localPath: str | Path, entry: FileEntry, packDir: Path) -> PackManifest:
    key = normaliseRelativePath(localPath, packDir)
    updated = manifest.model_copy(deep=True)
    updated.files[key] = entry
    logger.info("Added %s -> %s (%s, %s)", key, entry.targetPath, entry.side.value, entry.applyPolicy.value)
    return updated



def removeFile(manifest: PackManifest, localPath: str | Path, packDir: Path) -> PackManifest:
    key = normaliseRelativePath(localPath, packDir, mustExist=False)
    updated = manifest.model_copy(deep=True)
    if updated.files.pop(key, None) is None:
        logger.warning("File %s is not part of the modpack", key)
    return updated
