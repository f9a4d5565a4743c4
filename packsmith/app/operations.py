# packsmith/app/operations.py
from __future__ import annotations

import logging
from pathlib import Path

from packsmith.app.transaction import ManifestTransaction
from packsmith.core.errors import PacksmithError
from packsmith.core.logging import clearLogContext, setLogContext
from packsmith.pack.files import installFiles
from packsmith.pack.manifest import (
    addDefaultProvider,
    addFile,
    addMod,
    forbidMod,
    initProject,
    loadManifest,
    removeFile,
    removeMod,
    saveManifest,
)
from packsmith.pack.models import DownloadSide, FileEntry, ModLoader, ModProvider, ModSpec, PackManifest
from packsmith.providers.base import ProviderRegistry
from packsmith.resolver.lock import PackLock, loadLock, saveLock
from packsmith.sync.downloader import SyncResult, syncAndDownload

logger = logging.getLogger(__name__)

__all__ = [
    "initOperation",
    "addModOperation",
    "removeModOperation",
    "forbidModOperation",
    "updateOperation",
    "downloadOperation",
    "installPack",
    "addFileOperation",
    "removeFileOperation",
]



async def initOperation(
    directory: Path,
    *,
    packName: str | None = None,
    mcVersion: str = "1.20.1",
    loader: ModLoader = ModLoader.FABRIC,
    providers: list[ModProvider] | None = None,
    registry: ProviderRegistry | None = None,
) -> PackManifest:
    """Write a fresh manifest plus its (empty) lockfile into `directory`."""
    directory = Path(directory)
    if packName is None:
        packName = directory.resolve().name
        if not packName:
            raise PacksmithError(f"Cannot find pack name based on directory '{directory}'")

    setLogContext(operation="init")
    try:
        manifest = PackManifest(packName=packName, mcVersion=mcVersion, loader=loader)
        if providers:
            manifest = manifest.model_copy(update={"defaultProviders": []})
            for provider in providers:
                manifest = addDefaultProvider(manifest, provider)
        logger.info("Initializing project '%s' at '%s'...", packName, directory)
        initProject(manifest, directory)
        lock = await loadLock(directory, True, providers=registry)
        saveLock(lock, directory)
        return manifest
    finally:
        clearLogContext()



async def addModOperation(
    directory: Path,
    spec: ModSpec,
    *,
    locked: bool = False,
    registry: ProviderRegistry | None = None,
) -> PackLock:
    """
    Add (or re-pin) a mod. Any previous pin is dropped first, then the mod and
    its dependencies are pinned. `locked` keeps exact transitive versions.
    """
    setLogContext(operation="add", mod=spec.name)
    try:
        async with ManifestTransaction(directory) as tx:
            tx.commitManifest(addMod(tx.manifest, spec))
            lock = await loadLock(directory, not locked, providers=registry)
            lock.remove(spec.name, tx.manifest, True)
            await lock.pinWithDeps(spec, tx.manifest, not locked)
            saveLock(lock, directory)
        return lock
    finally:
        clearLogContext()



async def removeModOperation(
    directory: Path,
    name: str,
    *,
    force: bool = False,
    registry: ProviderRegistry | None = None,
) -> PackLock:
    setLogContext(operation="remove", mod=name)
    try:
        async with ManifestTransaction(directory) as tx:
            tx.commitManifest(removeMod(tx.manifest, name))
            lock = await loadLock(directory, True, providers=registry)
            lock.remove(name, tx.manifest, force)
            saveLock(lock, directory)
        return lock
    finally:
        clearLogContext()



async def forbidModOperation(
    directory: Path,
    name: str,
    *,
    registry: ProviderRegistry | None = None,
) -> PackLock:
    """Forbid a mod: drop it from the manifest and forcibly from the lockfile."""
    setLogContext(operation="forbid", mod=name)
    try:
        async with ManifestTransaction(directory) as tx:
            tx.commitManifest(forbidMod(tx.manifest, name))
            lock = await loadLock(directory, True, providers=registry)
            lock.remove(name, tx.manifest, True)
            saveLock(lock, directory)
        return lock
    finally:
        clearLogContext()



async def updateOperation(
    directory: Path,
    *,
    locked: bool = False,
    registry: ProviderRegistry | None = None,
) -> PackLock:
    """Re-resolve every mod from scratch and overwrite the lockfile."""
    setLogContext(operation="update")
    try:
        manifest = loadManifest(directory)
        lock = PackLock(providers=registry)
        await lock.update(manifest, not locked)
        saveLock(lock, directory)
        logger.info("Updated %d pinned mods", len(lock.mods))
        return lock
    finally:
        clearLogContext()



async def downloadOperation(
    packDir: Path,
    targetDir: Path,
    side: DownloadSide,
    *,
    registry: ProviderRegistry | None = None,
) -> SyncResult:
    setLogContext(operation="download")
    try:
        lock = await loadLock(packDir, True, providers=registry)
        result = await syncAndDownload(lock, Path(targetDir), side)
        logger.info("Mods updated")
        return result
    finally:
        clearLogContext()



async def installPack(
    packDir: Path,
    instanceDir: Path,
    side: DownloadSide,
    *,
    registry: ProviderRegistry | None = None,
) -> SyncResult:
    """Apply the pack's files to an instance directory and sync its mods folder."""
    setLogContext(operation="install")
    try:
        packDir = Path(packDir)
        instanceDir = Path(instanceDir)
        manifest = loadManifest(packDir)
        installed = installFiles(manifest, packDir, instanceDir, side)
        logger.info("Installed %d pack files into %s", installed, instanceDir)
        lock = await loadLock(packDir, True, providers=registry)
        return await syncAndDownload(lock, instanceDir / "mods", side)
    finally:
        clearLogContext()



def addFileOperation(directory: Path, localPath: str | Path, entry: FileEntry) -> PackManifest:
    manifest = addFile(loadManifest(directory), localPath, entry, Path(directory))
    saveManifest(manifest, directory)
    return manifest



def removeFileOperation(directory: Path, localPath: str | Path) -> PackManifest:
    manifest = removeFile(loadManifest(directory), localPath, Path(directory))
    saveManifest(manifest, directory)
    return manifest
