# packsmith/sync/downloader.py
from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import httpx

from packsmith.app.settings import config
from packsmith.core.errors import IntegrityMismatch, NotImplementedFeature, PacksmithError
from packsmith.core.hashing import hashesEqual, sha512Hex
from packsmith.core.logging import getLogContext, restoreLogContext, setLogContext
from packsmith.http.client import HTTPError, fetchBytes
from packsmith.pack.models import DownloadSide, DownloadSource, LocalSource, PinnedArtifact, sideMatches
from packsmith.resolver.lock import PackLock

logger = logging.getLogger(__name__)

__all__ = ["PinnedFilesIndex", "syncAndDownload", "SyncResult"]



class PinnedFilesIndex:
    """
    Answers "is this filename pinned for this side?".

    Filenames are cached as they are discovered; a miss rescans the lock and
    refills the cache before answering.
    """

    def __init__(self, lock: PackLock, side: DownloadSide) -> None:
        self._lock = lock
        self._side = side
        self._known: set[str] = set()

    def _artifacts(self) -> list[PinnedArtifact]:
        return [
            artifact for artifact in self._lock.mods.values()
            if sideMatches(self._side, artifact.serverSide, artifact.clientSide)
        ]

    def isPinned(self, filename: str) -> bool:
        if filename in self._known:
            return True
        for artifact in self._artifacts():
            self._known.update(artifact.filenames())
        return filename in self._known

    def __contains__(self, filename: object) -> bool:
        return isinstance(filename, str) and self.isPinned(filename)



class SyncResult:
    def __init__(self) -> None:
        self.deleted: list[str] = []
        self.skipped: list[str] = []
        self.downloaded: list[str] = []

    def __repr__(self) -> str:
        return (
            f"SyncResult(deleted={len(self.deleted)}, skipped={len(self.skipped)}, "
            f"downloaded={len(self.downloaded)})"
        )



def _deleteUnpinned(targetDir: Path, index: PinnedFilesIndex, result: SyncResult) -> None:
    for entry in sorted(targetDir.iterdir()):
        if not entry.is_file():
            continue
        if entry.name in index:
            continue
        logger.info("Deleting unpinned file %s", entry.name)
        entry.unlink()
        result.deleted.append(entry.name)



async def _downloadSource(source: DownloadSource, targetDir: Path, result: SyncResult) -> None:
    target = targetDir / source.filename
    if target.exists():
        logger.debug("%s already exists, skipping", source.filename)
        result.skipped.append(source.filename)
        return

    logger.info("Downloading %s", source.filename)
    try:
        content = await fetchBytes(source.url)
    except (HTTPError, httpx.HTTPError) as err:
        raise PacksmithError(f"Failed to download {source.filename} from {source.url}: {err}") from err

    actual = sha512Hex(content)
    if not hashesEqual(source.sha512, actual):
        raise IntegrityMismatch(source.filename, source.sha512, actual)

    target.write_bytes(content)
    result.downloaded.append(source.filename)



async def _syncArtifact(name: str, artifact: PinnedArtifact, targetDir: Path, result: SyncResult) -> None:
    previousContext = getLogContext()
    setLogContext(mod=name)
    try:
        for source in artifact.sources:
            if isinstance(source, LocalSource):
                raise NotImplementedFeature(f"Local sources are not supported yet ({name}: {source.path})")
            await _downloadSource(source, targetDir, result)
    finally:
        restoreLogContext(previousContext)



async def syncAndDownload(
    lock: PackLock,
    targetDir: Path,
    side: DownloadSide,
    *,
    concurrency: int | None = None,
) -> SyncResult:
    """
    Make `targetDir` hold exactly the files pinned for `side`.

    Unpinned files are deleted first, existing pinned files are left alone and
    missing ones are fetched and checked against their SHA-512 before being
    written. With concurrency > 1 artifacts are fetched in parallel, bounded by
    a semaphore; the first failure cancels the remaining fetches and is raised.
    """
    targetDir = Path(targetDir)
    targetDir.mkdir(parents=True, exist_ok=True)
    if concurrency is None:
        concurrency = int(config("sync.maxParallelDownloads", 1) or 1)

    result = SyncResult()
    index = PinnedFilesIndex(lock, side)
    _deleteUnpinned(targetDir, index, result)

    selected = [
        (name, lock.mods[name]) for name in sorted(lock.mods)
        if sideMatches(side, lock.mods[name].serverSide, lock.mods[name].clientSide)
    ]

    if concurrency <= 1:
        for name, artifact in selected:
            await _syncArtifact(name, artifact, targetDir, result)
    else:
        semaphore = asyncio.Semaphore(concurrency)

        async def _bounded(name: str, artifact: PinnedArtifact) -> None:
            async with semaphore:
                await _syncArtifact(name, artifact, targetDir, result)

        # A failing task cancels its siblings before the group exits
        try:
            async with asyncio.TaskGroup() as group:
                for name, artifact in selected:
                    group.create_task(_bounded(name, artifact))
        except ExceptionGroup as failures:
            raise failures.exceptions[0] from None

    logger.info("Sync of %s finished: %r", targetDir, result)
    return result
