# packsmith/app/transaction.py
from __future__ import annotations

import logging
from pathlib import Path

from packsmith.core.errors import TransactionAborted
from packsmith.pack.manifest import loadManifest, saveManifest
from packsmith.pack.models import PackManifest

logger = logging.getLogger(__name__)

__all__ = ["ManifestTransaction"]



class ManifestTransaction:
    """
    Mutate the manifest, then the lockfile, as one coarse unit.

        async with ManifestTransaction(packDir) as tx:
            tx.commitManifest(addMod(tx.manifest, spec))
            ...update and save the lockfile...

    The manifest is snapshotted on entry. If anything fails after
    commitManifest() the snapshot is written back and TransactionAborted is
    raised carrying the original error (and the rollback error, if restoring
    failed too). Failures before a commit propagate unchanged. The lockfile is
    never rolled back.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        self.snapshot: PackManifest | None = None
        self.manifest: PackManifest | None = None
        self.committed = False

    async def __aenter__(self) -> ManifestTransaction:
        self.snapshot = loadManifest(self.directory)
        self.manifest = self.snapshot.model_copy(deep=True)
        return self

    def commitManifest(self, newManifest: PackManifest) -> None:
        saveManifest(newManifest, self.directory)
        self.manifest = newManifest
        self.committed = True

    async def __aexit__(self, excType, exc, tb) -> bool:
        if exc is None or not self.committed or not isinstance(exc, Exception):
            return False

        assert self.snapshot is not None
        logger.error("Lockfile update failed, reverting modpack manifest: %s", exc)
        try:
            saveManifest(self.snapshot, self.directory)
        except Exception as rollbackErr:
            logger.critical("Failed to revert modpack manifest in %s: %s", self.directory, rollbackErr)
            raise TransactionAborted(exc, rollbackErr) from exc
        raise TransactionAborted(exc) from exc
