# packsmith/resolver/lock.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from packsmith.core.errors import (
    DependentsExist,
    LockInvariantError,
    PacksmithError,
    ProviderError,
    ResolutionFailure,
)
from packsmith.core.logging import getLogContext, restoreLogContext, setLogContext
from packsmith.pack.manifest import loadManifest, readJson5, writeTextJson5
from packsmith.pack.models import ModProvider, ModSpec, PackManifest, PinnedArtifact
from packsmith.providers.base import ProviderRegistry
from packsmith.semver.semver import WILDCARD

logger = logging.getLogger(__name__)

__all__ = [
    "LOCK_FILENAME",
    "providerOrder",
    "PackLock",
    "lockPath",
    "loadLock",
    "saveLock",
]



LOCK_FILENAME = "modpack.lock.json5"



def providerOrder(spec: ModSpec, manifest: PackManifest) -> list[ModProvider]:
    """The mod's own providers, then the pack defaults, first occurrence wins."""
    order: list[ModProvider] = []
    for provider in [*(spec.providers or []), *manifest.defaultProviders]:
        if provider not in order:
            order.append(provider)
    return order



class PackLock:
    """
    The lockfile: one pinned artifact per resolved mod name.

    Entries are only ever inserted (replacing a previous pin), removed or
    pruned. Insertion happens as soon as a provider succeeds and before the
    artifact's dependencies are returned, which is what stops dependency
    cycles: the second visit finds the name already pinned. Whoever is pinned
    first wins, so in a cycle the version depends on traversal order.
    """

    def __init__(
        self,
        mods: dict[str, PinnedArtifact] | None = None,
        *,
        providers: ProviderRegistry | None = None,
    ) -> None:
        self.mods: dict[str, PinnedArtifact] = dict(mods or {})
        self._providers = providers if providers is not None else ProviderRegistry.default()

    @property
    def providers(self) -> ProviderRegistry:
        return self._providers

    # ----- Pinning -----

    async def pin(self, spec: ModSpec, manifest: PackManifest) -> list[ModSpec]:
        """
        Pin one mod, trying providers in order. Returns the artifact's
        dependencies that are not pinned yet.
        """
        if spec.name in manifest.forbiddenMods:
            logger.info("Skipping adding forbidden mod %s...", spec.name)
            return []

        tried: list[str] = []
        for provider in providerOrder(spec, manifest):
            tried.append(provider.value)
            client = self._providers.get(provider)
            try:
                artifact = await client.resolve(spec, manifest)
            except ProviderError as err:
                logger.warning("Failed to resolve %s with provider %s: %s", spec, provider.value, err)
                continue

            self.mods[spec.name] = artifact
            logger.info("Pinned %s@%s", spec.name, artifact.version)
            return sorted(dep for dep in (artifact.deps or ()) if dep.name not in self.mods)

        raise ResolutionFailure(spec.name, tried, spec.version)

    async def pinWithDeps(self, spec: ModSpec, manifest: PackManifest, ignoreTransitiveVersions: bool) -> None:
        """
        Pin a mod and, level by level, everything it transitively requires.

        With ignoreTransitiveVersions the direct dependencies of `spec` are
        relaxed to "*" before the walk; deeper levels keep their constraints.
        """
        existing = self.mods.get(spec.name)
        if existing is not None and not spec.isWildcard and spec.version == existing.version:
            logger.debug("%s is already pinned at %s", spec.name, existing.version)
            return

        previousContext = getLogContext()
        setLogContext(mod=spec.name)
        try:
            frontier = set(await self.pin(spec, manifest))
            pinned = self.mods.get(spec.name)
            if pinned is None:
                if spec.name in manifest.forbiddenMods:
                    return
                raise LockInvariantError(f"{spec.name} resolved but is missing from the lockfile")

            if ignoreTransitiveVersions:
                frontier = {dep.withVersion(WILDCARD) for dep in frontier}

            while frontier:
                nextFrontier: set[ModSpec] = set()
                for dep in sorted(frontier):
                    logger.info(
                        "Adding mod %s@%s (dependency of %s@%s)",
                        dep.name, dep.version, spec.name, pinned.version,
                    )
                    nextFrontier.update(await self.pin(dep, manifest))
                frontier = nextFrontier
        finally:
            restoreLogContext(previousContext)

    async def init(self, manifest: PackManifest, ignoreTransitiveVersions: bool) -> None:
        for spec in manifest.iterMods():
            await self.pinWithDeps(spec, manifest, ignoreTransitiveVersions)

    async def update(self, manifest: PackManifest, ignoreTransitiveVersions: bool) -> None:
        """Drop every pin and resolve the manifest again from scratch."""
        self.mods = {}
        await self.init(manifest, ignoreTransitiveVersions)

    # ----- Removal -----

    def dependents(self, name: str) -> set[str]:
        """Names of pinned mods whose dependency set mentions `name`."""
        return {pinnedName for pinnedName, artifact in self.mods.items() if artifact.dependsOn(name)}

    def remove(self, name: str, manifest: PackManifest, force: bool) -> None:
        if name not in self.mods:
            logger.warning("Skipping removing non-existent mod %s from modpack", name)
            return
        dependents = self.dependents(name)
        if dependents:
            if not force:
                raise DependentsExist(name, dependents)
            logger.warning(
                "Forcefully removing mod %s even though it is depended on by: %s",
                name, ", ".join(sorted(dependents)),
            )
        removed = self.mods.pop(name)
        logger.info("Removed mod %s@%s", name, removed.version)
        self.prune(manifest)

    def prune(self, manifest: PackManifest) -> list[str]:
        """
        Remove pinned mods that are neither in the manifest nor depended on.

        One pass only: dependents are judged against the lock as it was before
        this pass, so orphans uncovered by the pass survive until the next call.
        """
        toRemove = sorted(
            name for name in self.mods
            if name not in manifest.mods and not self.dependents(name)
        )
        for name in toRemove:
            removed = self.mods.pop(name)
            logger.info("Pruned mod %s@%s", name, removed.version)
        return toRemove

    # ----- Serialization -----

    def toDict(self) -> dict[str, Any]:
        return {
            "mods": {
                name: self.mods[name].model_dump(mode="json", exclude_none=True)
                for name in sorted(self.mods)
            }
        }

    @classmethod
    def fromDict(cls, data: Any, *, providers: ProviderRegistry | None = None) -> PackLock:
        if not isinstance(data, dict):
            raise PacksmithError("Lockfile must contain an object at the top level")
        rawMods = data.get("mods") or {}
        if not isinstance(rawMods, dict):
            raise PacksmithError("Lockfile 'mods' must be an object")
        try:
            mods = {name: PinnedArtifact.model_validate(value) for name, value in rawMods.items()}
        except ValidationError as err:
            raise PacksmithError(f"Invalid lockfile entry: {err}") from err
        return cls(mods, providers=providers)



def lockPath(directory: Path) -> Path:
    return Path(directory) / LOCK_FILENAME



async def loadLock(
    directory: Path,
    ignoreTransitiveVersions: bool,
    *,
    providers: ProviderRegistry | None = None,
) -> PackLock:
    """
    Load the lockfile next to the manifest. A missing lockfile is derived from
    the manifest by resolving every mod; a stale one is returned as is.
    """
    path = lockPath(directory)
    if not path.exists():
        logger.info("No %s in %s, resolving the modpack from scratch", LOCK_FILENAME, directory)
        lock = PackLock(providers=providers)
        await lock.init(loadManifest(directory), ignoreTransitiveVersions)
        return lock
    try:
        data = readJson5(path)
    except ValueError as err:
        raise PacksmithError(f"Cannot parse lockfile {path}: {err}") from err
    return PackLock.fromDict(data, providers=providers)



def saveLock(lock: PackLock, directory: Path) -> None:
    writeTextJson5(lockPath(directory), lock.toDict())
    logger.debug("Saved %s to %s", LOCK_FILENAME, directory)
