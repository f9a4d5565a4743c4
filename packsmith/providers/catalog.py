# packsmith/providers/catalog.py
from __future__ import annotations

import json
from typing import Any, Literal

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from packsmith.app.settings import config
from packsmith.core.errors import ProviderError
from packsmith.core.logging import getProviderLogger
from packsmith.http.client import HTTPError, request
from packsmith.pack.models import (
    DownloadSource,
    ModLoader,
    ModProvider,
    ModSpec,
    PackManifest,
    PinnedArtifact,
)
from packsmith.semver.semver import (
    WILDCARD,
    VersionCandidate,
    VersionSelector,
    parseVersionConstraint,
)

logger = getProviderLogger("modrinth")

__all__ = [
    "CatalogFileHashes",
    "CatalogFile",
    "CatalogDependency",
    "CatalogVersion",
    "CatalogProject",
    "CatalogProvider",
]



# ------------------------------------------------------------------ #
# Wire models (only the fields resolution depends on)
# ------------------------------------------------------------------ #

class CatalogFileHashes(BaseModel):
    model_config = ConfigDict(extra="ignore")

    sha1: str
    sha512: str



class CatalogFile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    filename: str
    url: str
    hashes: CatalogFileHashes
    primary: bool = False



class CatalogDependency(BaseModel):
    model_config = ConfigDict(extra="ignore")

    dependency_type: str
    project_id: str | None = None
    version_id: str | None = None
    file_name: str | None = None



class CatalogVersion(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    project_id: str
    version_number: str
    date_published: str | None = None
    files: list[CatalogFile] = Field(default_factory=list)
    dependencies: list[CatalogDependency] = Field(default_factory=list)



SideSupport = Literal["required", "optional", "unsupported", "unknown"]



class CatalogProject(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    slug: str
    title: str | None = None
    client_side: SideSupport = "unknown"
    server_side: SideSupport = "unknown"

    @property
    def supportsClient(self) -> bool:
        return self.client_side != "unsupported"

    @property
    def supportsServer(self) -> bool:
        return self.server_side != "unsupported"



# ------------------------------------------------------------------ #
# Provider
# ------------------------------------------------------------------ #

class CatalogProvider:
    """
    Resolves mods against the Modrinth v2 catalog.

    Versions are listed per project, filtered by loader and game version. A
    wildcard constraint takes the newest listing, anything else must match
    exactly. Required dependencies are turned into ModSpecs (named by project
    slug) without recursing into their own dependencies.
    """
    providerId = ModProvider.MODRINTH

    def __init__(self, *, baseUrl: str | None = None) -> None:
        self._baseUrl = baseUrl

    @property
    def baseUrl(self) -> str:
        return str(self._baseUrl or config("catalog.baseUrl", "https://api.modrinth.com/v2")).rstrip("/")

    async def _getJson(self, path: str, params: dict[str, str] | None = None) -> Any:
        url = f"{self.baseUrl}{path}"
        try:
            resp = await request("GET", url, params=params)
        except (HTTPError, httpx.HTTPError) as err:
            raise ProviderError(self.providerId.value, f"Request to {url} failed: {err}") from err
        if resp.status == 404:
            raise ProviderError(self.providerId.value, f"Not found: {url}")
        if not resp.ok:
            raise ProviderError(self.providerId.value, f"HTTP {resp.status} from {url}: {resp.text[:200]}")
        try:
            return resp.json()
        except ValueError as err:
            raise ProviderError(self.providerId.value, f"Invalid JSON from {url}") from err

    async def getProjectVersions(self, projectId: str, loader: ModLoader, mcVersion: str) -> list[CatalogVersion]:
        payload = await self._getJson(
            f"/project/{projectId}/version",
            params={
                "loaders": json.dumps([loader.catalogId]),
                "game_versions": json.dumps([mcVersion]),
            },
        )
        try:
            return [CatalogVersion.model_validate(item) for item in payload]
        except (TypeError, ValidationError) as err:
            raise ProviderError(self.providerId.value, f"Unexpected version listing for {projectId}: {err}") from err

    async def getProject(self, projectId: str) -> CatalogProject:
        payload = await self._getJson(f"/project/{projectId}")
        try:
            return CatalogProject.model_validate(payload)
        except ValidationError as err:
            raise ProviderError(self.providerId.value, f"Unexpected project payload for {projectId}: {err}") from err

    async def getVersion(self, versionId: str) -> CatalogVersion:
        payload = await self._getJson(f"/version/{versionId}")
        try:
            return CatalogVersion.model_validate(payload)
        except ValidationError as err:
            raise ProviderError(self.providerId.value, f"Unexpected version payload for {versionId}: {err}") from err

    async def _dependencySpec(self, dep: CatalogDependency) -> ModSpec:
        # Metadata lookup only; the resolver handles the dependency's own deps
        projectId = dep.project_id
        version = WILDCARD
        if dep.version_id:
            pinned = await self.getVersion(dep.version_id)
            version = pinned.version_number
            projectId = projectId or pinned.project_id
        if not projectId:
            raise ProviderError(self.providerId.value, f"Dependency without project or version id: {dep}")
        project = await self.getProject(projectId)
        return ModSpec(
            name=project.slug,
            version=version,
            serverSide=project.supportsServer,
            clientSide=project.supportsClient,
        )

    async def resolve(self, spec: ModSpec, manifest: PackManifest) -> PinnedArtifact:
        loader = spec.loader or manifest.loader
        mcVersion = spec.mcVersion or manifest.mcVersion
        versions = await self.getProjectVersions(spec.name, loader, mcVersion)

        candidates = [
            VersionCandidate(version=v.version_number, published=v.date_published, payload=v)
            for v in versions
        ]
        result = VersionSelector.matchCandidates(candidates, parseVersionConstraint(spec.version))
        if result.best is None:
            if spec.isWildcard:
                raise ProviderError(
                    self.providerId.value,
                    f"Cannot find package {spec.name} for loader={loader.catalogId} and mc version={mcVersion}",
                )
            raise ProviderError(
                self.providerId.value,
                f"Cannot find package {spec.name}@{spec.version} "
                f"(available: {', '.join(c.version for c in result.candidates) or 'none'})",
            )
        package = result.best.payload

        deps: set[ModSpec] = set()
        for dep in package.dependencies:
            if dep.dependency_type != "required":
                continue
            deps.add(await self._dependencySpec(dep))

        serverSide = spec.serverSide
        clientSide = spec.clientSide
        if serverSide is None or clientSide is None:
            project = await self.getProject(spec.name)
            serverSide = project.supportsServer if serverSide is None else serverSide
            clientSide = project.supportsClient if clientSide is None else clientSide

        logger.debug("Resolved %s to %s (%d files, %d deps)", spec, package.version_number, len(package.files), len(deps))
        return PinnedArtifact(
            sources=[
                DownloadSource(
                    url=f.url,
                    sha1=f.hashes.sha1,
                    sha512=f.hashes.sha512,
                    filename=f.filename,
                )
                for f in package.files
            ],
            version=package.version_number,
            deps=frozenset(deps),
            serverSide=serverSide,
            clientSide=clientSide,
        )
