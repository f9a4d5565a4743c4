# packsmith/pack/models.py
from __future__ import annotations

from enum import Enum
from functools import total_ordering
from pathlib import PurePosixPath, PureWindowsPath
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

from packsmith.semver.semver import WILDCARD, parseVersionConstraint

__all__ = [
    "ModProvider",
    "ModLoader",
    "DownloadSide",
    "FileApplyPolicy",
    "ModSpec",
    "FileEntry",
    "DownloadSource",
    "LocalSource",
    "ArtifactSource",
    "PinnedArtifact",
    "PackManifest",
    "sideMatches",
]



class ModProvider(str, Enum):
    # CurseForge is declared so manifests naming it load, but it cannot resolve anything
    CURSEFORGE = "curseforge"
    # The catalog-backed provider
    MODRINTH = "modrinth"
    # Any URL on the internet; needs ModSpec.downloadUrl
    RAW = "raw"

    @classmethod
    def parse(cls, raw: str | ModProvider) -> ModProvider:
        if isinstance(raw, ModProvider):
            return raw
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            raise ValueError(f"Invalid mod provider: {raw}") from None

    @classmethod
    def _missing_(cls, value: object) -> ModProvider | None:
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None



class ModLoader(str, Enum):
    FORGE = "Forge"
    FABRIC = "Fabric"
    NEOFORGE = "NeoForge"
    QUILT = "Quilt"

    @property
    def catalogId(self) -> str:
        return self.value.lower()

    @classmethod
    def _missing_(cls, value: object) -> ModLoader | None:
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value.lower() == lowered:
                    return member
        return None



class DownloadSide(str, Enum):
    BOTH = "Both"
    SERVER = "Server"
    CLIENT = "Client"

    @classmethod
    def _missing_(cls, value: object) -> DownloadSide | None:
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value.lower() == lowered:
                    return member
        return None



class FileApplyPolicy(str, Enum):
    # Replace the target (whole directory subtree) on every install
    ALWAYS = "Always"
    # Only copy when the target does not exist yet
    ONCE = "Once"
    # Merge structured files, keeping values already present in the target
    MERGE_RETAIN = "MergeRetain"
    # Merge structured files, packaged values win
    MERGE_OVERWRITE = "MergeOverwrite"

    @classmethod
    def _missing_(cls, value: object) -> FileApplyPolicy | None:
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value.lower() == lowered:
                    return member
        return None



def sideMatches(filterSide: DownloadSide, serverSide: bool, clientSide: bool) -> bool:
    """Both always matches; Server/Client match artifacts flagged for that side."""
    if filterSide is DownloadSide.BOTH:
        return True
    if filterSide is DownloadSide.SERVER:
        return serverSide
    return clientSide



@total_ordering
class ModSpec(BaseModel):
    """
    A requested mod. Two specs are the same spec when name and version
    constraint match; every other field is resolution hinting.
    """
    model_config = ConfigDict(extra="forbid")

    name: str
    version: str = WILDCARD
    providers: list[ModProvider] | None = None
    mcVersion: str | None = None
    loader: ModLoader | None = None
    downloadUrl: str | None = None
    serverSide: bool | None = None
    clientSide: bool | None = None

    @field_validator("name")
    @classmethod
    def _checkName(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Mod name cannot be empty")
        return value

    @field_validator("version")
    @classmethod
    def _checkVersion(cls, value: str) -> str:
        return parseVersionConstraint(value).raw

    @classmethod
    def parse(cls, ref: str) -> ModSpec:
        """Build a spec from "name" or "name@version"."""
        if "@" in ref:
            parts = ref.split("@")
            if len(parts) != 2:
                raise ValueError(f"Invalid mod with version constraint: '{ref}'")
            return cls(name=parts[0], version=parts[1] or WILDCARD)
        return cls(name=ref)

    def withProvider(self, provider: ModProvider | str) -> ModSpec:
        provider = ModProvider.parse(provider)
        providers = list(self.providers or [])
        if provider not in providers:
            providers.append(provider)
        return self.model_copy(update={"providers": providers})

    def withVersion(self, version: str) -> ModSpec:
        return self.model_copy(update={"version": parseVersionConstraint(version).raw})

    def withSide(self, side: DownloadSide) -> ModSpec:
        return self.model_copy(update={
            "serverSide": side in (DownloadSide.BOTH, DownloadSide.SERVER),
            "clientSide": side in (DownloadSide.BOTH, DownloadSide.CLIENT),
        })

    @property
    def isWildcard(self) -> bool:
        return self.version == WILDCARD

    def _key(self) -> tuple[str, str]:
        return (self.name, self.version)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ModSpec):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ModSpec):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        return f"{self.name}@{self.version}"



class FileEntry(BaseModel):
    """Where a packaged file/folder goes inside an instance directory, and how."""
    model_config = ConfigDict(extra="forbid")

    targetPath: str
    side: DownloadSide = DownloadSide.SERVER
    applyPolicy: FileApplyPolicy = FileApplyPolicy.ALWAYS

    @field_validator("targetPath")
    @classmethod
    def _checkTargetPath(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("targetPath cannot be empty")
        if PurePosixPath(value).is_absolute() or PureWindowsPath(value).is_absolute() or PureWindowsPath(value).drive:
            raise ValueError(f"Absolute paths are not supported: {value}")
        if ".." in PurePosixPath(value.replace("\\", "/")).parts:
            raise ValueError(f"targetPath may not leave the target directory: {value}")
        return value



class DownloadSource(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["download"] = "download"
    url: str
    sha1: str
    sha512: str
    filename: str



class LocalSource(BaseModel):
    """Declared for lockfile compatibility; syncing one raises NotImplementedFeature."""
    model_config = ConfigDict(extra="forbid")

    type: Literal["local"] = "local"
    path: str
    sha1: str
    sha512: str
    filename: str



ArtifactSource = Annotated[Union[DownloadSource, LocalSource], Field(discriminator="type")]



class PinnedArtifact(BaseModel):
    """A concrete, hash-pinned resolution of one ModSpec. Replaced, never edited."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    sources: list[ArtifactSource] = Field(default_factory=list)
    version: str
    # The artifact's own required dependencies, as requested (pre-resolution)
    deps: frozenset[ModSpec] | None = None
    serverSide: bool = True
    clientSide: bool = True

    @field_validator("version")
    @classmethod
    def _checkVersion(cls, value: str) -> str:
        if value.strip() == WILDCARD:
            raise ValueError("A pinned artifact needs a concrete version, not '*'")
        return value

    @field_serializer("deps")
    def _serializeDeps(self, deps: frozenset[ModSpec] | None) -> list[dict[str, Any]] | None:
        # Sorted so the lockfile diff stays stable between runs
        if deps is None:
            return None
        return [dep.model_dump(mode="json", exclude_none=True) for dep in sorted(deps)]

    def dependsOn(self, name: str) -> bool:
        return any(dep.name == name for dep in (self.deps or ()))

    def filenames(self) -> list[str]:
        return [source.filename for source in self.sources]



class PackManifest(BaseModel):
    """The user-declared modpack: desired mods, forbidden mods and packaged files."""
    model_config = ConfigDict(extra="forbid")

    packName: str = "my_modpack"
    mcVersion: str = "1.20.1"
    loader: ModLoader = ModLoader.FORGE
    mods: dict[str, ModSpec] = Field(default_factory=dict)
    files: dict[str, FileEntry] = Field(default_factory=dict)
    defaultProviders: list[ModProvider] = Field(default_factory=lambda: [ModProvider.MODRINTH])
    forbiddenMods: set[str] = Field(default_factory=set)

    @model_validator(mode="before")
    @classmethod
    def _fillModNames(cls, data: Any) -> Any:
        # Allow `mods: {"sodium": {"version": "*"}}` without repeating the name
        if isinstance(data, dict) and isinstance(data.get("mods"), dict):
            mods: dict[str, Any] = {}
            for key, value in data["mods"].items():
                if isinstance(value, dict) and "name" not in value:
                    value = {**value, "name": key}
                mods[key] = value
            data = {**data, "mods": mods}
        return data

    @model_validator(mode="after")
    def _checkInvariants(self) -> PackManifest:
        for key, spec in self.mods.items():
            if key != spec.name:
                raise ValueError(f"Mod entry '{key}' has mismatching name '{spec.name}'")
        clash = sorted(set(self.mods) & self.forbiddenMods)
        if clash:
            raise ValueError(f"Forbidden mods cannot be part of the modpack: {', '.join(clash)}")
        return self

    @field_serializer("forbiddenMods")
    def _serializeForbidden(self, forbiddenMods: set[str]) -> list[str]:
        return sorted(forbiddenMods)

    def iterMods(self) -> list[ModSpec]:
        # Stable order: by name
        return [self.mods[name] for name in sorted(self.mods)]
