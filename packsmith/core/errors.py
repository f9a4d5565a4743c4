# packsmith/core/errors.py
from __future__ import annotations

__all__ = [
    "PacksmithError",
    "LockInvariantError",
    "ResolutionFailure",
    "DependentsExist",
    "IntegrityMismatch",
    "StructuralMismatch",
    "NotImplementedFeature",
    "ProviderError",
    "ForbiddenModError",
    "ManifestNotFoundError",
    "ProjectExistsError",
    "InvalidPathError",
    "TransactionAborted",
]



class PacksmithError(Exception):
    """Base class for every error packsmith raises on purpose."""
    pass



class LockInvariantError(PacksmithError):
    """Raised when the lock engine notices its own bookkeeping went wrong."""
    pass



class ResolutionFailure(PacksmithError):
    """Every provider was tried for a mod and none of them could pin it."""

    def __init__(self, name: str, providersTried: list[str], constraint: str) -> None:
        super().__init__(
            f"Failed to pin mod '{name}' with constraint {constraint} "
            f"(providers tried: {', '.join(providersTried) or 'none'})"
        )
        self.name = name
        self.providersTried = list(providersTried)
        self.constraint = constraint



class DependentsExist(PacksmithError):
    """Removal refused because other pinned mods still depend on the target."""

    def __init__(self, name: str, dependents: set[str]) -> None:
        self.name = name
        self.dependents = set(dependents)
        super().__init__(
            f"Cannot remove mod {name}. The following mods depend on it: "
            + ", ".join(sorted(self.dependents))
        )



class IntegrityMismatch(PacksmithError):
    def __init__(self, filename: str, expected: str, actual: str) -> None:
        super().__init__(
            f"Sha512 hash mismatch for file {filename}\nExpected:\n{expected}\nGot:\n{actual}"
        )
        self.filename = filename
        self.expected = expected
        self.actual = actual



class StructuralMismatch(PacksmithError):
    """Merge attempted where one side is not a mapping node."""

    def __init__(self, path: tuple[str, ...], srcType: str, dstType: str) -> None:
        where = "/" + "/".join(path) if path else "<root>"
        super().__init__(f"Cannot merge non-mapping nodes at {where}: {srcType} into {dstType}")
        self.path = path
        self.srcType = srcType
        self.dstType = dstType



class NotImplementedFeature(PacksmithError, NotImplementedError):
    """A declared but unbuilt code path was reached (local sources, CurseForge)."""
    pass



class ProviderError(PacksmithError):
    """Provider-local failure. The resolver logs it and tries the next provider."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"[{provider}] {message}")
        self.provider = provider



class ForbiddenModError(PacksmithError):
    pass



class ManifestNotFoundError(PacksmithError):
    pass



class ProjectExistsError(PacksmithError):
    pass



class InvalidPathError(PacksmithError, ValueError):
    pass



class TransactionAborted(PacksmithError):
    """
    The lockfile phase of a manifest transaction failed.

    `original` is the error that caused the abort. `rollbackError` is set when
    restoring the manifest snapshot failed as well; manifest and lockfile are
    then inconsistent on disk until the next successful run.
    """

    def __init__(self, original: BaseException, rollbackError: BaseException | None = None) -> None:
        self.original = original
        self.rollbackError = rollbackError
        if rollbackError is None:
            message = f"Reverted modpack manifest:\n{original}"
        else:
            message = (
                f"Failed to revert modpack manifest: {rollbackError}\n"
                f"Original error:\n{original}"
            )
        super().__init__(message)
