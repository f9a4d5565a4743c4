# packsmith/semver/semver.py
from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering
from typing import Generic, Iterable, TypeVar

__all__ = [
    "WILDCARD",
    "SemVerVersion",
    "parseSemVerVersion",
    "tryParseSemVerVersion",
    "VersionConstraint",
    "parseVersionConstraint",
    "VersionCandidate",
    "VersionMatchResult",
    "VersionSelector",
]



WILDCARD = "*"

_IDENT = r"(?:0|[1-9]\d*|[0-9A-Za-z-]*[A-Za-z-][0-9A-Za-z-]*)"

# Mod versions often drop trailing components ("1.2"), so minor and patch are optional
_VERSION_RE = re.compile(
    r"^v?(?P<major>0|[1-9]\d*)"
    r"(?:\.(?P<minor>0|[1-9]\d*))?"
    r"(?:\.(?P<patch>0|[1-9]\d*))?"
    rf"(?:-(?P<prerelease>{_IDENT}(?:\.{_IDENT})*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)



T = TypeVar("T")


@total_ordering
@dataclass(frozen=True)
class SemVerVersion:
    major: int
    minor: int
    patch: int
    prerelease: tuple[str, ...] = ()
    build: tuple[str, ...] = ()

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.patch}"
        prerelease = f"-{'.'.join(self.prerelease)}" if self.prerelease else ""
        build = f"+{'.'.join(self.build)}" if self.build else ""
        return f"{base}{prerelease}{build}"

    def _prereleaseCmpKey(self) -> tuple:
        # Numeric identifiers have lower precedence than non-numeric.
        # We encode numeric as (0, int), non-numeric as (1, str),
        # so numeric < non-numeric in tuple comparison.
        parts: list[tuple[int, int | str]] = []
        for ident in self.prerelease:
            if ident.isdigit():
                parts.append((0, int(ident)))
            else:
                parts.append((1, ident))
        return tuple(parts)

    def _cmpKey(self) -> tuple:
        # Build is ignored for ordering
        # No prerelease version is preferred over any prerelease version
        releaseFlag = 1 if not self.prerelease else 0
        return (
            self.major,
            self.minor,
            self.patch,
            releaseFlag,
            self._prereleaseCmpKey()
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemVerVersion):
            return NotImplemented
        return (
            self.major == other.major
            and self.minor == other.minor
            and self.patch == other.patch
            and self.prerelease == other.prerelease
        )

    def __hash__(self) -> int:
        return hash((self.major, self.minor, self.patch, self.prerelease))

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SemVerVersion):
            return NotImplemented
        return self._cmpKey() < other._cmpKey()



def parseSemVerVersion(raw: str) -> SemVerVersion:
    """
    Parse a semantic version string into SemVerVersion.

    Accepted forms (examples):
        "1"             -> 1.0.0
        "1.2"           -> 1.2.0
        "1.2.3"
        "1.2.3-alpha.1"
        "0.5.8+mc1.20.1"
        "v1.2.3"

    Rejected:
        ".1", "1.", "1..3", "1.2.3.4", "01.2.3" (leading zeroes), "mc1.20-0.5.8", etc.
    """
    if not isinstance(raw, str):
        raise TypeError(f"Version string must be a string, got {type(raw).__name__}")
    mtch = _VERSION_RE.match(raw.strip())
    if mtch is None:
        raise ValueError(f"Invalid semantic version {raw!r}")
    prerelease = mtch.group("prerelease")
    build = mtch.group("build")
    return SemVerVersion(
        major=int(mtch.group("major")),
        minor=int(mtch.group("minor") or 0),
        patch=int(mtch.group("patch") or 0),
        prerelease=tuple(prerelease.split(".")) if prerelease else (),
        build=tuple(build.split(".")) if build else (),
    )



def tryParseSemVerVersion(raw: str | None) -> SemVerVersion | None:
    if raw is None:
        return None
    try:
        return parseSemVerVersion(raw)
    except (TypeError, ValueError):
        return None



@dataclass(frozen=True)
class VersionConstraint:
    """
    Either a wildcard ("*", matches anything) or one exact version.

    Exact matching compares the raw strings first, then semantic-version
    equality when both sides parse ("1.2" matches "1.2.0").
    """
    raw: str
    isAny: bool = False

    def matches(self, version: str) -> bool:
        if self.isAny:
            return True
        if version.strip() == self.raw:
            return True
        wanted = tryParseSemVerVersion(self.raw)
        got = tryParseSemVerVersion(version)
        return wanted is not None and got is not None and wanted == got



def parseVersionConstraint(raw: str | None) -> VersionConstraint:
    """
    None, "" or "*"  -> wildcard
    anything else    -> exact version (no ranges, no operators)
    """
    if raw is None:
        return VersionConstraint(WILDCARD, isAny=True)
    if not isinstance(raw, str):
        raise TypeError(f"Version constraint must be a string or None, got {type(raw).__name__}")
    raw = raw.strip()
    if not raw or raw == WILDCARD:
        return VersionConstraint(WILDCARD, isAny=True)
    if raw[0] in "^~<>=!" or "||" in raw:
        raise ValueError(f"Version ranges are not supported: {raw!r} (use an exact version or '*')")
    return VersionConstraint(raw, isAny=False)



@dataclass(frozen=True)
class VersionCandidate(Generic[T]):
    version: str
    published: str | None
    payload: T



@dataclass(frozen=True)
class VersionMatchResult(Generic[T]):
    """
    Result of version selection among candidate versions.

    - constraint: the constraint used.
    - candidates: all candidates seen, in input order.
    - matches: candidates that satisfy the constraint.
    - best: the newest match, or None if nothing matched.
    """
    constraint: VersionConstraint
    candidates: tuple[VersionCandidate[T], ...]
    matches: tuple[VersionCandidate[T], ...]
    best: VersionCandidate[T] | None



class VersionSelector:
    @staticmethod
    def newest(candidates: Iterable[VersionCandidate[T]]) -> VersionCandidate[T] | None:
        """
        Pick the newest candidate.

        When every candidate parses as a semantic version, the highest version
        wins (first one on ties). Otherwise the latest publish date wins, and
        when dates are missing too, the first candidate in input order.
        """
        candidatesList = list(candidates)
        if not candidatesList:
            return None
        parsed = [tryParseSemVerVersion(candidate.version) for candidate in candidatesList]
        if all(version is not None for version in parsed):
            best = 0
            for idx in range(1, len(candidatesList)):
                if parsed[idx] > parsed[best]:  # type: ignore[operator]
                    best = idx
            return candidatesList[best]
        dated = [candidate for candidate in candidatesList if candidate.published]
        if dated:
            best = dated[0]
            for candidate in dated[1:]:
                if str(candidate.published) > str(best.published):
                    best = candidate
            return best
        return candidatesList[0]

    @staticmethod
    def matchCandidates(
        candidates: Iterable[VersionCandidate[T]],
        constraint: VersionConstraint,
    ) -> VersionMatchResult[T]:
        candidatesList = list(candidates)
        matchList = [candidate for candidate in candidatesList if constraint.matches(candidate.version)]
        if constraint.isAny:
            best = VersionSelector.newest(matchList)
        else:
            best = matchList[0] if matchList else None
        return VersionMatchResult(
            constraint=constraint,
            candidates=tuple(candidatesList),
            matches=tuple(matchList),
            best=best,
        )
