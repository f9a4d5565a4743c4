# packsmith/providers/direct.py
from __future__ import annotations

from urllib.parse import unquote, urlparse

import httpx

from packsmith.core.errors import ProviderError
from packsmith.core.hashing import sha1Hex, sha512Hex
from packsmith.core.logging import getProviderLogger
from packsmith.http.client import HTTPError, fetchBytes
from packsmith.pack.models import DownloadSource, ModProvider, ModSpec, PackManifest, PinnedArtifact

logger = getProviderLogger("raw")

__all__ = ["UNKNOWN_VERSION", "filenameFromUrl", "DirectUrlProvider"]



UNKNOWN_VERSION = "Unknown"



def filenameFromUrl(url: str) -> str:
    """Last path segment of `url`, percent-decoded. Raises ValueError if there is none."""
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError(f"Not an absolute URL: {url}")
    segment = unquote(parsed.path.rstrip("/").rsplit("/", 1)[-1]) if parsed.path else ""
    if not segment or segment in (".", ".."):
        raise ValueError(f"Cannot get filename from url {url}")
    return segment



class DirectUrlProvider:
    """
    Pins whatever a user-supplied URL serves. The payload is fetched once to
    hash it; there is no catalog, so the version is "Unknown" and the artifact
    declares no dependencies.
    """
    providerId = ModProvider.RAW

    async def resolve(self, spec: ModSpec, manifest: PackManifest) -> PinnedArtifact:
        url = spec.downloadUrl
        if not url:
            raise ProviderError(self.providerId.value, f"A download url is required to pin {spec.name}")
        try:
            filename = filenameFromUrl(url)
        except ValueError as err:
            raise ProviderError(self.providerId.value, str(err)) from err
        try:
            payload = await fetchBytes(url)
        except (HTTPError, httpx.HTTPError) as err:
            raise ProviderError(self.providerId.value, f"Failed to fetch {url}: {err}") from err

        logger.debug("Fetched %s (%d bytes) for %s", url, len(payload), spec.name)
        return PinnedArtifact(
            sources=[
                DownloadSource(
                    url=url,
                    sha1=sha1Hex(payload),
                    sha512=sha512Hex(payload),
                    filename=filename,
                )
            ],
            version=UNKNOWN_VERSION,
            deps=None,
            serverSide=True if spec.serverSide is None else spec.serverSide,
            clientSide=True if spec.clientSide is None else spec.clientSide,
        )
