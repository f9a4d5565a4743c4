import hashlib

import httpx
import pytest

from packsmith.core.errors import ProviderError
from packsmith.pack.models import ModSpec, PackManifest
from packsmith.providers.direct import UNKNOWN_VERSION, DirectUrlProvider, filenameFromUrl

PAYLOAD = b"PK\x03\x04 pretend jar"


def test_filename_from_url():
    assert filenameFromUrl("https://host.test/files/my%20mod-1.0.jar?x=1") == "my mod-1.0.jar"
    with pytest.raises(ValueError):
        filenameFromUrl("https://host.test/")
    with pytest.raises(ValueError):
        filenameFromUrl("not a url")


@pytest.mark.asyncio
async def test_resolve_hashes_downloaded_payload(mockHttp):
    mockHttp(lambda request: httpx.Response(200, content=PAYLOAD))
    spec = ModSpec(name="custom", downloadUrl="https://host.test/files/custom-1.0.jar")

    artifact = await DirectUrlProvider().resolve(spec, PackManifest())

    assert artifact.version == UNKNOWN_VERSION
    assert artifact.deps is None
    assert (artifact.serverSide, artifact.clientSide) == (True, True)
    source = artifact.sources[0]
    assert source.filename == "custom-1.0.jar"
    assert source.sha1 == hashlib.sha1(PAYLOAD).hexdigest()
    assert source.sha512 == hashlib.sha512(PAYLOAD).hexdigest()


@pytest.mark.asyncio
async def test_resolve_keeps_side_overrides(mockHttp):
    mockHttp(lambda request: httpx.Response(200, content=PAYLOAD))
    spec = ModSpec(name="c", downloadUrl="https://host.test/c.jar", serverSide=False, clientSide=True)

    artifact = await DirectUrlProvider().resolve(spec, PackManifest())

    assert (artifact.serverSide, artifact.clientSide) == (False, True)


@pytest.mark.asyncio
async def test_missing_url_is_a_provider_error():
    with pytest.raises(ProviderError):
        await DirectUrlProvider().resolve(ModSpec(name="custom"), PackManifest())


@pytest.mark.asyncio
async def test_failed_fetch_is_a_provider_error(mockHttp):
    mockHttp(lambda request: httpx.Response(404, text="gone"))

    with pytest.raises(ProviderError):
        await DirectUrlProvider().resolve(
            ModSpec(name="custom", downloadUrl="https://host.test/custom.jar"), PackManifest(),
        )
