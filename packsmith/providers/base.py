# packsmith/providers/base.py
from __future__ import annotations

from typing import Protocol, runtime_checkable

from packsmith.core.errors import NotImplementedFeature
from packsmith.pack.models import ModProvider, ModSpec, PackManifest, PinnedArtifact

__all__ = ["ProviderClient", "CurseForgeProvider", "ProviderRegistry"]



@runtime_checkable
class ProviderClient(Protocol):
    """
    One mod source. `resolve` returns a pinned artifact (with the artifact's own
    required dependencies in `deps`) or raises ProviderError for a
    provider-local failure the resolver may recover from by trying the next one.
    """
    providerId: ModProvider

    async def resolve(self, spec: ModSpec, manifest: PackManifest) -> PinnedArtifact:
        ...



class CurseForgeProvider:
    providerId = ModProvider.CURSEFORGE

    async def resolve(self, spec: ModSpec, manifest: PackManifest) -> PinnedArtifact:
        raise NotImplementedFeature(f"The CurseForge provider is not implemented (while resolving {spec})")



class ProviderRegistry:
    """Maps each ModProvider to the client that serves it."""

    def __init__(self, clients: dict[ModProvider, ProviderClient] | None = None) -> None:
        self._clients: dict[ModProvider, ProviderClient] = dict(clients or {})

    @classmethod
    def default(cls) -> ProviderRegistry:
        from packsmith.providers.catalog import CatalogProvider
        from packsmith.providers.direct import DirectUrlProvider
        return cls({
            ModProvider.MODRINTH: CatalogProvider(),
            ModProvider.RAW: DirectUrlProvider(),
            ModProvider.CURSEFORGE: CurseForgeProvider(),
        })

    def register(self, provider: ModProvider, client: ProviderClient) -> None:
        self._clients[provider] = client

    def get(self, provider: ModProvider) -> ProviderClient:
        client = self._clients.get(provider)
        if client is None:
            raise NotImplementedFeature(f"No client registered for provider {provider.value}")
        return client
