# packsmith/providers/__init__.py
from .base import CurseForgeProvider, ProviderClient, ProviderRegistry
from .catalog import CatalogProvider
from .direct import DirectUrlProvider

__all__ = [
    "ProviderClient",
    "ProviderRegistry",
    "CatalogProvider",
    "DirectUrlProvider",
    "CurseForgeProvider",
]
