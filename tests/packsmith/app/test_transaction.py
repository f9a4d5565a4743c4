import pytest

from packsmith.app import transaction as transaction_module
from packsmith.app.operations import (
    addModOperation,
    forbidModOperation,
    initOperation,
    removeModOperation,
    updateOperation,
)
from packsmith.app.transaction import ManifestTransaction
from packsmith.core.errors import (
    DependentsExist,
    ForbiddenModError,
    ProviderError,
    ResolutionFailure,
    TransactionAborted,
)
from packsmith.pack.manifest import addMod, forbidMod, loadManifest
from packsmith.pack.models import DownloadSource, ModProvider, ModSpec, PinnedArtifact
from packsmith.providers.base import ProviderRegistry
from packsmith.resolver.lock import LOCK_FILENAME, loadLock


class FakeProvider:
    providerId = ModProvider.MODRINTH

    def __init__(self, catalogue):
        self.catalogue = catalogue

    async def resolve(self, spec, manifest):
        if spec.name not in self.catalogue:
            raise ProviderError("modrinth", f"unknown {spec.name}")
        version, deps = self.catalogue[spec.name]
        return PinnedArtifact(
            version=version,
            sources=[DownloadSource(url="https://x/y.jar", sha1="1", sha512="2", filename=f"{spec.name}.jar")],
            deps=frozenset(ModSpec(name=dep) for dep in deps),
        )


@pytest.fixture
def registry():
    return ProviderRegistry({
        ModProvider.MODRINTH: FakeProvider({
            "sodium": ("0.5.8", ["fabric-api"]),
            "fabric-api": ("0.92.0", []),
            "lithium": ("0.11.2", []),
        }),
    })


async def _init(directory, registry):
    await initOperation(directory, packName="demo", registry=registry)
    return directory


@pytest.mark.asyncio
async def test_init_writes_manifest_and_empty_lock(tmp_path, registry):
    manifest = await initOperation(tmp_path / "mypack", registry=registry)

    assert manifest.packName == "mypack"
    assert (tmp_path / "mypack" / LOCK_FILENAME).exists()


@pytest.mark.asyncio
async def test_add_pins_mod_and_dependencies(tmp_path, registry):
    await _init(tmp_path, registry)

    await addModOperation(tmp_path, ModSpec(name="sodium"), registry=registry)

    assert set(loadManifest(tmp_path).mods) == {"sodium"}
    lock = await loadLock(tmp_path, True, providers=registry)
    assert sorted(lock.mods) == ["fabric-api", "sodium"]


@pytest.mark.asyncio
async def test_failed_add_rolls_back_manifest(tmp_path, registry):
    await _init(tmp_path, registry)
    await addModOperation(tmp_path, ModSpec(name="lithium"), registry=registry)
    before = loadManifest(tmp_path)

    with pytest.raises(TransactionAborted) as info:
        await addModOperation(tmp_path, ModSpec(name="not-in-catalogue"), registry=registry)

    assert isinstance(info.value.original, ResolutionFailure)
    assert info.value.rollbackError is None
    assert loadManifest(tmp_path) == before


@pytest.mark.asyncio
async def test_blocked_remove_rolls_back_manifest(tmp_path, registry):
    await _init(tmp_path, registry)
    await addModOperation(tmp_path, ModSpec(name="sodium"), registry=registry)
    await addModOperation(tmp_path, ModSpec(name="fabric-api"), registry=registry)

    with pytest.raises(TransactionAborted) as info:
        await removeModOperation(tmp_path, "fabric-api", registry=registry)

    assert isinstance(info.value.original, DependentsExist)
    assert "fabric-api" in loadManifest(tmp_path).mods

    lock = await removeModOperation(tmp_path, "fabric-api", force=True, registry=registry)
    assert "fabric-api" not in loadManifest(tmp_path).mods
    assert "fabric-api" not in lock.mods


@pytest.mark.asyncio
async def test_remove_prunes_orphaned_dependencies(tmp_path, registry):
    await _init(tmp_path, registry)
    await addModOperation(tmp_path, ModSpec(name="sodium"), registry=registry)

    lock = await removeModOperation(tmp_path, "sodium", registry=registry)

    assert lock.mods == {}


@pytest.mark.asyncio
async def test_forbid_removes_and_blocks_future_adds(tmp_path, registry):
    await _init(tmp_path, registry)
    await addModOperation(tmp_path, ModSpec(name="sodium"), registry=registry)

    lock = await forbidModOperation(tmp_path, "fabric-api", registry=registry)

    assert "fabric-api" not in lock.mods
    assert loadManifest(tmp_path).forbiddenMods == {"fabric-api"}
    with pytest.raises(ForbiddenModError):
        await addModOperation(tmp_path, ModSpec(name="fabric-api"), registry=registry)


@pytest.mark.asyncio
async def test_update_rebuilds_lock_from_manifest(tmp_path, registry):
    await _init(tmp_path, registry)
    await addModOperation(tmp_path, ModSpec(name="lithium"), registry=registry)
    (tmp_path / LOCK_FILENAME).write_text("{mods: {}}", encoding="utf-8")

    lock = await updateOperation(tmp_path, registry=registry)

    assert list(lock.mods) == ["lithium"]


@pytest.mark.asyncio
async def test_failures_before_commit_propagate_unchanged(tmp_path, registry):
    await _init(tmp_path, registry)

    with pytest.raises(ForbiddenModError):
        async with ManifestTransaction(tmp_path) as tx:
            tx.commitManifest(addMod(forbidMod(tx.manifest, "x"), ModSpec(name="x")))


@pytest.mark.asyncio
async def test_failed_rollback_reports_both_errors(tmp_path, registry, monkeypatch):
    await _init(tmp_path, registry)

    def brokenSave(manifest, directory):
        raise OSError("disk full")

    with pytest.raises(TransactionAborted) as info:
        async with ManifestTransaction(tmp_path) as tx:
            tx.commitManifest(addMod(tx.manifest, ModSpec(name="x")))
            monkeypatch.setattr(transaction_module, "saveManifest", brokenSave)
            raise RuntimeError("lock update failed")

    assert isinstance(info.value.original, RuntimeError)
    assert isinstance(info.value.rollbackError, OSError)
