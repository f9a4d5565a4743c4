import hashlib

import httpx
import json5
import pytest

from packsmith.app.operations import addFileOperation, downloadOperation, installPack, removeFileOperation
from packsmith.cli import main
from packsmith.pack.manifest import MANIFEST_FILENAME, initProject, loadManifest
from packsmith.pack.models import (
    DownloadSide,
    DownloadSource,
    FileApplyPolicy,
    FileEntry,
    ModLoader,
    ModProvider,
    PackManifest,
    PinnedArtifact,
)
from packsmith.providers.base import ProviderRegistry
from packsmith.resolver.lock import LOCK_FILENAME, PackLock, saveLock

JAR = b"jar payload"


def _pack(tmp_path):
    packDir = tmp_path / "pack"
    (packDir / "config").mkdir(parents=True)
    (packDir / "config" / "sodium.json").write_text('{"quality": "fast"}', encoding="utf-8")
    manifest = PackManifest(files={
        "./config": FileEntry(targetPath="config", side=DownloadSide.BOTH, applyPolicy=FileApplyPolicy.MERGE_RETAIN),
    })
    initProject(manifest, packDir)
    lock = PackLock({
        "sodium": PinnedArtifact(
            version="0.5.8",
            sources=[DownloadSource(
                url="https://cdn.test/sodium-0.5.8.jar",
                sha1=hashlib.sha1(JAR).hexdigest(),
                sha512=hashlib.sha512(JAR).hexdigest(),
                filename="sodium-0.5.8.jar",
            )],
            serverSide=False,
        ),
    }, providers=ProviderRegistry())
    saveLock(lock, packDir)
    return packDir


@pytest.mark.asyncio
async def test_install_pack_applies_files_and_mods(tmp_path, mockHttp):
    mockHttp(lambda request: httpx.Response(200, content=JAR))
    packDir = _pack(tmp_path)
    instance = tmp_path / "instance"
    (instance / "config").mkdir(parents=True)
    (instance / "config" / "sodium.json").write_text('{"quality": "fancy", "vsync": true}', encoding="utf-8")

    result = await installPack(packDir, instance, DownloadSide.CLIENT, registry=ProviderRegistry())

    assert result.downloaded == ["sodium-0.5.8.jar"]
    assert (instance / "mods" / "sodium-0.5.8.jar").read_bytes() == JAR
    merged = json5.loads((instance / "config" / "sodium.json").read_text(encoding="utf-8"))
    assert merged == {"quality": "fancy", "vsync": True}


@pytest.mark.asyncio
async def test_download_respects_side(tmp_path, mockHttp):
    mockHttp(lambda request: httpx.Response(200, content=JAR))
    packDir = _pack(tmp_path)

    result = await downloadOperation(packDir, tmp_path / "server-mods", DownloadSide.SERVER, registry=ProviderRegistry())

    assert result.downloaded == []
    assert list((tmp_path / "server-mods").iterdir()) == []


def test_add_and_remove_file_operations(tmp_path):
    initProject(PackManifest(), tmp_path)
    (tmp_path / "options.txt").write_text("fov=90", encoding="utf-8")
    entry = FileEntry(targetPath="options.txt", side=DownloadSide.CLIENT, applyPolicy=FileApplyPolicy.ONCE)

    addFileOperation(tmp_path, "options.txt", entry)
    assert loadManifest(tmp_path).files == {"./options.txt": entry}

    removeFileOperation(tmp_path, "options.txt")
    assert loadManifest(tmp_path).files == {}


def test_cli_init_creates_project(tmp_path):
    packDir = tmp_path / "fresh"
    code = main(["--config", str(tmp_path / "none.json5"), "init", str(packDir), "--loader", "Fabric"])

    assert code == 0
    raw = json5.loads((packDir / MANIFEST_FILENAME).read_text(encoding="utf-8"))
    assert raw["packName"] == "fresh"
    assert raw["loader"] == "Fabric"
    assert (packDir / LOCK_FILENAME).exists()


def test_cli_init_defaults_to_fabric_and_dedupes_providers(tmp_path):
    packDir = tmp_path / "pack"
    code = main([
        "--config", str(tmp_path / "none.json5"),
        "init", str(packDir), "--provider", "raw", "--provider", "modrinth", "--provider", "RAW",
    ])

    assert code == 0
    manifest = loadManifest(packDir)
    assert manifest.loader is ModLoader.FABRIC
    assert manifest.defaultProviders == [ModProvider.RAW, ModProvider.MODRINTH]


def test_cli_reports_errors_with_exit_status(tmp_path):
    code = main(["--config", str(tmp_path / "none.json5"), "--pack-dir", str(tmp_path), "remove", "sodium"])

    assert code == 1
