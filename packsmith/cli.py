# packsmith/cli.py
from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from packsmith.app.operations import (
    addFileOperation,
    addModOperation,
    downloadOperation,
    forbidModOperation,
    initOperation,
    installPack,
    removeFileOperation,
    removeModOperation,
    updateOperation,
)
from packsmith.app.settings import initSettings
from packsmith.core.errors import PacksmithError, TransactionAborted
from packsmith.core.logging import configureLogging, getLogger
from packsmith.pack.manifest import normaliseRelativePath
from packsmith.pack.models import DownloadSide, FileApplyPolicy, FileEntry, ModLoader, ModProvider, ModSpec

logger = getLogger("cli")

__all__ = ["buildParser", "main"]



def _addProjectOptions(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--mc-version",
        default="1.20.1",
        help="The modpack's Minecraft version.",
    )
    parser.add_argument(
        "--loader",
        type=ModLoader,
        default=ModLoader.FABRIC,
        help="The modpack's mod loader (Forge, Fabric, NeoForge, Quilt).",
    )
    parser.add_argument(
        "--provider",
        dest="providers",
        type=ModProvider.parse,
        action="append",
        default=[],
        help="Default provider for the pack's mods; repeatable.",
    )



def buildParser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="packsmith",
        description="Manage a modpack: pin mods into a lockfile and sync them to a folder.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging.")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="User config file (defaults to ~/.config/packsmith/config.json5).",
    )
    parser.add_argument(
        "--pack-dir",
        type=Path,
        default=Path.cwd(),
        help="Modpack project directory (defaults to the current directory).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    init = sub.add_parser("init", help="Initialise a modpack project in a directory.")
    init.add_argument("directory", type=Path, nargs="?", default=None)
    init.add_argument("--name", default=None, help="Pack name (defaults to the directory name).")
    _addProjectOptions(init)

    new = sub.add_parser("new", help="Create a new modpack project directory.")
    new.add_argument("name")
    _addProjectOptions(new)

    add = sub.add_parser("add", help="Add a mod, optionally as name@version.")
    add.add_argument("mod")
    add.add_argument("--provider", dest="providers", type=ModProvider.parse, action="append", default=[])
    add.add_argument("--url", default=None, help="Direct download URL (raw provider).")
    add.add_argument("--locked", "-l", action="store_true", help="Use exact transitive dependency versions.")
    add.add_argument("--mc-version", default=None, help="Minecraft version override.")
    add.add_argument("--loader", type=ModLoader, default=None, help="Mod loader override.")
    add.add_argument("--side", type=DownloadSide, default=None, help="Side override.")

    remove = sub.add_parser("remove", help="Remove a mod from the modpack.")
    remove.add_argument("name")
    remove.add_argument("--force", "-f", action="store_true", help="Remove even if other mods depend on it.")

    forbid = sub.add_parser("forbid", help="Remove a mod and forbid it from the modpack.")
    forbid.add_argument("name")

    update = sub.add_parser("update", help="Re-resolve every mod to the newest allowed version.")
    update.add_argument("--locked", "-l", action="store_true", help="Use exact transitive dependency versions.")

    download = sub.add_parser("download", help="Sync the pinned mods into a folder.")
    download.add_argument("modsDir", type=Path)
    download.add_argument("--side", type=DownloadSide, default=DownloadSide.SERVER)

    install = sub.add_parser("install", help="Install pack files and mods into an instance directory.")
    install.add_argument("instanceDir", type=Path)
    install.add_argument("--side", type=DownloadSide, default=DownloadSide.SERVER)

    fileCmd = sub.add_parser("file", help="Manage files bundled with the pack.")
    fileSub = fileCmd.add_subparsers(dest="fileCommand", required=True)
    fileAdd = fileSub.add_parser("add", help="Bundle a file or folder from the pack directory.")
    fileAdd.add_argument("localPath", type=Path)
    fileAdd.add_argument("--target-path", default=None, help="Target path relative to the instance directory.")
    fileAdd.add_argument("--side", type=DownloadSide, default=DownloadSide.SERVER)
    fileAdd.add_argument("--apply-policy", type=FileApplyPolicy, default=FileApplyPolicy.ALWAYS)
    fileRemove = fileSub.add_parser("remove", help="Stop bundling a file or folder.")
    fileRemove.add_argument("localPath", type=Path)

    return parser



def _specFromArgs(args: argparse.Namespace) -> ModSpec:
    spec = ModSpec.parse(args.mod)
    updates = {}
    if args.mc_version:
        updates["mcVersion"] = args.mc_version
    if args.loader is not None:
        updates["loader"] = args.loader
    if args.url:
        updates["downloadUrl"] = args.url
    if updates:
        spec = spec.model_copy(update=updates)
    if args.side is not None:
        spec = spec.withSide(args.side)
    for provider in args.providers:
        spec = spec.withProvider(provider)
    return spec



async def _run(args: argparse.Namespace) -> None:
    packDir: Path = args.pack_dir

    if args.command == "init":
        directory = args.directory if args.directory is not None else packDir
        await initOperation(
            directory, packName=args.name, mcVersion=args.mc_version,
            loader=args.loader, providers=args.providers,
        )
    elif args.command == "new":
        directory = Path.cwd() / args.name
        logger.info("Creating new modpack project '%s' at '%s'...", args.name, directory)
        directory.mkdir(parents=True, exist_ok=True)
        await initOperation(
            directory, packName=args.name, mcVersion=args.mc_version,
            loader=args.loader, providers=args.providers,
        )
    elif args.command == "add":
        await addModOperation(packDir, _specFromArgs(args), locked=args.locked)
    elif args.command == "remove":
        await removeModOperation(packDir, args.name, force=args.force)
    elif args.command == "forbid":
        await forbidModOperation(packDir, args.name)
    elif args.command == "update":
        await updateOperation(packDir, locked=args.locked)
    elif args.command == "download":
        await downloadOperation(packDir, args.modsDir, args.side)
    elif args.command == "install":
        await installPack(packDir, args.instanceDir, args.side)
    elif args.command == "file":
        if args.fileCommand == "add":
            targetPath = args.target_path or normaliseRelativePath(args.localPath, packDir)
            entry = FileEntry(targetPath=targetPath, side=args.side, applyPolicy=args.apply_policy)
            addFileOperation(packDir, args.localPath, entry)
        else:
            removeFileOperation(packDir, args.localPath)



def main(argv: list[str] | None = None) -> int:
    args = buildParser().parse_args(argv)
    initSettings(userConfig=args.config)
    configureLogging(verbose=args.verbose)

    try:
        asyncio.run(_run(args))
    except TransactionAborted as err:
        logger.error("%s", err)
        return 1
    except PacksmithError as err:
        logger.error("%s", err)
        return 1
    except ValueError as err:
        logger.error("Invalid input: %s", err)
        return 1
    return 0



if __name__ == "__main__":
    sys.exit(main())
