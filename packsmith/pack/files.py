# packsmith/pack/files.py
from __future__ import annotations

import logging
import shutil
from pathlib import Path

import yaml

from packsmith.core.errors import PacksmithError
from packsmith.merge.tree_merge import FileType, mergeFiles
from packsmith.pack.models import DownloadSide, FileApplyPolicy, FileEntry, PackManifest

logger = logging.getLogger(__name__)

__all__ = ["fileEntryApplies", "installFile", "installFiles"]



def fileEntryApplies(entry: FileEntry, side: DownloadSide) -> bool:
    if side is DownloadSide.BOTH or entry.side is DownloadSide.BOTH:
        return True
    return entry.side is side



def _removePath(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()



def _copyPath(src: Path, dst: Path) -> None:
    dst.parent.mkdir(parents=True, exist_ok=True)
    if src.is_dir():
        shutil.copytree(src, dst, dirs_exist_ok=True)
    else:
        shutil.copy2(src, dst)



def _mergeOneFile(src: Path, dst: Path, overwriteExisting: bool) -> None:
    if not dst.exists():
        _copyPath(src, dst)
        return
    if dst.is_dir():
        raise PacksmithError(f"Cannot merge file {src} into directory {dst}")
    fileType = FileType.tryFromName(src.name)
    if fileType is None:
        logger.debug("%s is not a mergeable format, overwriting %s", src.name, dst)
        _copyPath(src, dst)
        return
    try:
        merged = mergeFiles(
            src.read_text(encoding="utf-8"),
            dst.read_text(encoding="utf-8"),
            overwriteExisting,
            fileType,
        )
    except (ValueError, UnicodeDecodeError, yaml.YAMLError) as err:
        logger.warning("Could not parse %s or %s as %s (%s); overwriting instead", src, dst, fileType.value, err)
        _copyPath(src, dst)
        return
    dst.write_text(merged, encoding="utf-8")
    logger.debug("Merged %s into %s", src, dst)



def _mergePath(src: Path, dst: Path, overwriteExisting: bool) -> None:
    if src.is_dir():
        if dst.exists() and not dst.is_dir():
            raise PacksmithError(f"Cannot merge directory {src} into file {dst}")
        for child in sorted(src.rglob("*")):
            if child.is_file():
                _mergeOneFile(child, dst / child.relative_to(src), overwriteExisting)
        return
    _mergeOneFile(src, dst, overwriteExisting)



def installFile(src: Path, dst: Path, policy: FileApplyPolicy) -> None:
    """Apply one packaged file or folder onto `dst` according to `policy`."""
    if not src.exists():
        raise PacksmithError(f"Packaged file {src} does not exist")

    if policy is FileApplyPolicy.ONCE:
        if dst.exists():
            logger.debug("Skipping %s, %s already exists", src, dst)
            return
        _copyPath(src, dst)
    elif policy is FileApplyPolicy.ALWAYS:
        if dst.exists() or dst.is_symlink():
            _removePath(dst)
        _copyPath(src, dst)
    elif policy is FileApplyPolicy.MERGE_RETAIN:
        _mergePath(src, dst, overwriteExisting=False)
    elif policy is FileApplyPolicy.MERGE_OVERWRITE:
        _mergePath(src, dst, overwriteExisting=True)
    else:
        raise PacksmithError(f"Unknown apply policy {policy!r}")



def installFiles(manifest: PackManifest, packDir: Path, targetDir: Path, side: DownloadSide) -> int:
    """
    Install every packaged file of `manifest` that applies to `side` into
    `targetDir`. Returns the number of entries applied.
    """
    packDir = Path(packDir)
    targetDir = Path(targetDir)
    targetDir.mkdir(parents=True, exist_ok=True)
    applied = 0
    for key in sorted(manifest.files):
        entry = manifest.files[key]
        if not fileEntryApplies(entry, side):
            continue
        src = packDir / key
        dst = targetDir / entry.targetPath
        logger.info("Applying %s -> %s (%s)", key, entry.targetPath, entry.applyPolicy.value)
        installFile(src, dst, entry.applyPolicy)
        applied += 1
    return applied
