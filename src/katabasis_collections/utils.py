"""Filesystem utilities for package archives and plugin files.

Blocking helpers; async callers run them through ``asyncio.to_thread``.
"""

import io
import logging
import os
import shutil
import zipfile
import zlib
from collections.abc import Callable
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from pathlib import PurePosixPath

from .exceptions import ArchiveError

logger = logging.getLogger(__name__)

DISABLED_SUFFIX = ".DISABLED"

PathRemapper = Callable[[PurePosixPath], PurePosixPath | None]


@dataclass(frozen=True)
class CopyFileOpts:
    """Per-file decision for copy_dir_contents_to.

    should_copy_file: copy the bytes (True) or hard-link (False)
    should_overwrite_file: replace a pre-existing destination file
    """

    should_copy_file: bool
    should_overwrite_file: bool


def extract_archive(archive_bytes: bytes, target_dir: Path, remap: PathRemapper) -> int:
    """Extract a zip archive, routing each file through ``remap``.

    Directory entries are skipped, backslash separators are normalised, and
    entries for which ``remap`` returns None are silently skipped.

    Args:
        archive_bytes: Raw zip file contents
        target_dir: Directory the remapped paths are relative to
        remap: Maps an archive-relative path to a target-relative path (or None)

    Returns:
        Number of files written

    Raises:
        ArchiveError: If the archive is corrupt or a path escapes target_dir
    """
    try:
        archive = zipfile.ZipFile(io.BytesIO(archive_bytes))
    except zipfile.BadZipFile as e:
        raise ArchiveError(f"Invalid package archive: {e}", context={"target_dir": str(target_dir)}) from e

    written = 0
    root = target_dir.resolve()

    with archive:
        for info in archive.infolist():
            if info.is_dir():
                continue

            relative_path = PurePosixPath(info.filename.replace("\\", "/"))
            relative_target = remap(relative_path)
            if relative_target is None:
                logger.debug(f"Skipping unmapped archive entry: {info.filename}")
                continue

            target_path = target_dir / relative_target
            if not target_path.resolve().is_relative_to(root):
                raise ArchiveError(
                    f"Archive entry escapes target directory: {info.filename}",
                    context={"entry": info.filename, "target_dir": str(target_dir)},
                )

            try:
                data = archive.read(info)
            except (zipfile.BadZipFile, zipfile.LargeZipFile, zlib.error, EOFError, NotImplementedError, RuntimeError) as e:
                # Corrupt data, unsupported compression or encrypted entries
                raise ArchiveError(
                    f"Failed to read archive entry {info.filename}: {e}",
                    context={"entry": info.filename, "target_dir": str(target_dir)},
                ) from e

            target_path.parent.mkdir(parents=True, exist_ok=True)
            target_path.write_bytes(data)
            written += 1

    return written


def iter_files(directory: Path) -> Iterator[Path]:
    """Yield every file below ``directory`` in a stable order."""
    for path in sorted(directory.rglob("*")):
        if path.is_file():
            yield path


def copy_dir_contents_to(
    src_dir: Path,
    dest_dir: Path,
    pre_install: Callable[[PurePosixPath, bool], CopyFileOpts],
) -> None:
    """Mirror every file of ``src_dir`` into ``dest_dir``.

    ``pre_install`` receives the source-relative path and whether the
    destination already exists, and decides how the file is placed.
    Pre-existing files are skipped unless should_overwrite_file is set.
    Hard-linking falls back to copying where links are unsupported
    (e.g. across devices).
    """
    for entry in iter_files(src_dir):
        rel_path = PurePosixPath(entry.relative_to(src_dir).as_posix())
        full_path = dest_dir / rel_path

        pre_existing = full_path.exists()
        opts = pre_install(rel_path, pre_existing)

        if pre_existing:
            if not opts.should_overwrite_file:
                logger.warning(f"File {rel_path} already exists, skipping")
                continue
            full_path.unlink()

        full_path.parent.mkdir(parents=True, exist_ok=True)

        if opts.should_copy_file:
            shutil.copy2(entry, full_path)
            continue

        try:
            os.link(entry, full_path)
        except OSError as e:
            logger.debug(f"Hard link failed for {rel_path} ({e}), copying instead")
            shutil.copy2(entry, full_path)


def switch_file(path: Path, enabled: bool) -> Path:
    """Toggle a file between enabled and disabled by renaming it.

    - disabling appends ``.DISABLED`` so mod loaders ignore the file
    - enabling strips every trailing ``.DISABLED``

    Returns:
        The file's new path
    """
    name = path.name

    if enabled:
        while name.endswith(DISABLED_SUFFIX) and len(name) > len(DISABLED_SUFFIX):
            name = name[: -len(DISABLED_SUFFIX)]
    else:
        name = f"{name}{DISABLED_SUFFIX}"

    if name == path.name:
        return path

    switched = path.with_name(name)
    path.rename(switched)
    return switched
