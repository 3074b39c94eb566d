"""
Archive bundles for processed feed files and run logs.

Bundles are zip files. Runs that resolve to the same archive name (the
default name carries only the date) append to the existing bundle.
"""

from __future__ import annotations

import zipfile
from collections.abc import Iterable
from pathlib import Path

from feedrelay.exceptions import ArchiveError
from feedrelay.utils.logging import get_logger

logger = get_logger("feedrelay.archive")


def create_archive(archive_path: Path, paths: Iterable[Path], append: bool = False) -> Path:
    """
    Write ``paths`` into a zip bundle.

    Entries are stored under their file names. Paths that no longer exist
    are skipped.

    Args:
        archive_path: Bundle to write
        paths: Files to add
        append: Add to an existing bundle instead of replacing it

    Returns:
        The archive path

    Raises:
        ArchiveError: If the bundle cannot be written
    """
    archive_path = Path(archive_path)
    mode = "a" if append and archive_path.exists() else "w"

    try:
        archive_path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(archive_path, mode=mode, compression=zipfile.ZIP_DEFLATED) as bundle:
            existing = set(bundle.namelist())
            for path in paths:
                path = Path(path)
                if not path.is_file():
                    logger.info(f"Archive: {path} no longer exists, skipping")
                    continue
                arcname = _unique_name(path.name, existing)
                bundle.write(path, arcname=arcname)
                existing.add(arcname)
                logger.debug(f"Archive: added {path} as {arcname}")
    except (OSError, zipfile.BadZipFile) as e:
        raise ArchiveError(f"Could not write archive {archive_path}: {e}", details={"archive": str(archive_path)}) from e

    logger.info(f"Archive: {'appended to' if mode == 'a' else 'created'} {archive_path}")
    return archive_path


def _unique_name(name: str, existing: set[str]) -> str:
    # Appending runs may add a feed file with the same name as an earlier run
    if name not in existing:
        return name
    stem, dot, suffix = name.partition(".")
    counter = 1
    while True:
        candidate = f"{stem}.{counter}{dot}{suffix}" if dot else f"{name}.{counter}"
        if candidate not in existing:
            return candidate
        counter += 1
