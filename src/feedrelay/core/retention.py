"""
Retention policy for run logs and archive bundles.

Both cleanup passes go through is_expired(); they differ only in the
directory they scan and the number of days they keep.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path

from feedrelay.utils.logging import get_logger

logger = get_logger("feedrelay.retention")


def is_expired(created_at: datetime, retention_days: int, now: datetime) -> bool:
    """
    Return True when an artifact created at ``created_at`` is past retention.

    An artifact created exactly at the cutoff is expired, so
    ``retention_days=0`` expires everything not created in the future.

    Args:
        created_at: When the artifact was created
        retention_days: Days to keep the artifact
        now: Reference time for the cutoff

    Returns:
        True if ``created_at <= now - retention_days``
    """
    return created_at <= now - timedelta(days=retention_days)


@dataclass(frozen=True)
class RetentionWindow:
    """A cutoff instant: ``now`` minus ``retention_days``."""

    retention_days: int
    now: datetime

    @property
    def cutoff(self) -> datetime:
        return self.now - timedelta(days=self.retention_days)

    def is_expired(self, created_at: datetime) -> bool:
        return is_expired(created_at, self.retention_days, self.now)


def created_at(path: Path) -> datetime:
    """Creation timestamp used for retention (last modification time)."""
    return datetime.fromtimestamp(path.stat().st_mtime)


def find_expired(
    paths: Iterable[Path],
    retention_days: int,
    now: datetime,
    exclude: Iterable[Path] = (),
) -> list[Path]:
    """
    Return the paths whose creation timestamp falls outside the retention window.

    Paths that vanish while being inspected are ignored.
    """
    window = RetentionWindow(retention_days, now)
    excluded = {Path(p).resolve() for p in exclude}
    expired: list[Path] = []
    for path in sorted(Path(p) for p in paths):
        if path.resolve() in excluded or not path.is_file():
            continue
        try:
            stamp = created_at(path)
        except FileNotFoundError:
            continue
        if window.is_expired(stamp):
            expired.append(path)
    return expired


def purge_expired(
    directory: Path,
    pattern: str,
    retention_days: int,
    now: datetime,
    exclude: Iterable[Path] = (),
) -> list[Path]:
    """
    Delete files in ``directory`` matching ``pattern`` that are past retention.

    Deletion failures are logged and skipped; the rest of the pass continues.

    Args:
        directory: Directory to scan (missing directory means nothing to do)
        pattern: Glob pattern relative to ``directory``
        retention_days: Days to keep matching files
        now: Reference time for the cutoff
        exclude: Paths that must survive regardless of age

    Returns:
        Paths that were deleted
    """
    directory = Path(directory)
    if not directory.is_dir():
        logger.debug(f"Retention: {directory} does not exist, nothing to purge")
        return []

    window = RetentionWindow(retention_days, now)
    logger.debug(f"Retention: purging {directory}/{pattern} created at or before {window.cutoff:%Y-%m-%d %H:%M:%S}")

    deleted: list[Path] = []
    for path in find_expired(directory.glob(pattern), retention_days, now, exclude=exclude):
        try:
            path.unlink()
        except OSError as e:
            logger.error(f"Retention: could not delete {path}: {e}")
            continue
        logger.info(f"Retention: deleted {path} (older than {retention_days} days)")
        deleted.append(path)
    return deleted
