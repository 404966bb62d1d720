"""
Disk-space reclamation for temp and update cache folders.
"""

import fnmatch
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class DiskCleanupTarget:
    path: Path
    pattern: str = "*"
    older_than_days: int = 7

    def __post_init__(self):
        self.path = Path(self.path)


@dataclass
class DiskCleanupReport:
    apply: bool
    files_matched: int = 0
    bytes_matched: int = 0
    files_removed: int = 0
    bytes_removed: int = 0
    dirs_removed: int = 0
    errors: int = 0
    skipped_targets: list[str] = field(default_factory=list)


def default_targets(config: dict[str, Any]) -> list[DiskCleanupTarget]:
    """Build targets from the cleanup.disk section, expanding %VAR% paths."""
    disk = config.get("cleanup", {}).get("disk", {})
    older_than = disk.get("older_than_days", 7)
    return [
        DiskCleanupTarget(Path(os.path.expandvars(raw)), older_than_days=older_than)
        for raw in disk.get("paths", [])
    ]


def format_bytes(size: int) -> str:
    """
    Format a byte count for display.

    Example:
        >>> format_bytes(1536)
        '1.5 KB'
    """
    if size < 1024:
        return f"{size} B"
    value = float(size)
    for unit in ("KB", "MB", "GB"):
        value /= 1024
        if value < 1024 or unit == "GB":
            break
    return f"{value:.1f} {unit}"


def _iter_files(target: DiskCleanupTarget):
    """Yield regular files matching the target pattern without following links."""
    for dirpath, _dirnames, filenames in os.walk(target.path, followlinks=False):
        for filename in fnmatch.filter(filenames, target.pattern):
            candidate = Path(dirpath) / filename
            if not candidate.is_symlink():
                yield candidate


def _remove_empty_dirs(root: Path, report: DiskCleanupReport) -> None:
    # Deepest first so parents empty out as their children go
    for dirpath, _dirnames, _filenames in sorted(os.walk(root), key=lambda w: len(w[0]), reverse=True):
        directory = Path(dirpath)
        if directory == root or directory.is_symlink():
            continue
        try:
            if any(directory.iterdir()):
                continue
            directory.rmdir()
            report.dirs_removed += 1
        except OSError as e:
            logger.debug(f"Could not remove {directory}: {e}")
            report.errors += 1


def reclaim(
    targets: list[DiskCleanupTarget],
    apply: bool = False,
    now: datetime | None = None,
) -> DiskCleanupReport:
    """
    Find and optionally delete old files under each target.

    Symlinks are never followed or removed. Files that cannot be inspected or
    deleted (locked by a running process, permissions) are counted in
    ``errors``.

    Args:
        targets: Folders to clean
        apply: Delete files; when False only totals are reported
        now: Reference time for the age cutoff (default: now)

    Returns:
        DiskCleanupReport with totals
    """
    now = now or datetime.now()
    report = DiskCleanupReport(apply=apply)

    for target in targets:
        if not target.path.is_dir():
            logger.info(f"Skipping missing target: {target.path}")
            report.skipped_targets.append(str(target.path))
            continue

        cutoff = (now - timedelta(days=target.older_than_days)).timestamp()
        logger.info(f"Scanning {target.path} for {target.pattern} older than {target.older_than_days} day(s)")

        for candidate in _iter_files(target):
            try:
                stat = candidate.lstat()
                if stat.st_mtime >= cutoff:
                    continue

                report.files_matched += 1
                report.bytes_matched += stat.st_size
                if apply:
                    candidate.unlink()
                    report.files_removed += 1
                    report.bytes_removed += stat.st_size
            except OSError as e:
                logger.debug(f"Could not clean {candidate}: {e}")
                report.errors += 1

        if apply:
            _remove_empty_dirs(target.path, report)

    logger.info(
        f"Disk cleanup: {report.files_matched} file(s), {format_bytes(report.bytes_matched)} matched; "
        f"{report.files_removed} removed, {report.errors} error(s)"
    )
    return report
