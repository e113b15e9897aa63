"""
Retention policy enforcement for backups.

Deletes files under old/, database/ and logs/ whose age in whole days exceeds
the retention threshold. A file exactly N days old is kept; N+1 days is
deleted. Directories are never removed, only the files inside them.
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import List, Dict, Any, Optional

from ncbackup.models import RETENTION_DISABLED
from .storage import list_files, FilesystemError


logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


class PruneItemError(Exception):
    """Raised when a single expired file cannot be deleted."""
    pass


def age_in_days(modified: datetime, now: datetime) -> int:
    """Whole days elapsed since modified, rounded down."""
    return int((now - modified).total_seconds() // SECONDS_PER_DAY)


class RetentionManager:
    """
    Prunes expired artifacts from the backup directories.
    """

    def __init__(self, retention_days: int, directories: List):
        """
        Initialize retention manager.

        Args:
            retention_days: Maximum age in days, or -1 to keep everything
            directories: Directories whose files are subject to pruning
        """
        self.retention_days = retention_days
        self.directories = [Path(d) for d in directories]
        self.errors = []

    @property
    def enabled(self) -> bool:
        return self.retention_days != RETENTION_DISABLED

    def enforce(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Delete every expired file.

        Args:
            now: Reference time (default: current time)

        Returns:
            Dict with summary of cleanup operations:
            {
                'deleted': int,
                'errors': List[str],
                'skipped': bool
            }
        """
        summary = {
            'deleted': 0,
            'errors': [],
            'skipped': not self.enabled
        }

        if not self.enabled:
            logger.info("Retention disabled (-1), no files removed")
            return summary

        now = now or datetime.now()

        for directory in self.directories:
            try:
                deleted = self._prune_directory(directory, now)
            except FilesystemError as e:
                logger.error(f"Failed to scan {directory}: {e}")
                summary['errors'].append(str(e))
                continue
            summary['deleted'] += deleted

        summary['errors'].extend(self.errors)
        self.errors = []

        return summary

    def _prune_directory(self, directory: Path, now: datetime) -> int:
        expired = [
            f for f in list_files(directory)
            if age_in_days(f['modified'], now) > self.retention_days
        ]

        deleted_count = 0
        for file_info in expired:
            try:
                self._delete(file_info['path'])
                deleted_count += 1
                logger.debug(f"Deleted expired file: {file_info['path']}")
            except PruneItemError as e:
                logger.warning(str(e))
                self.errors.append(str(e))

        logger.info(f"Removed {deleted_count} of {len(expired)} expired file(s) from {directory}")
        return deleted_count

    def _delete(self, path: str):
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise PruneItemError(f"Failed to delete {path}: {e}")
