"""
Data model for a backup run.

A run is identified by its start timestamp. The same identifier names every
artifact the run produces:

- data/                          current snapshot (overwritten each run)
- database/db_export_{ts}.tar.gz compressed application export
- logs/{ts}.log                  run log
- old/{ts}.tar.gz                rotated triple of a previous run
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional


TIMESTAMP_FORMAT = '%Y-%m-%d_%H-%M-%S'

DEFAULT_RETENTION_DAYS = 14
RETENTION_DISABLED = -1

METADATA_FILENAME = 'backup_metadata'


def format_timestamp(timestamp: datetime) -> str:
    """Render a run timestamp as YYYY-MM-DD_HH-MM-SS."""
    return timestamp.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    """
    Parse a run timestamp.

    Raises:
        ValueError: If value is not in YYYY-MM-DD_HH-MM-SS format
    """
    return datetime.strptime(value.strip(), TIMESTAMP_FORMAT)


def next_run_timestamp(now: datetime, previous: Optional[datetime] = None) -> datetime:
    """
    Pick the timestamp for a new run.

    Timestamps have one second resolution. When the previous run's timestamp is
    not older than now (two runs within the same second, or a clock that went
    backwards) the new run is placed one second after the previous one, so run
    identifiers are always distinct and increasing.

    Args:
        now: Current wall clock time
        previous: Timestamp of the most recent run, if known

    Returns:
        Timestamp for the new run, truncated to whole seconds
    """
    now = now.replace(microsecond=0)
    if previous is not None and now <= previous:
        return previous + timedelta(seconds=1)
    return now


@dataclass(frozen=True)
class BackupLayout:
    """Canonical directory tree below a destination root."""

    root: Path
    data_dir: Path
    database_dir: Path
    old_dir: Path
    logs_dir: Path
    metadata_file: Path

    @classmethod
    def for_destination(cls, destination) -> 'BackupLayout':
        root = Path(destination)
        return cls(
            root=root,
            data_dir=root / 'data',
            database_dir=root / 'database',
            old_dir=root / 'old',
            logs_dir=root / 'logs',
            metadata_file=root / METADATA_FILENAME,
        )

    @property
    def working_dirs(self) -> List[Path]:
        """Directories the run itself writes into (logs/ is created before the run)."""
        return [self.data_dir, self.database_dir, self.old_dir]

    @property
    def pruned_dirs(self) -> List[Path]:
        return [self.old_dir, self.database_dir, self.logs_dir]

    def export_archive(self, run_id: str) -> Path:
        return self.database_dir / f'db_export_{run_id}.tar.gz'

    def log_file(self, run_id: str) -> Path:
        return self.logs_dir / f'{run_id}.log'

    def rotation_archive(self, run_id: str) -> Path:
        return self.old_dir / f'{run_id}.tar.gz'


@dataclass(frozen=True)
class BackupRun:
    """
    One invocation of the backup pipeline.

    Built once from the resolved command line and never modified afterwards.
    """

    timestamp: datetime
    source_dir: str
    destination_dir: str
    retention_days: int = DEFAULT_RETENTION_DAYS
    verbose: bool = False
    keep_backups: bool = False

    @property
    def run_id(self) -> str:
        return format_timestamp(self.timestamp)

    @property
    def pruning_enabled(self) -> bool:
        return self.retention_days != RETENTION_DISABLED

    @property
    def layout(self) -> BackupLayout:
        return BackupLayout.for_destination(self.destination_dir)
