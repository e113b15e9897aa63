"""
Backup module for ncbackup.

This module handles the backup lifecycle including:
- Directory state of the destination
- Rotation of the previous backup
- Data snapshot inside a maintenance mode bracket
- Application export and compression
- Retention policy enforcement
- Execution orchestration
"""

from .executor import BackupExecutor, BackupInterrupted, execute_backup
from .storage import ensure_directories, read_metadata, write_metadata, FilesystemError
from .rotation import BackupRotator
from .maintenance import MaintenanceMode
from .sources import DataSource, SnapshotError
from .export import AppExporter
from .compression import create_archive, CompressionError
from .retention import RetentionManager, PruneItemError

__all__ = [
    'BackupExecutor',
    'BackupInterrupted',
    'execute_backup',
    'ensure_directories',
    'read_metadata',
    'write_metadata',
    'FilesystemError',
    'BackupRotator',
    'MaintenanceMode',
    'DataSource',
    'SnapshotError',
    'AppExporter',
    'create_archive',
    'CompressionError',
    'RetentionManager',
    'PruneItemError'
]
