"""
Backup executor - orchestrates the complete backup workflow.

Workflow:
1. Ensure data/, database/ and old/ exist
2. Archive the previous backup into old/ (if rotation is enabled)
3. Write the metadata record for this run
4. Copy live data into data/ inside a maintenance mode bracket
5. Export apps, database and config, compress into database/
6. Remove uncompressed export
7. Prune expired backups, exports and logs

Each step is timed and logged to logs/{ts}.log. The final success line is only
written when every step finished; a log without it marks a failed run.
"""

import time
import logging
from contextlib import contextmanager

from ncbackup import configure_logging, release_logging
from ncbackup.models import BackupRun
from .storage import ensure_directories, write_metadata
from .rotation import BackupRotator
from .maintenance import MaintenanceMode
from .sources import DataSource
from .export import AppExporter
from .retention import RetentionManager


logger = logging.getLogger(__name__)


class BackupInterrupted(Exception):
    """Raised inside a run when the process receives SIGTERM or SIGINT."""
    pass


def format_duration(seconds: float) -> str:
    seconds = int(seconds)
    return f"{seconds // 60} minutes and {seconds % 60} seconds"


class BackupExecutor:
    """
    Orchestrates the complete backup workflow for a run.
    """

    def __init__(self, run: BackupRun, settings=None):
        """
        Initialize backup executor.

        Args:
            run: Resolved BackupRun to execute
            settings: Config instance (default: selected by NCBACKUP_ENV)
        """
        if settings is None:
            from ncbackup.config import get_config
            settings = get_config()

        self.run = run
        self.settings = settings
        self.layout = run.layout
        self.started_at = None
        self.succeeded = False
        self.error = None
        self.rotated_archive = None
        self.export_archive = None
        self.prune_summary = None

    @property
    def log_file(self):
        return self.layout.log_file(self.run.run_id)

    def execute(self) -> bool:
        """
        Execute the backup run.

        The logs/ directory must exist before this is called.

        Returns:
            True if every step completed
        """
        handlers = configure_logging(
            self.log_file,
            verbose=self.run.verbose,
            log_level=self.settings.LOG_LEVEL
        )
        self.started_at = time.monotonic()

        try:
            self._log("Starting nextcloud backup...")
            self._execute_workflow()

            self.succeeded = True
            self._log(f"Nextcloud backup completed successfully in {format_duration(self._elapsed())}")

        except Exception as e:
            self.error = e
            logger.error(f"Backup failed after {format_duration(self._elapsed())}: {e}")

        finally:
            release_logging(handlers)

        return self.succeeded

    def _execute_workflow(self):
        """Execute the main backup workflow steps."""
        ensure_directories(self.layout.working_dirs)

        # Step 1: Rotate previous backup
        if self.run.keep_backups:
            with self._stage("Compressing old backup", "Old backup compression"):
                self.rotated_archive = BackupRotator(self.layout).rotate()

        # Step 2: New metadata record
        write_metadata(self.layout.metadata_file, self.run.timestamp)
        self._log(f"Backup metadata updated: date: {self.run.run_id}")

        # Step 3: Data snapshot
        with self._stage("Starting data backup", "Data backup"):
            self._snapshot()

        # Step 4: Export and compress
        with self._stage("Starting export of apps, database, and config",
                         "Export of apps, database, and config"):
            self._export()

        # Step 5: Prune
        if self.run.pruning_enabled:
            with self._stage(
                f"Removing backups, logs, & database exports older than {self.run.retention_days} days",
                "Removing old backups, logs, & database exports"
            ):
                self._prune()
        else:
            self._log("--Skipped removing old backups--")

    def _snapshot(self):
        env = self.settings.tool_env()
        source = DataSource(
            self.run.source_dir,
            copy_command=self.settings.SNAPSHOT_COMMAND,
            timeout=self.settings.COMMAND_TIMEOUT,
            env=env
        )

        with MaintenanceMode(self.settings.OCC_COMMAND, timeout=self.settings.COMMAND_TIMEOUT, env=env):
            source.acquire(str(self.layout.data_dir))

        if not self.settings.SNAPSHOT_COMMAND:
            self._log(f"Copied {source.files_copied} files ({source.bytes_copied / 1024 / 1024:.2f} MB)")

    def _export(self):
        exporter = AppExporter(
            self.settings.EXPORT_COMMAND,
            self.settings.EXPORT_STAGING_DIR,
            working_dir=self.settings.EXPORT_WORKING_DIR,
            env=self.settings.tool_env(),
            timeout=self.settings.COMMAND_TIMEOUT
        )

        # A failed export leaves the staging directory in place
        entries = exporter.export()
        self._log(f"Export finished with {len(entries)} entries in {exporter.staging_dir}")

        self._log("--Compressing export...--")
        try:
            self.export_archive = exporter.compress(self.layout.export_archive(self.run.run_id))
        finally:
            self._log("--Removing uncompressed exports...--")
            exporter.cleanup()

    def _prune(self):
        manager = RetentionManager(self.run.retention_days, self.layout.pruned_dirs)
        self.prune_summary = manager.enforce()
        if self.prune_summary['errors']:
            logger.warning(f"{len(self.prune_summary['errors'])} expired file(s) could not be removed")

    @contextmanager
    def _stage(self, title: str, done: str):
        self._log(f"--{title}...--")
        start = time.monotonic()
        try:
            yield
        except Exception:
            logger.error(f"--{done} failed after {format_duration(time.monotonic() - start)}--")
            raise
        self._log(f"--{done} finished in {format_duration(time.monotonic() - start)}--")

    def _elapsed(self) -> float:
        if self.started_at is None:
            return 0.0
        return time.monotonic() - self.started_at

    def _log(self, message: str):
        logger.info(message)


def execute_backup(run: BackupRun, settings=None) -> BackupExecutor:
    """
    Execute a backup run.

    Returns:
        The finished BackupExecutor (check .succeeded and .error)
    """
    executor = BackupExecutor(run, settings=settings)
    executor.execute()
    return executor
