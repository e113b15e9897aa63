import os
import re
import shlex
import logging
from datetime import datetime

from ncbackup.models import (
    BackupRun,
    BackupLayout,
    DEFAULT_RETENTION_DAYS,
    RETENTION_DISABLED,
    next_run_timestamp,
)
from ncbackup.utils.system import is_root


INTEGER_PATTERN = re.compile(r'[+-]?[0-9]+')


def _command(name, default):
    return shlex.split(os.environ.get(name) or default)


def _optional_int(name):
    value = os.environ.get(name)
    return int(value) if value else None


class Config:
    """Base configuration"""

    LOG_LEVEL = logging.INFO

    # Application management tool (maintenance mode toggle)
    OCC_COMMAND = _command('NCBACKUP_OCC_COMMAND', 'nextcloud.occ')

    # Export tool and the directory it writes into
    EXPORT_COMMAND = _command('NCBACKUP_EXPORT_COMMAND', 'nextcloud.export -abc')
    EXPORT_STAGING_DIR = os.environ.get('NCBACKUP_EXPORT_STAGING_DIR') or '/var/snap/nextcloud/common/backups'
    EXPORT_WORKING_DIR = os.environ.get('NCBACKUP_EXPORT_WORKING_DIR') or '/'

    # External copy tool for the snapshot, e.g. "rsync -Aavx"; unset copies in-process
    SNAPSHOT_COMMAND = _command('NCBACKUP_SNAPSHOT_COMMAND', '') or None

    # Snap binaries are not on cron's default PATH
    TOOL_PATH = os.environ.get('NCBACKUP_TOOL_PATH') or \
        '/snap/bin:/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin'

    COMMAND_TIMEOUT = _optional_int('NCBACKUP_COMMAND_TIMEOUT')

    LOCK_FILENAME = '.ncbackup.lock'

    def tool_env(self):
        """Environment passed to every external tool."""
        env = dict(os.environ)
        env['PATH'] = self.TOOL_PATH
        return env


class DevelopmentConfig(Config):
    """Development configuration"""
    LOG_LEVEL = logging.DEBUG


class ProductionConfig(Config):
    """Production configuration"""
    LOG_LEVEL = logging.INFO


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'default': ProductionConfig
}


def get_config(config_name=None) -> Config:
    """Instantiate the configuration selected by name or NCBACKUP_ENV."""
    if config_name is None:
        config_name = os.environ.get('NCBACKUP_ENV', 'default')
    return config.get(config_name, config['default'])()


class ConfigurationError(Exception):
    """Raised when invocation parameters or privileges are invalid."""
    pass


def resolve_run(source, destination, retention=str(DEFAULT_RETENTION_DAYS),
                verbose=False, keep_backups=False, now=None) -> BackupRun:
    """
    Validate invocation parameters and build the BackupRun.

    Nothing is created or modified; the destination is only read to find the
    previous run's timestamp.

    Args:
        source: Live data directory, must end with a path separator
        destination: Backup root, must end with a path separator
        retention: Retention days as given on the command line
        verbose: Mirror the run log to the terminal
        keep_backups: Rotate the previous backup before overwriting it
        now: Current time (default: datetime.now())

    Returns:
        Immutable BackupRun

    Raises:
        ConfigurationError: On the first failed check
    """
    if not is_root():
        raise ConfigurationError("Nextcloud backup requires you to be root or using sudo.")

    source = source or ''
    destination = destination or ''
    retention = str(retention).strip()

    if not os.path.isdir(source) or not source.endswith(os.sep):
        raise ConfigurationError(
            "Error: Provide a valid source directory. (Be sure to include a slash at the end)"
        )
    if not destination or not destination.endswith(os.sep):
        raise ConfigurationError(
            "Error: Provide a valid destination directory. (Be sure to include a slash at the end)"
        )
    if not INTEGER_PATTERN.fullmatch(retention):
        raise ConfigurationError("Error: Value for -r is not a number")

    retention_days = int(retention)
    if retention_days < RETENTION_DISABLED:
        raise ConfigurationError(
            f"Error: Value for -r must be {RETENTION_DISABLED} or a number of days (0 or more)"
        )

    # Read-only: only the previous run date is needed for a distinct timestamp
    from ncbackup.backup.storage import read_metadata, FilesystemError
    layout = BackupLayout.for_destination(destination)
    try:
        previous = read_metadata(layout.metadata_file)
    except FilesystemError:
        previous = None

    return BackupRun(
        timestamp=next_run_timestamp(now or datetime.now(), previous),
        source_dir=source,
        destination_dir=destination,
        retention_days=retention_days,
        verbose=verbose,
        keep_backups=keep_backups
    )
