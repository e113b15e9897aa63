"""
Command line entry point.

    ncbackup -s /var/snap/nextcloud/common/nextcloud/data/ -d /mnt/backup/ [-v] [-k] [-r 14]

Meant to be started by cron or a systemd timer as root. Exit status is 0 when
the run completed (or help was shown) and 1 otherwise.
"""

import signal
import sys

import click

from ncbackup import __version__
from ncbackup.config import get_config, resolve_run, ConfigurationError
from ncbackup.models import BackupLayout, DEFAULT_RETENTION_DAYS
from ncbackup.backup.executor import execute_backup, BackupInterrupted
from ncbackup.backup.storage import ensure_directories, FilesystemError
from ncbackup.utils.lock import RunLock, RunLockedError


CONTEXT_SETTINGS = {'help_option_names': ['-h']}


def _interrupt(signum, frame):
    raise BackupInterrupted(f"Interrupted by {signal.Signals(signum).name}")


def install_signal_handlers():
    """Turn SIGTERM/SIGINT into BackupInterrupted. Returns the previous handlers."""
    return {
        signum: signal.signal(signum, _interrupt)
        for signum in (signal.SIGTERM, signal.SIGINT)
    }


def restore_signal_handlers(previous):
    for signum, handler in previous.items():
        signal.signal(signum, handler)


@click.command(context_settings=CONTEXT_SETTINGS)
@click.option('-v', 'verbose', is_flag=True, help='enables verbose mode')
@click.option('-k', 'keep_backups', is_flag=True,
              help='compress and copy current backups before overwriting them')
@click.option('-s', 'source', default='', metavar='<file path>',
              help='nextcloud data source directory')
@click.option('-d', 'destination', default='', metavar='<file path>',
              help='destination directory for backup')
@click.option('-r', 'retention', default=str(DEFAULT_RETENTION_DAYS), metavar='<days>',
              help='remove old backups & exports older than a specified number of days '
                   '(default is 14, -1 to skip removal)')
@click.version_option(__version__, '-V', '--version')
@click.pass_context
def backup(ctx, verbose, keep_backups, source, destination, retention):
    """Back up nextcloud data, apps, database and config."""
    try:
        run = resolve_run(source, destination, retention, verbose=verbose, keep_backups=keep_backups)
    except ConfigurationError as e:
        click.echo(str(e), err=True)
        ctx.exit(1)

    settings = get_config()
    layout = BackupLayout.for_destination(run.destination_dir)

    try:
        ensure_directories([layout.root, layout.logs_dir])
    except FilesystemError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    previous_handlers = install_signal_handlers()
    try:
        with RunLock(layout.root / settings.LOCK_FILENAME):
            executor = execute_backup(run, settings=settings)
            succeeded = executor.succeeded
    except RunLockedError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)
    finally:
        restore_signal_handlers(previous_handlers)

    if not succeeded:
        click.echo(f"Backup failed: {executor.error} (see {executor.log_file})", err=True)
        ctx.exit(1)

    return 0


def main(argv=None) -> int:
    """Run the command line, mapping usage errors to exit status 1."""
    try:
        return backup.main(args=argv, prog_name='ncbackup', standalone_mode=False) or 0
    except click.UsageError as e:
        e.show()
        click.echo("Try using '-h' for more information.", err=True)
        return 1
    except click.Abort:
        return 1


if __name__ == '__main__':
    sys.exit(main())
