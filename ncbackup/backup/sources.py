"""
Data snapshot source.

Copies the live application data directory into the backup data directory.
Files are overwritten one by one; files that disappeared from the source stay
in the snapshot. The copy either runs in-process (shutil, preserving mode,
timestamps and, when running as root, ownership) or through a configured
external command such as 'rsync -Aavx'.
"""

import logging
import os
import shutil
from pathlib import Path
from typing import List, Optional, Dict

from ncbackup.utils.system import run_command, is_root, CopyError
from .storage import FilesystemError


logger = logging.getLogger(__name__)


class SnapshotError(FilesystemError):
    """Raised when copying the data directory fails."""
    pass


class DataSource:
    """
    Handler for the application data directory.
    """

    def __init__(self, source_dir: str, copy_command: Optional[List[str]] = None,
                 timeout: Optional[int] = None, env: Optional[Dict[str, str]] = None):
        """
        Initialize data source handler.

        Args:
            source_dir: Live data directory to snapshot
            copy_command: External copy tool (source and destination are appended),
                or None to copy in-process
            timeout: Seconds to wait for the external copy tool
            env: Environment for the external copy tool
        """
        self.source_dir = source_dir
        self.copy_command = list(copy_command) if copy_command else None
        self.timeout = timeout
        self.env = env
        self.files_copied = 0
        self.bytes_copied = 0

    def acquire(self, data_dir: str) -> str:
        """
        Copy the source directory contents into data_dir.

        Args:
            data_dir: Snapshot directory (created if missing)

        Returns:
            Path of the snapshot directory

        Raises:
            SnapshotError: If the source cannot be read or the copy fails
        """
        source_path = Path(self.source_dir)
        dest_path = Path(data_dir)

        if not source_path.is_dir():
            raise SnapshotError(f"Source directory does not exist: {self.source_dir}")

        if self.copy_command:
            self._copy_with_command(source_path, dest_path)
        else:
            self._copy_tree(source_path, dest_path)

        return str(dest_path)

    def _copy_with_command(self, source_path: Path, dest_path: Path):
        # Trailing separators make rsync copy the contents, not the directory
        command = self.copy_command + [
            os.path.join(str(source_path), ''),
            os.path.join(str(dest_path), '')
        ]
        try:
            run_command(command, "Data copy", error_cls=CopyError, timeout=self.timeout, env=self.env)
        except CopyError as e:
            raise SnapshotError(str(e)) from e

    def _copy_tree(self, source_path: Path, dest_path: Path):
        preserve_owner = is_root()

        def copy_file(src, dst):
            shutil.copy2(src, dst, follow_symlinks=False)
            if preserve_owner:
                _copy_owner(src, dst)
            self.files_copied += 1
            self.bytes_copied += os.lstat(src).st_size
            return dst

        def replace_links(directory, names):
            # copytree cannot recreate a symlink over an existing one
            target_dir = dest_path / Path(directory).relative_to(source_path)
            for name in names:
                if os.path.islink(os.path.join(directory, name)) and os.path.lexists(target_dir / name):
                    os.unlink(target_dir / name)
            return []

        try:
            shutil.copytree(
                source_path,
                dest_path,
                symlinks=True,
                ignore=replace_links,
                copy_function=copy_file,
                dirs_exist_ok=True
            )
            if preserve_owner:
                for directory, _, _ in os.walk(source_path):
                    relative = Path(directory).relative_to(source_path)
                    _copy_owner(directory, dest_path / relative)
        except shutil.Error as e:
            failures = e.args[0] if e.args else []
            raise SnapshotError(f"Failed to copy {len(failures)} item(s) from {source_path}: {failures[:3]}")
        except PermissionError as e:
            raise SnapshotError(f"Permission denied copying {source_path}: {e}")
        except OSError as e:
            raise SnapshotError(f"Failed to copy {source_path}: {e}")


def _copy_owner(src, dst):
    stat = os.lstat(src)
    os.chown(dst, stat.st_uid, stat.st_gid, follow_symlinks=False)
