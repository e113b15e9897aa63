"""
Filesystem state of the backup destination.

Handles:
- Creating the canonical directory tree (idempotent, never deletes)
- Reading and writing the backup metadata record
- Listing and clearing directory contents
"""

import os
import re
import shutil
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Dict, Any, Optional

from ncbackup.models import format_timestamp, parse_timestamp


METADATA_PATTERN = re.compile(r'^date: (.*)$', re.MULTILINE)


class FilesystemError(Exception):
    """Raised when a backup directory or file cannot be created, read or written."""
    pass


def ensure_directories(paths: Iterable) -> List[str]:
    """
    Create every missing directory in paths.

    Existing directories are left untouched, so calling this repeatedly on the
    same tree has no effect after the first call.

    Args:
        paths: Directory paths to create

    Returns:
        List of directories that were actually created

    Raises:
        FilesystemError: If a directory cannot be created
    """
    created = []

    for path in paths:
        directory = Path(path)

        if directory.is_dir():
            continue

        try:
            directory.mkdir(parents=True, exist_ok=True)
            created.append(str(directory))
        except FileExistsError:
            raise FilesystemError(f"Path exists and is not a directory: {directory}")
        except PermissionError as e:
            raise FilesystemError(f"Permission denied creating {directory}: {e}")
        except OSError as e:
            raise FilesystemError(f"Failed to create directory {directory}: {e}")

    return created


def directory_is_empty(path) -> bool:
    """Return True if path is missing or has no entries."""
    directory = Path(path)
    if not directory.is_dir():
        return True
    return not any(directory.iterdir())


def read_metadata(metadata_file) -> Optional[datetime]:
    """
    Read the timestamp of the most recent run from the metadata record.

    Args:
        metadata_file: Path to the backup_metadata file

    Returns:
        Timestamp of the previous run, or None if the record is missing or
        does not contain a valid 'date: YYYY-MM-DD_HH-MM-SS' line
    """
    path = Path(metadata_file)

    try:
        content = path.read_text()
    except FileNotFoundError:
        return None
    except OSError as e:
        raise FilesystemError(f"Failed to read metadata record {path}: {e}")

    match = METADATA_PATTERN.search(content)
    if not match:
        return None

    try:
        return parse_timestamp(match.group(1))
    except ValueError:
        return None


def write_metadata(metadata_file, timestamp: datetime):
    """
    Replace the metadata record with the given run timestamp.

    Raises:
        FilesystemError: If the record cannot be written
    """
    path = Path(metadata_file)
    tmp_path = path.with_name(path.name + '.tmp')

    try:
        tmp_path.write_text(f"date: {format_timestamp(timestamp)}\n")
        os.replace(tmp_path, path)
    except OSError as e:
        raise FilesystemError(f"Failed to write metadata record {path}: {e}")


def list_files(directory) -> List[Dict[str, Any]]:
    """
    List all regular files below a directory.

    Args:
        directory: Directory to scan recursively

    Returns:
        List of dicts with 'path', 'modified', and 'size' keys

    Raises:
        FilesystemError: If listing fails
    """
    base_path = Path(directory)

    if not base_path.exists():
        return []

    try:
        files = []

        for file_path in base_path.rglob('*'):
            if file_path.is_file() and not file_path.is_symlink():
                try:
                    stat = file_path.stat()
                except FileNotFoundError:
                    # Removed since the scan saw it
                    continue
                files.append({
                    'path': str(file_path),
                    'modified': datetime.fromtimestamp(stat.st_mtime),
                    'size': stat.st_size
                })

        return files

    except OSError as e:
        raise FilesystemError(f"Failed to list files in {base_path}: {e}")


def clear_directory(directory) -> int:
    """
    Delete everything inside a directory, keeping the directory itself.

    Returns:
        Number of top-level entries removed

    Raises:
        FilesystemError: If an entry cannot be removed
    """
    base_path = Path(directory)

    if not base_path.exists():
        return 0

    removed = 0
    for entry in base_path.iterdir():
        try:
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink()
            removed += 1
        except OSError as e:
            raise FilesystemError(f"Failed to remove {entry}: {e}")

    return removed
