"""
Gzip compressed tar archives for exports and rotated backups.

Member names are either the basename of each source path, or, when a base
directory is given, the source path relative to it (so a rotated backup keeps
the data/, database/ and logs/ prefixes of the destination tree).
"""

import logging
import os
import tarfile
from pathlib import Path
from typing import List, Optional


logger = logging.getLogger(__name__)


class CompressionError(Exception):
    """Raised when archive creation fails."""
    pass


def create_archive(
    source_paths: List[str],
    archive_path: str,
    base_dir: Optional[str] = None
) -> str:
    """
    Create a .tar.gz archive from source paths.

    Args:
        source_paths: List of file/directory paths to include in archive
        archive_path: Full path of the archive to write (replaced if present)
        base_dir: Directory member names are made relative to (default: basename only)

    Returns:
        Full path to the created archive file

    Raises:
        CompressionError: If archive creation fails
    """
    if not source_paths:
        raise CompressionError("No source paths provided")

    archive_path = str(archive_path)

    try:
        _create_tar(source_paths, archive_path, base_dir)
        return archive_path
    except Exception as e:
        # Clean up partial archive on failure
        if os.path.exists(archive_path):
            try:
                os.remove(archive_path)
            except OSError as cleanup_error:
                logger.warning(f"Could not remove partial archive {archive_path}: {cleanup_error}")
        raise CompressionError(f"Failed to create archive {archive_path}: {e}")


def _create_tar(source_paths: List[str], archive_path: str, base_dir: Optional[str]):
    """
    Write the gzip compressed tar.

    Args:
        source_paths: List of paths to include
        archive_path: Output archive path
        base_dir: Directory member names are relative to, or None
    """
    base = Path(base_dir) if base_dir is not None else None

    with tarfile.open(archive_path, 'w:gz') as tar:
        for source_path in source_paths:
            source = Path(source_path)

            if not source.exists():
                raise CompressionError(f"Path does not exist: {source_path}")

            if base is not None:
                arcname = str(source.relative_to(base))
            else:
                arcname = source.name

            tar.add(source, arcname=arcname, recursive=True)


def get_archive_size(archive_path: str) -> int:
    """
    Get the size of an archive file in bytes.

    Raises:
        CompressionError: If file doesn't exist or cannot be accessed
    """
    try:
        return os.path.getsize(archive_path)
    except FileNotFoundError:
        raise CompressionError(f"Archive not found: {archive_path}")
    except OSError as e:
        raise CompressionError(f"Failed to get archive size: {e}")


def format_size(size_bytes: int) -> str:
    return f"{size_bytes / 1024 / 1024:.2f} MB"
