"""
Application state export.

Workflow:
1. Run the export tool, which dumps apps, database and config into the staging path
2. Compress every staging entry into database/db_export_{ts}.tar.gz
3. Delete the uncompressed staging contents

A failing export tool is fatal and leaves the staging path untouched for
manual recovery. Once the export succeeded, the staging contents are deleted
whether or not compression worked.
"""

import logging
from pathlib import Path
from typing import List, Optional, Dict

from ncbackup.utils.system import run_command, ExportError
from .compression import create_archive, get_archive_size, format_size
from .storage import clear_directory


logger = logging.getLogger(__name__)


class AppExporter:
    """
    Drives the external export tool and packs its output.
    """

    def __init__(
        self,
        export_command: List[str],
        staging_dir: str,
        working_dir: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
        timeout: Optional[int] = None
    ):
        """
        Initialize exporter.

        Args:
            export_command: Export tool argument list, e.g. ['nextcloud.export', '-abc']
            staging_dir: Directory the export tool writes into
            working_dir: Working directory for the export tool
            env: Environment for the export tool
            timeout: Seconds to wait for the export tool
        """
        self.export_command = list(export_command)
        self.staging_dir = Path(staging_dir)
        self.working_dir = working_dir
        self.env = env
        self.timeout = timeout

    def export(self) -> List[str]:
        """
        Run the export tool.

        Returns:
            Paths of the entries found in the staging directory afterwards

        Raises:
            ExportError: If the export tool fails
        """
        run_command(
            self.export_command,
            "Application export",
            error_cls=ExportError,
            timeout=self.timeout,
            cwd=self.working_dir,
            env=self.env
        )
        return self.staged_entries()

    def staged_entries(self) -> List[str]:
        if not self.staging_dir.is_dir():
            return []
        return sorted(str(entry) for entry in self.staging_dir.iterdir())

    def compress(self, archive_path) -> str:
        """
        Pack the staging directory contents into archive_path.

        Raises:
            CompressionError: If nothing was staged or the archive cannot be written
        """
        archive = create_archive(self.staged_entries(), str(archive_path))
        logger.info(f"Export archive created: {Path(archive).name} ({format_size(get_archive_size(archive))})")
        return archive

    def cleanup(self) -> int:
        """Remove the uncompressed export, keeping the staging directory itself."""
        removed = clear_directory(self.staging_dir)
        logger.info(f"Removed {removed} uncompressed export entr{'y' if removed == 1 else 'ies'} from {self.staging_dir}")
        return removed
