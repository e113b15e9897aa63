"""
Rotation of the previous run's artifacts into old/.

Before the snapshot overwrites data/, the previous run's snapshot, its export
archive and its log are packed together into old/{previous_ts}.tar.gz.
"""

import logging
from typing import Optional

from ncbackup.models import BackupLayout, format_timestamp
from .compression import create_archive, get_archive_size, format_size
from .storage import directory_is_empty, read_metadata


logger = logging.getLogger(__name__)


class BackupRotator:
    """
    Archives the previous backup so the current run can overwrite it.
    """

    def __init__(self, layout: BackupLayout):
        self.layout = layout

    def rotate(self) -> Optional[str]:
        """
        Archive the previous run's snapshot, export and log.

        Returns:
            Path of the rotation archive, or None if there was nothing to rotate

        Raises:
            CompressionError: If the archive cannot be written
        """
        layout = self.layout

        if directory_is_empty(layout.data_dir):
            logger.info(f"Skipping compression of old backup because {layout.data_dir} is empty")
            return None

        previous = read_metadata(layout.metadata_file)
        if previous is None:
            logger.warning(
                f"Skipping compression of old backup: no valid previous run date in {layout.metadata_file}"
            )
            return None

        previous_id = format_timestamp(previous)
        members = [str(layout.data_dir)]

        for artifact in (layout.export_archive(previous_id), layout.log_file(previous_id)):
            if artifact.is_file():
                members.append(str(artifact))
            else:
                logger.warning(f"Previous backup artifact missing, not included: {artifact}")

        archive = create_archive(members, layout.rotation_archive(previous_id), base_dir=str(layout.root))
        logger.info(f"Old backup {previous_id} archived to {archive} ({format_size(get_archive_size(archive))})")
        return archive
