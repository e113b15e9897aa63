"""
Maintenance mode bracket around the data snapshot.

The application is put into maintenance mode before the copy starts and taken
out of it when the copy ends, on every exit path. A failing toggle is logged
but never aborts the run.
"""

import logging
from typing import List, Optional, Dict

from ncbackup.utils.system import run_command, MaintenanceModeError


logger = logging.getLogger(__name__)


class MaintenanceMode:
    """
    Context manager holding the application in maintenance mode.

    Usage:
        with MaintenanceMode(['nextcloud.occ']):
            copy_data()

    release() runs exactly once per bracket, whether or not acquire()
    succeeded and whether or not the guarded block raised.
    """

    def __init__(self, occ_command: List[str], timeout: Optional[int] = None,
                 env: Optional[Dict[str, str]] = None):
        """
        Args:
            occ_command: Application management command, e.g. ['nextcloud.occ']
            timeout: Seconds to wait for each toggle
            env: Environment for the management command
        """
        self.occ_command = list(occ_command)
        self.timeout = timeout
        self.env = env
        self.enabled = False
        self.released = False

    def _toggle(self, state: str):
        run_command(
            self.occ_command + ['maintenance:mode', f'--{state}'],
            f"Maintenance mode {state}",
            error_cls=MaintenanceModeError,
            timeout=self.timeout,
            env=self.env
        )

    def acquire(self) -> bool:
        """Turn maintenance mode on. Returns False if the toggle failed."""
        try:
            self._toggle('on')
            self.enabled = True
            logger.info("Maintenance mode enabled")
        except MaintenanceModeError as e:
            logger.error(f"Could not enable maintenance mode, copying while the application is live: {e}")
        return self.enabled

    def release(self) -> bool:
        """
        Turn maintenance mode off. Returns False if the toggle failed.

        An interruption while the toggle runs kills the management command,
        so the toggle is retried once before the interruption is re-raised.
        """
        if self.released:
            return True

        interrupted = None
        while True:
            try:
                self._toggle('off')
                logger.info("Maintenance mode disabled")
                result = True
            except MaintenanceModeError as e:
                logger.error(f"Could not disable maintenance mode, the application may still be in maintenance mode: {e}")
                result = False
            except BaseException as e:
                if interrupted is not None:
                    logger.error("Interrupted again while disabling maintenance mode, "
                                 "the application may still be in maintenance mode")
                    self.released = True
                    raise
                interrupted = e
                logger.warning("Interrupted while disabling maintenance mode, retrying")
                continue
            break

        self.released = True
        if interrupted is not None:
            raise interrupted
        return result

    def __enter__(self):
        try:
            self.acquire()
        except BaseException:
            # The toggle may have taken effect before the interruption
            self.release()
            raise
        return self
    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False
