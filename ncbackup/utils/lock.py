"""Exclusive run lock for a backup destination."""

import fcntl
from pathlib import Path


class RunLockedError(Exception):
    """Raised when another run already holds the destination lock."""
    pass


class RunLock:
    """
    Non-blocking exclusive flock on a file below the destination root.

    Only one backup run may work on a destination at a time: the metadata
    record and the data directory are shared by every run.
    """

    def __init__(self, path):
        self.path = Path(path)
        self._file = None

    def acquire(self):
        """
        Take the lock.

        Raises:
            RunLockedError: If another process holds the lock
        """
        self._file = open(self.path, 'a')
        try:
            fcntl.flock(self._file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            self._file.close()
            self._file = None
            raise RunLockedError(f"Another backup run is active on this destination (lock: {self.path})")

    def release(self):
        if self._file is None:
            return
        fcntl.flock(self._file.fileno(), fcntl.LOCK_UN)
        self._file.close()
        self._file = None

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False
