"""
Invocation of external tools.

Every tool the pipeline shells out to goes through run_command, which maps a
non-zero exit (or a missing executable, or a timeout) to the error class the
caller names.
"""

import logging
import os
import subprocess
from typing import List, Optional, Dict


logger = logging.getLogger(__name__)


class ExternalToolError(Exception):
    """Raised when an external tool exits with a non-zero status."""

    def __init__(self, message: str, command: Optional[List[str]] = None,
                 returncode: Optional[int] = None, stderr: Optional[str] = None):
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class MaintenanceModeError(ExternalToolError):
    """Raised when the maintenance mode toggle fails."""
    pass


class ExportError(ExternalToolError):
    """Raised when the application export tool fails."""
    pass


class CopyError(ExternalToolError):
    """Raised when the external file copy tool fails."""
    pass


def is_root() -> bool:
    """Return True if the process runs with an effective uid of 0."""
    return os.geteuid() == 0


def run_command(
    command: List[str],
    description: str,
    error_cls=ExternalToolError,
    timeout: Optional[int] = None,
    cwd: Optional[str] = None,
    env: Optional[Dict[str, str]] = None
) -> subprocess.CompletedProcess:
    """
    Run an external tool and wait for it to finish.

    The tool's standard output is forwarded to the log line by line.

    Args:
        command: Argument list, executable first
        description: Human readable name used in log and error messages
        error_cls: ExternalToolError subclass raised on failure
        timeout: Seconds to wait before giving up (None waits forever)
        cwd: Working directory for the tool
        env: Complete environment for the tool

    Returns:
        CompletedProcess of the finished tool

    Raises:
        ExternalToolError: (as error_cls) if the tool cannot be started,
            times out or exits non-zero
    """
    logger.debug(f"{description}: {' '.join(command)}")

    try:
        result = subprocess.run(
            command,
            capture_output=True,
            text=True,
            timeout=timeout,
            cwd=cwd,
            env=env
        )
    except FileNotFoundError as e:
        raise error_cls(f"{description} failed: command not found: {command[0]}", command=command) from e
    except subprocess.TimeoutExpired as e:
        raise error_cls(f"{description} timed out after {timeout} seconds", command=command) from e
    except OSError as e:
        raise error_cls(f"{description} failed to start: {e}", command=command) from e

    for line in (result.stdout or '').splitlines():
        if line.strip():
            logger.info(line)

    if result.returncode != 0:
        stderr = (result.stderr or '').strip()
        raise error_cls(
            f"{description} failed with exit code {result.returncode}: {stderr}",
            command=command,
            returncode=result.returncode,
            stderr=stderr
        )

    return result
