import sys
import logging


__version__ = '1.0.0'

RUN_LOG_FORMAT = '[%(asctime)s] %(levelname)s: %(message)s'
RUN_LOG_DATEFMT = '%Y-%m-%d %H:%M:%S'


def configure_logging(log_file, verbose=False, log_level=logging.INFO):
    """
    Configure logging for one backup run.

    Everything logged under the 'ncbackup' logger goes to the run log file and,
    in verbose mode, to stdout as well.

    Returns:
        The handlers that were attached, for release_logging()
    """
    logger = logging.getLogger('ncbackup')
    logger.setLevel(log_level)

    formatter = logging.Formatter(RUN_LOG_FORMAT, datefmt=RUN_LOG_DATEFMT)

    # File handler
    file_handler = logging.FileHandler(log_file, mode='w')
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    handlers = [file_handler]

    # Console handler
    if verbose:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    for handler in handlers:
        logger.addHandler(handler)

    return handlers


def release_logging(handlers):
    """Detach and close handlers returned by configure_logging()."""
    logger = logging.getLogger('ncbackup')
    for handler in handlers:
        logger.removeHandler(handler)
        handler.close()
