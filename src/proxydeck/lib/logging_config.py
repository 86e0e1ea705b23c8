"""Logging configuration for ProxyDeck.

Console logging for CLI commands. User-facing progress is printed with click;
loggers carry diagnostics and are only noisy with --verbose.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# SDK loggers that are chatty at INFO/DEBUG
THIRD_PARTY_LOGGERS = ("boto3", "botocore", "urllib3", "docker", "s3transfer")


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure root logging for a CLI invocation.

    Args:
        verbose: Enable DEBUG output, including SDK loggers
        quiet: Only show warnings and errors
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Clear handlers from a previous invocation (CliRunner reuses the process)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(handler)

    sdk_level = logging.DEBUG if verbose else logging.WARNING
    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(sdk_level)


def get_logger(name: str) -> logging.Logger:
    """Return a module logger.

    Args:
        name: Logger name, usually ``__name__``

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
