"""Logging configuration for ftplink.

The library only creates loggers under the ``ftplink`` namespace; it never
installs handlers by itself. Applications that want ftplink output call
:func:`setup_logging` once at startup. Its formatter redacts passwords and
URL credentials so connection strings never end up in log files.
"""

import logging
import re
import sys
from pathlib import Path
from typing import Optional

LOGGER_NAME = "ftplink"

# Credential patterns to redact from logs
REDACTION_PATTERNS = [
    (re.compile(r'(password["\'\s:=]+)[^\s,}\]\'"]+', re.IGNORECASE), r'\1[REDACTED]'),
    (re.compile(r'(passwd["\'\s:=]+)[^\s,}\]\'"]+', re.IGNORECASE), r'\1[REDACTED]'),
    (re.compile(r'(PASS\s+)\S+'), r'\1[REDACTED]'),
    # Connection strings with credentials
    (re.compile(r'(ftps?://[^:/@\s]+):[^@\s]+@', re.IGNORECASE), r'\1:[REDACTED]@'),
]


class CredentialRedactingFormatter(logging.Formatter):
    """Formatter that masks credentials in log messages."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for pattern, replacement in REDACTION_PATTERNS:
            message = pattern.sub(replacement, message)
        return message


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    console: bool = True
) -> logging.Logger:
    """
    Configure ftplink logging with credential redaction.

    Args:
        level: Logging level (default INFO)
        log_file: Optional file path for log output
        console: Whether to output to stderr (default True)

    Returns:
        The configured ``ftplink`` logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Clear any existing handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = CredentialRedactingFormatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (default is the package logger)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
