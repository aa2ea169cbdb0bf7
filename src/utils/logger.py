"""Logging configuration and setup."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict


def setup_logger(config: Dict) -> logging.Logger:
    """Initialize logging with file and console handlers.

    Args:
        config: Configuration dictionary with 'logging' section

    Returns:
        Configured root logger
    """
    log_config = config.get('logging', {})
    log_level = getattr(logging, log_config.get('level', 'INFO').upper())
    log_file = log_config.get('file')

    # Create formatter
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Root logger
    logger = logging.getLogger()
    logger.setLevel(log_level)

    # Remove existing handlers
    logger.handlers.clear()

    # File handler with rotation
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        max_bytes = log_config.get('max_bytes', 10485760)  # 10MB
        backup_count = log_config.get('backup_count', 5)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(log_level)
        logger.addHandler(file_handler)

    # Console handler (if enabled)
    if log_config.get('console_output', True):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        console_handler.setLevel(log_level)
        logger.addHandler(console_handler)

    logger.info("="*60)
    logger.info("XMP Repair - Session Start")
    logger.info("="*60)
    logger.info(f"Log level: {log_config.get('level', 'INFO')}")
    if log_file:
        logger.info(f"Log file: {log_file}")

    return logger


def event_fields(event: str, path) -> Dict[str, str]:
    """Build ``extra`` fields tagging a log record with its event kind and file.

    Args:
        event: Event kind, e.g. 'repaired' or 'unrepairable'
        path: File the event is about

    Returns:
        Dict suitable for the ``extra`` argument of logging calls
    """
    return {'event': event, 'file': str(path)}
