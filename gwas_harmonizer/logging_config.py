"""
Centralized logging configuration for the harmonizer.

Provides:
- Console handler: warnings only, or everything with --verbose
- File handler: captures all details with rotation (DEBUG level)
- Progress logger: always prints to console for step announcements
"""

import logging
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path


# Module-level state
_logging_initialized = False
_log_file_path: str | None = None


def setup_logging(
    log_dir: Path | None = None,
    job_name: str = "harmonizer",
    verbose: bool = False,
    file_level: int = logging.DEBUG,
    max_bytes: int = 5 * 1024 * 1024,  # 5MB
    backup_count: int = 3,
) -> str:
    """
    Initialize logging with console and rotating file handlers.

    Args:
        log_dir: Directory for log files. If None, logs to current directory.
        job_name: Name prefix for log file.
        verbose: Show DEBUG messages on the console instead of WARNING and up.
        file_level: Log level for file output (default: DEBUG).
        max_bytes: Maximum size per log file before rotation.
        backup_count: Number of backup files to keep.

    Returns:
        Path to the log file.
    """
    global _logging_initialized, _log_file_path

    if _logging_initialized:
        return _log_file_path or ""

    log_path = Path(log_dir or Path.cwd()) / "logs"
    log_path.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_path / f"{job_name}_{timestamp}.log"
    _log_file_path = str(log_file)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Capture everything, handlers filter
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    root_logger.addHandler(console_handler)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    root_logger.addHandler(file_handler)

    # Suppress noisy third-party loggers
    for noisy_logger in ["urllib3", "requests"]:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    _logging_initialized = True

    return _log_file_path


def get_progress_logger() -> logging.Logger:
    """
    Get a logger that always prints to console.

    Use this for step announcements and the final summary line.

    Returns:
        Logger configured to always output to console.
    """
    logger = logging.getLogger("progress")

    if not logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(console_handler)
        logger.setLevel(logging.INFO)
        # Prevent propagation to avoid duplicate messages
        logger.propagate = False

    return logger


def get_log_file_path() -> str | None:
    """Get the path to the current log file."""
    return _log_file_path


def reset_logging() -> None:
    """Reset logging state. Useful for testing."""
    global _logging_initialized, _log_file_path
    _logging_initialized = False
    _log_file_path = None

    for handler in logging.getLogger().handlers:
        handler.close()
    logging.getLogger().handlers.clear()

    logging.getLogger("progress").handlers.clear()
