"""
Logging setup and management for fsfault.
"""

import os
import logging
import datetime
import glob
from pathlib import Path


LOG_PREFIX = 'fsfault'


def setup_logging(log_folder: str = 'logs', max_log_files: int = 5,
                  level: int = logging.INFO) -> Path:
    """
    Set up logging configuration.

    Args:
        log_folder: Directory to store log files
        max_log_files: Maximum number of log files to keep
        level: Root logger level (DEBUG shows fault table bindings)

    Returns:
        Path to the current log file
    """
    logs_folder = Path(log_folder)
    os.makedirs(logs_folder, exist_ok=True)

    # Microseconds keep two runs in the same second apart
    current_time = datetime.datetime.now().strftime("%Y%m%d-%H%M%S-%f")
    log_file = logs_folder / f'{LOG_PREFIX}-{current_time}.log'

    # The new file counts toward the limit
    cleanup_old_logs(logs_folder, max_log_files - 1)

    log_formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(name)s - %(message)s")
    log_handler = logging.FileHandler(log_file)
    log_handler.setFormatter(log_formatter)

    logger = logging.getLogger()
    logger.setLevel(level)
    logger.addHandler(log_handler)

    return log_file


def cleanup_old_logs(logs_folder: Path, max_files: int):
    """
    Remove old log files, keeping only the most recent ones.

    Args:
        logs_folder: Directory containing log files
        max_files: Maximum number of log files to keep
    """
    existing_logs = sorted(glob.glob(str(Path(logs_folder) / f'{LOG_PREFIX}-*.log')))
    while len(existing_logs) > max(max_files, 0):
        try:
            os.remove(existing_logs.pop(0))
        except OSError as e:
            logging.warning(f"Could not remove old log file: {e}")
