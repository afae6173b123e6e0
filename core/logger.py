"""
Logging setup and management for hostfault.
"""

import os
import logging
import datetime
import glob
from pathlib import Path


def setup_logging(log_folder: str = 'logs', max_log_files: int = 5) -> Path:
    """
    Set up logging configuration.

    Args:
        log_folder: Directory to store log files
        max_log_files: Maximum number of log files to keep

    Returns:
        Path to the current log file
    """
    logs_folder = Path(log_folder)
    os.makedirs(logs_folder, exist_ok=True)

    # Inject and remove often run within the same second, pid keeps names unique
    current_time = datetime.datetime.now().strftime("%Y%m%d-%H%M%S")
    log_file = logs_folder / f'hostfault-{current_time}-{os.getpid()}.log'

    # Clean up old log files
    cleanup_old_logs(logs_folder, max_log_files)

    # Configure logging
    log_formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(name)s - %(message)s")
    log_handler = logging.FileHandler(log_file)
    log_handler.setFormatter(log_formatter)

    logger = logging.getLogger()
    logger.setLevel(logging.INFO)
    logger.addHandler(log_handler)

    return log_file


def cleanup_old_logs(logs_folder: Path, max_files: int):
    """
    Remove old log files, keeping only the most recent ones.

    Args:
        logs_folder: Directory containing log files
        max_files: Maximum number of log files to keep
    """
    existing_logs = sorted(glob.glob(str(logs_folder / 'hostfault-*.log')))
    while len(existing_logs) >= max_files:
        try:
            os.remove(existing_logs.pop(0))
        except OSError as e:
            logging.warning(f"Could not remove old log file: {e}")


def log_command_error(error, fault_type: str):
    """
    Log detailed information for a failed external command.

    Args:
        error: ExecutionError raised by the command runner
        fault_type: Fault whose lifecycle ran the command
    """
    logging.error(f"{fault_type}: command failed with return code {error.returncode}")
    logging.error(f"Command: {error.command}")
    if error.output:
        logging.error(f"Output:\n{error.output}")
