"""
Centralized logging utility for stegscan.
"""
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from stegscan import config


def setup_logging(
    module_name: str,
    log_level: Union[int, str] = config.LOG_LEVEL,
    log_dir: Optional[Union[str, Path]] = None,
    log_to_console: bool = True
) -> logging.Logger:
    """
    Set up logging configuration for a module.

    The logger is attached under the ``stegscan`` namespace, so every module
    logger created with ``logging.getLogger("stegscan.<name>")`` propagates
    into the same handlers when ``module_name`` is the package root.

    Args:
        module_name: Name of the module for the logger
        log_level: Logging level, as an int or a level name (default: config.LOG_LEVEL)
        log_dir: Directory for log files (default: config.LOG_DIR)
        log_to_console: Whether to log to console

    Returns:
        Configured logger instance
    """
    if isinstance(log_level, str):
        log_level = logging.getLevelName(log_level.upper())
        if not isinstance(log_level, int):
            log_level = logging.INFO

    # Ensure log directory exists
    log_dir_path = Path(log_dir) if log_dir else config.LOG_DIR
    log_dir_path.mkdir(parents=True, exist_ok=True)

    # Create log filename with timestamp
    timestamp = datetime.now().strftime("%Y-%m-%d")
    log_file = log_dir_path / f"{module_name}_{timestamp}.log"

    logger_name = "stegscan" if module_name == "stegscan" else f"stegscan.{module_name}"
    logger = logging.getLogger(logger_name)
    logger.setLevel(log_level)

    # Remove any existing handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(log_level)
    file_handler.setFormatter(logging.Formatter(config.LOG_FORMAT))
    logger.addHandler(file_handler)

    if log_to_console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(logging.Formatter(config.CONSOLE_LOG_FORMAT))
        logger.addHandler(console_handler)

    logger.debug(f"Logging set up for {module_name}")
    logger.debug(f"Log file: {log_file}")

    return logger
