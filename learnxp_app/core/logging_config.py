"""
Centralized Logging Configuration for LearnXP

Provides consistent logging setup across the application with:
- Structured JSON format for production
- Human-readable format for development
- File rotation for log management
"""

import os
import logging
import logging.handlers
from typing import Optional


def build_formatter(json_format: bool = False) -> logging.Formatter:
    """Return the formatter shared by console and file handlers."""
    if json_format:
        format_str = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(module)s", "message": "%(message)s"}'
    else:
        format_str = '%(asctime)s [%(levelname)s] %(module)s: %(message)s'
    return logging.Formatter(format_str, datefmt='%Y-%m-%d %H:%M:%S')


def setup_logging(
    logger: logging.Logger,
    log_level: str = 'INFO',
    log_dir: Optional[str] = None,
    json_format: bool = False,
    to_file: bool = True
) -> logging.Logger:
    """
    Configure a logger (usually ``app.logger``).

    Args:
        logger: Logger to attach handlers to
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for log files (default: logs/ next to the package)
        json_format: Use JSON format for structured logging
        to_file: Also write to a rotating log file

    Returns:
        The configured logger
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    logger.setLevel(level)
    logger.handlers.clear()

    formatter = build_formatter(json_format)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # File handler with rotation
    if to_file:
        if log_dir is None:
            base_dir = os.path.dirname(os.path.dirname(os.path.dirname(__file__)))
            log_dir = os.path.join(base_dir, 'logs')
        os.makedirs(log_dir, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            os.path.join(log_dir, 'learnxp.log'),
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logging.getLogger('werkzeug').setLevel(logging.WARNING)
    logger.propagate = False

    logger.info(f"Logging initialized: level={log_level}, dir={log_dir if to_file else '<console>'}")
    return logger
