"""
Logging configuration using loguru.

Provides structured logging with JSON output in production
and pretty-printed output in development.
"""

import sys

from loguru import logger

from fsimage_exporter.config.settings import AppSettings, settings


def _text_formatter(record: dict) -> str:
    """Format log record for text output, conditionally showing extras.

    Only includes the {extra} section if it contains data, preventing
    empty braces from appearing in logs.
    """
    base_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
        "<level>{message}</level>"
    )

    # Only append extra if it has content
    if record["extra"]:
        base_format += " | {extra}"

    return base_format + "\n{exception}"


def setup_logging(app_settings: AppSettings = settings) -> None:
    """Configure loguru logger.

    Sets up structured logging based on FSIMAGE_LOG_LEVEL and FSIMAGE_LOG_FORMAT:
    - text format: Pretty-printed colorful logs to stdout
    - json format: JSON-formatted logs to stdout for container logging
    """

    # Remove default logger
    logger.remove()

    # Normalize log level to uppercase (loguru has no WARN alias)
    level = app_settings.log_level.upper()
    if level == "WARN":
        level = "WARNING"

    if app_settings.log_format == "text":
        logger.add(
            sys.stdout,
            format=_text_formatter,
            level=level,
            colorize=True,
        )
    else:
        logger.add(
            sys.stdout,
            format="{message}",
            level=level,
            serialize=True,  # JSON output
        )

    logger.info(f"Logging configured (level={level}, format={app_settings.log_format})")
