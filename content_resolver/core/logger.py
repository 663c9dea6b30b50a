"""Logger configuration for applications embedding the content resolver.

The resolver modules only emit through loguru, binding context such as
program_id, path or library_session_ref to each record. Nothing in the
package installs sinks. A host application calls setup_logger once at
startup to route those records; the file sink keeps the bound context.
"""

import sys
from pathlib import Path

from loguru import logger

from content_resolver.config.settings import Settings, settings as default_settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level> <dim>{extra}</dim>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message} | {extra}"


def setup_logger(
    settings: Settings | None = None,
    *,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """Replace loguru's sinks with a stderr sink and an optional file sink.

    Args:
        settings: Source of log_level and log_file; defaults to the
            environment-driven settings
        rotation: File rotation size or interval (e.g., "10 MB", "1 day")
        retention: File retention period (e.g., "7 days")
    """
    settings = settings or default_settings
    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=settings.log_level, colorize=True)

    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path,
            format=FILE_FORMAT,
            level=settings.log_level,
            rotation=rotation,
            retention=retention,
            compression="zip",
            backtrace=True,
            diagnose=False,
        )

    logger.bind(log_file=settings.log_file).info(f"Content resolver logging at level={settings.log_level}")
