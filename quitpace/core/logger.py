"""Logger configuration for quitpace.

Engine code attaches context with logger.bind() (timestamps, handles,
targets). Both sinks render those bound fields after the message.
"""

import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{file.name}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"


def format_extra(extra: dict) -> str:
    """Render bound context as " | key=value ..." (empty without context)."""
    if not extra:
        return ""
    return " | " + " ".join(f"{key}={value}" for key, value in sorted(extra.items()))


def _with_extra(base: str):
    def _format(record) -> str:
        # Braces in values must not be read as format fields
        extra = format_extra(record["extra"]).replace("{", "{{").replace("}", "}}").replace("<", r"\<")
        return base + extra + "\n{exception}"

    return _format


def setup_logger(
    level: str = "INFO",
    log_file: str | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """Replace the loguru sinks with a console sink and an optional rotating file.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file. If None, only console logging.
        rotation: Log rotation size (e.g., "10 MB", "1 day")
        retention: Log retention period (e.g., "7 days", "1 month")
    """
    logger.remove()

    logger.add(
        sys.stderr,
        format=_with_extra(CONSOLE_FORMAT),
        level=level,
        colorize=sys.stderr.isatty(),
    )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_path,
            format=_with_extra(FILE_FORMAT),
            level=level,
            rotation=rotation,
            retention=retention,
            compression="zip",
            diagnose=False,
        )

    logger.bind(log_file=log_file).debug(f"Logger initialized with level={level}")
