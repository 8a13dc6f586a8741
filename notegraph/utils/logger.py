"""
Logging configuration using Loguru.

Messages are built with f-strings by callers, so structured context is
always attached with `logger.bind(...)` (see `get_logger` and
`log_context`), never passed as keyword arguments: loguru would run
`str.format` over the finished message and trip on braces in paths,
queries or exception text.
"""

import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[module]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[module]}:{function}:{line} - {message}"


def setup_logging(
    level: str = "INFO",
    log_to_file: bool = False,
    log_dir: str = "logs",
    file_rotation: str = "10 MB",
    file_retention: str = "7 days",
    compression: str = "zip",
    serialize: bool = True,
) -> None:
    """
    Configure the NoteGraph sinks.

    Args:
        level: Minimum level for every sink
        log_to_file: Also write to a rotating file under log_dir
        log_dir: Directory for the file sink
        file_rotation: Loguru rotation policy for the file sink
        file_retention: Loguru retention policy for the file sink
        compression: Compression for rotated files
        serialize: Write the file sink as JSON lines (bound context included)
    """
    logger.remove()
    logger.configure(extra={"module": "notegraph"})

    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT, colorize=True)

    if log_to_file:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_path / "notegraph_{time:YYYY-MM-DD}.log",
            level=level,
            format=FILE_FORMAT,
            rotation=file_rotation,
            retention=file_retention,
            compression=compression,
            serialize=serialize,
            enqueue=True,
        )


def get_logger(name: str):
    """Logger bound to a module name."""
    return logger.bind(module=name)


def log_context(bound_logger, **context):
    """Attach structured fields (operation, note_id, ...) to a module logger."""
    return bound_logger.bind(**context)
