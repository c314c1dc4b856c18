"""
Logging configuration for the webhook service and the CLI.

Everything goes through the root logger: a Rich console handler on stderr
and, optionally, a plain-text file for deployments without a log collector.
uvicorn is started with ``log_config=None`` so its loggers propagate here too.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

FILE_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# GitHub API calls and webhook deliveries are already logged by the handlers
QUIET_LOGGERS = ("urllib3", "requests", "httpx", "uvicorn.access")


def resolve_level(level: Union[str, int]) -> int:
    """Turn ``CONSENSUS_LOG_LEVEL`` style names into a logging level.

    Raises:
        ValueError: If the name is not a logging level
    """
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level {level!r}")
    return resolved


def setup_logging(level: Union[str, int] = "INFO", log_file: Optional[Path] = None) -> None:
    """
    Configure logging for the webhook service and CLI.

    Args:
        level: Logging level name or number
        log_file: Optional file that receives a plain-text copy of the log
    """
    try:
        resolved = resolve_level(level)
        unknown_level = False
    except ValueError:
        resolved, unknown_level = logging.INFO, True

    root_logger = logging.getLogger()
    root_logger.setLevel(resolved)
    root_logger.handlers.clear()

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_time=True,
        show_path=False,
        rich_tracebacks=True,
        # logins and team slugs may contain [brackets]
        markup=False,
    )
    console_handler.setFormatter(logging.Formatter(fmt="%(message)s", datefmt="[%X]"))
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter(fmt=FILE_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        )
        root_logger.addHandler(file_handler)

    # DEBUG keeps request-level chatter for troubleshooting deliveries
    quiet_level = logging.DEBUG if resolved <= logging.DEBUG else logging.WARNING
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    if unknown_level:
        logging.getLogger(__name__).warning(f"Unknown log level {level!r}, using INFO")
