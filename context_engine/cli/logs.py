"""Logging setup for the CLI."""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

_NOISY_LOGGERS: tuple[str, ...] = ("asyncio", "httpx", "httpcore", "markdown_it")


def setup_logging(
    level: str | int = logging.WARNING,
    *,
    console: Console | None = None,
    log_file: str | Path | None = None,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
) -> None:
    """Route all loggers through a RichHandler and, optionally, a rotating file."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING

    handlers: list[logging.Handler] = [
        RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
            markup=False,
        )
    ]

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        file_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        handlers.append(file_handler)

    logging.basicConfig(level=level, format="%(message)s", handlers=handlers, force=True)
    logging.captureWarnings(True)

    quiet_level = logging.WARNING if level < logging.WARNING else level
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)
