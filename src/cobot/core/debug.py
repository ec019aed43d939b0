"""File logging for ``cobot --debug``."""

from __future__ import annotations

import logging
from pathlib import Path

DEBUG_LOG_FILE = "debug-agent.log"

_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "asyncio", "markdown_it")


def setup_debug_logging(log_file: str | Path = DEBUG_LOG_FILE, level: int = logging.DEBUG) -> Path:
    """Send all log records to *log_file*, truncating it first.

    Nothing goes to the terminal so the REPL output stays clean.
    Returns the absolute log path.
    """
    log_path = Path(log_file).resolve()
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.FileHandler(log_path, mode="w", encoding="utf-8")],
        force=True,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("cobot").setLevel(level)

    logging.getLogger(__name__).info("debug logging started, writing to %s", log_path)
    return log_path
