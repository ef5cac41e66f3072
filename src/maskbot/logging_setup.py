"""Console logging with Rich."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_NOISY_LOGGERS = ("httpx", "httpcore", "telegram", "apscheduler", "uvicorn.access")


def setup_logging(level: str = "INFO") -> None:
    """Install a Rich handler on the root logger.

    Safe to call more than once; the previous Rich handler is replaced.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        show_path=False,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s", datefmt="[%X]"))
    root.addHandler(handler)
    root.setLevel(level.upper())

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
