"""
Logging setup for the engine and the demo runner.

Engine diagnostics are emitted through catchery, which writes to the
standard library loggers; this module only decides where they end up.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "skirmish"

# Libraries whose chatter is never interesting during an encounter.
_QUIET_LOGGERS = ("asyncio", "prompt_toolkit")


def setup_logging(level: int = logging.WARNING) -> None:
    """
    Routes all log records to stderr through a rich handler.

    Args:
        level (int): Threshold for the root logger. Defaults to WARNING so
            that an encounter's own output is not drowned by diagnostics.

    """
    handler = RichHandler(
        console=Console(width=120, stderr=True),
        show_time=level <= logging.DEBUG,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logging.basicConfig(level=level, format="%(message)s", handlers=[handler], force=True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """Returns a logger living under the package's namespace."""
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
