import logging

from rich.console import Console
from rich.logging import RichHandler

# Operator-facing stream shared by log records, tables and prompts
console = Console(stderr=True)


def setup_logger(name: str = "poolshift", level: int = logging.INFO) -> logging.Logger:
    """Configures and returns a logger with RichHandler on the shared console."""

    logger = logging.getLogger(name)

    # Avoid adding duplicate handlers if setup is called multiple times
    if not logger.handlers:
        handler = RichHandler(
            console=console, rich_tracebacks=True, markup=True, show_path=False
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)

    logger.setLevel(level)
    return logger


# INFO by default; --verbose lowers it to DEBUG
logger = setup_logger(level=logging.INFO)
