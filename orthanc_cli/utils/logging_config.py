"""
Centralised logger configuration for the command-line entry point.

Log records go to **stderr** through a :class:`rich.logging.RichHandler` so
that tables printed on stdout stay machine-readable. ``urllib3`` connection
pool chatter is downgraded to ``WARNING`` unless verbose output is requested.

Typical usage::

    from orthanc_cli.utils.logging_config import setup_logging

    setup_logging(verbose=verbose)
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

__all__ = ["setup_logging"]


def setup_logging(verbose: bool = False) -> None:
    """Initialise the root logger.

    Args:
        verbose: When *True*, emit DEBUG-level messages; otherwise only
            ``WARNING`` and above reach the console.
    """
    level = logging.DEBUG if verbose else logging.WARNING

    console = RichHandler(
        console=Console(stderr=True),
        level=level,
        show_path=verbose,
        rich_tracebacks=verbose,
        markup=False,
    )

    root_logger = logging.getLogger()
    # Repeated invocations (tests, REPL) must not stack handlers.
    for handler in list(root_logger.handlers):
        if isinstance(handler, RichHandler):
            root_logger.removeHandler(handler)
    root_logger.addHandler(console)
    root_logger.setLevel(level)

    logging.getLogger("urllib3").setLevel(logging.DEBUG if verbose else logging.WARNING)
