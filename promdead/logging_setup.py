"""Logging configuration for the CLI."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(verbose: bool = False) -> None:
    """Send log records to stderr through rich; DEBUG when verbose."""
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=verbose,
        markup=False,
        rich_tracebacks=True,
    )
    root = logging.getLogger("promdead")
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
