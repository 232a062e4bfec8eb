"""Shared logging helpers for product ingestion."""

from __future__ import annotations

import logging


def configure_logging(verbose: bool = False, *, force: bool = False) -> None:
    """Initialise the root logger once for CLI use.

    INFO by default, DEBUG when ``verbose`` is set. HTTP client chatter is
    kept at WARNING unless verbose. Pass ``force=True`` to reconfigure during
    tests or specialised entry points.
    """

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
