"""Logging setup for applications embedding cqlcontext."""

from __future__ import annotations

import logging

DRIVER_LOGGER = "cassandra"


def configure_logging(
    *,
    level: int = logging.INFO,
    driver_level: int = logging.WARNING,
    force: bool = False,
) -> None:
    """Configure the root logger and cap the driver's logger at ``driver_level``.

    The cassandra driver logs every connection pool and control connection event
    at INFO; save cycles are easier to follow with those held back.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    logging.getLogger(DRIVER_LOGGER).setLevel(max(level, driver_level))
