"""Process-wide logging configuration."""

from __future__ import annotations

import logging

from policy_ledger.core.config import LoggingConfig

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(config: LoggingConfig) -> None:
    """Configure the root logger once for CLI and embedded use."""
    level = logging.getLevelName(config.level)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("policy_ledger").setLevel(level)
