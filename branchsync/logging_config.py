"""Logging setup shared by the CLI and the MCP server."""

import logging
import sys
from typing import Optional

from .config import Config

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class StructuredFormatter(logging.Formatter):
    """Prefix records logged with an ``operation`` extra by that operation."""

    def format(self, record):
        if hasattr(record, 'operation'):
            record.msg = f"[{record.operation}] {record.msg}"
        return super().format(record)


def setup_logging(config: Config, level: Optional[str] = None) -> logging.Logger:
    """
    Configure the ``branchsync`` logger hierarchy.

    All output goes to stderr so command output on stdout stays clean.

    Args:
        config: Configuration supplying the default log level
        level: Optional level overriding ``config.log_level``

    Returns:
        The root ``branchsync`` logger
    """
    log_level = getattr(logging, (level or config.log_level).upper())

    logger = logging.getLogger('branchsync')
    logger.setLevel(log_level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(StructuredFormatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False

    return logger
