from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

from loguru import logger


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None) -> None:
    """
    Configure loguru for a CLI invocation.

    Diagnostics always go to stderr so that stdout stays clean for
    machine-readable output (JSON, IDs).

    Args:
        verbose: Lower the stderr level to DEBUG
        log_file: Optional path for a rotating file sink
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG" if verbose else "INFO",
        format="<level>{message}</level>",
        colorize=None,
    )
    if log_file is not None:
        logger.add(
            log_file,
            rotation="10 MB",
            retention=5,
            level="DEBUG",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} | {message}",
            enqueue=False,
        )
        logger.debug(f"File logging enabled: {log_file}")
