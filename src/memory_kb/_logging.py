"""Logging configuration for memory_kb.

Usage in other modules:
    import logging
    log = logging.getLogger(__name__)

The log level can be configured via the MEMORY_KB_LOG_LEVEL environment variable:
    - DEBUG: Detailed debugging information
    - INFO: General operational messages (default)
    - WARNING: Unexpected but handled situations (skipped entries, bad dates)
    - ERROR: Errors that prevented an operation
"""

import logging
import os
import sys


def configure_logging() -> None:
    """Configure logging for the memory_kb package.

    Call this once at application startup (the CLI does it).
    Subsequent calls are no-ops.
    """
    root_logger = logging.getLogger("memory_kb")

    if root_logger.handlers:
        return

    level_name = os.environ.get("MEMORY_KB_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt="[%(levelname)s] %(name)s: %(message)s"))

    root_logger.setLevel(level)
    root_logger.addHandler(handler)

    # Prevent propagation to root logger (avoids duplicate messages)
    root_logger.propagate = False
