"""
Logging Configuration

Provides a single setup_logging() function used by the API, the CLI and
the scripts, so pipeline repair warnings look the same everywhere.
"""

import logging
import os


def setup_logging(level: str | None = None):
    """
    Configure the root logger from LOG_LEVEL (default: INFO).

    An explicit `level` wins over the env var; unknown names fall back to INFO.
    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    resolved = getattr(logging, level_name, None)
    if not isinstance(resolved, int):
        resolved = logging.INFO

    logging.basicConfig(
        level=resolved,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
