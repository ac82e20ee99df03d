"""Structured error logging — JSON lines to errors.log plus the module logger.

Collaborators call log_error() at the point where they degrade to "no
result"; nothing is raised or shown to viewers.
"""
import json
import logging
import sys
from datetime import datetime
from typing import Optional

from .config import ERRORS_LOG, OUTPUT_DIR

logger = logging.getLogger(__name__)


def log_error(
    stage: str,
    query: str = "",
    params: Optional[dict] = None,
    raw: str = "",
):
    """Record a degraded lookup: stage is youtube_search, cache_read, cache_write, lyrics or token_exchange."""
    entry = {
        "timestamp": datetime.now().isoformat(),
        "stage": stage,
        "input": query,
        "params": params,
        "error": raw,
        "python": sys.version.split()[0],
    }
    logger.error("Error at %s (%s): %s", stage, query or "-", raw)
    _append_to_log(entry)


def _append_to_log(entry: dict):
    try:
        OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
        with open(ERRORS_LOG, "a") as f:
            f.write(json.dumps(entry) + "\n")
    except OSError:
        pass
