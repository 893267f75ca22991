"""Process resource probes."""

from __future__ import annotations

import psutil
import structlog

log = structlog.get_logger()


def process_memory_bytes() -> int:
    """Resident set size of the current process, or 0 if it cannot be read."""
    try:
        return psutil.Process().memory_info().rss
    except psutil.Error:
        log.warning("memory_probe_failed", exc_info=True)
        return 0
