"""Age-based eviction of transient files under TEMP_DIR."""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Optional

from .config import TEMP_DIR
from .settings import TEMP_MAX_AGE_SECONDS, TEMP_SWEEP_INTERVAL_SECONDS

logger = logging.getLogger("design2code.temp_files")


def sweep_temp_files(
    directory: Path = TEMP_DIR,
    max_age_seconds: float = TEMP_MAX_AGE_SECONDS,
    now: Optional[float] = None,
) -> int:
    """Delete regular files in ``directory`` older than ``max_age_seconds``.

    Returns the number of files removed.
    """
    if not directory.is_dir():
        return 0
    now = time.time() if now is None else now
    removed = 0
    for path in directory.iterdir():
        try:
            if not path.is_file():
                continue
            if now - path.stat().st_mtime > max_age_seconds:
                path.unlink()
                removed += 1
        except FileNotFoundError:
            continue  # removed concurrently
        except OSError as exc:
            logger.warning("temp sweep: cannot remove %s: %s", path.name, exc)
    if removed:
        logger.info("temp sweep: removed %d file(s) from %s", removed, directory)
    return removed


async def run_periodic_sweep(
    directory: Path = TEMP_DIR,
    interval_seconds: float = TEMP_SWEEP_INTERVAL_SECONDS,
    max_age_seconds: float = TEMP_MAX_AGE_SECONDS,
) -> None:
    """Sweep every ``interval_seconds`` until cancelled."""
    while True:
        await asyncio.to_thread(sweep_temp_files, directory, max_age_seconds)
        await asyncio.sleep(interval_seconds)
