"""Population pipeline: upstream fetch -> registry reset.

Composes the upstream client with `Registry.replace_population` and keeps the
timestamp of the last successful population for health reporting.
"""

import time
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List

from . import api
from .errors import UpstreamUnavailable
from .registry import Registry

log = logging.getLogger(__name__)

Fetcher = Callable[[], Awaitable[List[Dict[str, Any]]]]

_populate_lock = asyncio.Lock()
_last_population_ts: float | None = None


def last_population_age() -> float | None:
    """Return seconds since the last successful population, or ``None``."""
    if _last_population_ts is None:
        return None
    return round(time.time() - _last_population_ts, 2)


async def populate(registry: Registry, fetch: Fetcher | None = None) -> int:
    """Replace the registry contents with a fresh upstream fetch.

    Only one population runs at a time. A failed fetch still resets the
    registry, since population is a reset operation.

    Args:
        registry: Registry to reset.
        fetch: Record source; defaults to `api.fetch_characters`.

    Returns:
        Number of records stored.

    Raises:
        UpstreamUnavailable: If the fetch failed or returned no payload.
    """
    global _last_population_ts
    fetch = fetch or api.fetch_characters

    async with _populate_lock:
        log.info("populate starting")
        try:
            raw = await fetch()
        except UpstreamUnavailable as exc:
            registry.clear()
            log.error("populate failed: registry cleared error=%s", exc.detail)
            raise

        try:
            n = registry.replace_population(raw)
        except UpstreamUnavailable as exc:
            log.error("populate failed: unusable payload error=%s", exc.detail)
            raise
        _last_population_ts = time.time()
        log.info("populate complete: stored=%d", n)
        return n
