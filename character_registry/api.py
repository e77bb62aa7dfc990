"""External Rick & Morty API client.

The registry is populated from the public character endpoint. Each page is
requested exactly once: any transport failure, non-2xx status, or payload
without a ``results`` list is reported as `UpstreamUnavailable` so the caller
can fail the population instead of silently storing nothing.
"""

import logging
from typing import Any, Dict, List

import httpx

from .errors import UpstreamUnavailable
from .settings import settings

log = logging.getLogger(__name__)


async def _get_page(client: httpx.AsyncClient, url: str) -> Dict[str, Any]:
    """GET one page of characters and return its decoded JSON body.

    Raises:
        UpstreamUnavailable: On network errors, HTTP errors or a non-object body.
    """
    try:
        r = await client.get(url, timeout=settings.REQUEST_TIMEOUT)
        r.raise_for_status()
        data = r.json()
    except httpx.HTTPStatusError as exc:
        log.error(
            "upstream.failed url=%s status=%d", url, exc.response.status_code
        )
        raise UpstreamUnavailable(
            f"Upstream API answered {exc.response.status_code}"
        ) from exc
    except httpx.HTTPError as exc:
        log.error("upstream.failed url=%s err=%r", url, exc)
        raise UpstreamUnavailable("Upstream API unreachable") from exc
    except ValueError as exc:
        log.error("upstream.bad_json url=%s err=%r", url, exc)
        raise UpstreamUnavailable("Upstream API returned invalid JSON") from exc

    if not isinstance(data, dict) or not isinstance(data.get("results"), list):
        log.error("upstream.bad_payload url=%s", url)
        raise UpstreamUnavailable("Upstream API returned no character results")
    if not all(isinstance(c, dict) for c in data["results"]):
        log.error("upstream.bad_payload url=%s reason=non_object_result", url)
        raise UpstreamUnavailable("Upstream API returned malformed character results")
    return data


async def fetch_characters() -> List[Dict[str, Any]]:
    """Fetch raw character records from the upstream API.

    Follows ``info.next`` for at most ``UPSTREAM_MAX_PAGES`` pages.

    Returns:
        Character dicts exactly as the upstream API provides them.
    """
    results: List[Dict[str, Any]] = []
    url: str | None = settings.UPSTREAM_URL
    pages = 0
    async with httpx.AsyncClient() as client:
        while url and pages < max(1, settings.UPSTREAM_MAX_PAGES):
            data = await _get_page(client, url)
            results.extend(data["results"])
            pages += 1
            url = (data.get("info") or {}).get("next")
    log.info("upstream.fetched pages=%d characters=%d", pages, len(results))
    return results
