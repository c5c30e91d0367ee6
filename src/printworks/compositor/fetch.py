"""Download source artwork for compositing."""

from __future__ import annotations

import logging

import httpx

from printworks.core.exceptions import SourceFetchError

logger = logging.getLogger(__name__)


async def fetch_source_image(
    url: str,
    *,
    timeout: float = 30.0,
    client: httpx.AsyncClient | None = None,
) -> bytes:
    """Fetch image bytes from ``url``.

    Args:
        url: Location of the generated HD image (usually a signed URL)
        timeout: Overall bound on the request
        client: Shared client to reuse; a short-lived one is created otherwise

    Returns:
        The response body

    Raises:
        SourceFetchError: On a non-2xx status, a transport error, a timeout,
            or an empty body
    """
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as owned:
                response = await owned.get(url)
        else:
            response = await client.get(url, timeout=timeout)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise SourceFetchError(url, f"HTTP {e.response.status_code}", e.response.status_code) from e
    except httpx.TimeoutException as e:
        raise SourceFetchError(url, f"timed out after {timeout:.0f}s") from e
    except httpx.RequestError as e:
        raise SourceFetchError(url, f"network error: {e}") from e

    if not response.content:
        raise SourceFetchError(url, "empty response body", response.status_code)

    logger.debug(f"Fetched {len(response.content)} bytes from {url}")
    return response.content
