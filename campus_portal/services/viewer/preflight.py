"""HEAD preflight against a resolved (usually proxied) URL."""

from __future__ import annotations

import logging

import httpx

from campus_portal.services.resources.exceptions import PreflightError, PreflightErrorKind

logger = logging.getLogger(__name__)


async def preflight(client: httpx.AsyncClient, url: str, timeout: float) -> int:
    """
    Check that ``url`` exists and is readable.

    Returns the status code on 2xx/3xx. Raises ``PreflightError`` with
    UNAUTHORIZED for 401/403, NOT_FOUND for 404 and NETWORK_ERROR for anything
    else, including timeouts.
    """
    try:
        response = await client.head(url, timeout=timeout, follow_redirects=True)
    except httpx.TimeoutException as e:
        raise PreflightError(f"Preflight timed out: {e}", PreflightErrorKind.NETWORK_ERROR) from e
    except httpx.HTTPError as e:
        raise PreflightError(f"Preflight request failed: {e}", PreflightErrorKind.NETWORK_ERROR) from e

    status = response.status_code
    logger.debug(f"Preflight HEAD {url} -> {status}")
    if status < 400:
        return status
    if status in (401, 403):
        raise PreflightError(f"Preflight unauthorized ({status})", PreflightErrorKind.UNAUTHORIZED, status)
    if status == 404:
        raise PreflightError('Preflight target not found', PreflightErrorKind.NOT_FOUND, status)
    raise PreflightError(f"Preflight failed ({status})", PreflightErrorKind.NETWORK_ERROR, status)
