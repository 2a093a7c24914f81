"""Remote user data — the upstream of the userDataSelector computation.

A single GET returning a JSON record with a ``title`` string. Transport
errors and 5xx responses are retried with exponential backoff; anything
else fails at once. The Store turns whatever is raised here into an
AsyncFailure.
"""

from __future__ import annotations

import asyncio
import logging

import httpx

from recoilx.config import Settings, get_settings

logger = logging.getLogger(__name__)


class RemoteDataError(ValueError):
    """The response arrived but does not carry a usable title."""


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return False


def _backoff(settings: Settings, attempt: int) -> float:
    return min(settings.retry_base_delay * 2**attempt, settings.retry_max_delay)


async def fetch_user_title(
    client: httpx.AsyncClient | None = None,
    settings: Settings | None = None,
) -> str:
    """GET settings.user_data_url and return its ``title`` field."""
    settings = settings or get_settings()
    if client is None:
        async with httpx.AsyncClient(timeout=settings.request_timeout) as own_client:
            return await _fetch(own_client, settings)
    return await _fetch(client, settings)


async def _fetch(client: httpx.AsyncClient, settings: Settings) -> str:
    attempt = 0
    while True:
        try:
            response = await client.get(settings.user_data_url, timeout=settings.request_timeout)
            response.raise_for_status()
            break
        except httpx.HTTPError as exc:
            if attempt >= settings.max_retries or not _is_retryable(exc):
                raise
            delay = _backoff(settings, attempt)
            attempt += 1
            logger.warning(
                "user data request failed (%s), retry %d/%d in %.2fs",
                exc, attempt, settings.max_retries, delay,
            )
            await asyncio.sleep(delay)

    try:
        payload = response.json()
    except ValueError as exc:
        raise RemoteDataError("response is not JSON") from exc
    title = payload.get("title") if isinstance(payload, dict) else None
    if not isinstance(title, str):
        raise RemoteDataError("response has no string 'title' field")
    return title
