from __future__ import annotations

"""Async HTTP GET-JSON helper with bounded timeout and limited retries.

A caller-owned ``httpx.AsyncClient`` may be injected (tests pass a stub);
otherwise a short-lived client is opened per call so nothing leaks.
"""
import asyncio
import logging
from typing import Any, Dict, Mapping, Optional

import httpx

logger = logging.getLogger(__name__)


class HttpError(Exception):
    pass


async def _get_once(
    client: Any, url: str, params: Optional[Mapping[str, str]], timeout: float
) -> Dict[str, Any]:
    resp = await client.get(url, params=params, timeout=timeout)
    if resp.status_code >= 400:
        raise HttpError(f"Unexpected response: {resp.status_code}")
    try:
        data = resp.json()
    except ValueError as e:
        raise HttpError(f"Invalid JSON body: {e}") from e
    if not isinstance(data, dict):
        raise HttpError("Invalid JSON body: expected an object")
    return data


async def get_json(
    url: str,
    *,
    params: Optional[Mapping[str, str]] = None,
    timeout: float = 10.0,
    retries: int = 1,
    backoff: float = 0.5,
    client: Any = None,
) -> Dict[str, Any]:
    last_err: Optional[Exception] = None
    for attempt in range(retries + 1):
        try:
            if client is not None:
                return await _get_once(client, url, params, timeout)
            async with httpx.AsyncClient() as owned:
                return await _get_once(owned, url, params, timeout)
        except (httpx.HTTPError, HttpError) as e:
            last_err = e
            logger.debug("GET %s failed (attempt %d): %s", url, attempt + 1, e)
            if attempt == retries:
                break
            await asyncio.sleep(backoff * (2**attempt))
    raise HttpError(f"Failed to fetch JSON from {url}: {last_err}")
