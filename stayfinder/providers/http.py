"""
Thin aiohttp request helper shared by the provider adapters.

Translates aiohttp and decoding failures into AppError subclasses so the
retry policy can classify them.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import aiohttp

from stayfinder.errors import InvalidResponseError, RequestTimeoutError, TransportError


logger = logging.getLogger(__name__)

# Body prefix kept in error messages
ERROR_BODY_PREVIEW_CHARS = 300


async def request_json(
    session: aiohttp.ClientSession,
    method: str,
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, Any]] = None,
    json_body: Any = None,
    timeout_ms: Optional[int] = None
) -> Any:
    """
    Perform one HTTP request and decode the JSON response.

    No retries happen here.

    Args:
        session: Open aiohttp session
        method: HTTP method
        url: Target URL
        headers: Extra request headers
        params: Query parameters
        json_body: JSON request body
        timeout_ms: Total request timeout in milliseconds

    Returns:
        Decoded JSON body

    Raises:
        RequestTimeoutError: The request exceeded timeout_ms
        TransportError: Connection-level failure
        InvalidResponseError: Status >= 400 (status_code set) or a body that
            is not JSON
    """
    timeout = aiohttp.ClientTimeout(total=timeout_ms / 1000) if timeout_ms else None

    logger.debug(f"{method} {url} params={params}")

    try:
        async with session.request(
            method,
            url,
            headers=headers,
            params=params,
            json=json_body,
            timeout=timeout,
        ) as response:
            text = await response.text()
            status = response.status
    except asyncio.TimeoutError as e:
        raise RequestTimeoutError(f"Request to {url} timed out", timeout_ms=timeout_ms) from e
    except aiohttp.ClientError as e:
        raise TransportError(f"Request to {url} failed: {e}", cause=e) from e

    if status >= 400:
        raise InvalidResponseError(
            f"HTTP {status} from {url}: {text[:ERROR_BODY_PREVIEW_CHARS]}",
            status_code=status,
        )

    try:
        return json.loads(text)
    except ValueError as e:
        raise InvalidResponseError(f"Response from {url} is not valid JSON", status_code=status) from e
