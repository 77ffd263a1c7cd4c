"""
Async retry utilities with exponential backoff.

Wraps every gateway request so that throttled or briefly unavailable
catalog/HAL endpoints are retried before an expansion is reported as failed.
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional

import httpx

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = (429, 503, 504)


def _backoff_delay(attempt: int, base_delay: float, max_delay: float, jitter: bool) -> float:
    delay = min(base_delay * (2.0 ** attempt), max_delay)
    if jitter:
        delay = delay * (0.5 + random.random())
    return delay


def _retry_after(response: httpx.Response) -> Optional[float]:
    value = response.headers.get("Retry-After")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


async def retry_with_backoff(
    func: Callable[[], Awaitable[httpx.Response]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    jitter: bool = True,
    retry_on: tuple = RETRYABLE_STATUS,
) -> httpx.Response:
    """
    Execute an async request factory with exponential backoff retry.

    Args:
        func: Zero-argument coroutine factory returning an httpx.Response
        max_retries: Maximum number of retry attempts
        base_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds
        jitter: Randomize delays so parallel expansions don't retry in lockstep
        retry_on: HTTP status codes to retry on

    Returns:
        The first response whose status is not in ``retry_on``

    Raises:
        httpx.HTTPError: If the last attempt still fails
    """
    for attempt in range(max_retries + 1):
        last_attempt = attempt >= max_retries
        try:
            response = await func()
        except httpx.TransportError as e:
            if last_attempt:
                raise
            delay = _backoff_delay(attempt, base_delay, max_delay, jitter)
            logger.warning(
                f"Request error: {e}, retrying in {delay:.1f}s "
                f"(attempt {attempt + 1}/{max_retries})"
            )
            await asyncio.sleep(delay)
            continue

        if response.status_code not in retry_on:
            return response
        if last_attempt:
            response.raise_for_status()
            return response

        delay = _backoff_delay(attempt, base_delay, max_delay, jitter)
        server_delay = _retry_after(response)
        if server_delay is not None:
            delay = max(delay, server_delay)
        logger.warning(
            f"Request failed with {response.status_code}, "
            f"retrying in {delay:.1f}s (attempt {attempt + 1}/{max_retries})"
        )
        await asyncio.sleep(delay)

    raise RuntimeError("Unexpected retry loop exit")
