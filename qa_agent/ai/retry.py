"""Bounded exponential-backoff retry for rate-limited AI calls."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from qa_agent.ai.errors import classify_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 2  # 3 attempts in total
DEFAULT_INITIAL_DELAY = 5.0  # seconds before the first retry


async def with_rate_limit_retry(
    api_call: Callable[[], Awaitable[T]],
    max_retries: int = DEFAULT_MAX_RETRIES,
    initial_delay: float = DEFAULT_INITIAL_DELAY,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Await ``api_call``, retrying only errors the classifier marks retryable.

    The delay before retry n (1-based) is ``initial_delay * 2**(n-1)``.
    Non-retryable errors, and the last error once retries are exhausted, are
    re-raised unchanged.
    """
    attempt = 0
    while True:
        try:
            return await api_call()
        except Exception as e:
            classified = classify_error(e)
            if not classified.retryable or attempt >= max_retries:
                if classified.retryable:
                    logger.error("Rate limit persisted after %d attempts", attempt + 1)
                raise
            delay = initial_delay * (2 ** attempt)
            attempt += 1
            logger.warning(
                "Rate limit hit. Retrying in %.0fs... (attempt %d/%d)",
                delay, attempt, max_retries,
            )
            await sleep(delay)
