"""Exponential-backoff retry for rate-limited remote calls.

Only rate limiting is retried. Every other failure, and the last failure once
the attempt ceiling is reached, is raised to the caller unchanged.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from googleapiclient.errors import HttpError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class BackoffPolicy:
    max_attempts: int = 5
    initial_delay_seconds: float = 1.0
    max_delay_seconds: float = 15.0
    max_jitter_seconds: float = 0.25

    def base_delay(self, failed_attempts: int) -> float:
        """Delay before the next attempt, without jitter (1s, 2s, 4s, ... capped)."""

        if failed_attempts < 1:
            raise ValueError("failed_attempts must be >= 1")
        delay = self.initial_delay_seconds * (2 ** (failed_attempts - 1))
        return min(delay, self.max_delay_seconds)


DEFAULT_BACKOFF = BackoffPolicy()


def _status_of(err: BaseException) -> Any:
    if isinstance(err, HttpError):
        return getattr(err.resp, "status", None)
    for attr in ("status_code", "status", "code"):
        value = getattr(err, attr, None)
        if value is not None:
            return value
    response = getattr(err, "response", None) or getattr(err, "resp", None)
    return getattr(response, "status", None)


def is_rate_limited(err: BaseException) -> bool:
    """HTTP 429, or Google's RESOURCE_EXHAUSTED status in the error body."""

    status = _status_of(err)
    try:
        if int(status) == 429:
            return True
    except (TypeError, ValueError):
        if status == "RESOURCE_EXHAUSTED":
            return True

    if isinstance(err, HttpError):
        content = err.content or b""
        if isinstance(content, bytes):
            content = content.decode("utf-8", errors="replace")
        if "RESOURCE_EXHAUSTED" in content:
            return True
        return "RESOURCE_EXHAUSTED" in str(getattr(err, "error_details", "") or "")
    return False


async def call_with_retry(
    request_fn: Callable[[], Awaitable[T]],
    *,
    description: str = "remote call",
    policy: BackoffPolicy = DEFAULT_BACKOFF,
    is_retryable: Callable[[BaseException], bool] = is_rate_limited,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    jitter: Callable[[float, float], float] = random.uniform,
) -> T:
    attempt = 0
    while True:
        try:
            return await request_fn()
        except Exception as e:
            attempt += 1
            if not is_retryable(e) or attempt >= policy.max_attempts:
                raise
            delay = policy.base_delay(attempt) + jitter(0.0, policy.max_jitter_seconds)
            logger.warning(
                "%s rate limited (attempt %d/%d); retrying in %.2fs",
                description,
                attempt,
                policy.max_attempts,
                delay,
            )
            await sleep(delay)
