"""HTTP utilities providing retry/backoff semantics."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Awaitable, Callable, Optional

import httpx

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = frozenset({404, 429, 500, 501, 502, 503, 504})


class RetryConfig:
    def __init__(
        self,
        *,
        attempts: int = 3,
        base_delay_seconds: float = 0.35,
        max_delay_seconds: float = 2.0,
        retry_statuses: frozenset[int] = RETRYABLE_STATUSES,
        retry_exceptions: tuple[type[BaseException], ...] = (Exception,),
    ) -> None:
        self.attempts = attempts
        self.base_delay_seconds = base_delay_seconds
        self.max_delay_seconds = max_delay_seconds
        self.retry_statuses = retry_statuses
        self.retry_exceptions = retry_exceptions

    def should_retry(self, response: httpx.Response) -> bool:
        return response.status_code in self.retry_statuses


def _retry_after_seconds(value: str, now: datetime) -> Optional[float]:
    """Parse a Retry-After header as delta-seconds, then as an HTTP date."""
    try:
        return float(int(value.strip()))
    except ValueError:
        pass
    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=timezone.utc)
    return (retry_at - now).total_seconds()


def compute_retry_delay(
    attempt: int,
    response: httpx.Response | None = None,
    *,
    retry_config: RetryConfig | None = None,
    now: datetime | None = None,
) -> float:
    """Seconds to wait after ``attempt`` (1-indexed) failed."""
    config = retry_config or RetryConfig()

    if response is not None and response.status_code == 429:
        header = response.headers.get("Retry-After")
        if header:
            delay = _retry_after_seconds(header, now or datetime.now(timezone.utc))
            if delay is not None and delay > 0:
                return min(delay, config.max_delay_seconds)

    delay = config.base_delay_seconds * (2 ** (attempt - 1))
    return min(delay, config.max_delay_seconds)


async def request_with_retry(
    make_request: Callable[[], Awaitable[httpx.Response]],
    *,
    retry_config: RetryConfig | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> httpx.Response:
    """Run ``make_request`` until it succeeds or the attempt budget is spent.

    Any exception raised by ``make_request`` is retried like a transient
    status. Returns the last response when every attempt produced a
    retryable status. An exception raised by the final attempt propagates.
    """
    config = retry_config or RetryConfig()
    last_response: httpx.Response | None = None

    for attempt in range(1, config.attempts + 1):
        final_attempt = attempt == config.attempts
        try:
            response = await make_request()
        except config.retry_exceptions as exc:
            if final_attempt:
                raise
            delay = compute_retry_delay(attempt, retry_config=config)
            logger.warning(
                "Request error (%s). Retrying in %dms (attempt %d/%d)",
                exc.__class__.__name__,
                delay * 1000,
                attempt,
                config.attempts,
            )
            await sleep(delay)
            continue

        last_response = response
        if response.is_success or not config.should_retry(response) or final_attempt:
            return response

        delay = compute_retry_delay(attempt, response, retry_config=config)
        logger.warning(
            "Request failed with %s. Retrying in %dms (attempt %d/%d)",
            response.status_code,
            delay * 1000,
            attempt,
            config.attempts,
        )
        await sleep(delay)

    if last_response is not None:
        return last_response
    raise RuntimeError("Request failed without raising an exception")


__all__ = ["RETRYABLE_STATUSES", "RetryConfig", "compute_retry_delay", "request_with_retry"]
