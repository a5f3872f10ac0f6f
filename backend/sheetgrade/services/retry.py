"""
Caller-side retry for whole re-evaluation requests.

The pipeline itself never backs off; a batch caller wraps each request in
retry_with_backoff so transient upstream failures get a few more chances.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from ..config.settings import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_ERROR_TERMS = ("quota", "rate", "overloaded", "resource_exhausted", "temporarily", "timeout")


def is_retryable(message: Optional[str]) -> bool:
    text = (message or "").lower()
    return any(term in text for term in RETRYABLE_ERROR_TERMS)


class RetryPolicy:
    """Bounded exponential backoff: base, 2*base, 4*base ... capped at max_delay."""

    def __init__(
        self,
        max_attempts: Optional[int] = None,
        base_delay: Optional[float] = None,
        max_delay: Optional[float] = None
    ):
        self.max_attempts = max(1, max_attempts if max_attempts is not None else settings.RETRY_MAX_ATTEMPTS)
        self.base_delay = settings.RETRY_BASE_DELAY if base_delay is None else base_delay
        self.max_delay = settings.RETRY_MAX_DELAY if max_delay is None else max_delay

    def backoff(self, attempt: int) -> float:
        """Delay in seconds after the given (1-based) failed attempt."""
        return min(self.max_delay, self.base_delay * (2 ** (attempt - 1)))

    def __repr__(self):
        return (
            f"RetryPolicy(max_attempts={self.max_attempts}, "
            f"base_delay={self.base_delay}, max_delay={self.max_delay})"
        )


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
) -> T:
    """
    Await func(), re-invoking it while the failure looks transient.

    Non-retryable errors and the final attempt's error propagate unchanged.
    """
    policy = policy or RetryPolicy()

    for attempt in range(1, policy.max_attempts + 1):
        try:
            result = await func()
            if attempt > 1:
                logger.info(f"Retry attempt {attempt} succeeded after {attempt - 1} failures")
            return result
        except Exception as e:
            if attempt >= policy.max_attempts or not is_retryable(str(e)):
                if attempt > 1:
                    logger.error(f"All {attempt} attempts failed. Last error: {e}")
                raise

            wait_time = policy.backoff(attempt)
            logger.warning(
                f"Transient error: {str(e)[:100]}. Attempt {attempt}/{policy.max_attempts}. "
                f"Retrying in {wait_time}s..."
            )
            await sleep(wait_time)

    raise RuntimeError("retry_with_backoff exited without a result")
