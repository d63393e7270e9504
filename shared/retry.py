"""
Bounded retry for cache reads.

Reads are retried only for failures ``retry_if`` accepts (network errors,
timeouts, 5xx); anything else surfaces on the first attempt.
"""

import asyncio
import functools
import random
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

from shared.logging import get_logger


class RetryConfig:
    """Attempt budget and exponential backoff for one read."""

    def __init__(self,
                 max_attempts: int = 2,
                 base_delay: float = 1.0,
                 max_delay: float = 30.0,
                 exponential_base: float = 2.0,
                 jitter: bool = True,
                 retry_if: Optional[Callable[[BaseException], bool]] = None):
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.retry_if = retry_if

    def has_attempts_left(self, attempt: int) -> bool:
        return attempt < self.max_attempts

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed ``attempt`` (1-based)."""
        delay = min(self.base_delay * self.exponential_base ** (attempt - 1), self.max_delay)
        if self.jitter and delay:
            delay += random.uniform(-0.1, 0.1) * delay
        return max(0.0, delay)


class RetryError(Exception):
    """Every attempt failed with a retryable error."""

    def __init__(self, message: str, last_exception: BaseException, attempts: int):
        super().__init__(message)
        self.last_exception = last_exception
        self.attempts = attempts


def retry_on_exception(exceptions: Tuple[Type[BaseException], ...] = (Exception,),
                       config: Optional[RetryConfig] = None) -> Callable:
    """Retry an async callable per ``config``.

    A failure ``retry_if`` rejects is re-raised as is. Running out of attempts
    on retryable failures raises ``RetryError`` chained to the last one.
    """
    config = config or RetryConfig()

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        name = getattr(func, "__name__", "call")
        logger = get_logger(f"dashboard.retry.{name}")

        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            attempt = 0
            while True:
                attempt += 1
                try:
                    result = await func(*args, **kwargs)
                except exceptions as exc:
                    if config.retry_if is not None and not config.retry_if(exc):
                        raise
                    if not config.has_attempts_left(attempt):
                        logger.warning("Retries exhausted", attempts=attempt, error=str(exc))
                        raise RetryError(f"{name} failed after {attempt} attempts",
                                         last_exception=exc, attempts=attempt) from exc
                    delay = config.delay_for(attempt)
                    logger.info("Retrying read", attempt=attempt, delay=round(delay, 3), error=str(exc))
                    await asyncio.sleep(delay)
                    continue
                if attempt > 1:
                    logger.info("Retry succeeded", attempt=attempt)
                return result

        return wrapper

    return decorator
