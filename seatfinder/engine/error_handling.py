"""Error types and the retry policy used by row sources.

The matching engine never retries anything; retries only wrap the I/O done
by the collaborators that fetch raw rows.
"""

import asyncio
import random
from typing import Any, Callable, Optional, Tuple, Type

from loguru import logger


class SeatFinderError(Exception):
    """Base class for SeatFinder errors."""


class InvalidConfiguration(SeatFinderError, ValueError):
    """Matcher options outside their allowed range."""


class FetchError(SeatFinderError):
    """Raised when a row source cannot deliver a complete row set."""

    def __init__(self, message: str, source: str = "unknown", cause: Optional[BaseException] = None):
        super().__init__(message)
        self.source = source
        self.cause = cause


class RetryPolicy:
    """Exponential backoff with optional jitter for flaky row fetches.

    ``max_retries`` counts attempts after the first call.
    """

    def __init__(self,
                 max_retries: int = 2,
                 base_delay: float = 0.5,
                 max_delay: float = 5.0,
                 exponential_base: float = 2.0,
                 jitter: bool = True):
        if max_retries < 0:
            raise InvalidConfiguration("max_retries must be >= 0")
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter

    def calculate_delay(self, attempt: int) -> float:
        """Seconds to wait before retry number ``attempt`` (0-based)."""
        delay = self.base_delay * (self.exponential_base ** attempt)
        delay = min(delay, self.max_delay)

        if self.jitter:
            delay = delay * (0.5 + random.random())

        return delay

    async def execute(self,
                      func: Callable,
                      *args,
                      retry_on: Tuple[Type[BaseException], ...] = (Exception,),
                      **kwargs) -> Any:
        """
        Execute function with retry policy.

        Only exceptions listed in ``retry_on`` are retried; anything else
        propagates immediately.

        Raises:
            The last exception once all retries are used up.
        """
        last_exception: Optional[BaseException] = None

        for attempt in range(self.max_retries + 1):
            try:
                if asyncio.iscoroutinefunction(func):
                    return await func(*args, **kwargs)
                return func(*args, **kwargs)

            except retry_on as e:
                last_exception = e

                if attempt < self.max_retries:
                    delay = self.calculate_delay(attempt)
                    logger.warning(f"Retry {attempt + 1}/{self.max_retries} after {delay:.2f}s: {e}")
                    await asyncio.sleep(delay)
                else:
                    logger.error(f"All retries failed: {e}")

        raise last_exception
