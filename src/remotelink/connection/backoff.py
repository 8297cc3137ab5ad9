"""Retry strategies for connect attempts."""

import asyncio
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

from remotelink.logger import get_logger

logger = get_logger("connection.backoff")

Sleep = Callable[[float], Awaitable[None]]


class RetryStrategy(ABC):
    """Abstract base class for retry strategies."""

    @abstractmethod
    async def wait_before_retry(self, attempt: int) -> bool:
        """
        Wait after a failed attempt.

        Args:
            attempt: Number of the attempt that just failed (1-indexed)

        Returns:
            True if another attempt should be made, False if the budget is spent
        """

    @abstractmethod
    def should_retry(self, attempt: int) -> bool:
        """Check whether attempt number ``attempt`` may be made."""

    @property
    @abstractmethod
    def max_attempts(self) -> int:
        """Get maximum number of attempts."""


class ExponentialBackoffStrategy(RetryStrategy):
    """Retry strategy with exponential backoff.

    With the defaults the delays are 2s after attempt 1 and 4s after attempt 2;
    nothing is slept after the final attempt.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        initial_delay: float = 2.0,
        backoff_multiplier: float = 2.0,
        max_delay: Optional[float] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        """
        Initialize exponential backoff strategy.

        Args:
            max_attempts: Maximum number of attempts
            initial_delay: Delay after the first failed attempt (seconds)
            backoff_multiplier: Multiplier applied for each further attempt
            max_delay: Optional upper bound for a single delay (seconds)
            sleep: Coroutine used to wait, replaceable in tests
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._max_attempts = max_attempts
        self._initial_delay = initial_delay
        self._backoff_multiplier = backoff_multiplier
        self._max_delay = max_delay
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        """Get maximum number of attempts."""
        return self._max_attempts

    def calculate_delay(self, attempt: int) -> float:
        """
        Calculate the delay that follows a failed attempt.

        Args:
            attempt: Number of the attempt that failed (1-indexed)

        Returns:
            Delay in seconds
        """
        if attempt <= 0:
            return self._initial_delay

        delay = self._initial_delay * (self._backoff_multiplier ** (attempt - 1))
        if self._max_delay is not None:
            return min(delay, self._max_delay)
        return delay

    def should_retry(self, attempt: int) -> bool:
        """Check whether attempt number ``attempt`` may be made."""
        return attempt <= self._max_attempts

    async def wait_before_retry(self, attempt: int) -> bool:
        if not self.should_retry(attempt + 1):
            return False

        delay = self.calculate_delay(attempt)
        logger.info(f"Waiting {delay:.1f}s before retry (attempt {attempt + 1}/{self._max_attempts})")
        await self._sleep(delay)
        return True
