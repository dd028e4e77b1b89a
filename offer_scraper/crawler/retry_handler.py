"""
Retry handler for page fetches with configurable backoff strategies.

Navigation errors and selector timeouts are often transient, so fetches are
retried a bounded number of times before the page is given up on.
"""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Optional, Sequence, Tuple, Type

from ..exceptions import FetchTimeout, NavigationError

logger = logging.getLogger(__name__)


class RetryStrategy:
    """
    Enumeration of available retry delay strategies.
    """
    FIXED = "fixed"  # Fixed delay between retries
    LINEAR = "linear"  # Linear increase in delay
    EXPONENTIAL = "exponential"  # Exponential backoff
    FIBONACCI = "fibonacci"  # Fibonacci sequence for delay

    ALL = (FIXED, LINEAR, EXPONENTIAL, FIBONACCI)


DEFAULT_RETRY_EXCEPTIONS: Tuple[Type[BaseException], ...] = (NavigationError, FetchTimeout)


class RetryHandler:
    """
    Handler for retrying coroutines with configurable backoff strategies.

    The handler keeps no per-call state, so one instance can be shared by
    concurrent workers.
    """

    def __init__(
        self,
        max_retries: int = 2,
        retry_delay: float = 1.0,
        strategy: str = RetryStrategy.EXPONENTIAL,
        backoff_factor: float = 2.0,
        jitter: float = 0.1,
        retry_exceptions: Optional[Sequence[Type[BaseException]]] = None,
    ):
        """
        Initialize the retry handler with configurable settings.

        Args:
            max_retries: Maximum number of retry attempts.
            retry_delay: Base delay between retries in seconds.
            strategy: Backoff strategy to use (fixed, linear, exponential, fibonacci).
            backoff_factor: Multiplication factor for backoff calculation.
            jitter: Random jitter factor to add to retry delays (0-1).
            retry_exceptions: Exception types that should trigger a retry.
        """
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.strategy = strategy
        self.backoff_factor = backoff_factor
        self.jitter = jitter
        self.retry_exceptions = tuple(retry_exceptions or DEFAULT_RETRY_EXCEPTIONS)

    def _calculate_delay(self, attempt: int) -> float:
        """
        Calculate delay before next retry based on the selected strategy.

        Args:
            attempt: The current retry attempt number (0-indexed).

        Returns:
            Delay in seconds before next retry.
        """
        if self.strategy == RetryStrategy.FIXED:
            delay = self.retry_delay

        elif self.strategy == RetryStrategy.LINEAR:
            delay = self.retry_delay * (1 + attempt * self.backoff_factor)

        elif self.strategy == RetryStrategy.FIBONACCI:
            a, b = 1, 1
            for _ in range(attempt + 1):
                a, b = b, a + b
            delay = self.retry_delay * a

        else:
            delay = self.retry_delay * (self.backoff_factor ** attempt)

        if self.jitter > 0 and delay > 0:
            delay += random.uniform(0, self.jitter * delay)

        return delay

    async def execute(
        self,
        func: Callable[..., Awaitable[Any]],
        *args: Any,
        **kwargs: Any
    ) -> Any:
        """
        Await a coroutine function with retry logic.

        Args:
            func: The coroutine function to execute.
            *args: Positional arguments to pass to the function.
            **kwargs: Keyword arguments to pass to the function.

        Returns:
            The result of the function call.

        Raises:
            Exception: The last retryable exception once all retries are
                used up, or any non-retryable exception immediately.
        """
        attempt = 0
        while True:
            try:
                return await func(*args, **kwargs)
            except self.retry_exceptions as e:
                if attempt >= self.max_retries:
                    logger.warning(
                        f"Giving up after {attempt + 1} attempts: {str(e)}"
                    )
                    raise
                delay = self._calculate_delay(attempt)
                attempt += 1
                logger.info(
                    f"Retry {attempt}/{self.max_retries} in {delay:.2f} seconds after: {str(e)}"
                )
                await asyncio.sleep(delay)


def create_retry_handler(
    max_retries: int = 2,
    retry_delay: float = 1.0,
    strategy: str = RetryStrategy.EXPONENTIAL,
) -> RetryHandler:
    """
    Create the handler used for page fetches.

    Args:
        max_retries: Maximum number of retry attempts.
        retry_delay: Base delay between retries in seconds.
        strategy: Backoff strategy name, as configured.

    Raises:
        ValueError: If the strategy is unknown.
    """
    if strategy not in RetryStrategy.ALL:
        raise ValueError(
            f"Unknown retry strategy: {strategy} (expected one of {', '.join(RetryStrategy.ALL)})"
        )
    return RetryHandler(
        max_retries=max_retries,
        retry_delay=retry_delay,
        strategy=strategy,
        backoff_factor=2.0,
        jitter=0.1,
    )
