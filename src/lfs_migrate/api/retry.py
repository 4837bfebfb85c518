"""Retry with exponential backoff for remote API calls."""

import time
from typing import Callable, Optional, Tuple, Type, TypeVar

from loguru import logger

from ..config.config import RetryConfig
from .exceptions import GitHubAPIError, GitHubNotFoundError

T = TypeVar('T')


class RetryPolicy:
    """Bounded retries with exponential backoff.

    Attempt ``k`` that fails is followed by a sleep of
    ``base_delay * 2 ** (k - 1)`` while attempts remain. Not-found errors are
    a definitive answer and are re-raised immediately.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        sleep: Optional[Callable[[float], None]] = None,
        retry_on: Tuple[Type[BaseException], ...] = (GitHubAPIError,),
    ):
        """Initialize retry policy.

        Args:
            max_attempts: Maximum number of attempts, at least 1
            base_delay: Delay in seconds after the first failed attempt
            sleep: Sleep function, replaceable in tests
            retry_on: Exception types that trigger a retry
        """
        if max_attempts <= 0:
            raise ValueError('max_attempts must be positive')

        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.retry_on = retry_on
        self._sleep = sleep or time.sleep
        self.logger = logger.bind(component='RetryPolicy')

    @classmethod
    def from_config(cls, config: RetryConfig, **kwargs) -> 'RetryPolicy':
        """Create a retry policy from configuration."""
        return cls(max_attempts=config.max_attempts, base_delay=config.delay, **kwargs)

    def delay_for(self, attempt: int) -> float:
        """Delay after the given failed attempt (1-based)."""
        return self.base_delay * (2 ** (attempt - 1))

    def call(self, operation: Callable[..., T], *args, **kwargs) -> T:
        """Call operation, retrying on failure.

        Args:
            operation: Callable to invoke
            *args: Positional arguments for the operation
            **kwargs: Keyword arguments for the operation

        Returns:
            The first successful result

        Raises:
            GitHubNotFoundError: Immediately, without retrying
            Exception: The last error once attempts are exhausted
        """
        attempt = 1
        while True:
            try:
                return operation(*args, **kwargs)
            except GitHubNotFoundError:
                raise
            except self.retry_on as e:
                if attempt >= self.max_attempts:
                    raise

                wait_time = self.delay_for(attempt)
                self.logger.warning(
                    f'Attempt {attempt} failed, retrying in {wait_time:.2f}s: {e}'
                )
                self._sleep(wait_time)
                attempt += 1
