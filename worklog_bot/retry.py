"""
Bounded retry with exponential backoff.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, Optional, TypeVar

from .logging_utils import get_logger


T = TypeVar('T')


@dataclass
class RetryPolicy:
    """
    Retries a fallible operation a bounded number of times.

    The delay before retry n (n starting at 1) is
    base_delay * multiplier ** (n - 1), so the defaults wait 1s and then 2s
    between three attempts.

    Attributes:
        max_attempts: Total number of attempts, including the first
        base_delay: Delay before the first retry (seconds)
        multiplier: Factor applied to the delay after every retry
        sleep: Function used to wait (replaceable in tests)
    """
    max_attempts: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got: {self.max_attempts}")
        if self.base_delay < 0:
            raise ValueError(f"base_delay cannot be negative, got: {self.base_delay}")
        if self.multiplier < 1:
            raise ValueError(f"multiplier must be at least 1, got: {self.multiplier}")

    def delay_for(self, retry_number: int) -> float:
        """Delay in seconds before the given retry (1-based)."""
        return self.base_delay * self.multiplier ** (retry_number - 1)

    def run(
        self,
        operation: Callable[[], T],
        on_retry: Optional[Callable[[int, Exception], None]] = None,
    ) -> T:
        """
        Run an operation until it succeeds or attempts are exhausted.

        Args:
            operation: Callable taking no arguments
            on_retry: Called with (failed attempt number, error) before each wait

        Returns:
            The operation's return value

        Raises:
            Exception: The error of the final attempt
        """
        logger = get_logger('retry')

        for attempt in range(1, self.max_attempts + 1):
            try:
                return operation()
            except Exception as e:
                if attempt == self.max_attempts:
                    raise

                delay = self.delay_for(attempt)
                logger.debug(
                    f"Attempt {attempt}/{self.max_attempts} failed: {e}; "
                    f"retrying in {delay:g}s"
                )
                if on_retry is not None:
                    on_retry(attempt, e)
                self.sleep(delay)

        # max_attempts >= 1, so the loop always returns or raises
        raise RuntimeError("unreachable")
