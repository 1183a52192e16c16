"""
Retry with exponential backoff for transient network failures.
"""

import asyncio
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

from .error_handler import NetworkError
from .logger import logger


@dataclass
class RetryConfig:
    """Retry policy: attempts, backoff and which errors are transient."""

    max_retries: int = 2
    initial_delay: float = 1.0
    max_delay: float = 30.0
    backoff_factor: float = 2.0
    retryable_errors: Tuple[Type[Exception], ...] = field(
        default_factory=lambda: (NetworkError,)
    )

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1


class RetryManager:
    """
    Runs coroutines again after transient failures.

    Only ``NetworkError`` is retried by default; rate limits and missing
    resources fail fast.
    """

    def __init__(
        self,
        max_retries: int = 2,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        exponential_base: float = 2.0,
        jitter: bool = True,
        retryable_errors: Tuple[Type[Exception], ...] = (NetworkError,)
    ):
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.retryable_errors = retryable_errors

    @classmethod
    def from_config(cls, config: RetryConfig) -> "RetryManager":
        return cls(
            max_retries=config.max_retries,
            base_delay=config.initial_delay,
            max_delay=config.max_delay,
            exponential_base=config.backoff_factor,
            retryable_errors=config.retryable_errors
        )

    def _calculate_delay(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (0-based), +/-20% with jitter."""

        delay = min(self.base_delay * (self.exponential_base ** attempt), self.max_delay)
        if self.jitter:
            delay *= random.uniform(0.8, 1.2)
        return delay

    async def execute(
        self,
        func: Callable[..., Awaitable[Any]],
        *args: Any,
        exceptions: Optional[Tuple[Type[Exception], ...]] = None,
        max_retries: Optional[int] = None,
        **kwargs: Any
    ) -> Any:
        """
        Await ``func(*args, **kwargs)``, retrying on ``exceptions``.

        Args:
            func: Coroutine function to run
            exceptions: Exception types considered transient; defaults to
                ``retryable_errors``
            max_retries: Override for this call

        Returns:
            Whatever ``func`` returns

        Raises:
            The last exception once all attempts are used, or any
            non-retryable exception immediately.
        """
        retries = self.max_retries if max_retries is None else max_retries
        exceptions = self.retryable_errors if exceptions is None else exceptions
        attempts = retries + 1

        for attempt in range(attempts):
            try:
                return await func(*args, **kwargs)

            except exceptions as e:
                if attempt >= retries:
                    logger.error(f"All {attempts} attempts failed, giving up")
                    raise

                delay = self._calculate_delay(attempt)
                logger.warning(
                    f"Attempt {attempt + 1} failed: {e}. Retrying in {delay:.2f}s"
                )
                await asyncio.sleep(delay)


__all__ = [
    "RetryConfig",
    "RetryManager",
]
