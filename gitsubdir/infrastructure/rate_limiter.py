"""
Tracks GitHub rate-limit headers so an exhausted quota fails fast.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Mapping, Optional

from .error_handler import RateLimitError
from .logger import logger


@dataclass
class RateLimitInfo:
    """Last known rate-limit state reported by the host."""

    limit: Optional[int] = None
    remaining: Optional[int] = None
    used: Optional[int] = None
    reset_time: Optional[datetime] = None

    @property
    def is_exhausted(self) -> bool:
        return self.remaining is not None and self.remaining <= 0

    @property
    def reset_in_seconds(self) -> float:
        if self.reset_time is None:
            return 0.0
        return max((self.reset_time - datetime.now()).total_seconds(), 0.0)


def _int_header(headers: Mapping[str, str], name: str) -> Optional[int]:
    value = headers.get(name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


class RateLimiter:
    """
    Keeps the most recent ``x-ratelimit-*`` values.

    Requests are never delayed; once the host reports an exhausted quota,
    ``check()`` raises ``RateLimitError`` until the reset time passes.
    """

    def __init__(self):
        self.rate_limit_info = RateLimitInfo()
        self._lock = asyncio.Lock()

    async def update_rate_limit_info(self, headers: Mapping[str, str]) -> None:
        """Record rate-limit headers from a response."""

        async with self._lock:
            remaining = _int_header(headers, "x-ratelimit-remaining")
            if remaining is None:
                return

            info = RateLimitInfo(
                limit=_int_header(headers, "x-ratelimit-limit"),
                remaining=remaining,
                used=_int_header(headers, "x-ratelimit-used")
            )
            reset = _int_header(headers, "x-ratelimit-reset")
            if reset is not None:
                info.reset_time = datetime.fromtimestamp(reset)

            self.rate_limit_info = info
            logger.debug(f"Rate limit: {info.remaining}/{info.limit} remaining")

    def check(self, url: Optional[str] = None) -> None:
        """
        Raise before a request that the host is known to reject.

        Raises:
            RateLimitError: Quota exhausted and not yet reset
        """
        info = self.rate_limit_info
        if info.is_exhausted and info.reset_in_seconds > 0:
            raise RateLimitError(
                f"GitHub API rate limit exhausted; resets in {info.reset_in_seconds:.0f}s",
                url=url,
                retry_after=info.reset_in_seconds
            )


__all__ = [
    "RateLimitInfo",
    "RateLimiter",
]
