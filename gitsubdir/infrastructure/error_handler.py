"""
Error types for git-subdir and the mapping from HTTP failures onto them.

Errors fall in three groups:

* ``InvalidUrlError`` is raised while parsing, before any network call.
* ``FetchError`` subclasses (``NotFoundError``, ``RateLimitError``,
  ``NetworkError``) abort a whole run.
* ``WriteError`` subclasses (``PathEscapeError``, ``AlreadyExistsError``,
  ``FileWriteError``) are reported per file.
"""

import functools
from datetime import datetime
from typing import Any, Callable, Optional

import httpx


####
##      EXCEPTION CLASSES
#####
class GitSubdirError(Exception):
    """Base exception for all git-subdir errors."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.message = message
        self.original_error = original_error
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message} (Original: {self.original_error})"
        return self.message


class InvalidUrlError(GitSubdirError):
    """Raised when a URL is not a supported GitHub repository URL."""


class FetchError(GitSubdirError):
    """Base class for errors talking to the remote host."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message, original_error)
        self.url = url


class NotFoundError(FetchError):
    """Raised when the owner, repository, ref or path does not exist."""


class RateLimitError(FetchError):
    """Raised when the host throttles requests."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        retry_after: Optional[float] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message, url, original_error)
        self.retry_after = retry_after


class NetworkError(FetchError):
    """Raised on transport failures, timeouts and unexpected HTTP statuses."""


class WriteError(GitSubdirError):
    """Base class for per-file write errors."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message, original_error)
        self.path = path


class PathEscapeError(WriteError):
    """Raised when an entry would be written outside the destination root."""


class AlreadyExistsError(WriteError):
    """Raised when a target file exists and overwriting is not forced."""


class FileWriteError(WriteError):
    """Raised when the filesystem rejects a write."""


####
##      HTTP RESPONSE MAPPING
#####
def _request_url(source: Any) -> Optional[str]:
    """URL of the request behind a response or httpx exception, if known."""

    try:
        return str(source.request.url)
    except RuntimeError:
        return None


def _parse_retry_after(response: httpx.Response) -> Optional[float]:
    """Seconds to wait according to ``retry-after`` or ``x-ratelimit-reset``."""

    retry_after = response.headers.get("retry-after")
    if retry_after is not None:
        try:
            return max(float(retry_after), 0.0)
        except ValueError:
            return None

    reset = response.headers.get("x-ratelimit-reset")
    if reset is not None:
        try:
            return max(float(reset) - datetime.now().timestamp(), 0.0)
        except ValueError:
            return None

    return None


def is_rate_limited(response: httpx.Response) -> bool:
    """Check whether a response is the host throttling us."""

    if response.status_code == 429:
        return True
    if response.status_code == 403:
        return (
            response.headers.get("x-ratelimit-remaining") == "0"
            or "retry-after" in response.headers
        )
    return False


def raise_for_response(response: httpx.Response) -> None:
    """
    Raise the matching ``FetchError`` for an unsuccessful response.

    Args:
        response: Response to inspect

    Raises:
        RateLimitError: Host throttling (403/429 with rate-limit headers)
        NotFoundError: 404, or 422 for a ref the host cannot resolve
        NetworkError: Any other non-success status
    """
    if response.is_success:
        return

    url = _request_url(response)

    if is_rate_limited(response):
        retry_after = _parse_retry_after(response)
        message = f"Rate limit exceeded for {url}"
        if retry_after is not None:
            message += f"; retry in {retry_after:.0f}s"
        raise RateLimitError(message, url=url, retry_after=retry_after)

    if response.status_code in (404, 422):
        raise NotFoundError(f"Not found: {url}", url=url)

    raise NetworkError(
        f"Unexpected HTTP status {response.status_code} for {url}", url=url
    )


####
##      DECORATORS
#####
def handle_api_error(func: Callable) -> Callable:
    """
    Decorator mapping ``httpx`` failures raised by a coroutine onto the
    git-subdir error hierarchy.

    ``GitSubdirError`` subclasses pass through untouched.
    """

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await func(*args, **kwargs)

        except GitSubdirError:
            raise

        except httpx.HTTPStatusError as e:
            try:
                raise_for_response(e.response)
            except FetchError as mapped:
                raise mapped from e
            raise NetworkError(str(e), url=_request_url(e), original_error=e) from e

        except httpx.TimeoutException as e:
            url = _request_url(e)
            raise NetworkError(f"Timed out requesting {url}", url=url, original_error=e) from e

        except httpx.RequestError as e:
            url = _request_url(e)
            raise NetworkError(f"Request to {url} failed", url=url, original_error=e) from e

    return wrapper


__all__ = [
    "GitSubdirError",
    "InvalidUrlError",
    "FetchError",
    "NotFoundError",
    "RateLimitError",
    "NetworkError",
    "WriteError",
    "PathEscapeError",
    "AlreadyExistsError",
    "FileWriteError",
    "is_rate_limited",
    "raise_for_response",
    "handle_api_error",
]
