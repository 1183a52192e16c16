"""
Configuration models for git-subdir downloads.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..infrastructure.retry_manager import RetryConfig


@dataclass
class DownloadConfig:
    """
    Settings for one download run.

    Network, concurrency and file handling options in one place; the CLI
    and the Python API both build one of these.
    """

    # Network settings
    timeout: float = 30.0
    max_retries: int = 2
    retry_backoff: float = 1.0
    max_retry_delay: float = 30.0

    # Concurrency
    max_concurrent_downloads: int = 8

    # File handling
    force: bool = False
    ignore_subdirs: bool = False
    full_path: bool = False
    dry_run: bool = False

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        if self.retry_backoff < 0:
            raise ValueError("retry_backoff cannot be negative")
        if self.max_concurrent_downloads <= 0:
            raise ValueError("max_concurrent_downloads must be positive")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def retry_config(self) -> RetryConfig:
        return RetryConfig(
            max_retries=self.max_retries,
            initial_delay=self.retry_backoff,
            max_delay=self.max_retry_delay
        )


__all__ = [
    "DownloadConfig",
]
