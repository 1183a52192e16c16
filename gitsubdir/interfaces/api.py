"""
Python API for git-subdir.

Example::

    async with GitSubdirDownloader(DownloadConfig(force=True)) as downloader:
        report = await downloader.download(
            "https://github.com/keziah55/git-subdir/tree/main/src", Path("src")
        )
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..core.orchestrator import DownloadOrchestrator
from ..core.url_parser import parse_tree_url
from ..infrastructure.logger import logger
from ..infrastructure.rate_limiter import RateLimiter
from ..infrastructure.retry_manager import RetryManager
from ..models import (
    DownloadConfig, DownloadReport, DownloadRequest, ProgressInfo, RepoRef
)
from ..services import DownloadService, GitHubAPIService


class GitSubdirDownloader:
    """
    High-level entry point: parse a tree URL and download what it names.
    """

    def __init__(
        self,
        config: Optional[DownloadConfig] = None,
        verbose: bool = False
    ):
        self.config = config or DownloadConfig()
        self.verbose = verbose
        logger.setLevel(logging.DEBUG if verbose else logging.INFO)

        self.rate_limiter = RateLimiter()
        self.retry_manager = RetryManager.from_config(self.config.retry_config())
        self.github_service = GitHubAPIService(
            self.rate_limiter,
            self.retry_manager,
            timeout=self.config.timeout
        )
        self.download_service = DownloadService()
        self.orchestrator = DownloadOrchestrator(
            self.github_service,
            self.download_service,
            max_concurrent_downloads=self.config.max_concurrent_downloads
        )
        logger.debug(
            f"Up to {self.config.max_attempts} attempts per request, "
            f"{self.config.max_concurrent_downloads} concurrent downloads"
        )

    def set_verbose(self, verbose: bool) -> None:
        """Switch DEBUG logging on or off."""

        self.verbose = verbose
        logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    async def close(self) -> None:
        await self.github_service.close()

    async def __aenter__(self) -> "GitSubdirDownloader":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    @staticmethod
    def parse_url(url: str) -> RepoRef:
        """Parse ``url`` without touching the network."""

        return parse_tree_url(url)

    async def resolve(self, url: str) -> RepoRef:
        """Parse ``url`` and settle its ref against GitHub."""

        return await self.github_service.resolve_ref(parse_tree_url(url))

    async def download(
        self,
        url: Union[str, RepoRef],
        destination: Optional[Path] = None
    ) -> DownloadReport:
        """
        Download the directory named by ``url``.

        Args:
            url: GitHub tree URL, or an already parsed reference
            destination: Output directory; defaults to a directory named
                after the requested subdirectory in the current directory

        Returns:
            DownloadReport of the run

        Raises:
            InvalidUrlError: ``url`` is not a GitHub tree URL
        """
        repo_ref = url if isinstance(url, RepoRef) else parse_tree_url(url)

        request = DownloadRequest(
            repo_ref=repo_ref,
            destination=destination,
            config=self.config
        )

        logger.debug(f"Downloading {repo_ref} to {request.destination or '.'}")
        return await self.orchestrator.execute_download(request)

    def cancel_current_download(self) -> Optional[DownloadReport]:
        return self.orchestrator.cancel()

    def get_download_progress(self) -> Optional[ProgressInfo]:
        return self.orchestrator.get_current_progress()

    async def get_rate_limit_info(self) -> Dict[str, Any]:
        return await self.github_service.get_rate_limit_info()


__all__ = [
    "GitSubdirDownloader",
]
