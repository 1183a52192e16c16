"""
Orchestrator for managing the complete download process
with concurrency and error handling.
"""

import asyncio
from pathlib import Path
from typing import List, Optional

from ..models import (
    DownloadRequest, DownloadReport, DownloadResult, DownloadStatus,
    ProgressInfo, TreeEntry
)
from ..services import GitHubAPIService, DownloadService
from ..infrastructure.error_handler import FetchError, GitSubdirError, WriteError
from ..infrastructure.logger import logger
from .filter import TreeFilter


####
##      DOWNLOAD ORCHESTRATOR
#####
class DownloadOrchestrator:
    """
    Runs one download: resolve the ref, list the tree, then fetch and
    write every file through a bounded pool of concurrent tasks.
    """

    def __init__(
        self,
        github_service: GitHubAPIService,
        download_service: DownloadService,
        max_concurrent_downloads: int = 8
    ):
        self.github_service = github_service
        self.download_service = download_service
        self.max_concurrent_downloads = max_concurrent_downloads
        self._semaphore = asyncio.Semaphore(max_concurrent_downloads)

        # State tracking for control methods
        self._current_result: Optional[DownloadReport] = None
        self._active_tasks: List[asyncio.Task] = []
        self._run_task: Optional[asyncio.Task] = None
        self._cancellation_event = asyncio.Event()

    async def execute_download(self, request: DownloadRequest) -> DownloadReport:
        """
        Execute the complete download process asynchronously.

        Fetch errors abort the run and come back as a ``FAILED`` report
        with ``error`` set. Write errors are recorded per file.

        Args:
            request: Download request configuration

        Returns:
            DownloadReport with per-file results
        """
        config = request.config
        logger.debug(f"Starting download of {request.repo_ref} into {request.destination}")

        progress = ProgressInfo(
            total_files=0,
            downloaded_files=0,
            total_bytes=0,
            downloaded_bytes=0
        )
        result = DownloadReport(
            request=request,
            status=DownloadStatus.IN_PROGRESS,
            progress=progress,
            repo_ref=request.repo_ref
        )
        self._current_result = result
        self._run_task = asyncio.current_task()

        try:
            repo_ref = await self.github_service.resolve_ref(request.repo_ref)
            result.repo_ref = repo_ref
            if request.destination is None:
                request.destination = Path.cwd() / repo_ref.basename

            items = await self.github_service.get_repository_tree(repo_ref)

            tree_filter = TreeFilter(
                repo_ref,
                ignore_subdirs=config.ignore_subdirs,
                full_path=config.full_path
            )
            filter_result = tree_filter.filter_files(items)

            target_files = filter_result.included_files
            progress.total_files = len(target_files)
            progress.total_bytes = sum(entry.size for entry in target_files)
            result.matched_files = [entry.relative_path for entry in target_files]

            logger.debug(
                f"Kept {filter_result.filtered_files}/{filter_result.total_files} "
                f"tree items under '{repo_ref.subpath or '/'}'"
            )

            if config.dry_run:
                result.skipped_files = self._find_collisions(target_files, request)
                result.mark_completed()
                logger.info(
                    f"Dry-run: {len(target_files)} files matched, "
                    f"{len(result.skipped_files)} would collide"
                )
                return result

            await self.download_service.ensure_directory(request.destination)

            await self._download_files_concurrently(target_files, request, result)
            result.mark_completed()

            logger.debug(
                f"Download completed: {len(result.downloaded_files)} successful, "
                f"{result.failure_count} failed, {result.total_bytes} bytes "
                f"in {progress.elapsed_time:.2f}s"
            )
            return result

        except asyncio.CancelledError:
            result.mark_cancelled()
            logger.info("Download operation was cancelled")
            # Cancelled through cancel(): report instead of propagating
            if self._cancellation_event.is_set():
                return result
            raise

        except GitSubdirError as e:
            logger.error(f"Download failed: {e}")
            result.mark_failed(e)
            return result

        finally:
            # Clean up state regardless of success or failure
            self.reset_state()

    def _find_collisions(self, entries: List[TreeEntry], request: DownloadRequest) -> List[str]:
        """Entries a real run would refuse to overwrite or write at all."""

        collisions = []
        for entry in entries:
            try:
                target = self.download_service.resolve_target(
                    request.destination, entry.relative_path
                )
                self.download_service.check_target(target, request.force, entry.relative_path)
            except WriteError:
                collisions.append(entry.relative_path)
        return collisions

    async def _download_files_concurrently(
        self,
        entries: List[TreeEntry],
        request: DownloadRequest,
        report: DownloadReport
    ) -> None:
        """
        Download entries concurrently, bounded by the semaphore, filling
        ``report.results`` in entry order.

        The first fetch error cancels the remaining tasks and propagates;
        files already written stay on disk and keep their results.
        """
        tasks = [
            asyncio.create_task(
                self._download_single_file_with_semaphore(entry, request, report.progress)
            )
            for entry in entries
        ]
        self._active_tasks = tasks

        try:
            report.results = list(await asyncio.gather(*tasks))

        except BaseException:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            report.results = [
                task.result() for task in tasks
                if not task.cancelled() and task.exception() is None
            ]
            raise

        finally:
            self._active_tasks = []

    async def _download_single_file_with_semaphore(
        self,
        entry: TreeEntry,
        request: DownloadRequest,
        progress: ProgressInfo
    ) -> DownloadResult:
        async with self._semaphore:
            return await self._download_single_file(entry, request, progress)

    async def _download_single_file(
        self,
        entry: TreeEntry,
        request: DownloadRequest,
        progress: ProgressInfo
    ) -> DownloadResult:
        """
        Fetch and write one entry.

        Returns:
            DownloadResult, failed for write errors

        Raises:
            FetchError: Content could not be fetched; aborts the run
        """
        if self._cancellation_event.is_set():
            raise asyncio.CancelledError()

        progress.current_file = entry.relative_path
        try:
            target = self.download_service.resolve_target(
                request.destination, entry.relative_path
            )
            self.download_service.check_target(target, request.force, entry.relative_path)

            content = await self.github_service.get_file_content(entry.download_url)

            bytes_written = await self.download_service.save_content(
                content,
                target,
                force=request.force,
                relative_path=entry.relative_path
            )

        except WriteError as e:
            progress.fail_file()
            logger.debug(f"Failed to write {entry.relative_path}: {e}")
            return DownloadResult(path=entry.relative_path, error=e)

        except FetchError as e:
            logger.error(f"Error downloading {entry.relative_path}: {e}")
            raise

        progress.update_file_progress(bytes_written, entry.relative_path)
        progress.complete_file()

        logger.debug(f"Downloaded {entry.relative_path} ({bytes_written} bytes)")
        return DownloadResult(path=entry.relative_path, bytes_written=bytes_written)

    def cancel(self) -> Optional[DownloadReport]:
        """
        Cancel the current download operation.

        In-flight fetches are cancelled; files already written are kept.

        Returns:
            Current DownloadReport marked as cancelled, or None if no active download
        """
        if self._current_result is None:
            logger.warning("No active download to cancel")
            return None

        self._cancellation_event.set()

        for task in self._active_tasks:
            if not task.done():
                task.cancel()

        # Also interrupts ref resolution and tree listing
        if self._run_task is not None and not self._run_task.done():
            self._run_task.cancel()

        self._current_result.mark_cancelled()

        logger.info("Download cancelled by user")
        return self._current_result

    def get_current_progress(self) -> Optional[ProgressInfo]:
        """
        Get current progress information.

        Returns:
            Snapshot of the ProgressInfo if a download is in progress, None otherwise
        """
        if self._current_result is None:
            return None

        progress = self._current_result.progress
        return ProgressInfo(
            total_files=progress.total_files,
            downloaded_files=progress.downloaded_files,
            total_bytes=progress.total_bytes,
            downloaded_bytes=progress.downloaded_bytes,
            failed_files=progress.failed_files,
            current_file=progress.current_file,
            started_at=progress.started_at
        )

    def reset_state(self) -> None:
        """
        Reset the orchestrator state after a download completes.
        """
        self._current_result = None
        self._active_tasks = []
        self._run_task = None
        self._cancellation_event.clear()


__all__ = [
    "DownloadOrchestrator",
]
