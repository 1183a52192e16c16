"""
Tests for the DownloadOrchestrator control methods: cancel and progress.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from gitsubdir.core.orchestrator import DownloadOrchestrator
from gitsubdir.models import (
    DownloadConfig, DownloadRequest, DownloadStatus, GitHubTreeItem, RepoRef
)
from gitsubdir.services import DownloadService


@pytest.fixture
def orchestrator():
    github_service = MagicMock()
    github_service.resolve_ref = AsyncMock(side_effect=lambda ref: ref)
    github_service.get_repository_tree = AsyncMock(return_value=[
        GitHubTreeItem(path=f"f{i}.txt", type="blob", mode="100644", size=4)
        for i in range(4)
    ])
    github_service.get_file_content = AsyncMock(return_value=b"data")
    return DownloadOrchestrator(github_service, DownloadService(), max_concurrent_downloads=1)


def test_controls_without_active_download(orchestrator):
    with patch("gitsubdir.core.orchestrator.logger") as mock_logger:
        assert orchestrator.cancel() is None
        mock_logger.warning.assert_called_with("No active download to cancel")
    assert orchestrator.get_current_progress() is None


@pytest.mark.asyncio
async def test_cancel_stops_in_flight_downloads_and_keeps_written_files(orchestrator, tmp_path):
    first_written = asyncio.Event()
    release = asyncio.Event()

    async def content(url):
        if url.endswith("f1.txt"):
            first_written.set()
            await release.wait()
        return b"data"

    orchestrator.github_service.get_file_content.side_effect = content

    request = DownloadRequest(
        repo_ref=RepoRef("owner", "repo", "main"),
        destination=tmp_path,
        config=DownloadConfig()
    )
    task = asyncio.create_task(orchestrator.execute_download(request))
    await first_written.wait()

    progress = orchestrator.get_current_progress()
    assert progress.total_files == 4
    assert progress.downloaded_files == 1

    with patch("gitsubdir.core.orchestrator.logger") as mock_logger:
        cancelled = orchestrator.cancel()
        mock_logger.info.assert_any_call("Download cancelled by user")
    assert cancelled.status == DownloadStatus.CANCELLED

    result = await task
    assert result.status == DownloadStatus.CANCELLED
    assert (tmp_path / "f0.txt").read_bytes() == b"data"
    assert not (tmp_path / "f1.txt").exists()
    assert not (tmp_path / "f3.txt").exists()
    assert orchestrator._current_result is None


@pytest.mark.asyncio
async def test_cancel_interrupts_tree_listing(orchestrator, tmp_path):
    listing_started = asyncio.Event()
    listing_cancelled = asyncio.Event()

    async def blocked_tree(repo_ref):
        listing_started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            listing_cancelled.set()
            raise

    orchestrator.github_service.get_repository_tree.side_effect = blocked_tree
    destination = tmp_path / "dest"

    request = DownloadRequest(
        repo_ref=RepoRef("owner", "repo", "main"),
        destination=destination,
        config=DownloadConfig()
    )
    task = asyncio.create_task(orchestrator.execute_download(request))
    await listing_started.wait()

    orchestrator.cancel()
    result = await asyncio.wait_for(task, timeout=1)

    assert listing_cancelled.is_set()
    assert result.status == DownloadStatus.CANCELLED
    assert not destination.exists()
    orchestrator.github_service.get_file_content.assert_not_called()
    assert orchestrator._current_result is None
