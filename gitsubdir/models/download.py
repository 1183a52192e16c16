"""
Download domain models for git-subdir.

This module contains data classes and enums representing a download
request, per-file results, progress and the report of a whole run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional

from .config import DownloadConfig
from .github import RepoRef
from ..infrastructure.error_handler import GitSubdirError, WriteError


class DownloadStatus(Enum):
    """Status enumeration for download operations."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class DownloadRequest:
    """What to download, where to, and how."""

    repo_ref: RepoRef
    destination: Optional[Path] = None  # None: named after the resolved subpath
    config: DownloadConfig = field(default_factory=DownloadConfig)

    def __post_init__(self) -> None:
        if self.destination is not None:
            self.destination = Path(self.destination)

    @property
    def force(self) -> bool:
        return self.config.force

    @property
    def dry_run(self) -> bool:
        return self.config.dry_run


@dataclass
class DownloadResult:
    """Outcome of writing a single entry."""

    path: str
    bytes_written: int = 0
    error: Optional[WriteError] = None

    @property
    def is_successful(self) -> bool:
        return self.error is None


@dataclass
class ProgressInfo:
    """Real-time progress tracking information."""

    total_files: int
    downloaded_files: int
    total_bytes: int
    downloaded_bytes: int
    failed_files: int = 0
    current_file: Optional[str] = None
    started_at: datetime = field(default_factory=datetime.now)

    @property
    def progress_percentage(self) -> float:
        if self.total_bytes == 0:
            return 0.0
        return (self.downloaded_bytes / self.total_bytes) * 100.0

    @property
    def elapsed_time(self) -> float:
        return (datetime.now() - self.started_at).total_seconds()

    def update_file_progress(self, bytes_downloaded: int, current_file: Optional[str] = None) -> None:
        self.downloaded_bytes += bytes_downloaded
        if current_file:
            self.current_file = current_file

    def complete_file(self) -> None:
        self.downloaded_files += 1
        self.current_file = None

    def fail_file(self) -> None:
        self.failed_files += 1
        self.current_file = None


@dataclass
class DownloadReport:
    """Result of a whole run: per-file results plus any fatal error."""

    request: DownloadRequest
    status: DownloadStatus
    progress: ProgressInfo

    repo_ref: Optional[RepoRef] = None  # resolved reference
    results: List[DownloadResult] = field(default_factory=list)
    matched_files: List[str] = field(default_factory=list)
    skipped_files: List[str] = field(default_factory=list)  # dry-run collisions
    error: Optional[GitSubdirError] = None

    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    @property
    def downloaded_files(self) -> List[str]:
        return [r.path for r in self.results if r.is_successful]

    @property
    def failed_files(self) -> List[DownloadResult]:
        return [r for r in self.results if not r.is_successful]

    @property
    def failure_count(self) -> int:
        return len(self.failed_files)

    @property
    def total_bytes(self) -> int:
        return sum(r.bytes_written for r in self.results)

    @property
    def is_successful(self) -> bool:
        return self.status == DownloadStatus.COMPLETED and self.failure_count == 0

    @property
    def duration(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def mark_completed(self) -> None:
        self.completed_at = datetime.now()
        self.status = DownloadStatus.COMPLETED if not self.failed_files else DownloadStatus.FAILED

    def mark_failed(self, error: GitSubdirError) -> None:
        self.completed_at = datetime.now()
        self.status = DownloadStatus.FAILED
        self.error = error

    def mark_cancelled(self) -> None:
        self.completed_at = datetime.now()
        self.status = DownloadStatus.CANCELLED


__all__ = [
    "DownloadStatus",
    "DownloadRequest",
    "DownloadResult",
    "ProgressInfo",
    "DownloadReport",
]
