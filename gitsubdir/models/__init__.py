"""
Core data models API surface for git-subdir.

Re-exports model classes from the domain-specific modules so callers can
write ``from gitsubdir.models import X``.
"""

from .github import (
    RepoRef,
    GitHubTreeItem,
    TreeEntry,
)
from .download import (
    DownloadStatus,
    DownloadRequest,
    DownloadResult,
    ProgressInfo,
    DownloadReport,
)
from .config import DownloadConfig

__all__ = [
    # GitHub models
    "RepoRef",
    "GitHubTreeItem",
    "TreeEntry",
    # Download models
    "DownloadStatus",
    "DownloadRequest",
    "DownloadResult",
    "ProgressInfo",
    "DownloadReport",
    # Config models
    "DownloadConfig",
]
