"""
Services used by the orchestrator: the GitHub client and the file writer.
"""

from .github_api import GitHubAPIService
from .download import DownloadService

__all__ = [
    "GitHubAPIService",
    "DownloadService",
]
