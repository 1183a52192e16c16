"""
GitHub domain models for git-subdir.

This module contains the typed data classes describing a repository
location and the entries of a repository tree.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote


GITHUB_SITE = "https://github.com"
GITHUB_RAW_SITE = "https://raw.githubusercontent.com"

SYMLINK_MODE = "120000"


@dataclass(frozen=True)
class RepoRef:
    """Immutable location of a directory within a GitHub repository."""

    owner: str
    repo: str
    ref: Optional[str] = None  # None until resolved to the default branch
    subpath: str = ""

    def __post_init__(self) -> None:
        if not self.owner or not self.repo:
            raise ValueError("Repository owner and name are required")

        # Normalise "/src/" -> "src" without tripping the frozen guard
        object.__setattr__(self, "subpath", self.subpath.strip("/"))

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def basename(self) -> str:
        """Name of the requested directory, or the repo name for the root."""

        if self.subpath:
            return self.subpath.rsplit("/", 1)[-1]
        return self.repo

    @property
    def html_url(self) -> str:
        url = f"{GITHUB_SITE}/{self.full_name}"
        if self.ref:
            url += f"/tree/{self.ref}"
            if self.subpath:
                url += f"/{self.subpath}"
        return url

    def with_ref(self, ref: str, subpath: Optional[str] = None) -> RepoRef:
        """Return a copy pointing at ``ref`` (and optionally a new subpath)."""

        return RepoRef(
            owner=self.owner,
            repo=self.repo,
            ref=ref,
            subpath=self.subpath if subpath is None else subpath
        )

    def raw_url(self, path: str) -> str:
        """Raw-content URL of a file at ``path`` from the repository root."""

        if not self.ref:
            raise ValueError(f"Reference of {self.full_name} is not resolved")
        return (
            f"{GITHUB_RAW_SITE}/{quote(self.owner)}/{quote(self.repo)}/"
            f"{quote(self.ref)}/{quote(path)}"
        )

    def __str__(self) -> str:
        return self.html_url


@dataclass(frozen=True)
class GitHubTreeItem:
    """One item of a git tree as listed by the GitHub API."""

    path: str
    type: str  # 'blob', 'tree', 'commit'
    mode: str = ""
    sha: Optional[str] = None
    size: int = 0

    @property
    def is_file(self) -> bool:
        return self.type == "blob" and self.mode != SYMLINK_MODE

    @property
    def is_directory(self) -> bool:
        return self.type == "tree"

    @property
    def is_symlink(self) -> bool:
        return self.type == "blob" and self.mode == SYMLINK_MODE

    @property
    def is_submodule(self) -> bool:
        return self.type == "commit"


@dataclass
class TreeEntry:
    """A file (or directory) to reproduce under the destination root."""

    relative_path: str
    is_directory: bool
    download_url: str
    sha: Optional[str] = None
    size: int = 0
    repo_path: Optional[str] = None


__all__ = [
    "GITHUB_SITE",
    "GITHUB_RAW_SITE",
    "RepoRef",
    "GitHubTreeItem",
    "TreeEntry",
]
