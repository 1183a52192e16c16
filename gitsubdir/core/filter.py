"""
Narrowing of a repository tree down to the files under one subdirectory.
"""

import posixpath
from dataclasses import dataclass, field
from typing import List, Optional

from ..infrastructure.error_handler import NotFoundError
from ..infrastructure.logger import logger
from ..models import GitHubTreeItem, RepoRef, TreeEntry


def normalize_relative_path(path: str) -> str:
    """
    Tidy a tree path: drop ``.`` segments and repeated separators.

    ``..`` segments and leading ``/`` are kept as they are so the writer can
    refuse them.
    """
    leading = "/" if path.startswith("/") else ""
    parts = [part for part in path.split("/") if part and part != "."]
    return leading + "/".join(parts)


@dataclass
class FilterResult:
    """Entries kept and items dropped by a ``TreeFilter`` pass."""

    included_files: List[TreeEntry] = field(default_factory=list)
    excluded_files: List[GitHubTreeItem] = field(default_factory=list)
    total_files: int = 0

    @property
    def filtered_files(self) -> int:
        return len(self.included_files)


class TreeFilter:
    """
    Keeps the file items under ``repo_ref.subpath`` and rewrites their
    paths relative to it.
    """

    def __init__(
        self,
        repo_ref: RepoRef,
        ignore_subdirs: bool = False,
        full_path: bool = False
    ):
        if not repo_ref.ref:
            raise ValueError(f"Reference of {repo_ref.full_name} is not resolved")

        self.repo_ref = repo_ref
        self.ignore_subdirs = ignore_subdirs
        self.full_path = full_path
        self._prefix = f"{repo_ref.subpath}/" if repo_ref.subpath else ""

    def relative_path(self, item: GitHubTreeItem) -> Optional[str]:
        """
        Path of ``item`` relative to the subpath, or ``None`` when the item
        is not under it.
        """
        subpath = self.repo_ref.subpath
        if not subpath:
            return item.path

        # A subpath naming a single file keeps that file by its basename
        if item.path == subpath:
            return posixpath.basename(item.path) if not item.is_directory else None

        if item.path.startswith(self._prefix):
            return item.path[len(self._prefix):]
        return None

    def to_entry(self, item: GitHubTreeItem) -> Optional[TreeEntry]:
        """Build the ``TreeEntry`` for a kept item, ``None`` if dropped."""

        relative = self.relative_path(item)
        if relative is None:
            return None

        if item.is_submodule:
            logger.warning(f"Skipping submodule '{item.path}'")
            return None
        if item.is_symlink:
            logger.warning(f"Skipping symlink '{item.path}'")
            return None
        if not item.is_file:
            return None

        relative = normalize_relative_path(relative)
        if self.ignore_subdirs and "/" in relative.strip("/"):
            return None

        return TreeEntry(
            relative_path=normalize_relative_path(item.path) if self.full_path else relative,
            is_directory=False,
            download_url=self.repo_ref.raw_url(item.path),
            sha=item.sha,
            size=item.size,
            repo_path=item.path
        )

    def filter_files(self, items: List[GitHubTreeItem]) -> FilterResult:
        """
        Filter a full tree listing.

        Raises:
            NotFoundError: Nothing in the tree lives under the subpath
        """
        result = FilterResult(total_files=len(items))
        found_subpath = not self.repo_ref.subpath

        for item in items:
            if not found_subpath and self.relative_path(item) is not None:
                found_subpath = True

            entry = self.to_entry(item)
            if entry is None:
                result.excluded_files.append(item)
            else:
                result.included_files.append(entry)

        if not found_subpath:
            raise NotFoundError(
                f"Path '{self.repo_ref.subpath}' not found in "
                f"{self.repo_ref.full_name}@{self.repo_ref.ref}",
                url=self.repo_ref.html_url
            )

        return result


__all__ = [
    "normalize_relative_path",
    "FilterResult",
    "TreeFilter",
]
