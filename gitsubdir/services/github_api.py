"""
Service for talking to GitHub: ref resolution, tree listing and raw
file content.
"""

from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx

from ..core.url_parser import split_ref_and_path
from ..infrastructure.error_handler import (
    NetworkError, NotFoundError, handle_api_error, raise_for_response
)
from ..infrastructure.logger import logger
from ..infrastructure.rate_limiter import RateLimiter
from ..infrastructure.retry_manager import RetryManager
from ..models import GitHubTreeItem, RepoRef


GITHUB_API_URL = "https://api.github.com"
USER_AGENT = "git-subdir"


class GitHubAPIService:
    """
    Thin async client over the GitHub REST API.

    Every request carries a timeout, transient transport failures are
    retried by the ``RetryManager`` and an exhausted quota fails fast via
    the ``RateLimiter``.
    """

    def __init__(
        self,
        rate_limiter: Optional[RateLimiter] = None,
        retry_manager: Optional[RetryManager] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
        api_url: str = GITHUB_API_URL
    ):
        self.rate_limiter = rate_limiter or RateLimiter()
        self.retry_manager = retry_manager or RetryManager()
        self.timeout = timeout
        self.api_url = api_url.rstrip("/")
        self.api_calls = 0

        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            headers={
                "Accept": "application/vnd.github+json",
                "User-Agent": USER_AGENT
            }
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "GitHubAPIService":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    ####
    ##      LOW LEVEL REQUESTS
    #####
    @handle_api_error
    async def _get_json_once(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        self.rate_limiter.check(url)
        self.api_calls += 1

        response = await self._client.get(url, params=params)
        await self.rate_limiter.update_rate_limit_info(response.headers)
        raise_for_response(response)
        return response.json()

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.api_url}{path}"
        logger.debug(f"GET {url} {params or ''}")
        return await self.retry_manager.execute(self._get_json_once, url, params)

    @handle_api_error
    async def _get_bytes_once(self, url: str) -> bytes:
        response = await self._client.get(url)
        raise_for_response(response)
        return response.content

    ####
    ##      REFERENCES
    #####
    async def get_default_branch(self, owner: str, repo: str) -> str:
        """Name of the repository's default branch."""

        data = await self._get_json(f"/repos/{quote(owner)}/{quote(repo)}")
        return data["default_branch"]

    async def get_matching_refs(self, owner: str, repo: str, prefix: str) -> List[str]:
        """
        Branch and tag names starting with ``prefix``.

        Returns:
            Names without the ``refs/heads/`` or ``refs/tags/`` prefix
        """
        names: List[str] = []
        for namespace in ("heads", "tags"):
            data = await self._get_json(
                f"/repos/{quote(owner)}/{quote(repo)}/git/matching-refs/"
                f"{namespace}/{quote(prefix)}"
            )
            strip = f"refs/{namespace}/"
            names.extend(
                item["ref"][len(strip):]
                for item in data
                if item.get("ref", "").startswith(strip)
            )
        return names

    async def resolve_ref(self, repo_ref: RepoRef) -> RepoRef:
        """
        Settle the ref of a parsed URL.

        A missing ref becomes the default branch. When the URL continues
        past the ref, the longest branch or tag name matching the leading
        segments is taken as the ref; if the lookup cannot be made the
        parser's first-segment choice stands.

        Args:
            repo_ref: Reference as parsed from the URL

        Returns:
            Reference with the final ``ref`` and ``subpath``
        """
        if repo_ref.ref is None:
            branch = await self.get_default_branch(repo_ref.owner, repo_ref.repo)
            logger.debug(f"Using default branch '{branch}' of {repo_ref.full_name}")
            return repo_ref.with_ref(branch)

        if not repo_ref.subpath:
            return repo_ref

        tail = f"{repo_ref.ref}/{repo_ref.subpath}"
        try:
            known_refs = await self.get_matching_refs(
                repo_ref.owner, repo_ref.repo, repo_ref.ref
            )
        except NetworkError as e:
            logger.warning(f"Could not look up refs ({e}); assuming ref '{repo_ref.ref}'")
            return repo_ref

        ref, subpath = split_ref_and_path(tail, known_refs)
        if ref != repo_ref.ref:
            logger.debug(f"Resolved ref '{ref}' with subpath '{subpath}'")
        return repo_ref.with_ref(ref, subpath)

    ####
    ##      TREES
    #####
    async def _get_tree(
        self,
        repo_ref: RepoRef,
        tree_sha: str,
        recursive: bool
    ) -> Tuple[List[Dict[str, Any]], bool]:
        params = {"recursive": "1"} if recursive else None
        data = await self._get_json(
            f"/repos/{quote(repo_ref.owner)}/{quote(repo_ref.repo)}/git/trees/"
            f"{quote(tree_sha, safe='')}",
            params
        )
        return data.get("tree", []), bool(data.get("truncated"))

    @staticmethod
    def _to_item(raw: Dict[str, Any], prefix: str) -> GitHubTreeItem:
        return GitHubTreeItem(
            path=f"{prefix}{raw['path']}",
            type=raw["type"],
            mode=raw.get("mode", ""),
            sha=raw.get("sha"),
            size=raw.get("size", 0) or 0
        )

    async def _walk_tree(self, repo_ref: RepoRef, tree_sha: str, prefix: str) -> List[GitHubTreeItem]:
        """
        List a tree recursively, descending level by level whenever the
        host truncates a recursive listing.
        """
        raw_items, truncated = await self._get_tree(repo_ref, tree_sha, recursive=True)
        if not truncated:
            return [self._to_item(raw, prefix) for raw in raw_items]

        logger.debug(f"Listing of '{prefix or '/'}' truncated, walking sub-trees")
        raw_items, _ = await self._get_tree(repo_ref, tree_sha, recursive=False)

        items: List[GitHubTreeItem] = []
        for raw in raw_items:
            item = self._to_item(raw, prefix)
            items.append(item)
            if item.is_directory and item.sha:
                items.extend(await self._walk_tree(repo_ref, item.sha, f"{item.path}/"))
        return items

    async def _locate_subpath(self, repo_ref: RepoRef) -> Optional[GitHubTreeItem]:
        """Find the tree item for ``subpath`` one directory level at a time."""

        tree_sha = repo_ref.ref
        found: Optional[GitHubTreeItem] = None
        prefix = ""

        for part in repo_ref.subpath.split("/"):
            if found is not None and not found.is_directory:
                return None

            raw_items, _ = await self._get_tree(repo_ref, tree_sha, recursive=False)
            found = next(
                (self._to_item(raw, prefix) for raw in raw_items if raw["path"] == part),
                None
            )
            if found is None:
                return None

            tree_sha = found.sha
            prefix = f"{found.path}/"

        return found

    async def get_repository_tree(self, repo_ref: RepoRef) -> List[GitHubTreeItem]:
        """
        Every item of the repository tree at ``repo_ref.ref``.

        Large repositories, whose recursive listing GitHub truncates, are
        walked starting from ``subpath`` so unrelated parts are not listed.

        Args:
            repo_ref: Resolved reference

        Returns:
            Tree items with paths from the repository root
        """
        if not repo_ref.ref:
            raise ValueError(f"Reference of {repo_ref.full_name} is not resolved")

        raw_items, truncated = await self._get_tree(repo_ref, repo_ref.ref, recursive=True)
        if not truncated:
            items = [self._to_item(raw, "") for raw in raw_items]
            logger.debug(f"Fetched {len(items)} tree items for {repo_ref.full_name}")
            return items

        logger.debug(f"Tree of {repo_ref.full_name} truncated, walking from '{repo_ref.subpath}'")
        if not repo_ref.subpath:
            return await self._walk_tree(repo_ref, repo_ref.ref, "")

        subtree = await self._locate_subpath(repo_ref)
        if subtree is None:
            raise NotFoundError(
                f"Path '{repo_ref.subpath}' not found in {repo_ref.full_name}@{repo_ref.ref}",
                url=repo_ref.html_url
            )
        if not subtree.is_directory:
            return [subtree]

        return [subtree] + await self._walk_tree(repo_ref, subtree.sha, f"{subtree.path}/")

    ####
    ##      CONTENT
    #####
    async def get_file_content(self, url: str) -> bytes:
        """Raw bytes of one file."""

        logger.debug(f"GET {url}")
        return await self.retry_manager.execute(self._get_bytes_once, url)

    async def get_rate_limit_info(self) -> Dict[str, Any]:
        """Current core API quota as reported by ``/rate_limit``."""

        data = await self._get_json("/rate_limit")
        return data.get("resources", {}).get("core", data.get("rate", {}))


__all__ = [
    "GITHUB_API_URL",
    "GitHubAPIService",
]
