"""
Shared fixtures: an in-memory GitHub served through ``httpx.MockTransport``.
"""

import posixpath
from typing import Dict, List, Optional, Set

import httpx
import pytest

from gitsubdir.infrastructure.rate_limiter import RateLimiter
from gitsubdir.infrastructure.retry_manager import RetryManager
from gitsubdir.services.github_api import GitHubAPIService


class FakeGitHub:
    """
    Serves one repository the way the GitHub REST API and
    raw.githubusercontent.com do, from a ``{path: bytes}`` mapping.
    """

    def __init__(
        self,
        owner: str,
        repo: str,
        files: Dict[str, bytes],
        default_branch: str = "main",
        branches: Optional[List[str]] = None,
        tags: Optional[List[str]] = None,
        symlinks: Optional[Set[str]] = None,
        truncate_recursive: bool = False
    ):
        self.owner = owner
        self.repo = repo
        self.files = files
        self.default_branch = default_branch
        self.branches = branches or [default_branch]
        self.tags = tags or []
        self.symlinks = symlinks or set()
        self.truncate_recursive = truncate_recursive
        self.requests: List[httpx.Request] = []
        self.fail_raw: Set[str] = set()
        self.headers: Dict[str, str] = {}

    @property
    def refs(self) -> List[str]:
        return self.branches + self.tags

    def _directories(self) -> Set[str]:
        dirs = set()
        for path in self.files:
            parent = posixpath.dirname(path)
            while parent:
                dirs.add(parent)
                parent = posixpath.dirname(parent)
        return dirs

    def _items_under(self, root: str, recursive: bool) -> List[dict]:
        prefix = f"{root}/" if root else ""
        items = []
        for directory in sorted(self._directories()):
            if directory.startswith(prefix):
                rel = directory[len(prefix):]
                if recursive or "/" not in rel:
                    items.append({
                        "path": rel, "type": "tree", "mode": "040000",
                        "sha": f"tree:{directory}"
                    })
        for path, content in sorted(self.files.items()):
            if path.startswith(prefix):
                rel = path[len(prefix):]
                if recursive or "/" not in rel:
                    items.append({
                        "path": rel, "type": "blob",
                        "mode": "120000" if path in self.symlinks else "100644",
                        "sha": f"blob:{path}", "size": len(content)
                    })
        return items

    def _tree(self, tree_sha: str, recursive: bool) -> httpx.Response:
        if tree_sha in self.refs:
            root = ""
        elif tree_sha.startswith("tree:") and tree_sha[5:] in self._directories():
            root = tree_sha[5:]
        else:
            return httpx.Response(404, json={"message": "Not Found"})

        if recursive and self.truncate_recursive and root == "":
            items = self._items_under(root, recursive=True)[:1]
            return httpx.Response(200, json={"tree": items, "truncated": True})

        return httpx.Response(
            200, json={"tree": self._items_under(root, recursive), "truncated": False}
        )

    def _api(self, request: httpx.Request) -> httpx.Response:
        base = f"/repos/{self.owner}/{self.repo}"
        path = request.url.path

        if path == "/rate_limit":
            return httpx.Response(200, json={"resources": {"core": {"limit": 60, "remaining": 59}}})
        if not path.startswith(base):
            return httpx.Response(404, json={"message": "Not Found"})

        rest = path[len(base):]
        if rest == "":
            return httpx.Response(200, json={"default_branch": self.default_branch})

        for namespace, names in (("heads", self.branches), ("tags", self.tags)):
            marker = f"/git/matching-refs/{namespace}/"
            if rest.startswith(marker):
                prefix = rest[len(marker):]
                return httpx.Response(200, json=[
                    {"ref": f"refs/{namespace}/{name}"}
                    for name in names if name.startswith(prefix)
                ])

        if rest.startswith("/git/trees/"):
            recursive = request.url.params.get("recursive") == "1"
            return self._tree(rest[len("/git/trees/"):], recursive)

        return httpx.Response(404, json={"message": "Not Found"})

    def _raw(self, request: httpx.Request) -> httpx.Response:
        base = f"/{self.owner}/{self.repo}/"
        path = request.url.path
        if not path.startswith(base):
            return httpx.Response(404)

        rest = path[len(base):]
        for ref in sorted(self.refs, key=len, reverse=True):
            if rest.startswith(f"{ref}/"):
                file_path = rest[len(ref) + 1:]
                if file_path in self.fail_raw:
                    return httpx.Response(500)
                if file_path in self.files:
                    return httpx.Response(200, content=self.files[file_path])
        return httpx.Response(404)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "api.github.com":
            response = self._api(request)
        elif request.url.host == "raw.githubusercontent.com":
            response = self._raw(request)
        else:
            response = httpx.Response(404)
        response.headers.update(self.headers)
        return response

    def service(self, max_retries: int = 0) -> GitHubAPIService:
        client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return GitHubAPIService(
            RateLimiter(),
            RetryManager(max_retries=max_retries, base_delay=0.0, jitter=False),
            client=client
        )


@pytest.fixture
def git_subdir_repo() -> FakeGitHub:
    """A small copy of keziah55/git-subdir."""

    return FakeGitHub(
        "keziah55",
        "git-subdir",
        {
            "README.md": b"# git-subdir\n",
            "Cargo.toml": b"[package]\nname = \"git-subdir\"\n",
            "src/main.rs": b"//! # git-subdir\nfn main() {}\n",
            "src/lib/util.rs": b"pub fn util() {}\n",
            "src2/other.rs": b"// not under src\n",
        },
        branches=["main", "feature/slash"],
        tags=["v0.1"]
    )
