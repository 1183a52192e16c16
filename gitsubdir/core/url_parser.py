"""
Parsing of GitHub web URLs into repository references.
"""

from typing import List
from urllib.parse import unquote, urlsplit

from ..infrastructure.error_handler import InvalidUrlError
from ..models import RepoRef


SUPPORTED_HOSTS = ("github.com", "www.github.com")


def _path_segments(path: str) -> List[str]:
    return [unquote(part) for part in path.split("/") if part]


def parse_tree_url(url: str) -> RepoRef:
    """
    Parse a GitHub tree URL into a ``RepoRef``.

    Accepts ``https://github.com/<owner>/<repo>/tree/<ref>/<subpath...>``
    and the bare repository URL ``https://github.com/<owner>/<repo>``. In
    the latter case ``ref`` is left as ``None`` for the caller to resolve to
    the default branch.

    Refs containing ``/`` cannot be told apart from the subpath here: the
    first segment after ``tree`` is taken as the ref and the rest as the
    subpath. ``GitHubAPIService.resolve_ref`` settles the boundary.

    Args:
        url: URL to parse

    Returns:
        Parsed reference

    Raises:
        InvalidUrlError: The URL is not a GitHub repository or tree URL
    """
    if not url or not url.strip():
        raise InvalidUrlError("URL is empty")

    url = url.strip()
    if "://" not in url:
        url = f"https://{url}"

    parts = urlsplit(url)
    if parts.scheme not in ("http", "https"):
        raise InvalidUrlError(f"'{url}' is not an http(s) url")

    host = (parts.hostname or "").lower()
    if host not in SUPPORTED_HOSTS:
        raise InvalidUrlError(
            f"'{url}' is not a github url (host '{host}' not supported)"
        )

    segments = _path_segments(parts.path)
    if len(segments) < 2:
        raise InvalidUrlError(f"'{url}' is not a url to a github repo")

    owner, repo = segments[0], segments[1]
    if repo.endswith(".git"):
        repo = repo[:-len(".git")]
    if not repo:
        raise InvalidUrlError(f"'{url}' is not a url to a github repo")

    if len(segments) == 2:
        return RepoRef(owner=owner, repo=repo)

    if segments[2] != "tree":
        raise InvalidUrlError(f"cannot parse url '{url}'")

    if len(segments) == 3:
        raise InvalidUrlError(f"'{url}' does not name a branch, tag or commit")

    return RepoRef(
        owner=owner,
        repo=repo,
        ref=segments[3],
        subpath="/".join(segments[4:])
    )


def split_ref_and_path(tail: str, known_refs: List[str]) -> tuple[str, str]:
    """
    Split ``<ref>/<subpath>`` using the refs the host knows about.

    The longest known ref equal to a whole-segment prefix of ``tail`` wins.
    Without a match the first segment is taken as the ref.

    Args:
        tail: Everything after ``tree/`` in the URL
        known_refs: Branch and tag names to match against

    Returns:
        Tuple of (ref, subpath)
    """
    segments = [part for part in tail.split("/") if part]
    if not segments:
        raise InvalidUrlError("Reference is empty")

    candidates = set(known_refs)
    for cut in range(len(segments), 0, -1):
        ref = "/".join(segments[:cut])
        if ref in candidates:
            return ref, "/".join(segments[cut:])

    return segments[0], "/".join(segments[1:])


__all__ = [
    "SUPPORTED_HOSTS",
    "parse_tree_url",
    "split_ref_and_path",
]
