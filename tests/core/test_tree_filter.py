import pytest

from gitsubdir.core.filter import TreeFilter, normalize_relative_path
from gitsubdir.infrastructure.error_handler import NotFoundError
from gitsubdir.models import GitHubTreeItem, RepoRef


def make_item(path: str, item_type: str = "blob", size: int = 10, mode: str = "100644") -> GitHubTreeItem:
    """Helper function to build GitHubTreeItem instances for tests."""
    return GitHubTreeItem(path=path, type=item_type, mode=mode, sha=f"sha-{path}", size=size)


TREE = [
    make_item("README.md"),
    make_item("src", "tree", mode="040000"),
    make_item("src/main.rs", size=100),
    make_item("src/lib", "tree", mode="040000"),
    make_item("src/lib/util.rs", size=50),
    make_item("src2", "tree", mode="040000"),
    make_item("src2/other.rs"),
]


def make_filter(subpath: str = "src", **kwargs) -> TreeFilter:
    return TreeFilter(RepoRef("keziah55", "git-subdir", "main", subpath), **kwargs)


def test_keeps_only_files_under_subpath_relative_to_it():
    result = make_filter().filter_files(TREE)

    assert [e.relative_path for e in result.included_files] == ["main.rs", "lib/util.rs"]
    assert all(not e.is_directory for e in result.included_files)
    assert result.total_files == len(TREE)
    assert result.filtered_files == 2


def test_prefix_match_is_per_path_component():
    result = make_filter().filter_files(TREE)
    assert "src2/other.rs" not in [e.repo_path for e in result.included_files]


def test_entry_carries_raw_url_and_blob_id():
    entry = make_filter().filter_files(TREE).included_files[0]

    assert entry.download_url == "https://raw.githubusercontent.com/keziah55/git-subdir/main/src/main.rs"
    assert entry.sha == "sha-src/main.rs"
    assert entry.size == 100


def test_empty_subpath_keeps_whole_repository():
    result = make_filter("").filter_files(TREE)
    assert [e.relative_path for e in result.included_files] == [
        "README.md", "src/main.rs", "src/lib/util.rs", "src2/other.rs"
    ]


def test_ignore_subdirs_keeps_top_level_files_only():
    result = make_filter(ignore_subdirs=True).filter_files(TREE)
    assert [e.relative_path for e in result.included_files] == ["main.rs"]


def test_full_path_keeps_repository_paths():
    result = make_filter(full_path=True).filter_files(TREE)
    assert [e.relative_path for e in result.included_files] == ["src/main.rs", "src/lib/util.rs"]


def test_subpath_naming_a_file_keeps_its_basename():
    result = make_filter("src/lib/util.rs").filter_files(TREE)
    assert [e.relative_path for e in result.included_files] == ["util.rs"]


def test_missing_subpath_raises_not_found():
    with pytest.raises(NotFoundError) as exc_info:
        make_filter("docs").filter_files(TREE)
    assert "docs" in str(exc_info.value)


def test_symlinks_and_submodules_are_skipped(caplog):
    tree = TREE + [
        make_item("src/link.rs", mode="120000"),
        make_item("src/vendor", "commit", mode="160000"),
    ]

    with caplog.at_level("WARNING", logger="GitSubdir"):
        result = make_filter().filter_files(tree)

    kept = [e.relative_path for e in result.included_files]
    assert "link.rs" not in kept
    assert "vendor" not in kept
    assert "Skipping symlink 'src/link.rs'" in caplog.text
    assert "Skipping submodule 'src/vendor'" in caplog.text


def test_unresolved_ref_is_rejected():
    with pytest.raises(ValueError):
        TreeFilter(RepoRef("owner", "repo"))


@pytest.mark.parametrize("raw, expected", [
    ("a//b", "a/b"),
    ("./a/./b", "a/b"),
    ("../../etc/passwd", "../../etc/passwd"),
    ("/etc/passwd", "/etc/passwd"),
])
def test_normalize_relative_path(raw, expected):
    assert normalize_relative_path(raw) == expected
