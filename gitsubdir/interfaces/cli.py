"""
Command-line interface for git-subdir.
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import click

from .. import __version__
from ..core.url_parser import parse_tree_url
from ..infrastructure.error_handler import InvalidUrlError
from ..models import DownloadConfig, DownloadReport, DownloadStatus, RepoRef
from .api import GitSubdirDownloader


EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def _error(message: str) -> None:
    click.echo(f"{click.style('Error:', fg='red', bold=True)} {message}", err=True)


def print_report(report: DownloadReport, destination: Optional[Path]) -> None:
    """Per-file lines followed by a summary."""

    root = report.request.destination or destination

    if report.request.dry_run and report.error is None:
        for path in report.matched_files:
            marker = click.style(" (exists)", fg="yellow") if path in report.skipped_files else ""
            click.echo(f"Would download '{path}'{marker}")
        click.echo(f"{len(report.matched_files)} files matched under {root}")
        return

    for file_result in report.results:
        if file_result.is_successful:
            click.echo(f"Downloaded '{file_result.path}'")
        else:
            _error(f"{file_result.path}: {file_result.error}")

    if report.error is not None:
        _error(str(report.error))
        return

    if report.status == DownloadStatus.CANCELLED:
        _error("Download cancelled")
        return

    summary = (
        f"{len(report.downloaded_files)} downloaded, "
        f"{report.failure_count} failed ({report.total_bytes} bytes) into {root}"
    )
    if report.duration is not None:
        summary += f" in {report.duration:.2f}s"
    click.echo(click.style(summary, fg="red" if report.failure_count else "green"))


async def _run(downloader: GitSubdirDownloader, repo_ref: RepoRef, output: Optional[Path]) -> DownloadReport:
    async with downloader:
        return await downloader.download(repo_ref, output)


def _parse_url(ctx: click.Context, param: click.Parameter, value: str) -> RepoRef:
    try:
        return parse_tree_url(value)
    except InvalidUrlError as e:
        raise click.BadParameter(str(e), ctx=ctx, param=param) from e


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("url", callback=_parse_url)
@click.option("-o", "--output", type=click.Path(file_okay=False, path_type=Path),
              help="Output directory. Is created if it doesn't exist. "
                   "Defaults to the name of the requested directory.")
@click.option("-f", "--force", is_flag=True, help="Overwrite existing files.")
@click.option("-i", "--ignore-subdirs", is_flag=True, help="Ignore subdirectories.")
@click.option("--full-path", is_flag=True,
              help="Write paths relative to the repo root rather than the given url.")
@click.option("-j", "--jobs", type=click.IntRange(min=1), default=8, show_default=True,
              help="Number of concurrent file downloads.")
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), default=30.0,
              show_default=True, help="Timeout in seconds for each request.")
@click.option("--retries", type=click.IntRange(min=0), default=2, show_default=True,
              help="Retries after a network failure.")
@click.option("--backoff", type=click.FloatRange(min=0), default=1.0, show_default=True,
              help="Initial delay in seconds between retries.")
@click.option("--dry-run", is_flag=True, help="List the files without writing anything.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.version_option(__version__, prog_name="git-subdir")
def main(
    url: RepoRef,
    output: Optional[Path],
    force: bool,
    ignore_subdirs: bool,
    full_path: bool,
    jobs: int,
    timeout: float,
    retries: int,
    backoff: float,
    dry_run: bool,
    verbose: bool
) -> None:
    """Download a subdirectory from a GitHub repo.

    URL is a GitHub tree url, e.g.
    https://github.com/keziah55/git-subdir/tree/main/src
    """
    config = DownloadConfig(
        timeout=timeout,
        max_retries=retries,
        retry_backoff=backoff,
        max_concurrent_downloads=jobs,
        force=force,
        ignore_subdirs=ignore_subdirs,
        full_path=full_path,
        dry_run=dry_run
    )
    downloader = GitSubdirDownloader(config, verbose=verbose)

    try:
        report = asyncio.run(_run(downloader, url, output))
    except KeyboardInterrupt:
        _error("Interrupted; files already written were kept")
        sys.exit(EXIT_INTERRUPTED)

    print_report(report, output)
    if not report.is_successful:
        sys.exit(EXIT_FAILURE)


__all__ = [
    "main",
]
