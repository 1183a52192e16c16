"""
Service for writing downloaded content to disk.

Targets are confined to the destination root and every file is written
to a temporary name first, then renamed into place.
"""

import asyncio
import os
import tempfile
from pathlib import Path, PurePosixPath, PureWindowsPath

from ..infrastructure.error_handler import (
    AlreadyExistsError, FileWriteError, PathEscapeError
)
from ..infrastructure.logger import logger


TEMP_SUFFIX = ".part"


class DownloadService:
    """Filesystem side of a download."""

    def resolve_target(self, destination_root: Path, relative_path: str) -> Path:
        """
        Join ``relative_path`` onto the destination root.

        Args:
            destination_root: Directory everything is written under
            relative_path: Path of the entry, ``/``-separated

        Returns:
            Absolute target path inside ``destination_root``

        Raises:
            PathEscapeError: The path is empty, absolute, or resolves
                outside the root (through ``..`` or a symlink)
            FileWriteError: The filesystem rejected the path
        """
        if not relative_path or not relative_path.strip("/"):
            raise PathEscapeError("Empty path", path=relative_path)

        if (
            PurePosixPath(relative_path).is_absolute()
            or PureWindowsPath(relative_path).is_absolute()
            or PureWindowsPath(relative_path).drive
        ):
            raise PathEscapeError(
                f"Absolute path '{relative_path}' rejected", path=relative_path
            )

        try:
            root = Path(destination_root).resolve()
            target = (root / relative_path).resolve()
        except (OSError, RuntimeError) as e:
            # RuntimeError is how older interpreters report symlink loops
            raise FileWriteError(
                f"Could not resolve '{relative_path}'", path=relative_path, original_error=e
            ) from e

        if target == root or not target.is_relative_to(root):
            raise PathEscapeError(
                f"Path '{relative_path}' escapes destination '{root}'",
                path=relative_path
            )
        return target

    def check_target(self, target: Path, force: bool, relative_path: str = "") -> None:
        """
        Raises:
            AlreadyExistsError: ``target`` exists and ``force`` is off
            FileWriteError: ``target`` is a directory or cannot be inspected
        """
        try:
            is_dir = target.is_dir()
            exists = is_dir or target.exists()
        except OSError as e:
            raise FileWriteError(
                f"Could not inspect '{target}'", path=relative_path or str(target), original_error=e
            ) from e

        if is_dir:
            raise FileWriteError(
                f"'{target}' is a directory", path=relative_path or str(target)
            )
        if exists and not force:
            raise AlreadyExistsError(
                f"'{target}' already exists (use --force to overwrite)",
                path=relative_path or str(target)
            )

    def _write_atomic(self, content: bytes, target: Path, force: bool) -> int:
        target.parent.mkdir(parents=True, exist_ok=True)

        fd, temp_name = tempfile.mkstemp(
            prefix=f".{target.name}.", suffix=TEMP_SUFFIX, dir=target.parent
        )
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())

            # Re-check right before the rename; another writer may have won
            if not force and target.exists():
                raise AlreadyExistsError(f"'{target}' already exists", path=str(target))

            os.replace(temp_name, target)
        except BaseException:
            Path(temp_name).unlink(missing_ok=True)
            raise

        return len(content)

    async def save_content(
        self,
        content: bytes,
        target: Path,
        force: bool = False,
        relative_path: str = ""
    ) -> int:
        """
        Write ``content`` to ``target`` atomically.

        Args:
            content: Bytes to write
            target: Resolved target path
            force: Overwrite an existing file
            relative_path: Entry path used in error messages

        Returns:
            Number of bytes written

        Raises:
            AlreadyExistsError: Target appeared while writing and ``force`` is off
            FileWriteError: The filesystem rejected the write
        """
        try:
            written = await asyncio.to_thread(self._write_atomic, content, target, force)
        except AlreadyExistsError as e:
            e.path = relative_path or e.path
            raise
        except OSError as e:
            raise FileWriteError(
                f"Could not write '{target}'", path=relative_path or str(target), original_error=e
            ) from e

        logger.debug(f"Wrote {written} bytes to {target}")
        return written

    async def ensure_directory(self, path: Path) -> None:
        """Create ``path`` and its parents."""

        try:
            await asyncio.to_thread(Path(path).mkdir, parents=True, exist_ok=True)
        except OSError as e:
            raise FileWriteError(
                f"Could not create directory '{path}'", path=str(path), original_error=e
            ) from e


__all__ = [
    "DownloadService",
]
