"""
File discovery infrastructure.
Walks the source tree with directory pruning and reads accepted files.
"""

import logging
import os
import stat
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterator, List, Optional

from ..domain.entities import FileEntry
from ..domain.errors import TraversalError
from .ignore_rules import IgnoreMatcher


logger = logging.getLogger(__name__)


class TreeWalker:
    """Lazy, depth-first, lexically ordered walk over a directory tree."""

    def __init__(
        self,
        root: Path,
        exclude: Optional[Path] = None,
        prune: Optional[Callable[[Path], bool]] = None,
    ):
        """Initialize with the root, the output file to skip and a pruning callback."""
        self.root = Path(root)
        self.prune = prune
        self._excluded = Path(exclude).resolve() if exclude is not None else None

    def walk(self) -> Iterator[Path]:
        """Yield every non-directory path under the root."""
        if not self.root.is_dir():
            raise TraversalError(f"Not a directory: {self.root}")
        yield from self._walk_directory(self.root)

    def _walk_directory(self, directory: Path) -> Iterator[Path]:
        for entry in self._list_directory(directory):
            path = directory / entry.name

            if self._is_excluded(path):
                continue

            try:
                is_dir = entry.is_dir(follow_symlinks=False)
            except OSError as e:
                raise TraversalError(f"Error walking directory: {e}") from e

            if not is_dir:
                yield path
                continue

            if self.prune is not None and self.prune(path):
                logger.debug("Pruned directory %s", path)
                continue

            yield from self._walk_directory(path)

    def _list_directory(self, directory: Path) -> List[os.DirEntry]:
        try:
            with os.scandir(directory) as it:
                return sorted(it, key=lambda entry: entry.name)
        except OSError as e:
            raise TraversalError(f"Error walking directory: {e}") from e

    def _is_excluded(self, path: Path) -> bool:
        if self._excluded is None:
            return False
        try:
            return path.resolve() == self._excluded
        except (OSError, RuntimeError):
            return False


class FileContentReader:
    """Turns candidate paths into FileEntry values."""

    def __init__(self, root: Path, matcher: IgnoreMatcher):
        self.root = Path(root)
        self.matcher = matcher

    def relative_path(self, path: Path) -> str:
        """Path relative to the root in POSIX form."""
        return Path(os.path.relpath(path, self.root)).as_posix()

    def display_path(self, relative_path: str) -> str:
        """Path as written in entry headers: the root joined with the relative path."""
        return os.path.normpath(os.path.join(str(self.root), relative_path))

    def is_ignored_directory(self, path: Path) -> bool:
        """Pruning callback for TreeWalker."""
        try:
            relative = self.relative_path(path)
        except ValueError:
            return False
        return self.matcher.should_ignore(relative, is_dir=True)

    def _is_skipped(self, relative: str, info: os.stat_result) -> bool:
        if self.matcher.should_ignore(relative):
            logger.debug("Ignored %s", relative)
            return True

        if stat.S_ISDIR(info.st_mode):
            return True

        # Pipes, sockets and devices can block or never end
        if not stat.S_ISREG(info.st_mode):
            logger.debug("Skipped special file %s", relative)
            return True

        return False

    def accepts(self, path: Path) -> Optional[str]:
        """Relative path of a candidate that would be read, without reading it."""
        try:
            relative = self.relative_path(path)
            info = os.stat(path)
        except (OSError, ValueError):
            return None

        if self._is_skipped(relative, info):
            return None
        return relative

    def read(self, path: Path) -> Optional[FileEntry]:
        """Read one regular file, or None when it is ignored or not a regular file."""
        try:
            relative = self.relative_path(path)
        except ValueError as e:
            return FileEntry.failed(str(path), "", e)

        display = self.display_path(relative)

        try:
            info = os.stat(path)
        except OSError as e:
            return FileEntry.failed(display, relative, e)

        if self._is_skipped(relative, info):
            return None

        try:
            with open(path, "rb") as f:
                content = f.read()
        except OSError as e:
            return FileEntry.failed(display, relative, e)

        return FileEntry(
            path=display,
            relative_path=relative,
            content=content,
            size=info.st_size,
            modified=datetime.fromtimestamp(info.st_mtime),
        )
