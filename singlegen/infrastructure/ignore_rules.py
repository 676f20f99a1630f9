"""
Ignore rule infrastructure.
Layers hardcoded exclusions over the root .gitignore and .singlegenignore files.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Iterable, Optional, Union

import pathspec

from ..domain.errors import IgnoreFileError


logger = logging.getLogger(__name__)

GITIGNORE_NAME = ".gitignore"
SINGLEGENIGNORE_NAME = ".singlegenignore"

# Path components that are excluded whatever the pattern files say
ALWAYS_IGNORED: FrozenSet[str] = frozenset(
    {".git", GITIGNORE_NAME, SINGLEGENIGNORE_NAME, ".DS_Store"}
)


def load_pattern_file(path: Path) -> Optional[pathspec.PathSpec]:
    """Compile a gitignore-style file, or return None when it does not exist."""
    if not path.is_file():
        return None

    try:
        with open(path, "r", encoding="utf-8") as f:
            return pathspec.GitIgnoreSpec.from_lines(f)
    except (OSError, ValueError) as e:
        raise IgnoreFileError(path, e) from e


def _normalize(relative_path: Union[str, Path]) -> str:
    text = str(relative_path).replace("\\", "/")
    while text.startswith("./"):
        text = text[2:]
    return text.strip("/")


@dataclass(frozen=True)
class IgnoreMatcher:
    """Decides whether a root-relative path is excluded.

    Built once before any worker starts and never mutated afterwards, so a
    single instance can be shared between threads without locking.
    """

    primary: Optional[pathspec.PathSpec] = None
    secondary: Optional[pathspec.PathSpec] = None

    @classmethod
    def load(cls, root: Path) -> "IgnoreMatcher":
        """Load both pattern files from ``root``; unusable files are skipped."""
        matcher = cls(
            primary=cls._load_or_warn(Path(root) / GITIGNORE_NAME),
            secondary=cls._load_or_warn(Path(root) / SINGLEGENIGNORE_NAME),
        )
        if not matcher.has_patterns:
            logger.debug("No ignore files in %s; only built-in exclusions apply", root)
        return matcher

    @classmethod
    def from_lines(
        cls,
        primary: Optional[Iterable[str]] = None,
        secondary: Optional[Iterable[str]] = None,
    ) -> "IgnoreMatcher":
        """Build a matcher from in-memory pattern lines."""
        return cls(
            primary=pathspec.GitIgnoreSpec.from_lines(primary) if primary is not None else None,
            secondary=pathspec.GitIgnoreSpec.from_lines(secondary) if secondary is not None else None,
        )

    @staticmethod
    def _load_or_warn(path: Path) -> Optional[pathspec.PathSpec]:
        try:
            spec = load_pattern_file(path)
        except IgnoreFileError as e:
            logger.warning("%s; continuing without it", e)
            return None
        if spec is not None:
            logger.debug("Loaded %d patterns from %s", len(spec.patterns), path)
        return spec

    @property
    def has_patterns(self) -> bool:
        return self.primary is not None or self.secondary is not None

    def should_ignore(self, relative_path: Union[str, Path], is_dir: bool = False) -> bool:
        """Check a path relative to the root against every rule, first match wins."""
        path = _normalize(relative_path)
        if not path or path == ".":
            return False

        if any(part in ALWAYS_IGNORED for part in path.split("/")):
            return True

        candidate = path + "/" if is_dir else path

        if self.primary is not None and self.primary.match_file(candidate):
            return True

        if self.secondary is not None and self.secondary.match_file(candidate):
            return True

        return False
