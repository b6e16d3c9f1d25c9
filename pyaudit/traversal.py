"""
File system traversal: walk directories and collect Python source files.

Files are yielded lazily in a deterministic order (entries sorted by name at
each level). Directories in the ignore set or matching an exclusion glob are
not descended. When symlinks are followed, every directory's real path is
tracked: a link back into one of its own ancestors raises CyclicPathError for
that subtree, which the walker records in ``errors`` before moving on.

Typical usage:
    from pathlib import Path
    from pyaudit.traversal import SourceWalker, find_source_files

    # Everything with the default extensions (.py, .pyi)
    files = find_source_files(Path("./my_project"))

    # Lazily, with exclusions, keeping track of traversal problems
    walker = SourceWalker(Path("./my_project"), exclude_paths=["migrations/*"])
    for path in walker:
        ...
    problems = walker.errors
"""

from __future__ import annotations

import fnmatch
import logging
from pathlib import Path
from typing import Iterable, Iterator, Optional, Set

from pyaudit.errors import CyclicPathError

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS: tuple[str, ...] = (".py", ".pyi")

# Default directories to ignore during traversal
DEFAULT_IGNORE_DIRS: Set[str] = {
    # Build and distribution directories
    "build",
    "dist",
    ".eggs",
    # Dependency directories
    "node_modules",
    "site-packages",
    # Version control
    ".git",
    ".svn",
    ".hg",
    # IDE and editor directories
    ".vscode",
    ".idea",
    # Python virtual environments
    "venv",
    ".venv",
    "env",
    ".tox",
    ".nox",
    # Cache directories
    "__pycache__",
    ".cache",
    ".pytest_cache",
    ".mypy_cache",
    ".ruff_cache",
}


def normalize_extension(ext: str) -> str:
    """Lower-case an extension and make sure it starts with a dot: "PY" -> ".py"."""
    ext = ext.strip().lower()
    return ext if ext.startswith(".") else f".{ext}"


def is_source_file(path: Path, extensions: Iterable[str] = DEFAULT_EXTENSIONS) -> bool:
    """
    Check if a file has one of the given extensions (case-insensitive).

    Examples:
        >>> is_source_file(Path("main.py"))
        True
        >>> is_source_file(Path("stubs.PYI"))
        True
        >>> is_source_file(Path("main.c"))
        False
    """
    return path.suffix.lower() in {normalize_extension(e) for e in extensions}


def should_ignore_directory(dir_path: Path, ignore_dirs: Set[str]) -> bool:
    """
    Check if a directory should be ignored during traversal.

    Only the directory name is compared (case-sensitive), not the full path.

    Examples:
        >>> should_ignore_directory(Path("build"), {"build", ".git"})
        True
        >>> should_ignore_directory(Path("src"), {"build", ".git"})
        False
    """
    return dir_path.name in ignore_dirs


def is_excluded(rel_path: str, patterns: Iterable[str]) -> bool:
    """
    True if a root-relative POSIX path, or its final component, matches a glob.

    Examples:
        >>> is_excluded("pkg/migrations/0001.py", ["*/migrations/*"])
        True
        >>> is_excluded("pkg/conftest.py", ["conftest.py"])
        True
    """
    name = rel_path.rsplit("/", 1)[-1]
    for pattern in patterns:
        pattern = pattern.rstrip("/")
        if fnmatch.fnmatch(rel_path, pattern) or fnmatch.fnmatch(name, pattern):
            return True
    return False


class SourceWalker:
    """
    Lazy, restartable iterator over the source files under a root directory.

    Problems that only affect part of the tree (symlink cycles) are collected
    in ``errors`` rather than raised, so one bad link does not stop the walk.
    """

    def __init__(
        self,
        root: Path,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        exclude_paths: Iterable[str] = (),
        ignore_dirs: Optional[Set[str]] = None,
        follow_symlinks: bool = False,
    ) -> None:
        self.root = root.resolve()
        self.extensions = tuple(normalize_extension(e) for e in extensions)
        self.exclude_paths = tuple(exclude_paths)
        self.ignore_dirs = DEFAULT_IGNORE_DIRS if ignore_dirs is None else set(ignore_dirs)
        self.follow_symlinks = follow_symlinks
        self.errors: list[CyclicPathError] = []
        self._visited: set[Path] = set()

    def __iter__(self) -> Iterator[Path]:
        root = self.root
        if not root.exists():
            logger.error("Root directory does not exist: %s", root)
            raise FileNotFoundError(f"Root directory does not exist: {root}")
        if not root.is_dir():
            logger.error("Root path is not a directory: %s", root)
            raise NotADirectoryError(f"Root path is not a directory: {root}")

        self.errors = []
        self._visited = {root}
        logger.info("Starting traversal from: %s", root)
        logger.debug(
            "Traversal config: extensions=%s, follow_symlinks=%s, exclude=%s, ignore_dirs=%s",
            self.extensions,
            self.follow_symlinks,
            self.exclude_paths,
            sorted(self.ignore_dirs),
        )

        count = 0
        for path in self._walk_directory(root, (root,)):
            count += 1
            yield path

        logger.info(
            "Traversal complete: found %d source file(s) in %s (%d cycle(s) skipped)",
            count,
            root,
            len(self.errors),
        )

    def _relative(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix()

    def _enter(self, entry: Path, ancestors: tuple[Path, ...]) -> Iterator[Path]:
        """Descend into a subdirectory, refusing links back into an ancestor."""
        real = entry.resolve()
        if real in ancestors:
            raise CyclicPathError(entry, real)
        if real in self._visited:
            logger.debug("Already visited %s (via %s); skipping", real, entry)
            return
        self._visited.add(real)
        yield from self._walk_directory(entry, ancestors + (real,))

    def _walk_directory(self, current_dir: Path, ancestors: tuple[Path, ...]) -> Iterator[Path]:
        try:
            entries = sorted(current_dir.iterdir(), key=lambda p: p.name)
        except PermissionError as e:
            logger.warning("Permission denied accessing directory %s: %s", current_dir, e)
            return
        except OSError as e:
            logger.warning("Error accessing directory %s: %s", current_dir, e)
            return

        for entry in entries:
            # Skip symlinks unless explicitly following them
            if entry.is_symlink() and not self.follow_symlinks:
                logger.debug("Skipping symlink: %s", entry)
                continue

            rel = self._relative(entry)
            if entry.is_dir():
                if should_ignore_directory(entry, self.ignore_dirs) or is_excluded(rel, self.exclude_paths):
                    logger.debug("Ignoring directory: %s", entry)
                    continue
                try:
                    yield from self._enter(entry, ancestors)
                except CyclicPathError as e:
                    logger.warning("Symlink cycle at %s -> %s; skipping subtree", entry, e.target)
                    self.errors.append(e)
            elif entry.is_file():
                if not is_source_file(entry, self.extensions):
                    continue
                if is_excluded(rel, self.exclude_paths):
                    logger.debug("Excluded by pattern: %s", entry)
                    continue
                if self.follow_symlinks:
                    real = entry.resolve()
                    if real in self._visited:
                        logger.debug("Already visited %s (via %s); skipping", real, entry)
                        continue
                    self._visited.add(real)
                logger.debug("Found source file: %s", entry)
                yield entry


def find_source_files(
    root: Path,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    exclude_paths: Iterable[str] = (),
    ignore_dirs: Optional[Set[str]] = None,
    follow_symlinks: bool = False,
) -> list[Path]:
    """
    Recursively find all source files in a directory tree.

    Convenience wrapper around SourceWalker that returns a sorted list and
    drops any recorded cycle errors.

    Raises:
        FileNotFoundError: If the root directory does not exist.
        NotADirectoryError: If the root path is a file.
    """
    walker = SourceWalker(
        root,
        extensions=extensions,
        exclude_paths=exclude_paths,
        ignore_dirs=ignore_dirs,
        follow_symlinks=follow_symlinks,
    )
    return sorted(walker)
