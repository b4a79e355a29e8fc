"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/scanner.py
Implements directory traversal with exclusion, hidden-file, depth and symlink policies.
Features:
- Lazy generator over os.scandir (iterative, no recursion limit)
- Shell-style exclusion patterns plus absolute excluded directories and system trash
- Symlink cycle protection through a shared (device, inode) visited set
- Unreadable directories are reported and skipped; only an invalid root is fatal
"""

import fnmatch
import logging
import os
import stat
import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Set, Tuple

from dupescope.core.errors import BrokenSymlinkError, InvalidRootError, from_os_error
from dupescope.core.interfaces import FileScanner
from dupescope.core.models import Operation, ScanConfig
from dupescope.core.reporter import SessionReporter

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDE_PATTERNS: Tuple[str, ...] = (
    # Version control
    ".git", ".hg", ".svn", ".bzr",
    # Package managers and tool caches
    "node_modules", "__pycache__", ".venv", "venv", ".tox", ".mypy_cache",
    ".pytest_cache", ".npm", ".gradle", ".cache",
    # Temp and system
    "tmp", ".Trash", ".Trashes", "$RECYCLE.BIN", "System Volume Information",
    ".Spotlight-V100", ".fseventsd", "lost+found",
)


@dataclass(frozen=True)
class ScanEntry:
    """A candidate produced by the traversal."""
    path: str
    root: str
    depth: int
    is_dir: bool = False
    is_symlink: bool = False


class TraversalContext:
    """
    Visited (device, inode) pairs of directories, shared by every walk of a session.
    enter() is an atomic check-and-add so two workers never enter the same directory.
    """

    def __init__(self):
        self._visited: Set[Tuple[int, int]] = set()
        self._lock = threading.Lock()

    def enter(self, key: Tuple[int, int]) -> bool:
        with self._lock:
            if key in self._visited:
                return False
            self._visited.add(key)
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._visited)


class FileScannerImpl(FileScanner):
    """
    Walks a directory tree and yields ScanEntry objects.

    Attributes:
        root_dir: Root directory to walk
        exclude_patterns: Extra glob patterns matched against names and root-relative paths
        use_default_exclusions: Also skip VCS, cache, temp and system directories
        excluded_dirs: Absolute directories pruned with their subtrees
        include_hidden: Descend into and yield dot-prefixed entries
        follow_symlinks: Traverse linked directories (cycle-safe) instead of yielding links
        max_depth: Deepest entry depth to yield (direct children of root have depth 0)
        include_directories: Yield directory entries as well as files
    """

    def __init__(
        self,
        root_dir: str,
        exclude_patterns: Optional[List[str]] = None,
        use_default_exclusions: bool = True,
        excluded_dirs: Optional[List[str]] = None,
        include_hidden: bool = False,
        follow_symlinks: bool = False,
        max_depth: Optional[int] = None,
        include_directories: bool = False,
        reporter: Optional[SessionReporter] = None,
        context: Optional[TraversalContext] = None,
    ):
        self.root_dir = os.path.abspath(root_dir)
        self.exclude_patterns = list(exclude_patterns or [])
        self.dir_patterns = list(DEFAULT_EXCLUDE_PATTERNS) if use_default_exclusions else []
        self.excluded_dirs = [str(Path(d).resolve()) for d in excluded_dirs] if excluded_dirs else []
        self.include_hidden = include_hidden
        self.follow_symlinks = follow_symlinks
        self.max_depth = max_depth
        self.include_directories = include_directories
        self.reporter = reporter
        self.context = context or TraversalContext()

    @classmethod
    def from_config(
        cls,
        config: ScanConfig,
        root_dir: str,
        reporter: Optional[SessionReporter] = None,
        context: Optional[TraversalContext] = None,
    ) -> "FileScannerImpl":
        return cls(
            root_dir=root_dir,
            exclude_patterns=config.exclude_patterns,
            use_default_exclusions=config.use_default_exclusions,
            excluded_dirs=config.excluded_dirs,
            include_hidden=config.include_hidden,
            follow_symlinks=config.follow_symlinks,
            max_depth=config.max_depth,
            include_directories=config.include_directories,
            reporter=reporter,
            context=context,
        )

    @staticmethod
    def validate_root(root_dir: str) -> str:
        """Returns the absolute root or raises InvalidRootError."""
        root_path = Path(root_dir)
        if not root_path.exists():
            logger.error(f"Directory does not exist: {root_dir}")
            raise InvalidRootError(str(root_dir), "Directory does not exist")
        if not root_path.is_dir():
            logger.error(f"Not a directory: {root_dir}")
            raise InvalidRootError(str(root_dir), "Not a directory")
        return os.path.abspath(root_dir)

    def walk(self, stopped_flag: Optional[Callable[[], bool]] = None) -> Iterator[ScanEntry]:
        """
        Lazily yields entries below the root. No ordering guarantee.
        Raises InvalidRootError before yielding anything if the root is unusable.
        """
        root = self.validate_root(self.root_dir)
        logger.debug(f"Walking {root} (hidden={self.include_hidden}, "
                     f"follow_symlinks={self.follow_symlinks}, max_depth={self.max_depth})")

        if self.follow_symlinks:
            try:
                st = os.stat(root)
                self.context.enter((st.st_dev, st.st_ino))
            except OSError as e:
                self._report(root, Operation.STAT, from_os_error(root, e))

        stack: List[Tuple[str, int]] = [(root, 0)]
        while stack:
            if stopped_flag and stopped_flag():
                logger.debug("Walk interrupted by user")
                return

            current, depth = stack.pop()
            try:
                with os.scandir(current) as it:
                    entries = list(it)
            except OSError as e:
                self._report(current, Operation.READDIR, from_os_error(current, e))
                continue

            for entry in entries:
                if stopped_flag and stopped_flag():
                    logger.debug("Walk interrupted by user")
                    return
                yield from self._visit(entry, root, depth, stack)

    def _visit(self, entry: os.DirEntry, root: str, depth: int,
               stack: List[Tuple[str, int]]) -> Iterator[ScanEntry]:
        if not self.include_hidden and self._is_hidden_entry(entry):
            logger.debug(f"Skipping hidden entry: {entry.path}")
            return

        try:
            is_link = entry.is_symlink()
            is_dir = entry.is_dir(follow_symlinks=self.follow_symlinks)
        except OSError as e:
            self._report(entry.path, Operation.STAT, from_os_error(entry.path, e))
            return

        if self._is_excluded(entry, root, is_dir):
            return

        if is_link and not self.follow_symlinks:
            # Recorded as a link, never traversed
            yield ScanEntry(entry.path, root, depth, is_symlink=True)
            return

        if not is_dir:
            if is_link and not self._link_resolves(entry):
                return
            yield ScanEntry(entry.path, root, depth, is_symlink=is_link)
            return

        if self.follow_symlinks:
            try:
                st = entry.stat(follow_symlinks=True)
            except OSError as e:
                self._report(entry.path, Operation.STAT, from_os_error(entry.path, e))
                return
            if not self.context.enter((st.st_dev, st.st_ino)):
                logger.debug(f"Skipping already visited directory: {entry.path}")
                return

        if self.include_directories:
            yield ScanEntry(entry.path, root, depth, is_dir=True, is_symlink=is_link)

        if self.max_depth is None or depth + 1 <= self.max_depth:
            stack.append((entry.path, depth + 1))

    def _link_resolves(self, entry: os.DirEntry) -> bool:
        try:
            entry.stat(follow_symlinks=True)
            return True
        except FileNotFoundError:
            self._report(entry.path, Operation.STAT,
                         BrokenSymlinkError(entry.path, "Symlink target does not exist"))
        except OSError as e:
            self._report(entry.path, Operation.STAT,
                         BrokenSymlinkError(entry.path, f"Symlink cannot be resolved ({e.strerror or e})"))
        return False

    def _is_excluded(self, entry: os.DirEntry, root: str, is_dir: bool) -> bool:
        name = entry.name
        rel = Path(os.path.relpath(entry.path, root)).as_posix()

        if is_dir:
            if any(fnmatch.fnmatch(name, p) for p in self.dir_patterns):
                logger.debug(f"Skipping excluded directory: {entry.path}")
                return True
            if self._is_system_trash(Path(entry.path)):
                logger.debug(f"Skipping system trash directory: {entry.path}")
                return True
            if self.excluded_dirs and self._is_excluded_directory(Path(entry.path), self.excluded_dirs):
                logger.debug(f"Skipping excluded directory: {entry.path}")
                return True

        for pattern in self.exclude_patterns:
            if fnmatch.fnmatch(name, pattern) or fnmatch.fnmatch(rel, pattern):
                logger.debug(f"Skipping {entry.path} (matches '{pattern}')")
                return True
        return False

    @staticmethod
    def _is_hidden_entry(entry: os.DirEntry) -> bool:
        if entry.name.startswith("."):
            return True
        if sys.platform == "win32":
            try:
                attrs = entry.stat(follow_symlinks=False).st_file_attributes
            except OSError:
                return False
            return bool(attrs & stat.FILE_ATTRIBUTE_HIDDEN)
        return False

    @staticmethod
    def _is_system_trash(path: Path) -> bool:
        """
        Check if path belongs to OS trash/recycle bin (cross-platform).
        Returns False on any error (fail-safe: better to scan than skip valid data).
        """
        try:
            path_str = str(path.resolve(strict=False))

            if sys.platform == "win32":
                if "$Recycle.Bin" in path_str or "\\Recycler\\" in path_str:
                    return True
            elif sys.platform == "darwin":
                if "/.Trash/" in path_str or path_str.endswith("/.Trash"):
                    return True
            else:
                if path_str.endswith(".local/share/Trash") or ".local/share/Trash/" in path_str:
                    return True

            return False
        except (OSError, ValueError):
            return False

    @staticmethod
    def _is_excluded_directory(path: Path, excluded_dirs: List[str]) -> bool:
        """Check if path is within an excluded directory."""
        try:
            path_str = str(path.resolve(strict=False))
            for excluded_dir in excluded_dirs:
                normalized_excluded = os.path.normpath(excluded_dir)
                if path_str.startswith(normalized_excluded + os.sep) or \
                        path_str == normalized_excluded:
                    return True
            return False
        except (OSError, ValueError):
            return False

    def _report(self, path: str, operation: Operation, exc: Exception) -> None:
        if self.reporter is not None:
            self.reporter.record_exception(path, operation, exc)
        else:
            logger.warning(f"{operation.value} failed for {path}: {exc}")
