"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/metadata.py
Turns a filesystem path into a FileRecord: size, timestamps, permissions, owner,
link identity, MIME type and category. Content is never hashed here; only a
bounded header is read for signature sniffing.
"""

import logging
import mimetypes
import os
import stat
import threading
from typing import Callable, Dict, Optional, Tuple

from dupescope.core.errors import (
    BrokenSymlinkError,
    ScanPermissionError,
    UnsupportedPathError,
    from_os_error,
)
from dupescope.core.filetypes import (
    EXECUTABLE_EXTENSIONS,
    UNKNOWN_MIME,
    category_for,
    lookup_extension,
)
from dupescope.core.models import FileCategory, FileRecord
from dupescope.utils.convert_utils import ConvertUtils

# Optional import: libmagic may be absent; the extension table still applies
try:
    import magic
    HAS_MAGIC = True
except ImportError:
    HAS_MAGIC = False
    magic = None

try:
    import pwd
except ImportError:  # Windows
    pwd = None

logger = logging.getLogger(__name__)

SNIFF_BYTES = 2048
TAGS_XATTR = "user.xdg.tags"

_INCONCLUSIVE_MIMES = {
    "",
    UNKNOWN_MIME,
    "application/x-empty",
    "inode/x-empty",
}


def compute_depth(root: str, path: str) -> int:
    """Number of path separators between the scan root and the entry."""
    rel = os.path.relpath(path, root)
    if rel == os.curdir:
        return 0
    return rel.count(os.sep)


def _lookup_owner_name(uid: int) -> str:
    if pwd is None:
        return str(uid)
    return pwd.getpwuid(uid).pw_name


class OwnerCache:
    """
    uid → owner name memo with session lifetime.
    Each uid is resolved at most once even when several workers ask concurrently;
    unresolvable ids map to their numeric string.
    """

    def __init__(self, resolver: Optional[Callable[[int], str]] = None):
        self._resolver = resolver or _lookup_owner_name
        self._names: Dict[int, str] = {}
        self._pending: Dict[int, threading.Event] = {}
        self._lock = threading.Lock()
        self.lookups = 0

    def resolve(self, uid: int) -> str:
        with self._lock:
            if uid in self._names:
                return self._names[uid]
            event = self._pending.get(uid)
            is_owner = event is None
            if is_owner:
                event = self._pending[uid] = threading.Event()
                self.lookups += 1

        if not is_owner:
            event.wait()
            return self._names[uid]

        name = str(uid)
        try:
            name = self._resolver(uid)
        except (KeyError, OverflowError, OSError) as e:
            logger.debug(f"Could not resolve owner of uid {uid}: {e}")
        finally:
            with self._lock:
                self._names[uid] = name
                self._pending.pop(uid, None)
            event.set()
        return name

    def __len__(self) -> int:
        with self._lock:
            return len(self._names)


class MetadataExtractor:
    """
    Stats a path and builds a FileRecord with every field except the digests.

    Attributes:
        owner_cache: Session-scoped uid → name cache
        sniff_mime: Read a short header and detect the type by signature
        follow_symlinks: Describe symlink targets instead of the links themselves
    """

    def __init__(
        self,
        owner_cache: Optional[OwnerCache] = None,
        sniff_mime: bool = True,
        follow_symlinks: bool = False,
    ):
        self.owner_cache = owner_cache if owner_cache is not None else OwnerCache()
        self.sniff_mime = sniff_mime
        self.follow_symlinks = follow_symlinks

    def extract(
        self,
        path: str,
        root: Optional[str] = None,
        depth: Optional[int] = None,
        allow_directory: bool = False,
    ) -> FileRecord:
        """
        Build the record for `path`.

        Raises:
            ScanIOError: stat failed or the entry vanished
            ScanPermissionError: access denied
            BrokenSymlinkError: symlink target does not exist
            UnsupportedPathError: device file, socket, FIFO (or directory unless allowed)
        """
        path = os.path.abspath(path)
        try:
            link_stat = os.lstat(path)
        except OSError as e:
            raise from_os_error(path, e) from e

        is_symlink = stat.S_ISLNK(link_stat.st_mode)
        symlink_target = None
        st = link_stat
        if is_symlink:
            symlink_target, target_stat = self._resolve_link(path)
            if self.follow_symlinks:
                st = target_stat

        mode = st.st_mode
        is_dir = stat.S_ISDIR(mode)
        describes_link = is_symlink and not self.follow_symlinks
        if not describes_link and not stat.S_ISREG(mode):
            if not (is_dir and allow_directory):
                raise UnsupportedPathError(path, f"Unsupported file type ({stat.filemode(mode)[0]})")

        name = os.path.basename(path)
        _, ext = os.path.splitext(name)
        ext = ext.lower()

        if describes_link:
            mime_type, category = "inode/symlink", FileCategory.OTHER
        elif is_dir:
            mime_type, category = "inode/directory", FileCategory.OTHER
        else:
            mime_type = self.detect_mime(path, ext, st.st_size)
            category = category_for(mime_type, ext)

        if depth is None:
            depth = compute_depth(root, path) if root else 0

        return FileRecord(
            path=path,
            size=0 if is_dir else st.st_size,
            name=name,
            extension=ext,
            root=root,
            mime_type=mime_type,
            category=category,
            created_at=ConvertUtils.timestamp_to_datetime(getattr(st, "st_birthtime", st.st_ctime)),
            modified_at=ConvertUtils.timestamp_to_datetime(st.st_mtime),
            accessed_at=ConvertUtils.timestamp_to_datetime(st.st_atime),
            permissions=ConvertUtils.mode_to_octal(mode),
            owner=self.owner_cache.resolve(st.st_uid),
            device=st.st_dev,
            inode=st.st_ino,
            hard_link_count=st.st_nlink,
            is_symlink=is_symlink,
            symlink_target=symlink_target,
            is_hidden=self.is_hidden(name, st),
            depth=depth,
            tags=self.read_tags(path),
            is_executable=self.is_executable(mode, ext),
            is_dir=is_dir,
            is_regular=not (is_dir or describes_link),
        )

    def _resolve_link(self, path: str) -> Tuple[str, os.stat_result]:
        try:
            target_stat = os.stat(path)
        except FileNotFoundError as e:
            raise BrokenSymlinkError(path, "Symlink target does not exist") from e
        except OSError as e:
            # ELOOP and friends: the link cannot be resolved either
            if isinstance(e, PermissionError):
                raise ScanPermissionError(path, "Permission denied resolving symlink") from e
            raise BrokenSymlinkError(path, f"Symlink cannot be resolved ({e.strerror or e})") from e
        return os.path.realpath(path), target_stat

    def detect_mime(self, path: str, extension: str, size: int) -> str:
        """
        Signature sniffing first, then the extension table, then stdlib mimetypes.
        """
        sniffed = self._sniff(path) if size > 0 else None
        conclusive = sniffed not in _INCONCLUSIVE_MIMES and sniffed is not None
        # libmagic reports most text as text/plain; the extension is more specific
        if sniffed == "text/plain" and lookup_extension(extension) is not None:
            conclusive = False
        if conclusive:
            return sniffed

        entry = lookup_extension(extension)
        if entry is not None:
            return entry[0]

        guessed, _ = mimetypes.guess_type("x" + extension) if extension else (None, None)
        if guessed:
            return guessed

        return sniffed or UNKNOWN_MIME

    def _sniff(self, path: str) -> Optional[str]:
        if not (self.sniff_mime and HAS_MAGIC):
            return None
        try:
            with open(path, "rb") as f:
                header = f.read(SNIFF_BYTES)
        except OSError as e:
            # Unreadable content is reported by the hasher; the extension still applies
            logger.debug(f"Cannot read header of {path} for sniffing: {e}")
            return None
        try:
            return magic.from_buffer(header, mime=True)
        except magic.MagicException as e:
            logger.debug(f"Signature sniffing failed for {path}: {e}")
            return None

    @staticmethod
    def is_hidden(name: str, st: os.stat_result) -> bool:
        if name.startswith("."):
            return True
        flags = getattr(st, "st_flags", 0)
        if flags and flags & getattr(stat, "UF_HIDDEN", 0):
            return True
        attributes = getattr(st, "st_file_attributes", 0)
        if attributes and attributes & getattr(stat, "FILE_ATTRIBUTE_HIDDEN", 0):
            return True
        return False

    @staticmethod
    def is_executable(mode: int, extension: str) -> bool:
        if os.name == "nt":
            return extension in EXECUTABLE_EXTENSIONS
        return bool(mode & (stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH))

    @staticmethod
    def read_tags(path: str) -> Tuple[str, ...]:
        """Desktop labels stored in the user.xdg.tags extended attribute."""
        if not hasattr(os, "getxattr"):
            return ()
        try:
            raw = os.getxattr(path, TAGS_XATTR, follow_symlinks=False)
        except OSError:
            return ()
        return tuple(t.strip() for t in raw.decode("utf-8", "replace").split(",") if t.strip())
