"""
dupescope: duplicate file finder core.

Core features:
- Tiered hashing: size → partial hash (first 100KB) → full content hash
- Hard-link aware groups: hardlink-only, independent copies, mixed
- Fault-tolerant traversal: unreadable entries are reported, never fatal
- Read-only: files are never moved, renamed or deleted
"""

from importlib.metadata import version as _version, PackageNotFoundError

try:
    __version__ = _version("dupescope")
except PackageNotFoundError:
    __version__ = "0.0.0"

# Public API: only what users should import directly
from dupescope.commands import ScanCommand, ScanResult
from dupescope.core import (
    ScanConfig, FileRecord, DuplicateGroup, GroupKind, ScanSession, ErrorEntry,
    IncrementalDeduplicator, InvalidRootError)
from dupescope.utils.convert_utils import ConvertUtils

__all__ = [
    "ScanCommand",
    "ScanResult",
    "ScanConfig",
    "FileRecord",
    "DuplicateGroup",
    "GroupKind",
    "ScanSession",
    "ErrorEntry",
    "IncrementalDeduplicator",
    "InvalidRootError",
    "ConvertUtils",
    "__version__",
]
