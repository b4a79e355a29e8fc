"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/errors.py
Exception hierarchy for scanning, metadata extraction and hashing.

Every per-file exception carries the offending path and an ErrorKind so the
session reporter can record it without inspecting the exception type.
Only InvalidRootError is fatal for a session.
"""

from typing import Optional

from dupescope.core.models import ErrorKind


class DupescopeError(Exception):
    """Base exception for all dupescope errors."""
    kind: ErrorKind = ErrorKind.IO

    def __init__(self, path: str, message: Optional[str] = None):
        self.path = str(path)
        self.message = message or self.__class__.__name__
        super().__init__(f"{self.message}: {self.path}")


class ScanIOError(DupescopeError):
    """Generic read/stat failure (entry vanished, I/O error)."""
    kind = ErrorKind.IO


class ScanPermissionError(ScanIOError):
    """Access to the entry was denied."""
    kind = ErrorKind.PERMISSION


class BrokenSymlinkError(ScanIOError):
    """Symbolic link whose target cannot be resolved."""
    kind = ErrorKind.BROKEN_SYMLINK


class UnsupportedPathError(DupescopeError):
    """Non-regular entry: device file, socket, FIFO."""
    kind = ErrorKind.UNSUPPORTED


class HashComputationError(DupescopeError):
    """Reading the file content failed while hashing."""
    kind = ErrorKind.HASH


class InvalidRootError(DupescopeError, ValueError):
    """Scan root is missing or not a directory. Aborts the session."""
    kind = ErrorKind.IO


def from_os_error(path: str, exc: OSError) -> ScanIOError:
    """Translate an OSError raised by stat/scandir into the scan taxonomy."""
    if isinstance(exc, PermissionError):
        return ScanPermissionError(path, f"Permission denied ({exc.strerror or exc})")
    if isinstance(exc, FileNotFoundError):
        return ScanIOError(path, "Entry vanished during scan")
    return ScanIOError(path, str(exc.strerror or exc))
