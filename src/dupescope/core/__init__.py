"""
Core engine: traversal, metadata extraction, tiered hashing and grouping.

This package contains the performance-critical foundation of dupescope:
- FileScannerImpl: lazy directory traversal with exclusion, depth and symlink policies
- MetadataExtractor + OwnerCache: stat-based FileRecords with MIME sniffing
- HasherImpl: partial (first 100KB) and full streaming content digests
- FileGrouperImpl: size and digest bucketing, hard-link aware
- DeduplicatorImpl / IncrementalDeduplicator: size → partial hash → full hash pipeline
- SessionReporter: progress counts and error entries of a session

All components are pure Python with no UI dependencies.
"""

from .models import (
    FileRecord, FileHashes, DuplicateGroup, LinkCluster, CandidateGroup, GroupKind,
    FileCategory, ErrorKind, Operation, ErrorEntry, ScanSession, ScanConfig, GroupingStats)
from .errors import (
    DupescopeError, ScanIOError, ScanPermissionError, BrokenSymlinkError,
    UnsupportedPathError, HashComputationError, InvalidRootError)
from .hasher import HasherImpl, SHA256AlgorithmImpl, XXHashAlgorithmImpl, quick_compare
from .metadata import MetadataExtractor, OwnerCache
from .scanner import FileScannerImpl, ScanEntry, TraversalContext
from .grouper import FileGrouperImpl, classify
from .deduplicator import DeduplicatorImpl, IncrementalDeduplicator
from .reporter import SessionReporter, ProgressEvent, QueueObserver

__all__ = [
    "FileRecord",
    "FileHashes",
    "DuplicateGroup",
    "LinkCluster",
    "CandidateGroup",
    "GroupKind",
    "FileCategory",
    "ErrorKind",
    "Operation",
    "ErrorEntry",
    "ScanSession",
    "ScanConfig",
    "GroupingStats",
    "DupescopeError",
    "ScanIOError",
    "ScanPermissionError",
    "BrokenSymlinkError",
    "UnsupportedPathError",
    "HashComputationError",
    "InvalidRootError",
    "HasherImpl",
    "SHA256AlgorithmImpl",
    "XXHashAlgorithmImpl",
    "quick_compare",
    "MetadataExtractor",
    "OwnerCache",
    "FileScannerImpl",
    "ScanEntry",
    "TraversalContext",
    "FileGrouperImpl",
    "classify",
    "DeduplicatorImpl",
    "IncrementalDeduplicator",
    "SessionReporter",
    "ProgressEvent",
    "QueueObserver",
]
