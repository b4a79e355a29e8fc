"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

interfaces.py

Defines core interfaces (Protocols) used throughout the scanning and grouping system.

Key Components:
---------------
- HashState / HashAlgorithm: Streaming hash functions (SHA-256, xxHash).
- Hasher: Computes and caches partial and full content digests of a FileRecord.
- FileScanner: Walks a directory tree and yields candidate entries.
- FileGrouper: Buckets records by size and digests.
- ProgressObserver: Receives progress snapshots from the session reporter.
"""

from typing import Protocol, List, Dict, Optional, Callable, Iterator, Any

from dupescope.core.models import FileRecord, CandidateGroup


class HashState(Protocol):
    """Incremental hash object (hashlib/xxhash compatible)."""
    def update(self, data: bytes) -> None: ...
    def digest(self) -> bytes: ...


class HashAlgorithm(Protocol):
    """
    Interface for generic streaming hash algorithms.

    Allows plugging in different hashing functions without affecting the rest
    of the grouping logic.
    """
    name: str

    def new(self) -> HashState:
        """Returns a fresh incremental hash object."""
        ...


class Hasher(Protocol):
    """Interface for hashing the bounded prefix and the whole content of a file."""
    def compute_partial_hash(self, file: FileRecord) -> bytes: ...
    def compute_full_hash(self, file: FileRecord) -> bytes: ...


class FileScanner(Protocol):
    """
    Interface for walking a directory tree.
    """
    def walk(
        self,
        stopped_flag: Optional[Callable[[], bool]] = None,
    ) -> Iterator[Any]:
        """
        Lazily yield candidate entries below the configured root.

        Args:
            stopped_flag: Function that returns True if the walk should stop.
        """
        ...


class FileGrouper(Protocol):
    """
    Interface for grouping records by size or content digests.
    """
    def group_by_size(self, files: List[FileRecord]) -> Dict[int, List[FileRecord]]: ...
    def group_by_partial_hash(self, files: List[FileRecord]) -> Dict[bytes, List[FileRecord]]: ...
    def group_by_full_hash(self, files: List[FileRecord]) -> Dict[bytes, List[FileRecord]]: ...


class ProgressObserver(Protocol):
    """Callable notified with ProgressEvents by the session reporter."""
    def __call__(self, event: Any) -> None: ...


class PipelineStage(Protocol):
    """
    A hash stage of the grouping pipeline.

    Splits candidate groups into smaller candidate sets, appends groups whose
    content identity is already established to confirmed.
    """
    def process(
        self,
        groups: List[CandidateGroup],
        confirmed: List[CandidateGroup],
        stopped_flag: Optional[Callable[[], bool]] = None,
        progress_callback: Optional[Callable[[str, int, object], None]] = None
    ) -> List[CandidateGroup]:
        ...
