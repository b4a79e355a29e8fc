"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/models.py
Data models for file discovery, fingerprinting and duplicate grouping.
"""

import copy
import logging
import os
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Dict, Optional, Union, Callable, Tuple, Any

logger = logging.getLogger(__name__)


# =============================
# Enums
# =============================

class FileCategory(str, Enum):
    DOCUMENT = "document"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    ARCHIVE = "archive"
    CODE = "code"
    OTHER = "other"


class GroupKind(Enum):
    """
    Physical storage relationship between members of a duplicate group.
    """
    HARDLINK_ONLY = "hardlink-only"
    INDEPENDENT = "independent"
    MIXED = "mixed"

    @property
    def display_name(self) -> str:
        """Human-readable name for UI display."""
        mapping = {
            GroupKind.HARDLINK_ONLY: "Hard links only",
            GroupKind.INDEPENDENT: "Independent copies",
            GroupKind.MIXED: "Copies with hard links",
        }
        return mapping.get(self, self.value)

    def __repr__(self) -> str:
        return self.value


class Operation(str, Enum):
    """Filesystem operation during which an error occurred."""
    READDIR = "readdir"
    STAT = "stat"
    HASH = "hash"


class ErrorKind(str, Enum):
    IO = "io"
    PERMISSION = "permission"
    BROKEN_SYMLINK = "broken-symlink"
    UNSUPPORTED = "unsupported"
    HASH = "hash"


class Stage(str, Enum):
    SIZE = "Size grouping"
    PARTIAL = "Partial Hash"
    FULL = "Full Hash"


# ======================
#  Core Data Models
# ======================

@dataclass
class FileHashes:
    """
    Lazily computed content digests of one file.
    Each slot is filled at most once and is frozen afterwards.
    """
    partial: Optional[bytes] = None
    full: Optional[bytes] = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def __post_init__(self):
        for key in ("partial", "full"):
            value = getattr(self, key)
            if value is not None and not isinstance(value, bytes):
                raise ValueError(f"Field '{key}' must be bytes or None")

    def set_partial(self, digest: bytes) -> bytes:
        return self._set("partial", digest)

    def set_full(self, digest: bytes) -> bytes:
        return self._set("full", digest)

    def _set(self, slot: str, digest: bytes) -> bytes:
        if not isinstance(digest, bytes):
            raise ValueError(f"Field '{slot}' must be bytes")
        with self._lock:
            current = getattr(self, slot)
            if current is None:
                setattr(self, slot, digest)
                return digest
            if current != digest:
                raise ValueError(f"{slot} hash is already set and cannot change")
            return current


@dataclass(eq=False)
class FileRecord:
    """
    One discovered path within a scan session.
    All fields except the content digests are populated once by the metadata
    extractor; digests are filled lazily by the hasher.
    """
    path: str
    size: int  # in bytes
    name: Optional[str] = None
    extension: Optional[str] = None
    root: Optional[str] = None
    mime_type: str = "application/octet-stream"
    category: FileCategory = FileCategory.OTHER
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
    accessed_at: Optional[datetime] = None
    permissions: str = "0o000"
    owner: str = ""
    device: Optional[int] = None
    inode: Optional[int] = None
    hard_link_count: int = 1
    is_symlink: bool = False
    symlink_target: Optional[str] = None
    is_hidden: bool = False
    depth: int = 0
    tags: Tuple[str, ...] = ()
    is_executable: bool = False
    is_dir: bool = False
    is_regular: bool = True  # False for directories and for records describing a link itself
    hashes: FileHashes = field(default_factory=FileHashes)

    def __post_init__(self):
        """Automatically extract basename and extension from path if not provided."""
        if self.name is None:
            self.name = os.path.basename(self.path)

        if self.extension is None:
            _, ext = os.path.splitext(self.name)
            self.extension = ext.lower()  # ".JPG" → ".jpg"

    @property
    def storage_key(self) -> Tuple[Any, ...]:
        """(device, inode) of the storage object; path-unique when unknown."""
        if self.inode is None:
            return ("path", self.path)
        return (self.device, self.inode)

    @property
    def partial_hash(self) -> Optional[bytes]:
        return self.hashes.partial

    @property
    def full_hash(self) -> Optional[bytes]:
        return self.hashes.full

    def __repr__(self):
        return f"<FileRecord path={self.path}, size={self.size}>"


@dataclass
class CandidateGroup:
    """
    Files that are still potential duplicates between pipeline stages.
    All files in the group have the same size and matching hash signatures so far.
    """
    size: int
    files: List[FileRecord]

    def __repr__(self):
        return f"<CandidateGroup size={self.size}, count={len(self.files)}>"


@dataclass
class LinkCluster:
    """Names that refer to one storage object (device, inode)."""
    storage_key: Tuple[Any, ...]
    files: List[FileRecord]

    @property
    def paths(self) -> List[str]:
        return [f.path for f in self.files]


@dataclass
class DuplicateGroup:
    """
    Files with identical full content hash.
    Everything besides key/size/files is derived, so the group can be rebuilt
    from the record set at any time.
    """
    key: bytes
    size: int
    files: List[FileRecord]

    def __post_init__(self):
        # Cluster members next to each other, stable by path
        self.files = sorted(self.files, key=lambda f: (str(f.storage_key), f.path))

    @property
    def clusters(self) -> List[LinkCluster]:
        clusters: Dict[Tuple[Any, ...], LinkCluster] = {}
        for file in self.files:
            cluster = clusters.get(file.storage_key)
            if cluster is None:
                cluster = clusters[file.storage_key] = LinkCluster(file.storage_key, [])
            cluster.files.append(file)
        return list(clusters.values())

    @property
    def kind(self) -> GroupKind:
        clusters = self.clusters
        if len(clusters) == 1:
            return GroupKind.HARDLINK_ONLY
        if all(len(c.files) == 1 for c in clusters):
            return GroupKind.INDEPENDENT
        return GroupKind.MIXED

    @property
    def wasted_space(self) -> int:
        """Bytes reclaimable by keeping one storage object; hard links cost nothing."""
        return (len(self.clusters) - 1) * self.size

    @property
    def duplicate_count(self) -> int:
        """How many files are in this group."""
        return len(self.files)

    @property
    def hex_key(self) -> str:
        return self.key.hex()

    def __repr__(self):
        return f"<DuplicateGroup size={self.size}, count={len(self.files)}, kind={self.kind.value}>"


@dataclass
class ErrorEntry:
    path: str
    operation: Operation
    kind: ErrorKind
    message: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class ScanSession:
    """
    Aggregate state of one scan run. Owns the error list; counts are updated
    by the SessionReporter.
    """
    roots: List[str]
    config: "ScanConfig"
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    files_seen: int = 0
    total_size: int = 0
    errors: List[ErrorEntry] = field(default_factory=list)
    cancelled: bool = False

    @property
    def duration(self) -> float:
        if self.started_at is None:
            return 0.0
        end = self.finished_at or datetime.now(timezone.utc)
        return (end - self.started_at).total_seconds()

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def summary(self) -> Dict[str, Union[int, float, bool]]:
        return {
            "files": self.files_seen,
            "total_size": self.total_size,
            "duration": self.duration,
            "errors": self.error_count,
            "cancelled": self.cancelled,
        }


class GroupingStats:
    """
    Statistics collected during the grouping pipeline.
    """
    def __init__(self):
        self.total_time: float = 0.0
        self.stage_stats: Dict[str, Dict[str, Union[int, float]]] = {}
        self._listeners: List[Callable[[str, Dict], None]] = []

    def add_listener(self, listener: Callable[[str, Dict], None]):
        """Adds a listener to receive updates when stats are updated."""
        self._listeners.append(listener)

    def update_stage(
            self,
            stage_name: str,
            groups_found: int,
            files_processed: int,
            duration: float
    ) -> None:
        if stage_name not in self.stage_stats:
            self.stage_stats[stage_name] = {
                "groups": 0,
                "files": 0,
                "time": 0.0
            }
        self.stage_stats[stage_name]["groups"] += groups_found
        self.stage_stats[stage_name]["files"] += files_processed
        self.stage_stats[stage_name]["time"] += duration

        for listener in self._listeners:
            try:
                listener(stage_name, self.stage_stats[stage_name])
            except Exception:
                logger.exception("Error in stats listener")

    def format_summary(self) -> str:
        labels = {
            "size": "Size Groups",
            "partial": "Partial Hash Groups",
            "full": "Full Content Hash Groups",
        }

        lines = [
            "Grouping Statistics:",
            f"Total Execution Time: {self.total_time:.3f}s\n",
            "Stage: GROUPS / FILES / TIME"
        ]

        for stage, data in self.stage_stats.items():
            label = labels.get(stage.lower(), stage.title())
            if data["groups"] > 0 or data["time"] > 0:
                lines.append(f"{label}: {data['groups']} / {data['files']} / {data['time']:.3f}s")

        return "\n".join(lines)


"""
DTO for scan parameters with built-in validation.
Interface-agnostic, the same object drives library callers and tests.
"""
from dupescope.utils.convert_utils import ConvertUtils


class ScanDefaults:
    PARTIAL_HASH_BYTES = 100 * 1024
    MAX_WORKERS = 4
    PROGRESS_INTERVAL = 1000
    ALGORITHMS = ("sha256", "xxhash")


@dataclass
class ScanConfig:
    """Parameters of a scan session with validation."""
    roots: List[str]
    exclude_patterns: List[str] = field(default_factory=list)
    use_default_exclusions: bool = True
    excluded_dirs: List[str] = field(default_factory=list)
    include_hidden: bool = False
    follow_symlinks: bool = False
    max_depth: Optional[int] = None
    include_directories: bool = False
    partial_hash_bytes: int = ScanDefaults.PARTIAL_HASH_BYTES
    min_size_bytes: int = 0
    max_size_bytes: Optional[int] = None
    extensions: List[str] = field(default_factory=list)
    algorithm: str = "sha256"
    sniff_mime: bool = True
    max_workers: int = ScanDefaults.MAX_WORKERS
    hash_workers: int = 1
    find_duplicates: bool = True
    progress_interval: int = ScanDefaults.PROGRESS_INTERVAL

    def __post_init__(self):
        """Validate parameters immediately after creation."""
        if isinstance(self.roots, (str, os.PathLike)):
            self.roots = [self.roots]
        self.roots = [os.fspath(r) for r in self.roots]
        if not self.roots or not all(self.roots):
            raise ValueError("At least one root directory is required")

        if self.partial_hash_bytes <= 0:
            raise ValueError("Partial hash size must be positive")

        if self.min_size_bytes < 0:
            raise ValueError("Minimum size cannot be negative")

        if self.max_size_bytes is not None and self.max_size_bytes < self.min_size_bytes:
            raise ValueError("Maximum size cannot be less than minimum size")

        if self.max_depth is not None and self.max_depth < 0:
            raise ValueError("Maximum depth cannot be negative")

        if self.max_workers < 1 or self.hash_workers < 1:
            raise ValueError("Worker counts must be at least 1")

        if self.progress_interval < 1:
            raise ValueError("Progress interval must be at least 1")

        self.algorithm = self.algorithm.lower()
        if self.algorithm not in ScanDefaults.ALGORITHMS:
            raise ValueError(
                f"Unknown hash algorithm '{self.algorithm}'. "
                f"Valid options: {', '.join(ScanDefaults.ALGORITHMS)}"
            )

        # Normalize extensions: ensure they start with dot and are lowercase
        normalized = []
        for ext in self.extensions:
            ext = ext.strip().lower()
            if ext and not ext.startswith('.'):
                ext = f".{ext}"
            if ext:
                normalized.append(ext)
        self.extensions = normalized

    def snapshot(self) -> "ScanConfig":
        """Independent copy stored on the session."""
        return copy.deepcopy(self)

    @staticmethod
    def from_human_readable(
            roots: Union[str, List[str]],
            min_size_str: str = "0",
            max_size_str: str = "",
            partial_hash_str: str = "100KB",
            extensions_str: str = "",
            **kwargs
    ) -> 'ScanConfig':
        """
        Factory method to create a config from human-readable inputs.
        Useful for argument parsing or UI input conversion.
        """
        min_size = ConvertUtils.human_to_bytes(min_size_str)
        max_size = ConvertUtils.human_to_bytes(max_size_str) if max_size_str else None
        partial = ConvertUtils.human_to_bytes(partial_hash_str)

        ext_list = [
            ext.strip() for ext in extensions_str.split(",") if ext.strip()
        ] if extensions_str else []

        return ScanConfig(
            roots=roots,
            min_size_bytes=min_size,
            max_size_bytes=max_size,
            partial_hash_bytes=partial,
            extensions=ext_list,
            **kwargs
        )
