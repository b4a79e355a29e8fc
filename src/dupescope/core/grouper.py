"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/grouper.py
Buckets FileRecords by size and by content digests.

Names of one storage object (same device and inode) are hashed once per bucket;
the other names adopt the digest. Records whose content cannot be read are
reported and dropped from the result.
"""

import logging
import threading
from collections import defaultdict
from concurrent.futures import Executor
from typing import Any, Callable, Dict, List, Optional, Tuple

from dupescope.core.errors import HashComputationError
from dupescope.core.hasher import HasherImpl
from dupescope.core.interfaces import FileGrouper
from dupescope.core.models import DuplicateGroup, FileRecord, Operation
from dupescope.core.reporter import SessionReporter

logger = logging.getLogger(__name__)


def classify(key: bytes, files: List[FileRecord]) -> DuplicateGroup:
    """Confirmed members of one digest → DuplicateGroup with link clusters, kind and wasted space."""
    if len(files) < 2:
        raise ValueError("A duplicate group needs at least two files")
    return DuplicateGroup(key=key, size=files[0].size, files=list(files))


class FileGrouperImpl(FileGrouper):
    """
    A concrete implementation of FileGrouper.
    Uses an injected HasherImpl instance for flexibility and testability.
    """

    def __init__(self, hasher: Optional[HasherImpl] = None,
                 reporter: Optional[SessionReporter] = None):
        self.hasher = hasher or HasherImpl()
        self.reporter = reporter
        self.executor: Optional[Executor] = None  # set by the deduplicator for parallel hashing
        self.failed: Dict[str, HashComputationError] = {}
        self._failed_lock = threading.Lock()

    def group_by_size(self, files: List[FileRecord]) -> Dict[int, List[FileRecord]]:
        """Groups files by their size."""
        groups = defaultdict(list)
        for file in files:
            groups[file.size].append(file)
        return self._drop_singletons(groups)

    def group_by_partial_hash(self, files: List[FileRecord]) -> Dict[bytes, List[FileRecord]]:
        """Groups files by the digest of their first bytes."""
        return self._group_by_digest(files, self.hasher.compute_partial_hash)

    def group_by_full_hash(self, files: List[FileRecord]) -> Dict[bytes, List[FileRecord]]:
        """Groups files by full content hash."""
        return self._group_by_digest(files, self.hasher.compute_full_hash)

    @staticmethod
    def build_group(files: List[FileRecord]) -> DuplicateGroup:
        """Confirmed files (all with a full digest) → classified DuplicateGroup."""
        return classify(files[0].hashes.full, files)

    def is_failed(self, file: FileRecord) -> bool:
        with self._failed_lock:
            return file.path in self.failed

    def _group_by_digest(
        self,
        files: List[FileRecord],
        compute: Callable[[FileRecord], bytes],
    ) -> Dict[bytes, List[FileRecord]]:
        """
        Helper method to group files by a content digest.
        Args:
            files: List of files to group
            compute: Hasher method returning the digest of a record
        Returns:
            Dict[digest, List[FileRecord]] with 2+ files per entry
        """
        by_storage: Dict[Tuple[Any, ...], List[FileRecord]] = defaultdict(list)
        for file in files:
            if not self.is_failed(file):
                by_storage[file.storage_key].append(file)

        first_results = self._compute_many([names[0] for names in by_storage.values()], compute)

        groups = defaultdict(list)
        for names in by_storage.values():
            digest, source = first_results.get(id(names[0])), names[0]
            if digest is None:
                # The first name failed; another name of the same object may still be readable
                digest, source = self._first_readable(names[1:], compute)
                if digest is None:
                    continue
            for name in names:
                if name is source:
                    groups[digest].append(name)
                    continue
                if self.is_failed(name):
                    continue
                self.hasher.adopt(name, source)
                groups[digest].append(name)

        return self._drop_singletons(groups)

    def _compute_many(
        self,
        files: List[FileRecord],
        compute: Callable[[FileRecord], bytes],
    ) -> Dict[int, Optional[bytes]]:
        results: Dict[int, Optional[bytes]] = {}
        if self.executor is None or len(files) < 2:
            for file in files:
                results[id(file)] = self._safe_compute(file, compute)
            return results

        futures = {id(file): self.executor.submit(self._safe_compute, file, compute) for file in files}
        for key, future in futures.items():
            results[key] = future.result()
        return results

    def _first_readable(
        self,
        files: List[FileRecord],
        compute: Callable[[FileRecord], bytes],
    ) -> Tuple[Optional[bytes], Optional[FileRecord]]:
        for file in files:
            digest = self._safe_compute(file, compute)
            if digest is not None:
                return digest, file
        return None, None

    def _safe_compute(self, file: FileRecord, compute: Callable[[FileRecord], bytes]) -> Optional[bytes]:
        try:
            return compute(file)
        except HashComputationError as e:
            with self._failed_lock:
                self.failed[file.path] = e
            if self.reporter is not None:
                self.reporter.record_exception(file.path, Operation.HASH, e)
            else:
                logger.warning(f"Excluding {file.path} from grouping: {e}")
            return None

    @staticmethod
    def _drop_singletons(groups: Dict[Any, List[FileRecord]]) -> Dict[Any, List[FileRecord]]:
        result = {}
        for key, group in groups.items():
            if len(group) >= 2:  # Avoid groups with less than 2 files
                result[key] = sorted(group, key=lambda f: f.path)
        return result
