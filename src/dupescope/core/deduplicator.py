"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

deduplicator.py
Turns a set of FileRecords into classified DuplicateGroups.

Two entry points share one pipeline (size → partial hash → full hash):
    - DeduplicatorImpl.find_duplicates: batch pass after traversal
    - IncrementalDeduplicator: records are added as they arrive, groups()
      regroups only the size buckets that changed since the previous call
"""
import logging
import threading
import time
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional, Tuple

from dupescope.core.grouper import FileGrouperImpl
from dupescope.core.hasher import HasherImpl
from dupescope.core.interfaces import PipelineStage
from dupescope.core.models import CandidateGroup, DuplicateGroup, FileRecord, GroupingStats
from dupescope.core.reporter import SessionReporter
from dupescope.core.stages import FullHashStage, PartialHashStage, SizeStageImpl

logger = logging.getLogger(__name__)


def sort_groups(groups: List[DuplicateGroup]) -> List[DuplicateGroup]:
    """Largest reclaimable space first, then larger files, then path."""
    return sorted(groups, key=lambda g: (-g.wasted_space, -g.size, g.files[0].path))


# =============================
# Main Deduplicator Class
# =============================
class DeduplicatorImpl:
    """
    Implements multi-stage duplicate detection using a pipeline architecture.
    Collects per-stage statistics.
    """
    def __init__(
        self,
        hasher: Optional[HasherImpl] = None,
        reporter: Optional[SessionReporter] = None,
        grouper: Optional[FileGrouperImpl] = None,
        hash_workers: int = 1,
    ):
        self.grouper = grouper or FileGrouperImpl(hasher, reporter)
        self.hash_workers = hash_workers

    @property
    def hasher(self) -> HasherImpl:
        return self.grouper.hasher

    def find_duplicates(
        self,
        files: List[FileRecord],
        stopped_flag: Optional[Callable[[], bool]] = None,
        progress_callback: Optional[Callable[[str, int, object], None]] = None
    ) -> Tuple[List[DuplicateGroup], GroupingStats]:
        """
        Main grouping pipeline.
        Args:
            files: Records of one session, in any order
            stopped_flag: Function that returns True if operation should be stopped.
            progress_callback: Reports progress per stage (stage, current, total).
        Returns:
            Tuple[List[DuplicateGroup], GroupingStats]
        """
        stats = GroupingStats()
        total_start_time = time.time()

        if self.hash_workers > 1:
            with ThreadPoolExecutor(max_workers=self.hash_workers) as executor:
                self.grouper.executor = executor
                try:
                    confirmed = self._run_pipeline(files, stats, stopped_flag, progress_callback)
                finally:
                    self.grouper.executor = None
        else:
            confirmed = self._run_pipeline(files, stats, stopped_flag, progress_callback)

        groups = sort_groups([self.grouper.build_group(g.files) for g in confirmed])
        stats.total_time = time.time() - total_start_time
        logger.debug(f"Found {len(groups)} duplicate groups in {stats.total_time:.3f}s")
        return groups, stats

    def _run_pipeline(
        self,
        files: List[FileRecord],
        stats: GroupingStats,
        stopped_flag: Optional[Callable[[], bool]],
        progress_callback: Optional[Callable[[str, int, object], None]],
    ) -> List[CandidateGroup]:
        size_stage = SizeStageImpl(self.grouper)
        start_time = time.time()
        groups = size_stage.process(
            files,
            stopped_flag=stopped_flag,
            progress_callback=progress_callback
        )
        DeduplicatorImpl._update_stats(stats, "size", time.time() - start_time, groups, [])

        confirmed: List[CandidateGroup] = []
        for stage_name, stage in self._build_pipeline():
            start_time = time.time()
            groups = stage.process(
                groups,
                confirmed,
                stopped_flag=stopped_flag,
                progress_callback=progress_callback
            )
            DeduplicatorImpl._update_stats(stats, stage_name, time.time() - start_time, groups, confirmed)

        return confirmed

    def _build_pipeline(self) -> List[Tuple[str, PipelineStage]]:
        return [
            ("partial", PartialHashStage(self.grouper)),
            ("full", FullHashStage(self.grouper)),
        ]

    @staticmethod
    def _update_stats(
        stats: GroupingStats,
        stage: str,
        duration: float,
        groups: List[CandidateGroup],
        confirmed: List[CandidateGroup]
    ):
        """
        Helper to update GroupingStats object.
        Includes both unconfirmed and confirmed groups in stats.
        """
        total_files = sum(len(g.files) for g in groups) + sum(len(g.files) for g in confirmed)
        total_groups = len(groups) + len(confirmed)
        stats.update_stage(
            stage_name=stage,
            groups_found=total_groups,
            files_processed=total_files,
            duration=duration
        )


class IncrementalDeduplicator:
    """
    Streaming variant: accepts records in any order and keeps groups per size bucket.
    Only buckets that received records since the last groups() call are regrouped;
    digests cached on records make regrouping cheap.
    """

    def __init__(self, deduplicator: Optional[DeduplicatorImpl] = None):
        self.deduplicator = deduplicator or DeduplicatorImpl()
        self._buckets: Dict[int, List[FileRecord]] = defaultdict(list)
        self._groups: Dict[int, List[DuplicateGroup]] = {}
        self._dirty: set = set()
        self._paths: set = set()
        self._lock = threading.Lock()

    def add(self, record: FileRecord) -> bool:
        """Adds a record; returns False for non-comparable or already known paths."""
        if not record.is_regular:
            return False
        with self._lock:
            if record.path in self._paths:
                return False
            self._paths.add(record.path)
            self._buckets[record.size].append(record)
            self._dirty.add(record.size)
        return True

    def groups(self, stopped_flag: Optional[Callable[[], bool]] = None) -> List[DuplicateGroup]:
        with self._lock:
            dirty = sorted(self._dirty)
            self._dirty = set()
            buckets = {size: list(self._buckets[size]) for size in dirty}

        for index, size in enumerate(dirty):
            members = buckets[size]
            if len(members) < 2:
                self._groups.pop(size, None)
                continue
            found, _ = self.deduplicator.find_duplicates(members, stopped_flag=stopped_flag)
            if stopped_flag and stopped_flag():
                # Interrupted buckets stay dirty for the next call
                with self._lock:
                    self._dirty.update(dirty[index:])
                break
            self._groups[size] = found
            self._drop_failed(size)

        result = [g for groups in self._groups.values() for g in groups]
        return sort_groups(result)

    def _drop_failed(self, size: int) -> None:
        grouper = self.deduplicator.grouper
        with self._lock:
            self._buckets[size] = [r for r in self._buckets[size] if not grouper.is_failed(r)]

    def __len__(self) -> int:
        with self._lock:
            return sum(len(b) for b in self._buckets.values())
