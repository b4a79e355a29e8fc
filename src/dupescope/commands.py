"""
Unified command orchestrator for one scan session.
This is the SINGLE entry point that wires traversal, metadata extraction,
hashing and grouping together; library callers and tests go through it.
"""
import logging
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Deque, Iterator, List, Optional

from dupescope.core.deduplicator import DeduplicatorImpl
from dupescope.core.errors import DupescopeError
from dupescope.core.hasher import HasherImpl, create_algorithm
from dupescope.core.interfaces import ProgressObserver
from dupescope.core.metadata import MetadataExtractor, OwnerCache
from dupescope.core.models import (
    DuplicateGroup, ErrorEntry, FileRecord, GroupingStats, Operation, ScanConfig, ScanSession,
)
from dupescope.core.reporter import SessionReporter
from dupescope.core.scanner import FileScannerImpl, ScanEntry, TraversalContext

logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    session: ScanSession
    records: List[FileRecord]
    groups: List[DuplicateGroup] = field(default_factory=list)
    stats: Optional[GroupingStats] = None

    @property
    def errors(self) -> List[ErrorEntry]:
        return self.session.errors

    @property
    def wasted_space(self) -> int:
        return sum(g.wasted_space for g in self.groups)


class ScanCommand:
    """
    Orchestrates the whole workflow:
    1. Validate every root (an invalid root fails before any record exists)
    2. Walk the roots, extract metadata on a worker pool
    3. Filter by size and extension, feed the session reporter
    4. Group duplicates (size → partial hash → full hash)

    Usage:
        config = ScanConfig(roots=["~/Pictures"], max_workers=8)
        result = ScanCommand().execute(config, stopped_flag=cancel_event.is_set)
        for group in result.groups:
            print(group.kind, group.wasted_space, [f.path for f in group.files])
    """

    def __init__(self):
        self.session: Optional[ScanSession] = None
        self.reporter: Optional[SessionReporter] = None
        self.hasher: Optional[HasherImpl] = None

    def execute(
            self,
            config: ScanConfig,
            stopped_flag: Optional[Callable[[], bool]] = None,
            observer: Optional[ProgressObserver] = None,
            progress_callback: Optional[Callable[[str, int, Optional[int]], None]] = None,
    ) -> ScanResult:
        """
        Run a complete session.

        Args:
            config: Validated scan parameters
            stopped_flag: () -> bool (returns True if operation should stop)
            observer: Receives ProgressEvents every config.progress_interval files and per error
            progress_callback: (stage: str, current: int, total: Optional[int]) -> None for grouping

        Returns:
            ScanResult with the session summary, every record and the duplicate groups

        Raises:
            InvalidRootError: If a root is missing or not a directory
        """
        records = list(self.stream(config, stopped_flag=stopped_flag, observer=observer))
        result = ScanResult(session=self.session, records=records)

        if config.find_duplicates and not self.session.cancelled:
            deduplicator = DeduplicatorImpl(self.hasher, self.reporter, hash_workers=config.hash_workers)
            result.groups, result.stats = deduplicator.find_duplicates(
                records,
                stopped_flag=stopped_flag,
                progress_callback=progress_callback
            )
            if stopped_flag and stopped_flag():
                self.session.cancelled = True

        self.session.finished_at = datetime.now(timezone.utc)
        self.reporter.flush()
        logger.info(
            f"Scan finished: {self.session.files_seen} files, {len(result.groups)} duplicate groups, "
            f"{self.session.error_count} errors in {self.session.duration:.2f}s"
        )
        return result

    def stream(
            self,
            config: ScanConfig,
            stopped_flag: Optional[Callable[[], bool]] = None,
            observer: Optional[ProgressObserver] = None,
    ) -> Iterator[FileRecord]:
        """
        Yields records as they are produced. self.session is valid once the
        generator has started; records already yielded stay valid after cancellation.
        """
        roots = [FileScannerImpl.validate_root(root) for root in config.roots]

        self.session = ScanSession(roots=roots, config=config.snapshot())
        self.reporter = SessionReporter(self.session)
        if observer is not None:
            self.reporter.add_observer(observer, every=config.progress_interval)
        self.hasher = HasherImpl(create_algorithm(config.algorithm), config.partial_hash_bytes)

        extractor = MetadataExtractor(
            owner_cache=OwnerCache(),
            sniff_mime=config.sniff_mime,
            follow_symlinks=config.follow_symlinks,
        )
        context = TraversalContext()
        seen_paths = set()
        window = config.max_workers * 4

        self.session.started_at = datetime.now(timezone.utc)
        logger.info(f"Scan started: {', '.join(roots)}")

        with ThreadPoolExecutor(max_workers=config.max_workers) as executor:
            pending: Deque[Future] = deque()
            for root in roots:
                scanner = FileScannerImpl.from_config(config, root, self.reporter, context)
                for entry in scanner.walk(stopped_flag=stopped_flag):
                    if entry.path in seen_paths:
                        continue
                    seen_paths.add(entry.path)
                    pending.append(executor.submit(self._extract, extractor, entry))

                    while len(pending) >= window:
                        record = self._accept(pending.popleft().result(), config)
                        if record is not None:
                            yield record

                if stopped_flag and stopped_flag():
                    self.session.cancelled = True
                    logger.info("Scan cancelled by user")
                    break

            while pending:
                record = self._accept(pending.popleft().result(), config)
                if record is not None:
                    yield record

        if stopped_flag and stopped_flag():
            self.session.cancelled = True

    def _extract(self, extractor: MetadataExtractor, entry: ScanEntry) -> Optional[FileRecord]:
        try:
            return extractor.extract(
                entry.path,
                root=entry.root,
                depth=entry.depth,
                allow_directory=entry.is_dir,
            )
        except DupescopeError as e:
            self.reporter.record_exception(entry.path, Operation.STAT, e)
            return None

    def _accept(self, record: Optional[FileRecord], config: ScanConfig) -> Optional[FileRecord]:
        if record is None:
            return None
        if record.is_regular and not self._passes_filters(record, config):
            logger.debug(f"Skipping {record.path} (filtered by size or extension)")
            return None
        self.reporter.record_file(record)
        return record

    @staticmethod
    def _passes_filters(record: FileRecord, config: ScanConfig) -> bool:
        if record.size < config.min_size_bytes:
            return False
        if config.max_size_bytes is not None and record.size > config.max_size_bytes:
            return False
        if config.extensions and record.extension not in config.extensions:
            return False
        return True
