"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/reporter.py
Progress and error aggregation for one scan session.

The reporter only counts and records; it never decides whether a scan continues.
Observers are notified every N files, immediately for each error and once on flush().
"""

import logging
import queue
import threading
from dataclasses import dataclass
from typing import List, Optional, Tuple

from dupescope.core.errors import DupescopeError
from dupescope.core.interfaces import ProgressObserver
from dupescope.core.models import ErrorEntry, ErrorKind, FileRecord, Operation, ScanSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressEvent:
    files_seen: int
    bytes_seen: int
    error_count: int
    last_error: Optional[ErrorEntry] = None
    final: bool = False


class SessionReporter:
    """
    Thread-safe collector of progress counts and error entries for a ScanSession.
    """

    def __init__(self, session: ScanSession):
        self.session = session
        self._lock = threading.Lock()
        self._observers: List[Tuple[ProgressObserver, int]] = []

    def add_observer(self, observer: ProgressObserver, every: int = 1) -> None:
        """Registers an observer notified every `every` files."""
        if every < 1:
            raise ValueError("Observer cadence must be at least 1")
        self._observers.append((observer, every))

    def record_file(self, record: FileRecord) -> None:
        with self._lock:
            self.session.files_seen += 1
            if record.is_regular:
                self.session.total_size += record.size
            event = self._snapshot_locked()

        due = [obs for obs, every in self._observers if event.files_seen % every == 0]
        self._notify(due, event)

    def record_error(
        self,
        path: str,
        operation: Operation,
        kind: ErrorKind,
        message: str = "",
    ) -> ErrorEntry:
        entry = ErrorEntry(path=str(path), operation=operation, kind=kind, message=message)
        with self._lock:
            self.session.errors.append(entry)
            event = self._snapshot_locked(last_error=entry)

        logger.warning(f"{operation.value} failed for {path}: {kind.value} {message}".rstrip())
        self._notify([obs for obs, _ in self._observers], event)
        return entry

    def record_exception(self, path: str, operation: Operation, exc: BaseException) -> ErrorEntry:
        """Records an exception raised while processing one entry."""
        if isinstance(exc, DupescopeError):
            return self.record_error(exc.path, operation, exc.kind, exc.message)
        if isinstance(exc, PermissionError):
            return self.record_error(path, operation, ErrorKind.PERMISSION, str(exc))
        return self.record_error(path, operation, ErrorKind.IO, str(exc))

    def snapshot(self) -> ProgressEvent:
        with self._lock:
            return self._snapshot_locked()

    def flush(self) -> ProgressEvent:
        """Delivers a final event to every observer."""
        with self._lock:
            event = self._snapshot_locked(final=True)
        self._notify([obs for obs, _ in self._observers], event)
        return event

    @property
    def errors(self) -> List[ErrorEntry]:
        with self._lock:
            return list(self.session.errors)

    def _snapshot_locked(self, last_error: Optional[ErrorEntry] = None, final: bool = False) -> ProgressEvent:
        return ProgressEvent(
            files_seen=self.session.files_seen,
            bytes_seen=self.session.total_size,
            error_count=len(self.session.errors),
            last_error=last_error,
            final=final,
        )

    @staticmethod
    def _notify(observers: List[ProgressObserver], event: ProgressEvent) -> None:
        for observer in observers:
            try:
                observer(event)
            except Exception:
                logger.exception("Error in progress observer")


class QueueObserver:
    """
    Bounded queue adapter: the scan writes events, the caller drains them.
    When the queue is full new events are dropped instead of blocking the scan.
    """

    def __init__(self, maxsize: int = 1000):
        self.events: "queue.Queue[ProgressEvent]" = queue.Queue(maxsize=maxsize)
        self.dropped = 0

    def __call__(self, event: ProgressEvent) -> None:
        try:
            self.events.put_nowait(event)
        except queue.Full:
            self.dropped += 1

    def drain(self) -> List[ProgressEvent]:
        drained = []
        while True:
            try:
                drained.append(self.events.get_nowait())
            except queue.Empty:
                return drained
