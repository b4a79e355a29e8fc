"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

hasher.py
Implements tiered content fingerprints using FileRecord and pluggable streaming hash algorithms.

Two tiers are computed lazily and cached in the record's FileHashes:
- partial: digest of at most the first `partial_bytes` of content (100KB by default)
- full: digest of the whole content, streamed in fixed-size chunks

For files not larger than `partial_bytes` the prefix is the whole file, so a single
read fills both tiers with the same digest.
"""

import hashlib
import logging
import threading
from typing import Optional, Dict, Type

import xxhash

from dupescope.core.errors import HashComputationError
from dupescope.core.interfaces import Hasher, HashAlgorithm, HashState
from dupescope.core.models import FileRecord, ScanDefaults

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024  # 64 KB reads keep memory bounded for any file size


class SHA256AlgorithmImpl(HashAlgorithm):
    name = "sha256"

    def new(self) -> HashState:
        return hashlib.sha256()


# Non-cryptographic, several times faster on large trees
class XXHashAlgorithmImpl(HashAlgorithm):
    name = "xxh64"

    def new(self) -> HashState:
        return xxhash.xxh64()


ALGORITHMS: Dict[str, Type] = {
    "sha256": SHA256AlgorithmImpl,
    "xxhash": XXHashAlgorithmImpl,
}


def create_algorithm(name: str) -> HashAlgorithm:
    try:
        return ALGORITHMS[name.lower()]()
    except KeyError:
        raise ValueError(f"Unknown hash algorithm: '{name}'") from None


class HasherImpl(Hasher):
    """
    A hasher implementation that supports any algorithm via the HashAlgorithm interface.
    Computes and caches the partial and full digests of a record.
    """

    def __init__(self, algorithm: Optional[HashAlgorithm] = None,
                 partial_bytes: int = ScanDefaults.PARTIAL_HASH_BYTES):
        if partial_bytes <= 0:
            raise ValueError("partial_bytes must be positive")
        self.algorithm = algorithm or SHA256AlgorithmImpl()
        self.partial_bytes = partial_bytes
        self._counter_lock = threading.Lock()
        self.bytes_read = 0
        self.partial_reads = 0
        self.full_reads = 0

    def compute_partial_hash(self, file: FileRecord) -> bytes:
        """Computes and caches the digest of the first `partial_bytes` of a file."""
        if file.hashes.partial is not None:
            return file.hashes.partial

        if file.size <= self.partial_bytes:
            # Whole file fits in the prefix: one read serves both tiers
            digest = self._hash_stream(file, limit=None)
            file.hashes.set_full(digest)
            self._count(partial=1)
            return file.hashes.set_partial(digest)

        digest = self._hash_stream(file, limit=self.partial_bytes)
        self._count(partial=1)
        return file.hashes.set_partial(digest)

    def compute_full_hash(self, file: FileRecord) -> bytes:
        """Computes and caches the digest of the entire file content."""
        if file.hashes.full is not None:
            return file.hashes.full

        if file.size <= self.partial_bytes:
            self.compute_partial_hash(file)
            return file.hashes.full

        digest = self._hash_stream(file, limit=None)
        self._count(full=1)
        return file.hashes.set_full(digest)

    def adopt(self, target: FileRecord, source: FileRecord) -> None:
        """Copies digests between two names of the same storage object without reading."""
        if source.hashes.partial is not None:
            target.hashes.set_partial(source.hashes.partial)
        if source.hashes.full is not None:
            target.hashes.set_full(source.hashes.full)

    def quick_compare(self, a: FileRecord, b: FileRecord) -> bool:
        """
        Size → partial → full, stopping at the first mismatch.
        Files of different sizes are never read.
        """
        if a.size != b.size:
            return False
        if self.compute_partial_hash(a) != self.compute_partial_hash(b):
            return False
        return self.compute_full_hash(a) == self.compute_full_hash(b)

    def _hash_stream(self, file: FileRecord, limit: Optional[int]) -> bytes:
        """
        Streams the file through the algorithm.
        With limit=None the whole file is read and must match the recorded size.
        """
        state = self.algorithm.new()
        expected = file.size if limit is None else limit
        remaining = limit
        total = 0
        try:
            with open(file.path, 'rb') as f:
                while True:
                    to_read = CHUNK_SIZE if remaining is None else min(CHUNK_SIZE, remaining)
                    if to_read <= 0:
                        break
                    chunk = f.read(to_read)
                    if not chunk:
                        break
                    state.update(chunk)
                    total += len(chunk)
                    if remaining is not None:
                        remaining -= len(chunk)
        except OSError as e:
            logger.warning(f"Hashing failed for {file.path}: {e}")
            raise HashComputationError(file.path, f"Read failed ({e.strerror or e})") from e
        finally:
            self._count(read=total)

        if total != expected:
            logger.warning(f"Size of {file.path} changed during hashing: {expected} → {total}")
            raise HashComputationError(
                file.path, f"File changed during hashing (expected {expected} bytes, read {total})"
            )
        return state.digest()

    def _count(self, read: int = 0, partial: int = 0, full: int = 0) -> None:
        with self._counter_lock:
            self.bytes_read += read
            self.partial_reads += partial
            self.full_reads += full


def quick_compare(a: FileRecord, b: FileRecord, hasher: Optional[HasherImpl] = None) -> bool:
    """Module-level shortcut for HasherImpl.quick_compare with the default hasher."""
    return (hasher or HasherImpl()).quick_compare(a, b)
