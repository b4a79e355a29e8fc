"""
Unit tests for FileGrouperImpl: size buckets, digest buckets, hard-link reuse and failures.
"""
import os
from concurrent.futures import ThreadPoolExecutor

import pytest

from dupescope.core.grouper import FileGrouperImpl, classify
from dupescope.core.hasher import HasherImpl
from dupescope.core.models import ErrorKind, FileHashes, FileRecord, Operation


def fake_record(path, size, partial=None, full=None):
    """Record with preset digests; no disk access is needed to group it."""
    return FileRecord(path=path, size=size, hashes=FileHashes(partial=partial, full=full))


class TestGroupBySize:
    def test_drops_singletons(self):
        files = [fake_record("/a", 10), fake_record("/b", 10), fake_record("/c", 20)]
        groups = FileGrouperImpl().group_by_size(files)
        assert list(groups) == [10]
        assert [f.path for f in groups[10]] == ["/a", "/b"]

    def test_empty_input(self):
        assert FileGrouperImpl().group_by_size([]) == {}


class TestGroupByDigest:
    def test_groups_by_cached_partial_hash(self):
        files = [
            fake_record("/b", 10, partial=b"h1"),
            fake_record("/a", 10, partial=b"h1"),
            fake_record("/c", 10, partial=b"h2"),
        ]
        groups = FileGrouperImpl().group_by_partial_hash(files)
        assert list(groups) == [b"h1"]
        assert [f.path for f in groups[b"h1"]] == ["/a", "/b"]

    def test_groups_by_full_hash_from_disk(self, make_record):
        a = make_record("a.txt", b"same")
        b = make_record("b.txt", b"same")
        c = make_record("c.txt", b"diff")
        groups = FileGrouperImpl().group_by_full_hash([a, b, c])
        assert len(groups) == 1
        assert {f.path for f in next(iter(groups.values()))} == {a.path, b.path}

    def test_hard_links_are_hashed_once(self, make_record, temp_dir):
        """Names of one storage object share a single content read."""
        a = make_record("orig.txt", b"0123456789")
        os.link(a.path, temp_dir / "link.txt")
        b = make_record("link.txt", b"0123456789")  # rewrites through the shared inode
        assert a.storage_key == b.storage_key

        hasher = HasherImpl()
        groups = FileGrouperImpl(hasher).group_by_full_hash([a, b])

        assert len(groups) == 1
        assert hasher.bytes_read == 10
        assert a.hashes.full == b.hashes.full

    def test_parallel_hashing_matches_sequential(self, make_record):
        files = [make_record(f"p{i}.bin", b"P" * 200) for i in range(6)]
        grouper = FileGrouperImpl()
        with ThreadPoolExecutor(max_workers=3) as executor:
            grouper.executor = executor
            groups = grouper.group_by_full_hash(files)
        assert len(groups) == 1
        assert len(next(iter(groups.values()))) == 6


class TestUnreadableFiles:
    def test_unreadable_file_is_reported_and_excluded(self, make_record, reporter):
        a = make_record("a.txt", b"dup")
        b = make_record("b.txt", b"dup")
        gone = make_record("gone.txt", b"dup")
        os.remove(gone.path)

        grouper = FileGrouperImpl(HasherImpl(), reporter)
        groups = grouper.group_by_partial_hash([a, b, gone])

        members = {f.path for f in next(iter(groups.values()))}
        assert members == {a.path, b.path}
        assert grouper.is_failed(gone)
        errors = reporter.errors
        assert len(errors) == 1
        assert errors[0].path == gone.path
        assert errors[0].operation == Operation.HASH
        assert errors[0].kind == ErrorKind.HASH

    def test_failed_file_is_skipped_later(self, make_record):
        a = make_record("a.txt", b"dup")
        gone = make_record("gone.txt", b"dup")
        os.remove(gone.path)
        grouper = FileGrouperImpl()
        grouper.group_by_partial_hash([a, gone])
        assert grouper.group_by_full_hash([a, gone]) == {}
        assert len(grouper.failed) == 1


class TestBuildGroup:
    def test_group_uses_full_digest_as_key(self):
        files = [fake_record("/a", 5, full=b"k"), fake_record("/b", 5, full=b"k")]
        group = FileGrouperImpl.build_group(files)
        assert group.key == b"k"
        assert group.size == 5
        assert group.duplicate_count == 2

    def test_classify_requires_two_files(self):
        with pytest.raises(ValueError):
            classify(b"k", [fake_record("/a", 5, full=b"k")])
