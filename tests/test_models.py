"""
Unit tests for data models: FileHashes, FileRecord, DuplicateGroup, ScanSession, ScanConfig.
"""
from datetime import datetime, timedelta, timezone

import pytest

from dupescope.core.models import (
    DuplicateGroup,
    FileHashes,
    FileRecord,
    GroupingStats,
    GroupKind,
    ScanConfig,
    ScanSession,
)


def record(path, size=10, device=1, inode=None):
    return FileRecord(path=path, size=size, device=device, inode=inode)


class TestFileHashes:
    def test_slots_are_set_once(self):
        """A digest can be written once; a different value is rejected."""
        hashes = FileHashes()
        assert hashes.set_partial(b"abc") == b"abc"
        with pytest.raises(ValueError, match="already set"):
            hashes.set_partial(b"xyz")
        assert hashes.partial == b"abc"

    def test_same_value_is_idempotent(self):
        hashes = FileHashes()
        hashes.set_full(b"abc")
        assert hashes.set_full(b"abc") == b"abc"

    def test_rejects_non_bytes(self):
        with pytest.raises(ValueError):
            FileHashes(partial="abc")
        with pytest.raises(ValueError):
            FileHashes().set_full("abc")


class TestFileRecord:
    def test_derives_name_and_extension(self):
        """Name and lowercased extension come from the path."""
        rec = FileRecord(path="/photos/IMG_001.JPG", size=1)
        assert rec.name == "IMG_001.JPG"
        assert rec.extension == ".jpg"

    def test_storage_key_uses_device_and_inode(self):
        assert record("/a", device=3, inode=42).storage_key == (3, 42)

    def test_storage_key_falls_back_to_path(self):
        """Records without inode are unique storage objects."""
        a, b = record("/a"), record("/b")
        assert a.storage_key != b.storage_key


class TestDuplicateGroup:
    def test_independent_copies(self):
        """k independent copies waste (k-1) * size bytes."""
        files = [record(f"/f{i}", size=100, inode=i) for i in range(4)]
        group = DuplicateGroup(key=b"k", size=100, files=files)
        assert group.kind == GroupKind.INDEPENDENT
        assert group.wasted_space == 300
        assert len(group.clusters) == 4

    def test_hardlink_only_wastes_nothing(self):
        files = [record("/a", inode=7), record("/b", inode=7)]
        group = DuplicateGroup(key=b"k", size=10, files=files)
        assert group.kind == GroupKind.HARDLINK_ONLY
        assert group.wasted_space == 0

    def test_mixed_group(self):
        """Two names of one inode plus one copy: two clusters, one size wasted."""
        files = [record("/c", inode=8), record("/a", inode=7), record("/b", inode=7)]
        group = DuplicateGroup(key=b"k", size=10, files=files)
        assert group.kind == GroupKind.MIXED
        assert group.wasted_space == 10
        assert sorted(len(c.files) for c in group.clusters) == [1, 2]

    def test_cluster_members_are_adjacent(self):
        files = [record("/b", inode=7), record("/c", inode=8), record("/a", inode=7)]
        group = DuplicateGroup(key=b"k", size=10, files=files)
        assert [f.path for f in group.files] == ["/a", "/b", "/c"]

    def test_different_devices_are_different_clusters(self):
        """Same inode number on different devices is not a hard link."""
        files = [record("/a", device=1, inode=5), record("/b", device=2, inode=5)]
        group = DuplicateGroup(key=b"k", size=10, files=files)
        assert group.kind == GroupKind.INDEPENDENT

    def test_hex_key_and_count(self):
        group = DuplicateGroup(key=b"\x01\xff", size=1, files=[record("/a"), record("/b")])
        assert group.hex_key == "01ff"
        assert group.duplicate_count == 2


class TestScanSession:
    def test_summary(self):
        start = datetime(2025, 1, 1, tzinfo=timezone.utc)
        session = ScanSession(roots=["/r"], config=ScanConfig(roots=["/r"]),
                              started_at=start, finished_at=start + timedelta(seconds=2))
        session.files_seen = 3
        session.total_size = 30
        assert session.summary() == {
            "files": 3, "total_size": 30, "duration": 2.0, "errors": 0, "cancelled": False,
        }

    def test_duration_before_start(self):
        assert ScanSession(roots=["/r"], config=ScanConfig(roots=["/r"])).duration == 0.0


class TestScanConfig:
    def test_defaults(self):
        config = ScanConfig(roots="/data")
        assert config.roots == ["/data"]
        assert config.partial_hash_bytes == 100 * 1024
        assert config.algorithm == "sha256"
        assert config.follow_symlinks is False
        assert config.include_hidden is False

    @pytest.mark.parametrize("kwargs", [
        {"partial_hash_bytes": 0},
        {"min_size_bytes": -1},
        {"min_size_bytes": 10, "max_size_bytes": 5},
        {"max_depth": -1},
        {"max_workers": 0},
        {"hash_workers": 0},
        {"progress_interval": 0},
        {"algorithm": "md5"},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            ScanConfig(roots=["/data"], **kwargs)

    def test_requires_a_root(self):
        with pytest.raises(ValueError, match="root"):
            ScanConfig(roots=[])

    def test_extension_normalization(self):
        config = ScanConfig(roots=["/data"], extensions=["JPG", ".Png", " ", "txt "])
        assert config.extensions == [".jpg", ".png", ".txt"]

    def test_from_human_readable(self):
        config = ScanConfig.from_human_readable(
            "/data", min_size_str="1KB", max_size_str="2MB",
            partial_hash_str="64KB", extensions_str="jpg, png", algorithm="XXHASH",
        )
        assert config.min_size_bytes == 1024
        assert config.max_size_bytes == 2 * 1024 * 1024
        assert config.partial_hash_bytes == 64 * 1024
        assert config.extensions == [".jpg", ".png"]
        assert config.algorithm == "xxhash"

    def test_snapshot_is_independent(self):
        config = ScanConfig(roots=["/data"], exclude_patterns=["*.log"])
        copy = config.snapshot()
        config.exclude_patterns.append("*.tmp")
        assert copy.exclude_patterns == ["*.log"]


class TestGroupingStats:
    def test_accumulates_and_notifies(self):
        stats = GroupingStats()
        seen = []
        stats.add_listener(lambda stage, data: seen.append((stage, data["groups"])))
        stats.update_stage("size", groups_found=2, files_processed=5, duration=0.1)
        stats.update_stage("size", groups_found=1, files_processed=2, duration=0.1)
        assert stats.stage_stats["size"]["files"] == 7
        assert seen == [("size", 2), ("size", 3)]

    def test_failing_listener_is_isolated(self):
        stats = GroupingStats()

        def broken(stage, data):
            raise RuntimeError("boom")

        stats.add_listener(broken)
        stats.update_stage("full", groups_found=1, files_processed=2, duration=0.0)
        assert "Full Content Hash Groups: 1 / 2" in stats.format_summary()
