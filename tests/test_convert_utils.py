"""
Unit tests for ConvertUtils.
"""
import stat
from datetime import timezone

import pytest

from dupescope.utils.convert_utils import ConvertUtils


class TestHumanToBytes:
    @pytest.mark.parametrize("text, expected", [
        ("0", 0),
        ("1000", 1000),
        ("1K", 1024),
        ("100KB", 100 * 1024),
        ("1.5GB", int(1.5 * 1024 ** 3)),
        ("2 mb", 2 * 1024 ** 2),
        ("512B", 512),
    ])
    def test_valid_formats(self, text, expected):
        assert ConvertUtils.human_to_bytes(text) == expected

    def test_negative_size_rejected(self):
        with pytest.raises(ValueError, match="Negative size"):
            ConvertUtils.human_to_bytes("-1KB")

    @pytest.mark.parametrize("text", ["", "abc", "1XB", "KB", "1..5MB"])
    def test_invalid_formats(self, text):
        with pytest.raises(ValueError, match="Invalid size format"):
            ConvertUtils.human_to_bytes(text)

    def test_is_valid_size_format(self):
        assert ConvertUtils.is_valid_size_format("10MB")
        assert not ConvertUtils.is_valid_size_format("ten")


class TestBytesToHuman:
    def test_units(self):
        assert ConvertUtils.bytes_to_human(512) == "512.00B"
        assert ConvertUtils.bytes_to_human(1536) == "1.50KB"
        assert ConvertUtils.bytes_to_human(3 * 1024 ** 2) == "3.00MB"

    def test_negative_is_zero(self):
        assert ConvertUtils.bytes_to_human(-5) == "0B"


class TestStatConversions:
    def test_timestamp_is_utc_aware(self):
        dt = ConvertUtils.timestamp_to_datetime(0)
        assert dt.tzinfo == timezone.utc
        assert dt.year == 1970

    def test_unrepresentable_timestamp(self):
        assert ConvertUtils.timestamp_to_datetime(1e20) is None
        assert ConvertUtils.timestamp_to_datetime(None) is None

    def test_mode_to_octal(self):
        assert ConvertUtils.mode_to_octal(stat.S_IFREG | 0o644) == "0o644"
        assert ConvertUtils.mode_to_octal(stat.S_IFDIR | 0o755) == "0o755"
