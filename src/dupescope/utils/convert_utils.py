"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

utils/convert_utils.py
Conversions between raw filesystem values and human-readable forms.
"""
import re
import stat
from datetime import datetime, timezone
from typing import Optional

_SIZE_PATTERN = re.compile(r'^(?P<value>-?\d+(?:\.\d+)?)\s*(?P<unit>[KMGTP]?B?)$')

_UNITS = {
    '': 1, 'B': 1,
    'K': 1024, 'KB': 1024,
    'M': 1024 ** 2, 'MB': 1024 ** 2,
    'G': 1024 ** 3, 'GB': 1024 ** 3,
    'T': 1024 ** 4, 'TB': 1024 ** 4,
    'P': 1024 ** 5, 'PB': 1024 ** 5,
}


class ConvertUtils:
    @staticmethod
    def bytes_to_human(size_bytes: int) -> str:
        """
        Convert bytes to human-readable string (e.g., 1.50KB, 3.20MB).
        """
        if size_bytes < 0:
            return "0B"

        units = ["B", "KB", "MB", "GB", "TB", "PB"]
        for unit in units:
            if size_bytes < 1024:
                return f"{size_bytes:.2f}{unit}"
            size_bytes /= 1024
        return f"{size_bytes:.2f}EB"

    @staticmethod
    def human_to_bytes(size_str: str) -> int:
        """
        Convert human-readable size string to bytes.
        Supports formats: '1.5GB', '2048KB', '1000', '1K', '100KB'.
        Raises ValueError for negative sizes or invalid formats.
        """
        normalized = size_str.strip().upper()
        match = _SIZE_PATTERN.match(normalized)
        if not match:
            raise ValueError(
                f"Invalid size format: '{size_str}'. "
                f"Supported formats: 1.5GB, 2048KB, 1000, 1K, 1M, etc."
            )

        value = float(match.group("value"))
        if value < 0:
            raise ValueError(f"Negative size not allowed: '{size_str}'")
        return int(value * _UNITS[match.group("unit")])

    @staticmethod
    def is_valid_size_format(size_str: str) -> bool:
        try:
            ConvertUtils.human_to_bytes(size_str)
            return True
        except ValueError:
            return False

    @staticmethod
    def timestamp_to_datetime(timestamp: Optional[float]) -> Optional[datetime]:
        """
        Convert a stat timestamp to an aware UTC datetime.
        Returns None for values the platform cannot represent.
        """
        if timestamp is None:
            return None
        try:
            return datetime.fromtimestamp(timestamp, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    @staticmethod
    def mode_to_octal(mode: int) -> str:
        """Permission bits of st_mode as an octal string, e.g. '0o644'."""
        return oct(stat.S_IMODE(mode))
