"""
Shared fixtures for scanning and grouping tests.
Creates isolated temporary directories with controlled test files.
"""
import os
import sys
from pathlib import Path
from typing import Callable, Dict

import pytest

# Add src/ to sys.path so 'dupescope' is importable without installation
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from dupescope.core.models import ScanConfig, ScanSession, FileRecord  # noqa: E402
from dupescope.core.metadata import MetadataExtractor  # noqa: E402
from dupescope.core.reporter import SessionReporter  # noqa: E402


@pytest.fixture
def temp_dir(tmp_path):
    """Isolated temporary directory; pytest removes it after the session."""
    return tmp_path


@pytest.fixture
def test_files(temp_dir) -> Dict[str, Path]:
    """
    Creates controlled test files for duplicate scenarios:
    - 3 identical 1KB files (two in root, one in subdir/)
    - 2 identical 2KB files
    - 2 unique files (different size)
    - 1 empty file
    - 1 hidden file and 1 file in node_modules/ (skipped by default)
    """
    files = {}

    content_a = b"A" * 1024
    files["dup1_a"] = temp_dir / "dup1_a.txt"
    files["dup1_b"] = temp_dir / "dup1_b.txt"
    files["dup1_a"].write_bytes(content_a)
    files["dup1_b"].write_bytes(content_a)

    content_b = b"B" * 2048
    files["dup2_a"] = temp_dir / "dup2_a.txt"
    files["dup2_b"] = temp_dir / "dup2_b.txt"
    files["dup2_a"].write_bytes(content_b)
    files["dup2_b"].write_bytes(content_b)

    files["unique1"] = temp_dir / "unique1.txt"
    files["unique1"].write_bytes(b"C" * 1500)
    files["unique2"] = temp_dir / "unique2.txt"
    files["unique2"].write_bytes(b"D" * 2500)

    files["empty"] = temp_dir / "empty.txt"
    files["empty"].write_bytes(b"")

    subdir = temp_dir / "subdir"
    subdir.mkdir()
    files["sub_dup"] = subdir / "dup_in_subdir.txt"
    files["sub_dup"].write_bytes(content_a)

    files["hidden"] = temp_dir / ".hidden.txt"
    files["hidden"].write_bytes(content_a)

    modules = temp_dir / "node_modules"
    modules.mkdir()
    files["cached"] = modules / "pkg.txt"
    files["cached"].write_bytes(content_a)

    return files


@pytest.fixture
def reporter(temp_dir) -> SessionReporter:
    """Reporter bound to a throwaway session."""
    session = ScanSession(roots=[str(temp_dir)], config=ScanConfig(roots=[str(temp_dir)]))
    return SessionReporter(session)


@pytest.fixture
def make_record(temp_dir) -> Callable[..., FileRecord]:
    """Writes a file under temp_dir and returns its extracted FileRecord."""
    extractor = MetadataExtractor(sniff_mime=False)

    def _make(name: str, content: bytes) -> FileRecord:
        path = temp_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return extractor.extract(str(path), root=str(temp_dir))

    return _make


@pytest.fixture
def deny_dir(monkeypatch) -> Callable[[Path], None]:
    """
    Simulates permission-denied directory listings.
    chmod is not enough when tests run as root, so os.scandir is patched instead.
    """
    real_scandir = os.scandir
    denied = set()

    def fake_scandir(path="."):
        if os.path.abspath(os.fspath(path)) in denied:
            raise PermissionError(13, "Permission denied", os.fspath(path))
        return real_scandir(path)

    monkeypatch.setattr(os, "scandir", fake_scandir)

    def _deny(path: Path) -> None:
        denied.add(os.path.abspath(str(path)))

    return _deny
