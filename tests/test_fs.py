"""Tests for atomic writes and the local filesystem primitive."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from remotecache.exceptions import ExportError
from remotecache.fs import LocalFilesystem, atomic_write


class TestAtomicWrite:
    def test_creates_file_with_content(self, tmp_path: Path) -> None:
        target = tmp_path / "test.txt"
        atomic_write(target, "hello world")
        assert target.read_text(encoding="utf-8") == "hello world"

    def test_bytes_content(self, tmp_path: Path) -> None:
        target = tmp_path / "test.bin"
        atomic_write(target, b"\x00\x01")
        assert target.read_bytes() == b"\x00\x01"

    def test_overwrites_existing_file(self, tmp_path: Path) -> None:
        target = tmp_path / "test.txt"
        target.write_text("old content", encoding="utf-8")
        atomic_write(target, "new content")
        assert target.read_text(encoding="utf-8") == "new content"

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b" / "test.txt"
        atomic_write(target, "deep write")
        assert target.read_text(encoding="utf-8") == "deep write"

    def test_missing_parent_without_create(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            atomic_write(tmp_path / "missing" / "test.txt", "x", create_parents=False)
        assert not (tmp_path / "missing").exists()

    def test_no_temp_files_left_on_success(self, tmp_path: Path) -> None:
        target = tmp_path / "test.txt"
        atomic_write(target, "content")
        assert list(tmp_path.iterdir()) == [target]

    def test_no_temp_files_left_on_error(self, tmp_path: Path) -> None:
        target = tmp_path / "test.txt"
        with patch("remotecache.fs.os.fsync", side_effect=OSError("disk error")):
            with pytest.raises(OSError, match="disk error"):
                atomic_write(target, "will fail")
        assert list(tmp_path.iterdir()) == []

    def test_unicode_content(self, tmp_path: Path) -> None:
        target = tmp_path / "unicode.txt"
        content = "Hello 世界 éàüñ"
        atomic_write(target, content)
        assert target.read_text(encoding="utf-8") == content


class TestLocalFilesystem:
    def test_write(self, tmp_path: Path) -> None:
        LocalFilesystem().write(tmp_path / "out.json", b"{}")
        assert (tmp_path / "out.json").read_bytes() == b"{}"

    def test_missing_directory_raises_export_error(self, tmp_path: Path) -> None:
        with pytest.raises(ExportError, match="Cannot write"):
            LocalFilesystem().write(tmp_path / "nope" / "out.json", b"{}")
