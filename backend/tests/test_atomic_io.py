# Overview: Pytest coverage for crash-safe file replacement and JSON load/save.

import errno
import json
import os

import pytest

from docvault.atomic_io import atomic_write, dump_json, read_json, remove_file, write_json
from docvault.validation import StorageError

pytestmark = pytest.mark.storage


class TestAtomicWrite:
    def test_creates_parent_directories(self, tmp_path):
        target = tmp_path / "a" / "b" / "file.bin"
        atomic_write(target, b"payload")
        assert target.read_bytes() == b"payload"

    def test_replaces_existing_content(self, tmp_path):
        target = tmp_path / "file.txt"
        target.write_text("old")
        atomic_write(target, "new")
        assert target.read_text() == "new"

    def test_failed_rename_keeps_original_and_cleans_temp(self, tmp_path, monkeypatch):
        """
        SCENARIO: the rename onto the target fails (disk/permission error).
        EXPECTED: the original bytes are untouched, no temp file is left
        behind and the OSError reaches the caller unchanged.
        """
        target = tmp_path / "index.json"
        target.write_text("[1, 2, 3]")

        def boom(src, dst):
            raise OSError(errno.ENOSPC, "No space left on device")

        monkeypatch.setattr(os, "replace", boom)

        with pytest.raises(OSError) as excinfo:
            atomic_write(target, "[]")

        assert not isinstance(excinfo.value, StorageError)
        assert excinfo.value.errno == errno.ENOSPC
        assert target.read_text() == "[1, 2, 3]"
        assert sorted(p.name for p in tmp_path.iterdir()) == ["index.json"]

    def test_temp_file_is_hidden_sibling(self, tmp_path, monkeypatch):
        seen = []
        real_replace = os.replace

        def spy(src, dst):
            seen.append(os.path.basename(src))
            real_replace(src, dst)

        monkeypatch.setattr(os, "replace", spy)
        atomic_write(tmp_path / "counters.json", "{}")

        assert len(seen) == 1
        assert seen[0].startswith(".counters.json.")
        assert seen[0].endswith(".tmp")


class TestJsonHelpers:
    def test_dump_json_keeps_arabic_readable(self):
        text = dump_json({"supplier": "شركة"})
        assert "شركة" in text
        assert text.endswith("\n")
        assert '  "supplier"' in text

    def test_write_then_read(self, tmp_path):
        target = tmp_path / "index.json"
        write_json(target, [{"id": "PO-00001"}])
        assert read_json(target, default=[], expect=list) == [{"id": "PO-00001"}]

    def test_missing_file_is_default(self, tmp_path):
        assert read_json(tmp_path / "nope.json", default=[], expect=list) == []

    def test_blank_file_is_default(self, tmp_path):
        target = tmp_path / "blank.json"
        target.write_text("  \n")
        assert read_json(target, default={}, expect=dict) == {}

    def test_corrupt_file_raises(self, tmp_path):
        target = tmp_path / "index.json"
        target.write_text("[{\"id\": ")
        with pytest.raises(StorageError):
            read_json(target, default=[], expect=list)

    def test_wrong_shape_raises(self, tmp_path):
        target = tmp_path / "counters.json"
        target.write_text(json.dumps([1, 2]))
        with pytest.raises(StorageError):
            read_json(target, default={}, expect=dict)

    def test_write_json_wraps_os_errors(self, tmp_path, monkeypatch):
        def boom(src, dst):
            raise PermissionError(errno.EACCES, "Permission denied")

        monkeypatch.setattr(os, "replace", boom)
        with pytest.raises(StorageError) as excinfo:
            write_json(tmp_path / "index.json", [], label="purchases collection")

        assert excinfo.value.errno == errno.EACCES
        assert isinstance(excinfo.value.__cause__, PermissionError)
        assert excinfo.value.status_code == 500


class TestRemoveFile:
    def test_remove_existing(self, tmp_path):
        target = tmp_path / "a.pdf"
        target.write_bytes(b"x")
        assert remove_file(target) is True
        assert not target.exists()

    def test_remove_missing_is_false(self, tmp_path):
        assert remove_file(tmp_path / "gone.pdf") is False
