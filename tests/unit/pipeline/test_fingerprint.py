"""Tests for content fingerprints."""

from __future__ import annotations

import hashlib
from pathlib import Path

import pytest

from foliokit.errors import TargetNotFound
from foliokit.pipeline.fingerprint import Fingerprinter, combine, hash_bytes


def test_hash_bytes_matches_sha256(write) -> None:
    path = write("a.md", "hello")
    assert hash_bytes(path) == hashlib.sha256(b"hello").hexdigest()


def test_combine_without_mtime_differs_from_with_mtime() -> None:
    h = hashlib.sha256(b"x").hexdigest()
    assert combine(h, None) != combine(h, 123)
    assert combine(h, 123) == combine(h, 123)
    assert combine(h, 123) != combine(h, 124)


def test_fingerprint_fields(tmp_path: Path, write) -> None:
    path = write("content/bio.md", "# Bio\n")
    fp = Fingerprinter(tmp_path).fingerprint("content/bio.md")

    assert fp.path == "content/bio.md"
    assert fp.size == len("# Bio\n")
    assert fp.mtime_ns == path.stat().st_mtime_ns
    assert fp.content_hash == hashlib.sha256(b"# Bio\n").hexdigest()
    assert fp.fingerprint != fp.content_hash


def test_distinct_content_distinct_fingerprint(tmp_path: Path, write) -> None:
    write("a.md", "one")
    write("b.md", "two")
    fps = Fingerprinter(tmp_path, include_mtime=False)
    assert fps.fingerprint("a.md").fingerprint != fps.fingerprint("b.md").fingerprint


def test_touch_changes_fingerprint_not_content_hash(tmp_path: Path, write, bump_mtime) -> None:
    path = write("a.md", "same bytes")
    before = Fingerprinter(tmp_path).fingerprint("a.md")
    bump_mtime(path)
    after = Fingerprinter(tmp_path).fingerprint("a.md")

    assert after.content_hash == before.content_hash
    assert after.fingerprint != before.fingerprint


def test_touch_ignored_without_mtime(tmp_path: Path, write, bump_mtime) -> None:
    path = write("a.md", "same bytes")
    before = Fingerprinter(tmp_path, include_mtime=False).fingerprint("a.md")
    bump_mtime(path)
    after = Fingerprinter(tmp_path, include_mtime=False).fingerprint("a.md")
    assert after.fingerprint == before.fingerprint


def test_missing_file_raises_target_not_found(tmp_path: Path) -> None:
    with pytest.raises(TargetNotFound) as exc_info:
        Fingerprinter(tmp_path).fingerprint("gone.md")
    assert exc_info.value.path == "gone.md"
    assert isinstance(exc_info.value, FileNotFoundError)


def test_directory_is_not_a_target(tmp_path: Path) -> None:
    (tmp_path / "sub").mkdir()
    with pytest.raises(TargetNotFound):
        Fingerprinter(tmp_path).fingerprint("sub")


def test_memoised_until_reset(tmp_path: Path, write) -> None:
    path = write("a.md", "v1")
    fps = Fingerprinter(tmp_path)
    first = fps.fingerprint("a.md")

    path.write_text("v2 with more bytes", encoding="utf-8")
    assert fps.fingerprint("a.md") is first

    fps.reset()
    assert fps.fingerprint("a.md").content_hash != first.content_hash


def test_content_hash_or_none(tmp_path: Path, write) -> None:
    write("a.md", "x")
    fps = Fingerprinter(tmp_path)
    assert fps.content_hash_or_none("a.md") == hashlib.sha256(b"x").hexdigest()
    assert fps.content_hash_or_none("missing.md") is None
