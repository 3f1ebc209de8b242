"""Shared pytest fixtures."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from foliokit.config import write_default_config


@pytest.fixture(autouse=True)
def isolated_config(tmp_path_factory, monkeypatch):
    """Never read the user's ~/.foliokit/config.yaml or FOLIOKIT_* variables."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setattr("foliokit.config._GLOBAL_CONFIG_PATH", home / "config.yaml")
    monkeypatch.delenv("FOLIOKIT_CACHE_PATH", raising=False)
    monkeypatch.delenv("FOLIOKIT_BATCH_SIZE", raising=False)


@pytest.fixture
def write(tmp_path):
    """Write a text file under tmp_path; returns its path."""

    def _write(rel: str, text: str = "") -> Path:
        path = tmp_path / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def bump_mtime():
    """Move a file's mtime forward without changing its bytes."""

    def _bump(path: Path, seconds: int = 10) -> None:
        st = path.stat()
        os.utime(path, ns=(st.st_atime_ns, st.st_mtime_ns + seconds * 1_000_000_000))

    return _bump


@pytest.fixture
def project(tmp_path):
    """Initialised project: foliokit.yaml + empty content/ directory."""
    write_default_config(tmp_path, "demo")
    (tmp_path / "content").mkdir()
    return tmp_path


@pytest.fixture
def site(project):
    """Initialised project with hero.md, bio.md → photo.jpg under content/."""
    content = project / "content"
    (content / "hero.md").write_text("# Welcome\n\nDesigner and printmaker.\n", encoding="utf-8")
    (content / "bio.md").write_text(
        "---\ntitle: Bio\ndate: 2024-01-01\n---\n![me](photo.jpg)\n", encoding="utf-8"
    )
    (content / "photo.jpg").write_bytes(b"\xff\xd8\xff\xe0JPEG-1")
    return project
