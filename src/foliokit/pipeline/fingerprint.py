"""Content fingerprints for change detection.

A fingerprint mixes the sha256 of the file bytes with the modification time,
so a ``touch`` without a content change still yields a new fingerprint. The
plain content hash is kept alongside it: dependency invalidation compares
content hashes only.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import Path

from foliokit.errors import TargetNotFound

_BLOCK_SIZE = 65536


@dataclass(frozen=True)
class Fingerprint:
    path: str
    content_hash: str
    fingerprint: str
    size: int
    mtime_ns: int


def hash_bytes(path: Path) -> str:
    """SHA-256 of the file content, read in fixed blocks."""
    h = hashlib.sha256()
    with path.open("rb") as fh:
        for block in iter(lambda: fh.read(_BLOCK_SIZE), b""):
            h.update(block)
    return h.hexdigest()


def combine(content_hash: str, mtime_ns: int | None) -> str:
    """Mix *content_hash* and *mtime_ns* into one digest (mtime omitted when None)."""
    h = hashlib.sha256(content_hash.encode())
    if mtime_ns is not None:
        h.update(b"\0")
        h.update(str(mtime_ns).encode())
    return h.hexdigest()


class Fingerprinter:
    """Compute fingerprints for project files, memoised for the current run.

    Args:
        root: Project root; paths passed to ``fingerprint()`` are relative to it.
        include_mtime: Mix the modification time into the fingerprint. Disable
            for pure content comparison.
    """

    def __init__(self, root: Path, include_mtime: bool = True) -> None:
        self.root = Path(root)
        self.include_mtime = include_mtime
        self._memo: dict[str, Fingerprint] = {}

    def fingerprint(self, path: str) -> Fingerprint:
        """Return the fingerprint of *path*.

        Raises:
            TargetNotFound: if the path does not exist (or is not a file).
        """
        cached = self._memo.get(path)
        if cached is not None:
            return cached

        full = self.root / path
        try:
            st = full.stat()
        except (FileNotFoundError, NotADirectoryError) as exc:
            raise TargetNotFound(path) from exc
        if not full.is_file():
            raise TargetNotFound(path)
        try:
            content_hash = hash_bytes(full)
        except FileNotFoundError as exc:
            raise TargetNotFound(path) from exc

        result = Fingerprint(
            path=path,
            content_hash=content_hash,
            fingerprint=combine(content_hash, st.st_mtime_ns if self.include_mtime else None),
            size=st.st_size,
            mtime_ns=st.st_mtime_ns,
        )
        self._memo[path] = result
        return result

    def content_hash_or_none(self, path: str) -> str | None:
        """Content hash of *path*, or None when it does not exist."""
        try:
            return self.fingerprint(path).content_hash
        except TargetNotFound:
            return None

    def reset(self) -> None:
        """Forget memoised results (start of a new run)."""
        self._memo.clear()
