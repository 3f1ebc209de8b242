"""File metadata: text detection, word/line counts, markdown refs, front-matter."""

from __future__ import annotations

import posixpath
import re

import yaml

from foliokit.models import FileMetadata

TEXT_EXTENSIONS: frozenset[str] = frozenset(
    {
        ".md", ".markdown", ".txt", ".text", ".rst", ".html", ".htm",
        ".css", ".scss", ".less", ".js", ".mjs", ".cjs", ".jsx", ".ts", ".tsx",
        ".json", ".yaml", ".yml", ".csv", ".svg", ".xml",
    }
)

_FRONT_MATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
_IMAGE_RE = re.compile(r"!\[[^\]]*\]\(\s*<?([^)\s>]+)")
_LINK_RE = re.compile(r"(?<!!)\[[^\]]*\]\(\s*<?([^)\s>]+)")

# Bytes inspected when sniffing files with unknown extensions.
_SNIFF_BYTES = 8192


def decode_text(path: str, content: bytes) -> str | None:
    """Return *content* as text if the file is text-like, else None.

    Known text extensions are decoded leniently; anything else must decode as
    UTF-8 and contain no NUL byte in its first block.
    """
    ext = posixpath.splitext(path)[1].lower()
    if ext in TEXT_EXTENSIONS:
        return content.decode("utf-8", errors="replace")
    if b"\0" in content[:_SNIFF_BYTES]:
        return None
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError:
        return None


def parse_front_matter(text: str) -> dict | None:
    """Parse a leading ``---`` YAML block. Malformed or non-mapping → None."""
    match = _FRONT_MATTER_RE.match(text)
    if not match:
        return None
    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError:
        return None
    return data if isinstance(data, dict) else None


def extract_metadata(text: str | None) -> FileMetadata:
    """Compute FileMetadata for decoded *text* (None → empty metadata)."""
    if not text:
        return FileMetadata()
    return FileMetadata(
        word_count=len(text.split()),
        line_count=len(text.splitlines()),
        images=[m.group(1) for m in _IMAGE_RE.finditer(text)],
        links=[m.group(1) for m in _LINK_RE.finditer(text)],
        front_matter=parse_front_matter(text),
    )
