"""Dependency extraction: inline references between project files.

Extractor dispatch by extension:
  .js .mjs .cjs .jsx .ts .tsx → ScriptExtractor      import / require
  .css .scss .less            → StylesheetExtractor  @import
  .md .markdown               → MarkdownExtractor    [label](target), ![alt](target)
  anything else               → no dependencies

Extraction is best-effort pattern matching on raw text. Targets with a URL
scheme are never dependencies. Relative targets are resolved against the
referencing file's directory, ``/``-rooted targets against the project root;
anything that would land outside the root is dropped.
"""

from __future__ import annotations

import posixpath
import re
from abc import ABC, abstractmethod

from foliokit.errors import ExtractionError

# scheme:… (http:, https:, mailto:, data:, …) or protocol-relative //host
_URL_RE = re.compile(r"^(?:[a-zA-Z][a-zA-Z0-9+.\-]*:|//)")


class BaseExtractor(ABC):
    """Abstract base for extension-specific reference scanners.

    Subclasses set ``extensions`` and implement ``references()``, returning raw
    targets as written in the document. Resolution and filtering happen in
    ``extract_dependencies()``.
    """

    extensions: frozenset[str] = frozenset()

    @abstractmethod
    def references(self, content: str) -> list[str]:
        """Return raw reference targets in document order."""

    @staticmethod
    def _ordered(matches: list[tuple[int, str]]) -> list[str]:
        return [target for _, target in sorted(matches, key=lambda m: m[0])]


class ScriptExtractor(BaseExtractor):
    """ES module imports, re-exports, dynamic import() and CommonJS require()."""

    extensions = frozenset({".js", ".mjs", ".cjs", ".jsx", ".ts", ".tsx"})

    _PATTERNS = (
        re.compile(r"""\bimport\s+(?:[\w*{}\s,$]+?\s+from\s+)?["']([^"'\n]+)["']"""),
        re.compile(r"""\bexport\s+(?:[\w*{}\s,$]+?\s+)?from\s+["']([^"'\n]+)["']"""),
        re.compile(r"""\b(?:import|require)\s*\(\s*["'`]([^"'`\n]+)["'`]\s*\)"""),
    )

    def references(self, content: str) -> list[str]:
        matches: list[tuple[int, str]] = []
        for pattern in self._PATTERNS:
            matches.extend((m.start(), m.group(1)) for m in pattern.finditer(content))
        # Bare specifiers ("react", "lodash/fp") name packages, not project files.
        return [t for t in self._ordered(matches) if t.startswith((".", "/"))]


class StylesheetExtractor(BaseExtractor):
    """``@import "x.css"`` and ``@import url(x.css)`` (plus SCSS @use/@forward)."""

    extensions = frozenset({".css", ".scss", ".less"})

    _IMPORT_RE = re.compile(
        r"""@(?:import|use|forward)\s+(?:url\(\s*)?["']?([^"')\s;]+)["']?\s*\)?"""
    )

    def references(self, content: str) -> list[str]:
        return [m.group(1) for m in self._IMPORT_RE.finditer(content)]


class MarkdownExtractor(BaseExtractor):
    """Markdown links and images, including images nested inside links."""

    extensions = frozenset({".md", ".markdown"})

    # Target: optional <…>, optional "title" / 'title' / (title).
    _TARGET = r"""\(\s*<?([^)\s>]+)>?(?:\s+(?:"[^"]*"|'[^']*'|\([^)]*\)))?\s*\)"""
    _IMAGE_RE = re.compile(r"!\[[^\]]*\]" + _TARGET)
    _LINK_RE = re.compile(r"(?<!!)\[(?:[^\[\]]|\[[^\[\]]*\])*\]" + _TARGET)

    def references(self, content: str) -> list[str]:
        matches = [(m.start(), m.group(1)) for m in self._IMAGE_RE.finditer(content)]
        matches.extend((m.start(), m.group(1)) for m in self._LINK_RE.finditer(content))
        return self._ordered(matches)


_REGISTRY: dict[str, BaseExtractor] = {}


def register_extractor(extractor: BaseExtractor) -> None:
    """Register *extractor* for each of its extensions (replaces earlier ones)."""
    for ext in extractor.extensions:
        _REGISTRY[ext.lower()] = extractor


def extractor_for(path: str) -> BaseExtractor | None:
    """Return the extractor registered for *path*'s extension, if any."""
    return _REGISTRY.get(posixpath.splitext(path)[1].lower())


for _extractor in (ScriptExtractor(), StylesheetExtractor(), MarkdownExtractor()):
    register_extractor(_extractor)


# ------------------------------------------------------------------
# Resolution
# ------------------------------------------------------------------


def is_remote(target: str) -> bool:
    """True for URLs (any scheme) and protocol-relative references."""
    return bool(_URL_RE.match(target))


def resolve_reference(target: str, referrer: str) -> str | None:
    """Resolve *target* as written in *referrer* to a project-relative path.

    Returns None for remote URLs, in-page anchors, and targets that escape the
    project root.
    """
    target = target.strip()
    if not target or target.startswith("#") or is_remote(target):
        return None
    target = target.split("#", 1)[0].split("?", 1)[0]
    if not target:
        return None

    if target.startswith("/"):
        joined = target.lstrip("/")
    else:
        joined = posixpath.join(posixpath.dirname(referrer), target)
    resolved = posixpath.normpath(joined)
    if resolved in (".", "..") or resolved.startswith("../"):
        return None
    return resolved


def extract_dependencies(path: str, content: str | bytes) -> list[str]:
    """Return the ordered, de-duplicated project paths referenced by *path*.

    Args:
        path: Project-relative POSIX path of the referencing file.
        content: File content (bytes are decoded as UTF-8).

    Returns:
        Resolved dependency paths; empty for unknown extensions and for any
        content the extractor cannot scan.
    """
    extractor = extractor_for(path)
    if extractor is None:
        return []
    try:
        if isinstance(content, bytes):
            try:
                content = content.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise ExtractionError(f"{path} is not valid UTF-8") from exc
        raw = extractor.references(content)
    except Exception:
        # Best-effort: a file we cannot scan simply has no tracked dependencies.
        return []

    deps: dict[str, None] = {}
    for target in raw:
        resolved = resolve_reference(target, path)
        if resolved is not None and resolved != path:
            deps.setdefault(resolved, None)
    return list(deps)
