"""Rule-based role inference.

Rules are evaluated in order; the first match wins:

  1. name       base filename (case-insensitive, extension stripped)
  2. extension  images, stylesheets, scripts, PDF
  3. content    text files only: contact → projects → bio markers
  4. directory  /images/, /gallery/, /css/, /styles/, /js/, /scripts/
  5. default    .md .txt .html → content, anything else → unknown

A pinned role (explicitly supplied by the user) skips every rule.
"""

from __future__ import annotations

import posixpath
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from foliokit.models import FileRecord, Role

NAME_ROLES: dict[str, Role] = {
    "readme": Role.HERO,
    "index": Role.HERO,
    "bio": Role.BIO,
    "about": Role.BIO,
    "resume": Role.RESUME,
    "cv": Role.RESUME,
    "contact": Role.CONTACT,
    "projects": Role.PROJECTS,
    "portfolio": Role.PROJECTS,
    "gallery": Role.GALLERY,
}

EXTENSION_ROLES: dict[str, Role] = {
    ".jpg": Role.GALLERY,
    ".jpeg": Role.GALLERY,
    ".png": Role.GALLERY,
    ".gif": Role.GALLERY,
    ".webp": Role.GALLERY,
    ".svg": Role.GALLERY,
    ".css": Role.STYLES,
    ".scss": Role.STYLES,
    ".less": Role.STYLES,
    ".js": Role.SCRIPTS,
    ".mjs": Role.SCRIPTS,
    ".cjs": Role.SCRIPTS,
    ".jsx": Role.SCRIPTS,
    ".ts": Role.SCRIPTS,
    ".tsx": Role.SCRIPTS,
    ".pdf": Role.RESUME,
}

# Evaluated in this order; any pattern of a group matching selects its role.
CONTENT_HEURISTICS: tuple[tuple[Role, tuple[re.Pattern[str], ...]], ...] = (
    (
        Role.CONTACT,
        (
            re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)*\.[a-zA-Z]{2,}\b"),
            re.compile(r"\b(?:phone|tel|mobile)\b\s*[:.]", re.IGNORECASE),
            re.compile(r"\+\d[\d\s().-]{7,}\d"),
            re.compile(r"\b(?:linkedin|twitter|mastodon|instagram|bluesky)\b", re.IGNORECASE),
            re.compile(r"\b(?:contact me|get in touch)\b", re.IGNORECASE),
        ),
    ),
    (
        Role.PROJECTS,
        (
            re.compile(r"\b(?:github|gitlab|bitbucket)\.(?:com|org)/[\w.-]+/[\w.-]+", re.IGNORECASE),
            re.compile(r"\b(?:live )?demo\b", re.IGNORECASE),
            re.compile(r"\btech(?:nology)? stack\b|\btechnologies\b", re.IGNORECASE),
        ),
    ),
    (
        Role.BIO,
        (
            re.compile(r"\babout me\b|\bbiography\b", re.IGNORECASE),
            re.compile(r"\bmy name is\b", re.IGNORECASE),
            re.compile(r"\b(?:experience|background)\b", re.IGNORECASE),
        ),
    ),
)

DIRECTORY_HINTS: tuple[tuple[tuple[str, ...], Role], ...] = (
    (("/images/", "/gallery/"), Role.GALLERY),
    (("/css/", "/styles/"), Role.STYLES),
    (("/js/", "/scripts/"), Role.SCRIPTS),
)

DEFAULT_TEXT_EXTENSIONS: frozenset[str] = frozenset({".md", ".txt", ".html"})


@dataclass(frozen=True)
class Subject:
    """What a rule may look at."""

    path: str
    stem: str
    extension: str
    text: str | None


@dataclass(frozen=True)
class RoleRule:
    kind: str  # name | extension | content | directory
    role: Role
    matches: Callable[[Subject], bool]


def _name_rule(name: str, role: Role) -> RoleRule:
    return RoleRule("name", role, lambda s: s.stem == name)


def _extension_rule(ext: str, role: Role) -> RoleRule:
    return RoleRule("extension", role, lambda s: s.extension == ext)


def _content_rule(role: Role, patterns: tuple[re.Pattern[str], ...]) -> RoleRule:
    return RoleRule(
        "content",
        role,
        lambda s: s.text is not None and any(p.search(s.text) for p in patterns),
    )


def _directory_rule(markers: tuple[str, ...], role: Role) -> RoleRule:
    return RoleRule("directory", role, lambda s: any(m in f"/{s.path}" for m in markers))


def default_rules() -> list[RoleRule]:
    """The ordered rule list built from the tables above."""
    rules = [_name_rule(name, role) for name, role in NAME_ROLES.items()]
    rules += [_extension_rule(ext, role) for ext, role in EXTENSION_ROLES.items()]
    rules += [_content_rule(role, patterns) for role, patterns in CONTENT_HEURISTICS]
    rules += [_directory_rule(markers, role) for markers, role in DIRECTORY_HINTS]
    return rules


class RoleClassifier:
    """Assign a Role to a FileRecord using an ordered rule list.

    Args:
        rules: Override the rule list (defaults to ``default_rules()``).
    """

    def __init__(self, rules: Sequence[RoleRule] | None = None) -> None:
        self.rules = list(rules) if rules is not None else default_rules()

    def classify(self, record: FileRecord, text: str | None = None) -> Role:
        """Return the role for *record*; *text* is its decoded content if text-like."""
        if record.pinned and record.role is not None:
            return record.role

        stem, ext = posixpath.splitext(record.name)
        subject = Subject(
            path=record.path,
            stem=stem.lower(),
            extension=ext.lower(),
            text=text,
        )
        for rule in self.rules:
            if rule.matches(subject):
                return rule.role

        if subject.extension in DEFAULT_TEXT_EXTENSIONS:
            return Role.CONTENT
        return Role.UNKNOWN
