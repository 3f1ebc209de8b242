"""Domain models shared by the pipeline, the role classifier, and the CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Role(str, Enum):
    HERO = "hero"
    BIO = "bio"
    RESUME = "resume"
    GALLERY = "gallery"
    PROJECTS = "projects"
    CONTACT = "contact"
    STYLES = "styles"
    SCRIPTS = "scripts"
    CONTENT = "content"
    UNKNOWN = "unknown"


class StaleReason(str, Enum):
    """Why the scheduler queued a target."""

    NEW = "new"                # no cache entry
    CHANGED = "changed"        # bytes differ
    TOUCHED = "touched"        # bytes equal, mtime differs
    DEPENDENCY = "dependency"  # a dependency changed
    DEPENDENT = "dependent"    # pulled in by invalidation propagation
    FORCED = "forced"          # non-incremental run


@dataclass
class FileMetadata:
    word_count: int = 0
    line_count: int = 0
    images: list[str] = field(default_factory=list)
    links: list[str] = field(default_factory=list)
    front_matter: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "wordCount": self.word_count,
            "lineCount": self.line_count,
            "images": list(self.images),
            "links": list(self.links),
            "frontMatter": self.front_matter,
        }


@dataclass
class FileRecord:
    path: str  # project-root relative, POSIX separators
    extension: str
    size_bytes: int = 0
    modified_at: int = 0  # st_mtime_ns
    content_fingerprint: str = ""
    content_hash: str = ""
    role: Role | None = None
    pinned: bool = False
    dependencies: list[str] = field(default_factory=list)
    metadata: FileMetadata = field(default_factory=FileMetadata)
    missing: bool = False

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]


@dataclass
class CacheEntry:
    target_id: str
    fingerprint: str
    computed_at: str
    result: Any = None
    content_hash: str = ""
    # dependency path -> content hash at compute time (None = absent on disk)
    dependencies: dict[str, str | None] = field(default_factory=dict)


@dataclass
class ConstraintViolation:
    role: str
    issue: str  # too_many_files | invalid_extension
    current: int | None = None
    max: int | None = None
    file: str | None = None
    extension: str | None = None
    allowed: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        if self.issue == "too_many_files":
            return {
                "role": self.role,
                "issue": self.issue,
                "current": self.current,
                "max": self.max,
            }
        return {
            "role": self.role,
            "issue": self.issue,
            "file": self.file,
            "extension": self.extension,
            "allowed": list(self.allowed),
        }
