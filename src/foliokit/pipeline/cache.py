"""Persistent cache of per-target results.

On-disk format (JSON, one file per project)::

    {
      "version": 1,
      "generatedAt": "2025-01-01T00:00:00Z",
      "entries": [
        ["process:bio.md", {"fingerprint": "…", "computedAt": "…",
                            "result": {…}, "contentHash": "…",
                            "dependencies": {"photo.jpg": "…"}}]
      ]
    }

The store is loaded once when a pipeline opens and saved once when a run
ends. A missing, unreadable, or wrong-version file means an empty cache.
Entries are never pruned implicitly; stale entries for deleted files stay
until ``delete()`` or ``clear()``.
"""

from __future__ import annotations

import json
import warnings
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from foliokit.errors import CacheCorruptionWarning
from foliokit.models import CacheEntry
from foliokit.writer import write_json

CACHE_VERSION = 1


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


class CacheStore:
    """Mapping of target id → CacheEntry with explicit load/save.

    Args:
        path: Location of the cache file. ``None`` keeps the cache in memory
            only (``save()`` becomes a no-op).
    """

    def __init__(self, path: Path | None) -> None:
        self.path = path
        self.generated_at: str | None = None
        self.corrupt = False
        self._entries: dict[str, CacheEntry] = {}
        self._dirty = False

    # ------------------------------------------------------------------
    # Mapping contract
    # ------------------------------------------------------------------

    def get(self, target_id: str) -> CacheEntry | None:
        return self._entries.get(target_id)

    def put(self, entry: CacheEntry) -> None:
        self._entries[entry.target_id] = entry
        self._dirty = True

    def delete(self, target_id: str) -> bool:
        """Remove one entry. Returns True if it existed."""
        if self._entries.pop(target_id, None) is None:
            return False
        self._dirty = True
        return True

    def clear(self) -> None:
        self._entries.clear()
        self._dirty = True

    def target_ids(self) -> list[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, target_id: object) -> bool:
        return target_id in self._entries

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Replace in-memory entries with the file's content.

        Never raises: a corrupt file sets ``corrupt`` and emits a
        CacheCorruptionWarning; the caller proceeds with an empty cache.
        """
        self._entries = {}
        self._dirty = False
        self.corrupt = False
        self.generated_at = None
        if self.path is None:
            return

        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return
        except (OSError, UnicodeDecodeError) as exc:
            self._mark_corrupt(f"cannot read {self.path}: {exc}")
            return

        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            self._mark_corrupt(f"{self.path} is not valid JSON ({exc.msg})")
            return

        if not isinstance(data, dict) or not isinstance(data.get("entries"), list):
            self._mark_corrupt(f"{self.path} has an unexpected layout")
            return
        if data.get("version") != CACHE_VERSION:
            # Written by another format version: start cold without complaint.
            return

        for item in data["entries"]:
            entry = _entry_from_pair(item)
            if entry is not None:
                self._entries[entry.target_id] = entry
        generated = data.get("generatedAt")
        self.generated_at = generated if isinstance(generated, str) else None

    def save(self) -> None:
        """Write all entries to disk in insertion order (atomic replace)."""
        if self.path is None:
            return
        self.generated_at = utc_now()
        payload = {
            "version": CACHE_VERSION,
            "generatedAt": self.generated_at,
            "entries": [[e.target_id, _entry_to_dict(e)] for e in self._entries.values()],
        }
        write_json(self.path, payload)
        self._dirty = False
        self.corrupt = False

    @property
    def dirty(self) -> bool:
        return self._dirty

    def _mark_corrupt(self, detail: str) -> None:
        self.corrupt = True
        warnings.warn(
            f"Ignoring unreadable cache ({detail}). Starting from an empty cache.",
            CacheCorruptionWarning,
            stacklevel=3,
        )


# ------------------------------------------------------------------
# Entry <-> JSON helpers
# ------------------------------------------------------------------


def _entry_to_dict(entry: CacheEntry) -> dict[str, Any]:
    return {
        "fingerprint": entry.fingerprint,
        "computedAt": entry.computed_at,
        "result": entry.result,
        "contentHash": entry.content_hash,
        "dependencies": dict(entry.dependencies),
    }


def _entry_from_pair(item: object) -> CacheEntry | None:
    if not isinstance(item, list) or len(item) != 2:
        return None
    target_id, raw = item
    if not isinstance(target_id, str) or not isinstance(raw, dict):
        return None
    fingerprint = raw.get("fingerprint")
    computed_at = raw.get("computedAt")
    if not isinstance(fingerprint, str) or not isinstance(computed_at, str):
        return None
    content_hash = raw.get("contentHash")
    deps = raw.get("dependencies")
    if not isinstance(deps, dict):
        deps = {}
    return CacheEntry(
        target_id=target_id,
        fingerprint=fingerprint,
        computed_at=computed_at,
        result=raw.get("result"),
        content_hash=content_hash if isinstance(content_hash, str) else "",
        dependencies={
            str(k): v for k, v in deps.items() if v is None or isinstance(v, str)
        },
    )
