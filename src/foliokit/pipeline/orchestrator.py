"""Content pipeline: scan, schedule, process, persist.

One ``run()`` walks the state machine

    IDLE → SCANNING → SCHEDULING → PROCESSING → PERSISTING → IDLE

  SCANNING    refresh each candidate's FileRecord: fingerprint, metadata,
              dependencies (graph edges replaced), role (unless pinned)
  SCHEDULING  IncrementalScheduler.plan() → stale queue + reused set
  PROCESSING  process_fn(content, path) per stale target, in dependency
              waves on a bounded thread pool
  PERSISTING  cache entries for successful targets, one CacheStore.save()

Per-target problems (vanished file, failing process_fn, unserialisable
result) are recorded in the summary and never raised out of ``run()``.
"""

from __future__ import annotations

import json
import posixpath
import time
from collections import deque
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from foliokit.config import RoleConstraint
from foliokit.errors import ProcessingError, TargetNotFound
from foliokit.models import CacheEntry, FileRecord, Role, StaleReason
from foliokit.pipeline.cache import CacheStore, utc_now
from foliokit.pipeline.extract import extract_dependencies
from foliokit.pipeline.fingerprint import Fingerprint, Fingerprinter
from foliokit.pipeline.graph import DependencyGraph
from foliokit.pipeline.metadata import decode_text, extract_metadata
from foliokit.pipeline.scheduler import (
    IncrementalScheduler,
    SchedulePlan,
    group_waves,
    process_target_id,
)
from foliokit.roles.classifier import RoleClassifier
from foliokit.roles.index import RoleIndex

ProcessFn = Callable[[bytes, str], Any]


class PipelineState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    SCHEDULING = "scheduling"
    PROCESSING = "processing"
    PERSISTING = "persisting"


# ---------------------------------------------------------------------------
# Run summary
# ---------------------------------------------------------------------------


@dataclass
class TargetResult:
    path: str
    result: Any
    from_cache: bool
    reason: StaleReason | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "result": self.result,
            "fromCache": self.from_cache,
            "reason": self.reason.value if self.reason else None,
        }


@dataclass
class TargetError:
    path: str
    error_type: str
    message: str

    @classmethod
    def from_exception(cls, exc: ProcessingError) -> TargetError:
        return cls(path=exc.path, error_type=type(exc.cause).__name__, message=str(exc.cause))

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "type": self.error_type, "message": self.message}


@dataclass
class PipelineMetrics:
    cache_hit_ratio: float = 0.0
    files_processed: int = 0
    role_distribution: dict[str, int] = field(default_factory=dict)
    elapsed: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "cacheHitRatio": self.cache_hit_ratio,
            "filesProcessed": self.files_processed,
            "roleDistribution": dict(self.role_distribution),
            "elapsed": self.elapsed,
        }


@dataclass
class PipelineSummary:
    """Outcome of one ``ContentPipeline.run()``.

    Attributes:
        total: Candidates present on disk.
        stale: Targets queued for processing.
        reused: Targets served from the cache.
        results: One entry per successful or reused target; processed
            targets first (queue order), then reused ones (input order).
        errors: Targets whose processing failed.
        missing: Candidates that no longer exist on disk.
        skipped: Queued targets never started (fail-fast runs only).
        roles: Role/constraint report (see ``RoleIndex.report``).
        ok: False only when a non-empty queue produced zero successes.
    """

    total: int = 0
    stale: int = 0
    reused: int = 0
    results: list[TargetResult] = field(default_factory=list)
    errors: list[TargetError] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    roles: dict[str, Any] = field(default_factory=dict)
    metrics: PipelineMetrics = field(default_factory=PipelineMetrics)
    ok: bool = True

    def result_for(self, path: str) -> TargetResult | None:
        return next((r for r in self.results if r.path == path), None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "stale": self.stale,
            "reused": self.reused,
            "ok": self.ok,
            "results": [r.to_dict() for r in self.results],
            "errors": [e.to_dict() for e in self.errors],
            "missing": list(self.missing),
            "skipped": list(self.skipped),
            "roles": self.roles,
            "metrics": self.metrics.to_dict(),
        }


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class ContentPipeline:
    """Incremental content pipeline for one project root.

    Use ``ContentPipeline.open()`` to construct one with its cache loaded.

    Args:
        root: Project root. Every tracked path is relative to it.
        cache: Cache store (already loaded).
        include_mtime: Mix mtime into fingerprints.
        batch_size: Maximum number of targets processed concurrently.
        constraints: Per-role constraints for the role index.
        pins: path → role for files whose role was supplied explicitly.
        classifier: Override the role classifier.
        on_state: Called with every state transition.
        on_progress: Called as ``(path, done, total)`` after each processed target.
    """

    def __init__(
        self,
        root: Path,
        *,
        cache: CacheStore,
        include_mtime: bool = True,
        batch_size: int = 10,
        constraints: Mapping[str, RoleConstraint] | None = None,
        pins: Mapping[str, Role] | None = None,
        classifier: RoleClassifier | None = None,
        on_state: Callable[[PipelineState], None] | None = None,
        on_progress: Callable[[str, int, int], None] | None = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self.root = Path(root).resolve()
        self.cache = cache
        self.batch_size = batch_size
        self.fingerprinter = Fingerprinter(self.root, include_mtime=include_mtime)
        self.graph = DependencyGraph()
        self.classifier = classifier or RoleClassifier()
        self.index = RoleIndex(constraints)
        self.records: dict[str, FileRecord] = {}
        self.on_state = on_state
        self.on_progress = on_progress
        self._state = PipelineState.IDLE
        self._contents: dict[str, bytes] = {}
        for path, role in (pins or {}).items():
            self.add(path, role=role)

    @classmethod
    def open(cls, root: Path, *, cache_path: Path | None = None, **kwargs: Any) -> ContentPipeline:
        """Build a pipeline and load its cache from *cache_path* (None = in-memory)."""
        cache = CacheStore(cache_path)
        cache.load()
        return cls(root, cache=cache, **kwargs)

    @property
    def state(self) -> PipelineState:
        return self._state

    def _enter(self, state: PipelineState) -> None:
        self._state = state
        if self.on_state is not None:
            self.on_state(state)

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def relpath(self, path: str | Path) -> str:
        """Normalise *path* to a project-relative POSIX path.

        Raises:
            ValueError: If *path* lies outside the project root.
        """
        p = Path(path)
        if p.is_absolute():
            try:
                return p.resolve().relative_to(self.root).as_posix()
            except ValueError:
                raise ValueError(f"'{path}' is outside the project root '{self.root}'")
        rel = posixpath.normpath(str(path).replace("\\", "/"))
        if rel in (".", "..") or rel.startswith("../"):
            raise ValueError(f"'{path}' is outside the project root '{self.root}'")
        return rel

    def add(self, path: str | Path, role: Role | None = None) -> FileRecord:
        """Track *path*; a non-None *role* pins it. Content is read on the next run."""
        rel = self.relpath(path)
        record = self.records.get(rel)
        if record is None:
            record = FileRecord(path=rel, extension=posixpath.splitext(rel)[1].lower())
            self.records[rel] = record
        if role is not None:
            record.role = Role(role)
            record.pinned = True
        return record

    def remove(self, path: str | Path) -> bool:
        """Forget *path*: record, role, outgoing edges, cache entry.

        Returns True if anything was tracked or cached for it. Call ``save()``
        to persist the cache change.
        """
        rel = self.relpath(path)
        existed = self.records.pop(rel, None) is not None
        self.index.remove(rel)
        self.graph.remove(rel)
        cached = self.cache.delete(process_target_id(rel))
        return existed or cached

    def save(self) -> None:
        self.cache.save()

    def _candidates(self, files: Iterable[str | Path] | None) -> list[str]:
        sources = files if files is not None else list(self.records)
        return list(dict.fromkeys(self.relpath(f) for f in sources))

    def scan(self, files: Iterable[str | Path] | None = None) -> list[str]:
        """Refresh records, edges and roles without touching the cache.

        Returns the candidates that exist on disk.
        """
        candidates = self._candidates(files)
        self.fingerprinter.reset()
        try:
            self._enter(PipelineState.SCANNING)
            return [p for p in candidates if self._scan(p)]
        finally:
            self._contents = {}
            self._enter(PipelineState.IDLE)

    def preview(self, files: Iterable[str | Path] | None = None) -> SchedulePlan:
        """What the next ``run()`` over *files* would process, without processing."""
        present = self.scan(files)
        return IncrementalScheduler(self.graph, self.cache, self.fingerprinter).plan(present)

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run(
        self,
        process_fn: ProcessFn,
        files: Iterable[str | Path] | None = None,
        *,
        incremental: bool = True,
        continue_on_error: bool = True,
    ) -> PipelineSummary:
        """Bring the cache up to date for *files* (default: every tracked file).

        Args:
            process_fn: Called as ``process_fn(content, path)`` for each stale
                target; must return a JSON-serialisable value.
            files: Candidate paths, absolute or relative to the root.
            incremental: False reprocesses every candidate.
            continue_on_error: False stops scheduling after the first failure.
        """
        started = time.perf_counter()
        candidates = self._candidates(files)
        summary = PipelineSummary()
        self.fingerprinter.reset()
        self._contents = {}

        try:
            self._enter(PipelineState.SCANNING)
            present = [p for p in candidates if self._scan(p)]

            self._enter(PipelineState.SCHEDULING)
            scheduler = IncrementalScheduler(self.graph, self.cache, self.fingerprinter)
            plan = scheduler.plan(present, incremental=incremental)
            for path in plan.missing:
                self._mark_missing(path)
            summary.missing = [p for p in candidates if p not in present] + plan.missing

            self._enter(PipelineState.PROCESSING)
            processed = self._process(plan, process_fn, continue_on_error, summary)

            self._enter(PipelineState.PERSISTING)
            self.cache.save()
        finally:
            self._contents = {}
            self._enter(PipelineState.IDLE)

        summary.total = plan.candidates
        summary.stale = len(plan.stale)
        summary.reused = len(plan.reused)
        for path in plan.reused:
            entry = self.cache.get(process_target_id(path))
            summary.results.append(
                TargetResult(path, entry.result if entry else None, from_cache=True)
            )
        summary.roles = self.index.report()
        summary.ok = not (plan.stale and processed == 0)
        summary.metrics = PipelineMetrics(
            cache_hit_ratio=summary.reused / summary.total if summary.total else 0.0,
            files_processed=processed,
            role_distribution=self.index.distribution(),
            elapsed=time.perf_counter() - started,
        )
        return summary

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    def _scan(self, path: str) -> bool:
        """Refresh the record for *path*. Returns False if the file is gone."""
        record = self.add(path)
        try:
            fp = self.fingerprinter.fingerprint(path)
            content = (self.root / path).read_bytes()
        except (TargetNotFound, FileNotFoundError):
            self._mark_missing(path)
            return False

        record.missing = False
        record.size_bytes = fp.size
        record.modified_at = fp.mtime_ns
        record.content_fingerprint = fp.fingerprint
        record.content_hash = fp.content_hash

        text = decode_text(path, content)
        record.metadata = extract_metadata(text)
        record.dependencies = extract_dependencies(path, text if text is not None else content)
        self.graph.set_dependencies(path, record.dependencies)

        record.role = self.classifier.classify(record, text)
        self.index.assign(record)
        self._contents[path] = content
        return True

    def _mark_missing(self, path: str) -> None:
        record = self.records.get(path)
        if record is not None:
            record.missing = True
        self.index.remove(path)

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    def _process(
        self,
        plan: SchedulePlan,
        process_fn: ProcessFn,
        continue_on_error: bool,
        summary: PipelineSummary,
    ) -> int:
        """Run the stale queue; fills results/errors/skipped. Returns successes."""
        outcomes: dict[str, TargetResult | TargetError] = {}
        total = len(plan.stale)
        stop = False

        with ThreadPoolExecutor(max_workers=self.batch_size) as pool:
            for wave in group_waves(plan.stale, self.graph):
                pending = deque(wave)
                running: dict[Future, str] = {}
                while pending or running:
                    while pending and not stop and len(running) < self.batch_size:
                        path = pending.popleft()
                        running[pool.submit(self._call, process_fn, path)] = path
                    if not running:
                        break
                    done, _ = wait(running, return_when=FIRST_COMPLETED)
                    for future in done:
                        path = running.pop(future)
                        outcome = self._record(path, future.result(), plan)
                        outcomes[path] = outcome
                        if isinstance(outcome, TargetError) and not continue_on_error:
                            stop = True
                        if self.on_progress is not None:
                            self.on_progress(path, len(outcomes), total)
                if stop:
                    summary.skipped.extend(pending)
                    break

        if stop:
            queued = set(summary.skipped)
            summary.skipped.extend(p for p in plan.stale if p not in outcomes and p not in queued)

        processed = 0
        for path in plan.stale:
            outcome = outcomes.get(path)
            if isinstance(outcome, TargetResult):
                summary.results.append(outcome)
                processed += 1
            elif isinstance(outcome, TargetError):
                summary.errors.append(outcome)
        return processed

    def _call(self, process_fn: ProcessFn, path: str) -> Any:
        """Worker body: run *process_fn*; failures come back as ProcessingError.

        The result is returned in its JSON form (tuples become lists, keys
        become strings), the same value a later run reads back from the cache.
        """
        try:
            result = process_fn(self._contents[path], path)
            return json.loads(json.dumps(result))
        except Exception as exc:
            return ProcessingError(path, exc)

    def _record(self, path: str, value: Any, plan: SchedulePlan) -> TargetResult | TargetError:
        if isinstance(value, ProcessingError):
            return TargetError.from_exception(value)
        fp: Fingerprint = plan.fingerprints[path]
        self.cache.put(
            CacheEntry(
                target_id=process_target_id(path),
                fingerprint=fp.fingerprint,
                computed_at=utc_now(),
                result=value,
                content_hash=fp.content_hash,
                dependencies={
                    dep: self.fingerprinter.content_hash_or_none(dep)
                    for dep in self.graph.dependencies_of(path)
                },
            )
        )
        return TargetResult(path, value, from_cache=False, reason=plan.reasons.get(path))


def run_pipeline(
    files: Iterable[str | Path],
    process_fn: ProcessFn,
    *,
    root: Path,
    incremental: bool = True,
    continue_on_error: bool = True,
    cache_path: Path | None = None,
    **kwargs: Any,
) -> PipelineSummary:
    """One-shot helper: open a pipeline for *root* and run it over *files*.

    Extra keyword arguments go to the ContentPipeline constructor
    (``batch_size``, ``include_mtime``, ``constraints``, ``pins``, …).
    """
    pipeline = ContentPipeline.open(root, cache_path=cache_path, **kwargs)
    return pipeline.run(
        process_fn, files, incremental=incremental, continue_on_error=continue_on_error
    )
