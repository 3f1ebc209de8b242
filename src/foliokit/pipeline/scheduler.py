"""Incremental scheduler: which targets are stale, and in what order to rebuild.

plan(candidates):
  1. Fingerprint every candidate; vanished files are reported as missing.
  2. Decide staleness per target (cache entry, own fingerprint, dependencies:
     recursively, with a visiting set so dependency cycles terminate).
  3. Expand the stale set with every transitive dependent inside the
     candidate set until nothing more is added.
  4. Order the stale set so that dependencies come before their dependents.
"""

from __future__ import annotations

import heapq
from collections.abc import Sequence
from dataclasses import dataclass, field

from foliokit.errors import TargetNotFound
from foliokit.models import StaleReason
from foliokit.pipeline.cache import CacheStore
from foliokit.pipeline.fingerprint import Fingerprint, Fingerprinter
from foliokit.pipeline.graph import DependencyGraph

PROCESS_PREFIX = "process:"

# Reasons that invalidate dependents. A touch changes no bytes, so nothing
# downstream can have changed.
_PROPAGATING = frozenset(StaleReason) - {StaleReason.TOUCHED}


def process_target_id(path: str) -> str:
    """Cache key for the per-file processing result of *path*."""
    return PROCESS_PREFIX + path


@dataclass
class SchedulePlan:
    stale: list[str] = field(default_factory=list)  # dependency order
    reused: list[str] = field(default_factory=list)  # input order
    reasons: dict[str, StaleReason] = field(default_factory=dict)
    missing: list[str] = field(default_factory=list)
    fingerprints: dict[str, Fingerprint] = field(default_factory=dict)

    @property
    def candidates(self) -> int:
        return len(self.stale) + len(self.reused)


class IncrementalScheduler:
    """Plan a run from the dependency graph and the cache.

    Args:
        graph: Current dependency graph (already refreshed for the candidates).
        cache: Loaded cache store.
        fingerprinter: Fingerprinter for the project root.
    """

    def __init__(
        self,
        graph: DependencyGraph,
        cache: CacheStore,
        fingerprinter: Fingerprinter,
    ) -> None:
        self._graph = graph
        self._cache = cache
        self._fp = fingerprinter
        self._present: dict[str, int] = {}
        self._memo: dict[str, StaleReason | None] = {}

    def plan(self, candidates: Sequence[str], *, incremental: bool = True) -> SchedulePlan:
        plan = SchedulePlan()
        self._present = {}
        self._memo = {}

        for path in candidates:
            if path in self._present or path in plan.missing:
                continue
            try:
                plan.fingerprints[path] = self._fp.fingerprint(path)
            except TargetNotFound:
                plan.missing.append(path)
                continue
            self._present[path] = len(self._present)

        if incremental:
            for path in self._present:
                reason = self.needs_rebuild(path)
                if reason is not None:
                    plan.reasons[path] = reason
            self._expand(plan.reasons)
        else:
            plan.reasons = {path: StaleReason.FORCED for path in self._present}

        plan.stale = self._order(plan.reasons)
        plan.reused = [p for p in self._present if p not in plan.reasons]
        return plan

    # ------------------------------------------------------------------
    # Staleness
    # ------------------------------------------------------------------

    def needs_rebuild(
        self, path: str, visiting: frozenset[str] = frozenset()
    ) -> StaleReason | None:
        """Return why *path* must be rebuilt, or None if its cache entry is valid.

        *visiting* holds the targets on the current check path; reaching one
        of them again (a cycle) does not force a rebuild.
        """
        if path in self._memo:
            return self._memo[path]

        entry = self._cache.get(process_target_id(path))
        if entry is None:
            self._memo[path] = StaleReason.NEW
            return StaleReason.NEW

        live = self._fp.fingerprint(path)
        reason: StaleReason | None = None
        if entry.fingerprint != live.fingerprint:
            if entry.content_hash and entry.content_hash == live.content_hash:
                reason = StaleReason.TOUCHED
            else:
                reason = StaleReason.CHANGED
                self._memo[path] = reason
                return reason

        visiting = visiting | {path}
        for dep in self._graph.dependencies_of(path):
            if dep not in entry.dependencies:
                reason = StaleReason.DEPENDENCY
                break
            # Read straight from disk: the dependency need not be a candidate.
            if entry.dependencies[dep] != self._fp.content_hash_or_none(dep):
                reason = StaleReason.DEPENDENCY
                break
            if dep in self._present and dep not in visiting:
                dep_reason = self.needs_rebuild(dep, visiting)
                if dep_reason in _PROPAGATING:
                    reason = StaleReason.DEPENDENCY
                    break

        self._memo[path] = reason
        return reason

    def _expand(self, reasons: dict[str, StaleReason]) -> None:
        """Add every candidate that transitively depends on a stale target."""
        frontier = [p for p, r in reasons.items() if r in _PROPAGATING]
        while frontier:
            node = frontier.pop()
            for dependent in self._graph.dependents_of(node):
                if dependent in self._present and dependent not in reasons:
                    reasons[dependent] = StaleReason.DEPENDENT
                    frontier.append(dependent)

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def _order(self, reasons: dict[str, StaleReason]) -> list[str]:
        """Indegree-based topological order; ties by input order, then path."""
        stale = set(reasons)
        indegree = {p: 0 for p in stale}
        children: dict[str, list[str]] = {p: [] for p in stale}
        for path in stale:
            for dep in self._graph.dependencies_of(path):
                if dep in stale:
                    indegree[path] += 1
                    children[dep].append(path)

        def key(p: str) -> tuple[int, str]:
            return (self._present.get(p, len(self._present)), p)

        heap = [key(p) for p in stale if indegree[p] == 0]
        heapq.heapify(heap)
        done: set[str] = set()
        order: list[str] = []

        while len(order) < len(stale):
            if not heap:
                # Only cycle members remain: release the first one by tie order.
                heapq.heappush(heap, key(min(stale - done, key=key)))
            _, path = heapq.heappop(heap)
            if path in done:
                continue
            done.add(path)
            order.append(path)
            for child in children[path]:
                indegree[child] -= 1
                if indegree[child] <= 0 and child not in done:
                    heapq.heappush(heap, key(child))

        return order


def group_waves(order: Sequence[str], graph: DependencyGraph) -> list[list[str]]:
    """Split a dependency-ordered queue into waves of mutually independent targets.

    A target lands one wave after the latest of its dependencies that appears
    earlier in *order*; dependencies later in *order* (cycle back-edges) are
    ignored. Every target in a wave may run in parallel.
    """
    position = {p: i for i, p in enumerate(order)}
    level: dict[str, int] = {}
    for path in order:
        earlier = [
            level[d]
            for d in graph.dependencies_of(path)
            if d in position and position[d] < position[path]
        ]
        level[path] = max(earlier) + 1 if earlier else 0

    waves: list[list[str]] = [[] for _ in range(max(level.values(), default=-1) + 1)]
    for path in order:
        waves[level[path]].append(path)
    return waves
