"""Dependency graph: target → dependencies plus the transpose (dependents).

Both maps are updated together on every mutation, so ``dependents_of`` is a
dictionary lookup rather than a scan. Edges are derived from file content:
``set_dependencies`` replaces a target's outgoing edges wholesale.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator


class DependencyGraph:
    """Directed graph of ``(from, to)`` edges: *from* is invalid if *to* changes."""

    def __init__(self) -> None:
        # Values are dicts used as insertion-ordered sets.
        self._deps: dict[str, dict[str, None]] = {}
        self._rdeps: dict[str, dict[str, None]] = {}

    def add_edge(self, source: str, target: str) -> None:
        """Record that *source* depends on *target*. Self-edges are ignored."""
        if source == target:
            return
        self._deps.setdefault(source, {})[target] = None
        self._rdeps.setdefault(target, {})[source] = None

    def set_dependencies(self, source: str, targets: Iterable[str]) -> None:
        """Replace all outgoing edges of *source* with *targets*."""
        self.clear_dependencies(source)
        self._deps.setdefault(source, {})
        for target in targets:
            self.add_edge(source, target)

    def clear_dependencies(self, source: str) -> None:
        """Drop every outgoing edge of *source*."""
        for target in self._deps.pop(source, {}):
            dependents = self._rdeps.get(target)
            if dependents is None:
                continue
            dependents.pop(source, None)
            if not dependents:
                del self._rdeps[target]

    def remove(self, node: str) -> None:
        """Forget *node*'s outgoing edges.

        Incoming edges stay: files that still reference *node* keep depending on it.
        """
        self.clear_dependencies(node)

    def dependencies_of(self, source: str) -> list[str]:
        return list(self._deps.get(source, ()))

    def dependents_of(self, target: str) -> list[str]:
        return list(self._rdeps.get(target, ()))

    def has_edge(self, source: str, target: str) -> bool:
        return target in self._deps.get(source, ())

    def edges(self) -> Iterator[tuple[str, str]]:
        for source, targets in self._deps.items():
            for target in targets:
                yield source, target

    def nodes(self) -> set[str]:
        return set(self._deps) | set(self._rdeps)

    def __len__(self) -> int:
        return sum(len(targets) for targets in self._deps.values())

    def __contains__(self, node: object) -> bool:
        return node in self._deps or node in self._rdeps
