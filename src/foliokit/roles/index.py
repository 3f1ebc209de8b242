"""Role → files index with constraint checking.

The index holds one entry per tracked file and re-buckets it whenever the
file is reclassified. Constraint violations are advisory: they are reported,
never enforced.
"""

from __future__ import annotations

from collections.abc import Mapping

from foliokit.config import DEFAULT_CONSTRAINTS, RoleConstraint
from foliokit.models import ConstraintViolation, FileRecord, Role


class RoleIndex:
    """Files grouped by role, in first-assignment order within each role.

    Args:
        constraints: role name → RoleConstraint (defaults to DEFAULT_CONSTRAINTS).
    """

    def __init__(self, constraints: Mapping[str, RoleConstraint] | None = None) -> None:
        self.constraints = dict(constraints if constraints is not None else DEFAULT_CONSTRAINTS)
        self._by_role: dict[Role, dict[str, FileRecord]] = {}
        self._role_of: dict[str, Role] = {}

    def assign(self, record: FileRecord) -> None:
        """Index *record* under ``record.role``, moving it if the role changed."""
        if record.role is None:
            self.remove(record.path)
            return
        previous = self._role_of.get(record.path)
        if previous is not None and previous != record.role:
            self._drop(record.path, previous)
        self._by_role.setdefault(record.role, {})[record.path] = record
        self._role_of[record.path] = record.role

    def remove(self, path: str) -> None:
        previous = self._role_of.pop(path, None)
        if previous is not None:
            self._drop(path, previous)

    def _drop(self, path: str, role: Role) -> None:
        bucket = self._by_role.get(role)
        if bucket is None:
            return
        bucket.pop(path, None)
        if not bucket:
            del self._by_role[role]

    def files_by_role(self, role: Role) -> list[FileRecord]:
        return list(self._by_role.get(role, {}).values())

    def role_of(self, path: str) -> Role | None:
        return self._role_of.get(path)

    def roles(self) -> list[Role]:
        """Roles that currently have at least one file, in Role declaration order."""
        return [r for r in Role if r in self._by_role]

    def distribution(self) -> dict[str, int]:
        return {r.value: len(self._by_role[r]) for r in self.roles()}

    def __len__(self) -> int:
        return len(self._role_of)

    # ------------------------------------------------------------------
    # Constraints + report
    # ------------------------------------------------------------------

    def validate_role_constraints(self) -> list[ConstraintViolation]:
        violations: list[ConstraintViolation] = []
        for role_name, constraint in self.constraints.items():
            files = self.files_by_role(Role(role_name))
            if constraint.max_files is not None and len(files) > constraint.max_files:
                violations.append(
                    ConstraintViolation(
                        role=role_name,
                        issue="too_many_files",
                        current=len(files),
                        max=constraint.max_files,
                    )
                )
            if not constraint.extensions:
                continue
            allowed = {e.lower() for e in constraint.extensions}
            for record in files:
                if record.extension.lower() not in allowed:
                    violations.append(
                        ConstraintViolation(
                            role=role_name,
                            issue="invalid_extension",
                            file=record.path,
                            extension=record.extension,
                            allowed=list(constraint.extensions),
                        )
                    )
        return violations

    def report(self) -> dict:
        """``{roles: {role: {count, totalSize, extensions}}, violations: [...]}``."""
        roles: dict[str, dict] = {}
        for role in self.roles():
            files = self.files_by_role(role)
            extensions: dict[str, None] = {}
            for record in files:
                extensions.setdefault(record.extension, None)
            roles[role.value] = {
                "count": len(files),
                "totalSize": sum(f.size_bytes for f in files),
                "extensions": list(extensions),
            }
        return {
            "roles": roles,
            "violations": [v.to_dict() for v in self.validate_role_constraints()],
        }
