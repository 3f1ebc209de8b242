"""foliokit configuration loader.

Priority (high → low):
  1. CLI flags              (handled at call site, not in this module)
  2. Environment variables  (FOLIOKIT_CACHE_PATH, FOLIOKIT_BATCH_SIZE)
  3. Per-project foliokit.yaml
  4. Global ~/.foliokit/config.yaml
  5. Hardcoded defaults

pipeline.cache_path must stay inside the project (relative, no ``..``).
All YAML reads use yaml.safe_load(), never yaml.load().
"""

from __future__ import annotations

import os
import posixpath
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from foliokit.models import Role
from foliokit.writer import write_atomic

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".foliokit"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
PROJECT_CONFIG_NAME: str = "foliokit.yaml"

# Known top-level sections; unknown keys produce a warning
_KNOWN_SECTIONS: frozenset[str] = frozenset(["project", "pipeline", "scan", "roles"])

_ROLE_NAMES: frozenset[str] = frozenset(r.value for r in Role)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class ProjectCfg:
    """Project-level metadata (foliokit.yaml: project:)."""

    name: str = ""
    content_dir: str = "content"


@dataclass
class PipelineCfg:
    """Incremental pipeline settings (foliokit.yaml: pipeline:).

    Attributes:
        cache_path: Cache file, relative to the project directory.
        incremental: Reuse cached results for unchanged files.
        continue_on_error: Keep processing after a file fails.
        batch_size: Upper bound on files processed in parallel.
        include_mtime: Mix modification time into fingerprints, so a bare
            ``touch`` reprocesses the file.
    """

    cache_path: str = ".foliokit/cache.json"
    incremental: bool = True
    continue_on_error: bool = True
    batch_size: int = 10
    include_mtime: bool = True


@dataclass
class ScanCfg:
    """Content directory scan (foliokit.yaml: scan:)."""

    recursive: bool = True
    exclude: list[str] = field(default_factory=list)
    max_depth: int = 10


@dataclass
class RoleConstraint:
    """Per-role limits. ``max_files=None`` / empty ``extensions`` = unrestricted."""

    max_files: int | None = None
    extensions: list[str] = field(default_factory=list)


DEFAULT_CONSTRAINTS: dict[str, RoleConstraint] = {
    "hero": RoleConstraint(1, [".md", ".txt"]),
    "bio": RoleConstraint(1, [".md"]),
    "resume": RoleConstraint(1, [".pdf", ".md"]),
    "gallery": RoleConstraint(50, [".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg"]),
    "projects": RoleConstraint(20, [".md", ".json"]),
    "contact": RoleConstraint(1, [".md", ".json"]),
    "styles": RoleConstraint(10, [".css", ".scss", ".less"]),
    "scripts": RoleConstraint(10, [".js", ".mjs", ".cjs", ".jsx", ".ts", ".tsx"]),
}


@dataclass
class RolesCfg:
    """Role constraints and explicit role pins (foliokit.yaml: roles:)."""

    constraints: dict[str, RoleConstraint] = field(
        default_factory=lambda: {
            k: RoleConstraint(v.max_files, list(v.extensions))
            for k, v in DEFAULT_CONSTRAINTS.items()
        }
    )
    pins: dict[str, Role] = field(default_factory=dict)


@dataclass
class FoliokitConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    project: ProjectCfg = field(default_factory=ProjectCfg)
    pipeline: PipelineCfg = field(default_factory=PipelineCfg)
    scan: ScanCfg = field(default_factory=ScanCfg)
    roles: RolesCfg = field(default_factory=RolesCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}'; ignored.",
                UserWarning,
                stacklevel=4,
            )


def _validate_cache_path(cache_path: str) -> None:
    """Raise ConfigError unless *cache_path* stays inside the project directory."""
    normalized = posixpath.normpath(cache_path.replace("\\", "/"))
    escapes = normalized == ".." or normalized.startswith("../")
    if Path(cache_path).is_absolute() or normalized.startswith("/") or escapes:
        raise ConfigError(
            f"pipeline.cache_path must be a relative path inside the project: '{cache_path}'\n"
            "  Example: pipeline.cache_path: .foliokit/cache.json"
        )
    if normalized == ".":
        raise ConfigError("pipeline.cache_path must name a file, not the project directory.")


def _parse_int(value: Any, key: str, minimum: int) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be an integer, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be an integer, got {value!r}")
    if number < minimum:
        raise ConfigError(f"{key} must be at least {minimum}, got {number}")
    return number


def _parse_batch_size(value: Any) -> int:
    return _parse_int(value, "pipeline.batch_size", 1)


def _parse_bool(value: Any, key: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"{key} must be true or false, got {value!r}")
    return value


def _mapping(value: Any, where: str) -> dict[str, Any]:
    """*value* as a config mapping; null counts as empty."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{where} must be a mapping, got {value!r}")
    return value


def _string_list(value: Any, key: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError(f"{key} must be a list, got {value!r}")
    return [str(x) for x in value]


def _parse_role(name: Any, where: str) -> Role:
    if str(name) not in _ROLE_NAMES:
        raise ConfigError(
            f"Unknown role '{name}' in {where}.\n"
            f"  Valid roles: {', '.join(sorted(_ROLE_NAMES))}"
        )
    return Role(str(name))


def normalize_pin_path(path: str) -> str:
    """Project-relative POSIX form used as the key of ``roles.pins``."""
    return posixpath.normpath(path.replace("\\", "/")).lstrip("/")


def _normalize_extensions(raw: Any, key: str) -> list[str]:
    exts: list[str] = []
    for e in _string_list(raw, key):
        e = str(e).strip().lower()
        if e and not e.startswith("."):
            e = "." + e
        if e:
            exts.append(e)
    return exts


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _parse_roles(raw: dict[str, Any], defaults: RolesCfg) -> RolesCfg:
    constraints = defaults.constraints
    for role_name, raw_constraint in _mapping(raw.get("constraints"), "roles.constraints").items():
        role = _parse_role(role_name, "roles.constraints")
        where = f"roles.constraints.{role.value}"
        base = constraints.get(role.value, RoleConstraint())
        override = _mapping(raw_constraint, where)
        max_files = override.get("max_files", base.max_files)
        constraints[role.value] = RoleConstraint(
            max_files=None if max_files is None else _parse_int(max_files, f"{where}.max_files", 0),
            extensions=(
                _normalize_extensions(override["extensions"], f"{where}.extensions")
                if "extensions" in override
                else list(base.extensions)
            ),
        )

    pins: dict[str, Role] = {}
    for path, role_name in _mapping(raw.get("pins"), "roles.pins").items():
        pins[normalize_pin_path(str(path))] = _parse_role(role_name, f"roles.pins['{path}']")

    return RolesCfg(constraints=constraints, pins=pins)


def _cfg_from_dict(data: dict[str, Any]) -> FoliokitConfig:
    """Build a *FoliokitConfig* from a merged raw YAML dict.

    Raises:
        ConfigError: If a section is not a mapping or a value has the wrong type.
    """
    cfg = FoliokitConfig()

    if "project" in data:
        p = _mapping(data["project"], "project")
        cfg.project = ProjectCfg(
            name=str(p.get("name", cfg.project.name)),
            content_dir=str(p.get("content_dir", cfg.project.content_dir)),
        )

    if "pipeline" in data:
        pl = _mapping(data["pipeline"], "pipeline")
        default = cfg.pipeline
        cfg.pipeline = PipelineCfg(
            cache_path=str(pl.get("cache_path", default.cache_path)),
            incremental=_parse_bool(pl.get("incremental", default.incremental), "pipeline.incremental"),
            continue_on_error=_parse_bool(
                pl.get("continue_on_error", default.continue_on_error), "pipeline.continue_on_error"
            ),
            batch_size=_parse_batch_size(pl.get("batch_size", default.batch_size)),
            include_mtime=_parse_bool(
                pl.get("include_mtime", default.include_mtime), "pipeline.include_mtime"
            ),
        )

    if "scan" in data:
        s = _mapping(data["scan"], "scan")
        cfg.scan = ScanCfg(
            recursive=_parse_bool(s.get("recursive", cfg.scan.recursive), "scan.recursive"),
            exclude=_string_list(s.get("exclude"), "scan.exclude"),
            max_depth=_parse_int(s.get("max_depth", cfg.scan.max_depth), "scan.max_depth", 0),
        )

    if "roles" in data:
        cfg.roles = _parse_roles(_mapping(data["roles"], "roles"), cfg.roles)

    return cfg


def _apply_env_overrides(cfg: FoliokitConfig) -> FoliokitConfig:
    """Apply FOLIOKIT_* environment variable overrides (layer 2)."""
    if cache_path := os.environ.get("FOLIOKIT_CACHE_PATH"):
        cfg.pipeline.cache_path = cache_path
    if batch_size := os.environ.get("FOLIOKIT_BATCH_SIZE"):
        cfg.pipeline.batch_size = _parse_batch_size(batch_size)
    return cfg


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Cannot parse '{path}': {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"'{path}' must contain a mapping at the top level.")
    return data


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> FoliokitConfig:
    """Load and return a merged *FoliokitConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *foliokit.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *FoliokitConfig* with env var overrides applied.

    Raises:
        ConfigError: On unparseable YAML, an unknown role name, a
            ``batch_size`` below 1, or a ``cache_path`` outside the project.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = _read_yaml(global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = _read_yaml(project_cfg_path)
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)

    # Layer 3: env var overrides
    cfg = _apply_env_overrides(cfg)

    _validate_cache_path(cfg.pipeline.cache_path)
    return cfg


def cache_file(cfg: FoliokitConfig, project_dir: Path) -> Path:
    """Absolute location of the cache file for *project_dir*."""
    return project_dir / cfg.pipeline.cache_path


def write_default_config(project_dir: Path, name: str) -> Path:
    """Scaffold ``foliokit.yaml`` in *project_dir*; returns its path."""
    content = (
        f"project:\n"
        f'  name: "{name}"\n'
        f'  content_dir: "content"\n'
        f"\n"
        f"pipeline:\n"
        f'  cache_path: ".foliokit/cache.json"\n'
        f"  incremental: true\n"
        f"  continue_on_error: true\n"
        f"  batch_size: 10\n"
        f"\n"
        f"scan:\n"
        f"  recursive: true\n"
        f"  exclude: []\n"
        f"\n"
        f"# Override per-role limits or pin a file to a role:\n"
        f"# roles:\n"
        f"#   constraints:\n"
        f"#     gallery:\n"
        f"#       max_files: 30\n"
        f"#   pins:\n"
        f"#     content/intro.md: hero\n"
    )
    target = project_dir / PROJECT_CONFIG_NAME
    target.write_text(content, encoding="utf-8")
    return target


def save_pins(project_dir: Path, pins: dict[str, Role]) -> Path:
    """Rewrite the ``roles.pins`` section of *project_dir*'s foliokit.yaml.

    Other sections are preserved as data; YAML comments are not.
    """
    target = project_dir / PROJECT_CONFIG_NAME
    data = _read_yaml(target) if target.exists() else {}
    roles = data.get("roles") or {}
    if pins:
        roles["pins"] = {path: Role(role).value for path, role in sorted(pins.items())}
    else:
        roles.pop("pins", None)
    if roles:
        data["roles"] = roles
    else:
        data.pop("roles", None)
    write_atomic(target, yaml.safe_dump(data, sort_keys=False, allow_unicode=True))
    return target
