"""Tests for the foliokit config loader."""

from __future__ import annotations

import warnings
from pathlib import Path

import pytest
import yaml

from foliokit.config import (
    DEFAULT_CONSTRAINTS,
    ConfigError,
    FoliokitConfig,
    RoleConstraint,
    cache_file,
    load_config,
    save_pins,
    write_default_config,
)
from foliokit.models import Role


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_yaml(path: Path, data: dict) -> None:
    path.write_text(yaml.dump(data), encoding="utf-8")


def _load(tmp_path: Path) -> FoliokitConfig:
    return load_config(project_dir=tmp_path, global_config_path=tmp_path / "nonexistent.yaml")


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


def test_load_config_defaults_no_files(tmp_path: Path) -> None:
    """No config files → all hardcoded defaults."""
    cfg = _load(tmp_path)

    assert cfg.project.name == ""
    assert cfg.project.content_dir == "content"
    assert cfg.pipeline.cache_path == ".foliokit/cache.json"
    assert cfg.pipeline.incremental is True
    assert cfg.pipeline.continue_on_error is True
    assert cfg.pipeline.batch_size == 10
    assert cfg.pipeline.include_mtime is True
    assert cfg.scan.recursive is True
    assert cfg.scan.exclude == []
    assert cfg.roles.pins == {}
    assert cfg.roles.constraints["bio"] == RoleConstraint(1, [".md"])


def test_default_constraints_not_shared_between_configs(tmp_path: Path) -> None:
    """Mutating one config's constraints leaves the module defaults alone."""
    cfg = _load(tmp_path)
    cfg.roles.constraints["gallery"].extensions.append(".tiff")

    assert ".tiff" not in DEFAULT_CONSTRAINTS["gallery"].extensions


# ---------------------------------------------------------------------------
# Layering
# ---------------------------------------------------------------------------


def test_project_overrides_global(tmp_path: Path) -> None:
    """Per-project foliokit.yaml wins over the global config, key by key."""
    global_cfg = tmp_path / "global.yaml"
    _write_yaml(global_cfg, {"pipeline": {"batch_size": 4, "include_mtime": False}})
    _write_yaml(tmp_path / "foliokit.yaml", {"pipeline": {"batch_size": 2}})

    cfg = load_config(project_dir=tmp_path, global_config_path=global_cfg)

    assert cfg.pipeline.batch_size == 2
    assert cfg.pipeline.include_mtime is False


def test_empty_and_null_files_give_defaults(tmp_path: Path) -> None:
    """Empty global file and a ``project: null`` section → defaults (no crash)."""
    global_cfg = tmp_path / "global.yaml"
    global_cfg.write_text("", encoding="utf-8")
    (tmp_path / "foliokit.yaml").write_text("project:\n", encoding="utf-8")

    cfg = load_config(project_dir=tmp_path, global_config_path=global_cfg)
    assert cfg.project.content_dir == "content"


def test_scan_section(tmp_path: Path) -> None:
    _write_yaml(
        tmp_path / "foliokit.yaml",
        {"scan": {"recursive": False, "exclude": ["*.psd", "drafts"], "max_depth": 3}},
    )
    cfg = _load(tmp_path)
    assert cfg.scan.recursive is False
    assert cfg.scan.exclude == ["*.psd", "drafts"]
    assert cfg.scan.max_depth == 3


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "bad_path",
    ["/tmp/cache.json", "../cache.json", "a/../../cache.json", ".", ".."],
)
def test_cache_path_outside_project_rejected(tmp_path: Path, bad_path: str) -> None:
    """cache_path must stay inside the project directory."""
    _write_yaml(tmp_path / "foliokit.yaml", {"pipeline": {"cache_path": bad_path}})
    with pytest.raises(ConfigError):
        _load(tmp_path)


def test_cache_path_inside_project_ok(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "foliokit.yaml", {"pipeline": {"cache_path": "build/../state/c.json"}})
    cfg = _load(tmp_path)
    assert cache_file(cfg, tmp_path) == tmp_path / "build/../state/c.json"


@pytest.mark.parametrize("bad_size", [0, -1, "many"])
def test_batch_size_validated(tmp_path: Path, bad_size) -> None:
    _write_yaml(tmp_path / "foliokit.yaml", {"pipeline": {"batch_size": bad_size}})
    with pytest.raises(ConfigError, match="batch_size"):
        _load(tmp_path)


@pytest.mark.parametrize(
    ("data", "key"),
    [
        ({"roles": ["hero"]}, "roles"),
        ({"pipeline": "fast"}, "pipeline"),
        ({"roles": {"constraints": {"gallery": 5}}}, "roles.constraints.gallery"),
        ({"roles": {"constraints": {"gallery": {"max_files": "x"}}}}, "roles.constraints.gallery.max_files"),
        ({"roles": {"constraints": {"styles": {"extensions": ".css"}}}}, "roles.constraints.styles.extensions"),
        ({"roles": {"pins": ["a.md"]}}, "roles.pins"),
        ({"scan": {"max_depth": "deep"}}, "scan.max_depth"),
        ({"scan": {"exclude": "*.psd"}}, "scan.exclude"),
    ],
)
def test_malformed_values_raise_config_error(tmp_path: Path, data: dict, key: str) -> None:
    """Wrong shapes and types name the offending key instead of crashing."""
    _write_yaml(tmp_path / "foliokit.yaml", data)
    with pytest.raises(ConfigError, match=key.replace(".", r"\.")):
        _load(tmp_path)


@pytest.mark.parametrize("key", ["incremental", "continue_on_error", "include_mtime"])
def test_quoted_booleans_rejected(tmp_path: Path, key: str) -> None:
    """A quoted "false" is a string, not a boolean."""
    _write_yaml(tmp_path / "foliokit.yaml", {"pipeline": {key: "false"}})
    with pytest.raises(ConfigError, match=f"pipeline.{key} must be true or false"):
        _load(tmp_path)


def test_boolean_values_accepted(tmp_path: Path) -> None:
    _write_yaml(
        tmp_path / "foliokit.yaml",
        {"pipeline": {"incremental": False, "include_mtime": False}, "scan": {"recursive": False}},
    )
    cfg = _load(tmp_path)
    assert cfg.pipeline.incremental is False
    assert cfg.pipeline.include_mtime is False
    assert cfg.scan.recursive is False


def test_unparseable_yaml_raises_config_error(tmp_path: Path) -> None:
    (tmp_path / "foliokit.yaml").write_text("pipeline: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="Cannot parse"):
        _load(tmp_path)


def test_top_level_list_rejected(tmp_path: Path) -> None:
    (tmp_path / "foliokit.yaml").write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping"):
        _load(tmp_path)


def test_unknown_top_level_key_warns(tmp_path: Path) -> None:
    """Unknown top-level key emits UserWarning (not error)."""
    _write_yaml(tmp_path / "foliokit.yaml", {"generator": {"theme": "dark"}})

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        cfg = _load(tmp_path)

    assert any("generator" in str(w.message) for w in caught)
    assert cfg.pipeline.batch_size == 10


def test_config_does_not_execute_yaml_load(tmp_path: Path) -> None:
    """Config loader uses safe_load: python object tags are rejected, not executed."""
    (tmp_path / "foliokit.yaml").write_text(
        "!!python/object/apply:os.system ['echo pwned']\n", encoding="utf-8"
    )
    with pytest.raises(ConfigError):
        _load(tmp_path)


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------


def test_role_constraint_overrides(tmp_path: Path) -> None:
    """Partial constraint overrides keep the remaining default fields."""
    _write_yaml(
        tmp_path / "foliokit.yaml",
        {
            "roles": {
                "constraints": {
                    "gallery": {"max_files": 5},
                    "styles": {"extensions": ["CSS", ".sass"]},
                    "content": {"max_files": None, "extensions": ["md"]},
                }
            }
        },
    )
    cfg = _load(tmp_path)

    assert cfg.roles.constraints["gallery"].max_files == 5
    assert ".webp" in cfg.roles.constraints["gallery"].extensions
    assert cfg.roles.constraints["styles"] == RoleConstraint(10, [".css", ".sass"])
    assert cfg.roles.constraints["content"] == RoleConstraint(None, [".md"])


def test_role_pins_normalised(tmp_path: Path) -> None:
    _write_yaml(
        tmp_path / "foliokit.yaml",
        {"roles": {"pins": {"./content/intro.md": "hero", "content\\me.txt": "bio"}}},
    )
    cfg = _load(tmp_path)
    assert cfg.roles.pins == {"content/intro.md": Role.HERO, "content/me.txt": Role.BIO}


@pytest.mark.parametrize(
    "roles",
    [
        {"pins": {"a.md": "banner"}},
        {"constraints": {"banner": {"max_files": 1}}},
    ],
)
def test_unknown_role_rejected(tmp_path: Path, roles: dict) -> None:
    _write_yaml(tmp_path / "foliokit.yaml", {"roles": roles})
    with pytest.raises(ConfigError, match="Unknown role 'banner'"):
        _load(tmp_path)


# ---------------------------------------------------------------------------
# Environment variable overrides
# ---------------------------------------------------------------------------


def test_env_var_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """FOLIOKIT_* env vars override config file values."""
    _write_yaml(tmp_path / "foliokit.yaml", {"pipeline": {"batch_size": 2}})
    monkeypatch.setenv("FOLIOKIT_BATCH_SIZE", "7")
    monkeypatch.setenv("FOLIOKIT_CACHE_PATH", "state/cache.json")

    cfg = _load(tmp_path)

    assert cfg.pipeline.batch_size == 7
    assert cfg.pipeline.cache_path == "state/cache.json"


def test_env_var_cache_path_validated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FOLIOKIT_CACHE_PATH", "/var/tmp/cache.json")
    with pytest.raises(ConfigError):
        _load(tmp_path)


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


def test_write_default_config_round_trips(tmp_path: Path) -> None:
    """The scaffolded file loads back to the defaults plus the project name."""
    path = write_default_config(tmp_path, "Sam's Portfolio")

    assert path == tmp_path / "foliokit.yaml"
    cfg = _load(tmp_path)
    assert cfg.project.name == "Sam's Portfolio"
    assert cfg.pipeline == FoliokitConfig().pipeline
    assert "# roles:" in path.read_text(encoding="utf-8")


def test_save_pins_preserves_other_sections(tmp_path: Path) -> None:
    write_default_config(tmp_path, "demo")

    save_pins(tmp_path, {"content/z.md": Role.BIO, "content/a.md": Role.HERO})

    data = yaml.safe_load((tmp_path / "foliokit.yaml").read_text(encoding="utf-8"))
    assert data["project"]["name"] == "demo"
    assert data["roles"]["pins"] == {"content/a.md": "hero", "content/z.md": "bio"}
    assert list(data["roles"]["pins"]) == ["content/a.md", "content/z.md"]


def test_save_pins_empty_drops_section(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "foliokit.yaml", {"roles": {"pins": {"a.md": "hero"}}})

    save_pins(tmp_path, {})

    data = yaml.safe_load((tmp_path / "foliokit.yaml").read_text(encoding="utf-8"))
    assert "roles" not in data
