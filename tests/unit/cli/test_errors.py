"""Tests for foliokit CLI error messages: each names the cause and the fix."""

from __future__ import annotations

import pytest

from foliokit.cli.errors import (
    err_build_failed,
    err_config_invalid,
    err_content_dir_missing,
    err_file_not_found,
    err_no_config,
    err_not_tracked,
    err_outside_project,
    err_output_path_unsafe,
    err_unknown_role,
    warn_cache_corrupt,
    warn_constraint_violations,
)


@pytest.mark.parametrize(
    "message",
    [
        err_no_config("/work/site"),
        err_config_invalid("pipeline.batch_size must be at least 1, got 0"),
        err_content_dir_missing("content"),
        err_file_not_found("bio.md"),
        err_outside_project("../x.md", "/work/site"),
        err_unknown_role("banner"),
        err_output_path_unsafe("../../x.json"),
        err_build_failed(3),
    ],
)
def test_errors_are_red_and_multiline(message: str) -> None:
    assert message.startswith("[red]Error:[/]")
    assert "\n  " in message


def test_no_config_points_to_init() -> None:
    assert "foliokit init" in err_no_config("/work/site")


def test_unknown_role_lists_valid_roles() -> None:
    message = err_unknown_role("banner")
    for role in ("hero", "bio", "gallery", "scripts"):
        assert role in message


def test_not_tracked_is_a_notice() -> None:
    message = err_not_tracked("content/a.md")
    assert message.startswith("[yellow]")
    assert "foliokit status" in message


def test_warnings() -> None:
    assert "rebuilding everything" in warn_cache_corrupt(".foliokit/cache.json")
    assert "2 role constraint" in warn_constraint_violations(2)
    assert "--role" in warn_constraint_violations(1)


def test_build_failed_mentions_count() -> None:
    assert "3 queued" in err_build_failed(3)
