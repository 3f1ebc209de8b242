"""Tests for rule-based role inference."""

from __future__ import annotations

import posixpath

import pytest

from foliokit.models import FileRecord, Role
from foliokit.roles import RoleClassifier, RoleRule


def _record(path: str, **kwargs) -> FileRecord:
    return FileRecord(path=path, extension=posixpath.splitext(path)[1].lower(), **kwargs)


@pytest.fixture
def classifier() -> RoleClassifier:
    return RoleClassifier()


@pytest.mark.parametrize(
    "path, expected",
    [
        ("content/resume.pdf", Role.RESUME),
        ("cv.md", Role.RESUME),
        ("content/bio.md", Role.BIO),
        ("About.MD", Role.BIO),
        ("index.html", Role.HERO),
        ("README.md", Role.HERO),
        ("contact.json", Role.CONTACT),
        ("portfolio.md", Role.PROJECTS),
        ("gallery.md", Role.GALLERY),
    ],
)
def test_name_rules(classifier: RoleClassifier, path: str, expected: Role) -> None:
    assert classifier.classify(_record(path)) is expected


@pytest.mark.parametrize(
    "path, expected",
    [
        ("photo.jpg", Role.GALLERY),
        ("img/logo.SVG", Role.GALLERY),
        ("site.css", Role.STYLES),
        ("theme.scss", Role.STYLES),
        ("app.js", Role.SCRIPTS),
        ("main.ts", Role.SCRIPTS),
        ("components/App.jsx", Role.SCRIPTS),
        ("Widget.tsx", Role.SCRIPTS),
        ("legacy.cjs", Role.SCRIPTS),
        ("talk.pdf", Role.RESUME),
    ],
)
def test_extension_rules(classifier: RoleClassifier, path: str, expected: Role) -> None:
    assert classifier.classify(_record(path)) is expected


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Write to me at sam@example.com", Role.CONTACT),
        ("Phone: 555 0100", Role.CONTACT),
        ("Find me on LinkedIn", Role.CONTACT),
        ("Source: github.com/sam/shop", Role.PROJECTS),
        ("Tech stack: Python, Postgres", Role.PROJECTS),
        ("My name is Sam and I paint.", Role.BIO),
        ("Ten years of experience in print.", Role.BIO),
    ],
)
def test_content_heuristics(classifier: RoleClassifier, text: str, expected: Role) -> None:
    assert classifier.classify(_record("notes.md"), text) is expected


def test_contact_markers_win_over_bio_markers(classifier: RoleClassifier) -> None:
    text = "About me: I design type. Get in touch: sam@example.com"
    assert classifier.classify(_record("page.md"), text) is Role.CONTACT


def test_name_wins_over_content(classifier: RoleClassifier) -> None:
    assert classifier.classify(_record("bio.md"), "mail sam@example.com") is Role.BIO


@pytest.mark.parametrize(
    "path, expected",
    [
        ("content/images/raw.tiff", Role.GALLERY),
        ("gallery/2024/shot.heic", Role.GALLERY),
        ("assets/css/print.txt", Role.STYLES),
        ("scripts/build.sh", Role.SCRIPTS),
    ],
)
def test_directory_hints(classifier: RoleClassifier, path: str, expected: Role) -> None:
    assert classifier.classify(_record(path)) is expected


def test_defaults(classifier: RoleClassifier) -> None:
    assert classifier.classify(_record("notes.txt"), "plain words") is Role.CONTENT
    assert classifier.classify(_record("post.html"), "<p>hi</p>") is Role.CONTENT
    assert classifier.classify(_record("data.csv"), "a,b") is Role.UNKNOWN
    assert classifier.classify(_record("archive.zip")) is Role.UNKNOWN


def test_binary_files_skip_content_rules(classifier: RoleClassifier) -> None:
    assert classifier.classify(_record("blob.bin"), None) is Role.UNKNOWN


def test_pinned_role_wins(classifier: RoleClassifier) -> None:
    record = _record("resume.pdf", role=Role.HERO, pinned=True)
    assert classifier.classify(record) is Role.HERO


def test_unpinned_role_is_recomputed(classifier: RoleClassifier) -> None:
    record = _record("resume.pdf", role=Role.HERO)
    assert classifier.classify(record) is Role.RESUME


def test_custom_rules_replace_defaults() -> None:
    rule = RoleRule("name", Role.HERO, lambda s: s.stem == "home")
    classifier = RoleClassifier(rules=[rule])

    assert classifier.classify(_record("home.md")) is Role.HERO
    assert classifier.classify(_record("photo.jpg")) is Role.UNKNOWN
