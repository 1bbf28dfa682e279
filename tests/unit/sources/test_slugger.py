"""Tests for heading slugs."""

from __future__ import annotations

from docsync.sources.slugger import Slugger, slugify


def test_slugify_lowercases_and_hyphenates():
    assert slugify("Getting Started") == "getting-started"


def test_slugify_drops_punctuation():
    assert slugify("What's new?") == "whats-new"
    assert slugify("C# Tips") == "c-tips"


def test_slugify_keeps_hyphens_and_underscores():
    assert slugify("pre-commit hook_config") == "pre-commit-hook_config"


def test_slugify_keeps_unicode_letters():
    assert slugify("Über Café") == "über-café"


def test_slugger_deduplicates():
    slugger = Slugger()
    assert [slugger.slug("Intro") for _ in range(3)] == ["intro", "intro-1", "intro-2"]


def test_slugger_instances_are_independent():
    assert Slugger().slug("Intro") == Slugger().slug("Intro") == "intro"
