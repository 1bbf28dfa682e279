"""GitHub-style heading slugs with per-document de-duplication."""

from __future__ import annotations

import re

# Anything that is not a word character, hyphen or space is dropped.
_STRIP_RE = re.compile(r"[^\w\- ]", re.UNICODE)


def slugify(value: str) -> str:
    """Return the GitHub anchor slug for *value* (no de-duplication)."""
    return _STRIP_RE.sub("", value.strip().lower()).replace(" ", "-")


class Slugger:
    """Generate unique slugs within one document.

    Repeated headings get a running suffix: ``intro``, ``intro-1``, ``intro-2``.
    Create a new Slugger per document; uniqueness is not global.
    """

    def __init__(self) -> None:
        self._occurrences: dict[str, int] = {}

    def slug(self, value: str) -> str:
        original = slugify(value)
        result = original
        while result in self._occurrences:
            self._occurrences[original] += 1
            result = f"{original}-{self._occurrences[original]}"
        self._occurrences[result] = 0
        return result
