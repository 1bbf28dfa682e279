"""Source enumeration and loading: docs tree → descriptors → parsed sections."""

from docsync.sources.base import ParsedContent, ParsedSection, SourceDescriptor, SourceLoadError
from docsync.sources.loader import load_source
from docsync.sources.markdown import parse_markdown
from docsync.sources.walk import walk

__all__ = [
    "ParsedContent",
    "ParsedSection",
    "SourceDescriptor",
    "SourceLoadError",
    "load_source",
    "parse_markdown",
    "walk",
]
