"""Load one source descriptor into parsed content, dispatching on its kind."""

from __future__ import annotations

from collections.abc import Callable

from docsync.sources.base import ParsedContent, SourceDescriptor, SourceLoadError
from docsync.sources.markdown import parse_markdown


def _load_markdown(descriptor: SourceDescriptor) -> ParsedContent:
    try:
        raw = descriptor.file_path.read_bytes()
    except OSError as exc:
        raise SourceLoadError(f"Cannot read '{descriptor.file_path}': {exc}") from exc
    return parse_markdown(raw, mdx=descriptor.file_path.suffix.lower() == ".mdx")


_LOADERS: dict[str, Callable[[SourceDescriptor], ParsedContent]] = {
    "markdown": _load_markdown,
}


def load_source(descriptor: SourceDescriptor) -> ParsedContent:
    """Read and parse *descriptor*.

    Raises:
        SourceLoadError: If the source kind is unknown, or the file cannot be
            read or parsed.
    """
    loader = _LOADERS.get(descriptor.kind)
    if loader is None:
        raise SourceLoadError(f"Unsupported source kind: {descriptor.kind!r}")
    return loader(descriptor)
