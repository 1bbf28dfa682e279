"""Markdown / MDX parser: checksum, metadata and heading-delimited sections.

Strategy:
- The checksum is the SHA-256 of the raw bytes, so it only changes with content.
- Metadata comes from a YAML front matter block and/or an MDX
  ``export const meta = {...}`` object literal (the export wins on conflicts).
  Only ``key: literal`` properties of the export are kept; anything else in the
  object is ignored, never an error.
- MDX ``import``/``export`` statements and JSX flow elements (from the opening
  capitalised tag through its matching close) are dropped from section content.
- Content is split at ATX (``#`` to ``######``) and setext (``===`` / ``---``
  underlined) headings outside fenced code blocks. Content before the first
  heading becomes an unnamed section.
"""

from __future__ import annotations

import hashlib
import re
from typing import Any

import yaml

from docsync.sources.base import ParsedContent, ParsedSection, SourceLoadError
from docsync.sources.slugger import Slugger

_HEADING_RE = re.compile(r"^ {0,3}(#{1,6})[ \t]+(.+?)(?:[ \t]+#+)?[ \t]*$")
_SETEXT_RE = re.compile(r"^ {0,3}(=+|-+)[ \t]*$")
# Lines that open a list, quote, table or HTML block cannot become setext headings.
_BLOCK_START_RE = re.compile(r"^ {0,3}(?:[-*+](?:[ \t]|$)|\d{1,9}[.)](?:[ \t]|$)|[>|<])")
_FENCE_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})(.*)$")
_ESM_RE = re.compile(r"^(import|export)\s")
_META_EXPORT_RE = re.compile(r"^export\s+const\s+meta\s*=\s*", re.DOTALL)
_JSX_OPEN_RE = re.compile(r"^\s*<([A-Z][\w.]*)(?=[\s/>]|$)")
_JSX_CLOSE_RE = re.compile(r"^\s*</([A-Z][\w.]*)\s*>\s*$")
_CUSTOM_ANCHOR_RE = re.compile(r"^(.*?)\s*\[#([^\]]+)\]\s*$")
_STRING_LITERAL_RE = re.compile(r""""(?:[^"\\\n]|\\.)*"|'(?:[^'\\\n]|\\.)*'|`(?:[^`\\]|\\.)*`""")
_JS_TOKEN_RE = re.compile(
    r"""
      (?P<comment>//[^\n]*|/\*.*?\*/)
    | (?P<string>"(?:[^"\\\n]|\\.)*"|'(?:[^'\\\n]|\\.)*')
    | (?P<template>`(?:[^`\\]|\\.)*`)
    | (?P<number>-?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?(?![\w$]))
    | (?P<ident>[A-Za-z_$][\w$]*)
    | (?P<punct>[{}\[\](),:])
    | (?P<other>\S)
    """,
    re.VERBOSE | re.DOTALL,
)
_JS_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v", "0": "\0"}
_JS_KEYWORDS: dict[str, Any] = {"true": True, "false": False, "null": None}
_NOT_LITERAL = object()


def compute_checksum(raw: bytes) -> str:
    """SHA-256 hex digest of *raw* content bytes."""
    return hashlib.sha256(raw).hexdigest()


def parse_heading(text: str) -> tuple[str, str | None]:
    """Split ``Heading [#anchor]`` into ``("Heading", "anchor")``.

    Headings without a custom anchor return ``(text, None)``.
    """
    match = _CUSTOM_ANCHOR_RE.match(text)
    if match:
        return match.group(1).strip(), match.group(2).strip()
    return text, None


def parse_markdown(raw: bytes, *, mdx: bool = False) -> ParsedContent:
    """Parse raw Markdown/MDX bytes into checksum, metadata and sections.

    Args:
        raw: File content.
        mdx: Treat the content as MDX (strip ESM statements and JSX elements,
            read the ``meta`` export).

    Raises:
        SourceLoadError: If the content is not UTF-8 or its front matter is malformed.
    """
    checksum = compute_checksum(raw)
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise SourceLoadError(f"Content is not valid UTF-8: {exc}") from exc

    text = text.replace("\r\n", "\n").lstrip("\ufeff")
    metadata, body = _split_front_matter(text)
    lines = body.split("\n")
    if mdx:
        lines, meta_export = _strip_mdx(lines)
        metadata.update(meta_export)

    return ParsedContent(
        checksum=checksum,
        metadata=metadata,
        sections=_split_sections(lines),
    )


# ------------------------------------------------------------------
# Metadata
# ------------------------------------------------------------------


def _split_front_matter(text: str) -> tuple[dict[str, Any], str]:
    """Return ``(front_matter, remaining_text)``."""
    if not text.startswith("---\n"):
        return {}, text
    end = text.find("\n---", 3)
    if end == -1:
        return {}, text
    block = text[4:end]
    rest = text[end + 4:]
    # Closing fence must be a line of its own.
    if rest and not rest.startswith("\n"):
        return {}, text
    return _load_mapping(block, "front matter"), rest.lstrip("\n")


def _load_mapping(source: str, label: str) -> dict[str, Any]:
    try:
        data = yaml.safe_load(source)
    except yaml.YAMLError as exc:
        raise SourceLoadError(f"Malformed {label}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise SourceLoadError(f"Malformed {label}: expected a mapping, got {type(data).__name__}")
    return data


def parse_meta_export(statement: str) -> dict[str, Any]:
    """Read the ``key: literal`` properties of ``export const meta = {...}``.

    Keys may be identifiers or quoted strings. Values are kept when they are a
    string, a template literal without substitutions, a number, ``true``,
    ``false`` or ``null``. Nested objects, arrays, spreads, shorthand
    properties and other expressions are skipped.
    """
    literal = _META_EXPORT_RE.sub("", statement, count=1)
    tokens = [
        (m.lastgroup, m.group())
        for m in _JS_TOKEN_RE.finditer(literal)
        if m.lastgroup != "comment"
    ]
    if not tokens or tokens[0] != ("punct", "{"):
        return {}

    meta: dict[str, Any] = {}
    for prop in _split_properties(tokens[1:]):
        if len(prop) != 3 or prop[1] != ("punct", ":"):
            continue
        key_kind, key_text = prop[0]
        if key_kind == "ident":
            key = key_text
        elif key_kind == "string":
            key = _unescape_js(key_text[1:-1])
        else:
            continue
        value = _js_literal(*prop[2])
        if value is not _NOT_LITERAL:
            meta[key] = value
    return meta


def _split_properties(tokens: list[tuple[str, str]]) -> list[list[tuple[str, str]]]:
    """Group the tokens of an object body into top-level properties."""
    props: list[list[tuple[str, str]]] = []
    current: list[tuple[str, str]] = []
    depth = 0
    for kind, text in tokens:
        if kind == "punct" and text in "{[(":
            depth += 1
        elif kind == "punct" and text in "}])":
            if depth == 0:
                break
            depth -= 1
        elif kind == "punct" and text == "," and depth == 0:
            props.append(current)
            current = []
            continue
        current.append((kind, text))
    if current:
        props.append(current)
    return props


def _js_literal(kind: str, text: str) -> Any:
    if kind == "string":
        return _unescape_js(text[1:-1])
    if kind == "template":
        inner = text[1:-1]
        return _NOT_LITERAL if "${" in inner else _unescape_js(inner)
    if kind == "number":
        return float(text) if any(c in text for c in ".eE") else int(text)
    if kind == "ident" and text in _JS_KEYWORDS:
        return _JS_KEYWORDS[text]
    return _NOT_LITERAL


def _unescape_js(text: str) -> str:
    return re.sub(r"\\(.)", lambda m: _JS_ESCAPES.get(m.group(1), m.group(1)), text, flags=re.DOTALL)


# ------------------------------------------------------------------
# MDX stripping
# ------------------------------------------------------------------


def _strip_mdx(lines: list[str]) -> tuple[list[str], dict[str, Any]]:
    """Drop ESM statements and JSX flow elements outside code fences.

    Returns the remaining lines and the parsed ``meta`` export (if any).
    """
    kept: list[str] = []
    meta: dict[str, Any] = {}
    fence: str | None = None
    i = 0
    while i < len(lines):
        line = lines[i]
        is_fence, fence = _track_fence(line, fence)
        if is_fence or fence is not None:
            kept.append(line)
            i += 1
            continue

        if _ESM_RE.match(line):
            statement, i = _consume_statement(lines, i)
            if _META_EXPORT_RE.match(statement):
                meta.update(parse_meta_export(statement))
            continue
        end = _consume_jsx(lines, i)
        if end is not None:
            i = end
            continue

        kept.append(line)
        i += 1
    return kept, meta


def _consume_statement(lines: list[str], start: int) -> tuple[str, int]:
    """Collect lines from *start* until braces balance. Returns (text, next_index)."""
    collected: list[str] = []
    depth = 0
    i = start
    while i < len(lines):
        line = lines[i]
        collected.append(line)
        code = _STRING_LITERAL_RE.sub("", line)
        depth += code.count("{") - code.count("}")
        i += 1
        if depth <= 0:
            break
    return "\n".join(collected), i


def _consume_jsx(lines: list[str], start: int) -> int | None:
    """Return the index after the JSX element starting at *start*, or None.

    An element runs from its opening capitalised tag to the matching closing
    tag. Self-closing tags and stray closing tags cover their own lines only.
    """
    if _JSX_CLOSE_RE.match(lines[start]):
        return start + 1
    opening = _JSX_OPEN_RE.match(lines[start])
    if not opening:
        return None
    name = re.escape(opening.group(1))

    # The opening tag may span lines (attributes); find its closing ">".
    i = start
    tail = lines[start][opening.end():]
    close_at = _tag_end(tail)
    while close_at == -1 and i + 1 < len(lines):
        i += 1
        tail = lines[i]
        close_at = _tag_end(tail)
    if close_at == -1:
        return i + 1
    if tail[:close_at].rstrip().endswith("/"):
        return i + 1

    open_re = re.compile(rf"<{name}(?=[\s/>]|$)")
    self_closing_re = re.compile(rf"<{name}\b[^<>]*/>")
    close_re = re.compile(rf"</{name}\s*>")
    depth = 1 - len(close_re.findall(tail[close_at + 1:]))
    end = i + 1
    while depth > 0 and end < len(lines):
        line = lines[end]
        depth += len(open_re.findall(line)) - len(self_closing_re.findall(line))
        depth -= len(close_re.findall(line))
        end += 1
    return end


def _tag_end(text: str) -> int:
    """Index of the ``>`` closing a JSX tag, ignoring ``>`` inside ``{...}``; -1 if absent."""
    depth = 0
    for index, char in enumerate(text):
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        elif char == ">" and depth <= 0:
            return index
    return -1


# ------------------------------------------------------------------
# Sections
# ------------------------------------------------------------------


def _split_sections(lines: list[str]) -> list[ParsedSection]:
    slugger = Slugger()
    sections: list[ParsedSection] = []
    heading: str | None = None
    slug: str | None = None
    current: list[str] = []
    fence: str | None = None
    # Index in ``current`` where the open paragraph starts (setext candidate).
    paragraph_start: int | None = None

    def _flush(lines_: list[str]) -> None:
        content = "\n".join(lines_).strip()
        if content:
            sections.append(ParsedSection(content=content, heading=heading, slug=slug))

    def _start(text: str) -> None:
        nonlocal heading, slug
        heading, anchor = parse_heading(text)
        slug = slugger.slug(anchor or heading)

    for line in lines:
        is_fence, fence = _track_fence(line, fence)
        if is_fence or fence is not None:
            paragraph_start = None
            current.append(line)
            continue

        heading_match = _HEADING_RE.match(line)
        if heading_match:
            _flush(current)
            _start(heading_match.group(2))
            current = [line]
            paragraph_start = None
            continue

        if _SETEXT_RE.match(line) and paragraph_start is not None:
            title_lines = current[paragraph_start:]
            _flush(current[:paragraph_start])
            _start(" ".join(part.strip() for part in title_lines))
            current = [*title_lines, line]
            paragraph_start = None
            continue

        if not line.strip():
            paragraph_start = None
        elif paragraph_start is None and not _BLOCK_START_RE.match(line):
            paragraph_start = len(current)
        current.append(line)

    _flush(current)
    return sections


def _track_fence(line: str, fence: str | None) -> tuple[bool, str | None]:
    """Return ``(is_fence_line, open_fence)`` after reading *line*.

    A fence closes only on a bare marker of the same character that is at
    least as long as the opening one.
    """
    match = _FENCE_RE.match(line)
    if fence is None:
        if not match:
            return False, None
        marker, info = match.group(1), match.group(2)
        if marker[0] == "`" and "`" in info:
            return False, None
        return True, marker
    if (
        match
        and match.group(1)[0] == fence[0]
        and len(match.group(1)) >= len(fence)
        and not match.group(2).strip()
    ):
        return True, None
    return False, fence
