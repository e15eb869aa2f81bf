from __future__ import annotations

import re
from typing import Dict, List, Union

from docmerge.errors import MalformedInputError
from docmerge.reconcile.headings import HeadingKey

# Insertion ordered: keys appear in the order they were first seen.
MarkdownSectionMap = Dict[HeadingKey, List[str]]

_RE_LINE_BREAK = re.compile(r"\r?\n")
_RE_MD_HEADING = re.compile(r"^#{1,6}\s+")
_RE_FENCE = re.compile(r"^```")
_RE_LIST_MARKER = re.compile(r"^[-*+]\s+")
_RE_ORDINAL = re.compile(r"^\d+[.)]\s+")
_RE_BOLD = re.compile(r"\*\*(.*?)\*\*")
_RE_INLINE_CODE = re.compile(r"`([^`]+)`")


def clean_md_line(line: str) -> str:
    """Drop heading/list/ordinal markers and bold/code decoration from one line."""
    s = _RE_MD_HEADING.sub("", line)
    s = _RE_LIST_MARKER.sub("", s)
    s = _RE_ORDINAL.sub("", s)
    s = _RE_BOLD.sub(r"\1", s)
    s = _RE_INLINE_CODE.sub(r"\1", s)
    return s.strip()


def _as_text(md: Union[str, bytes]) -> str:
    if isinstance(md, bytes):
        try:
            return md.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedInputError(f"Markdown is not valid UTF-8: {exc}") from exc
    if not isinstance(md, str):
        raise MalformedInputError(
            f"Markdown must be text, got {type(md).__name__}"
        )
    return md


def parse_md_sections(md: Union[str, bytes]) -> MarkdownSectionMap:
    """
    Split a heading-delimited markdown blob into {HeadingKey: [lines]}.

    Lines before the first heading go to HeadingKey.ROOT, which is always
    present. Fenced code blocks are skipped including their fence lines.
    """
    text = _as_text(md)
    sections: MarkdownSectionMap = {HeadingKey.ROOT: []}
    current = HeadingKey.ROOT
    in_fence = False

    for raw in _RE_LINE_BREAK.split(text):
        line = raw.strip()
        if _RE_FENCE.match(line):
            in_fence = not in_fence
            continue
        if in_fence or not line:
            continue

        if _RE_MD_HEADING.match(line):
            current = HeadingKey.from_text(clean_md_line(line))
            sections.setdefault(current, [])
            continue

        cleaned = clean_md_line(line)
        if not cleaned:
            continue
        sections.setdefault(current, []).append(cleaned)

    return sections
