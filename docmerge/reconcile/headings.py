"""
headings.py

Heading detection for the structural paragraph sequence:
- HeadingKey: the join key between a DOCX heading and a markdown section
- strict (style based) and heuristic (all-caps line) classification
- automatic fallback to the heuristic when too few styled headings exist
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import ClassVar, Iterable, List, Literal, Sequence, Tuple

from docmerge.errors import ConfigurationError, MalformedInputError

HeadingMode = Literal["strict", "heuristic"]
ModeUsed = Literal["strict-style", "heuristic", "strict-fallback-heuristic"]

HEADING_MODES: Tuple[str, ...] = ("strict", "heuristic")

# a styled document needs at least this many headings to skip the fallback
MIN_STRICT_HEADINGS = 2

HEURISTIC_MAX_CHARS = 45
HEURISTIC_MAX_WORDS = 6

_RE_STYLE_HEADING = re.compile(r"heading|title|subtitle", re.I)
_RE_NON_KEY_CHARS = re.compile(r"[^a-z0-9]+")
_RE_NON_LETTERS = re.compile(r"[^A-Za-z]")
_RE_SENTENCE_PUNCT = re.compile(r"[.:;!?]")

_ROOT_VALUE = "__root__"


@dataclass(frozen=True, order=True)
class HeadingKey:
    """Normalized heading text. Build it with `from_text`; ROOT marks content before any heading."""

    value: str

    ROOT: ClassVar["HeadingKey"]

    @classmethod
    def from_text(cls, text: str) -> "HeadingKey":
        norm = _RE_NON_KEY_CHARS.sub(" ", (text or "").lower()).strip()
        if not norm:
            return cls.ROOT
        return cls(norm)

    @property
    def is_root(self) -> bool:
        return self.value == _ROOT_VALUE

    def __str__(self) -> str:
        return self.value


HeadingKey.ROOT = HeadingKey(_ROOT_VALUE)


def normalize_heading(text: str) -> str:
    """String form of HeadingKey.from_text (idempotent)."""
    key = HeadingKey.from_text(text)
    return "" if key.is_root else key.value


@dataclass(frozen=True)
class StructuralParagraph:
    index: int
    text: str
    style_id: str = ""
    has_list_marker: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.index, bool) or not isinstance(self.index, int):
            raise MalformedInputError(f"paragraph index must be an int, got {self.index!r}")
        for name in ("text", "style_id"):
            value = getattr(self, name)
            if value is not None and not isinstance(value, str):
                raise MalformedInputError(
                    f"paragraph {self.index}: {name} must be a string, got {type(value).__name__}"
                )
        # frozen: go through object.__setattr__ to store the trimmed values
        object.__setattr__(self, "text", (self.text or "").strip())
        object.__setattr__(self, "style_id", self.style_id or "")


@dataclass(frozen=True)
class HeadingClassification:
    mode_used: ModeUsed
    flags: Tuple[bool, ...]

    def is_heading(self, index: int) -> bool:
        return self.flags[index]

    @property
    def heading_count(self) -> int:
        return sum(self.flags)

    def headings_in_order(self, paragraphs: Sequence[StructuralParagraph]) -> List[str]:
        return [p.text for p in paragraphs if self.flags[p.index]]


def check_mode(mode: str) -> HeadingMode:
    if mode not in HEADING_MODES:
        raise ConfigurationError(
            f"Unknown heading mode: {mode!r}. Use 'strict' or 'heuristic'."
        )
    return mode  # type: ignore[return-value]


def is_style_heading(style_id: str) -> bool:
    return bool(_RE_STYLE_HEADING.search(style_id or ""))


def heuristic_heading(text: str, has_list_marker: bool = False) -> bool:
    """
    Short all-caps line without sentence punctuation, e.g. "PROFESSIONAL EXPERIENCE".
    Lines without any letter ("2019 - 2023") never qualify.
    """
    t = (text or "").strip()
    if not t or has_list_marker:
        return False
    letters = _RE_NON_LETTERS.sub("", t)
    all_caps = bool(letters) and letters == letters.upper()
    short_line = len(t) <= HEURISTIC_MAX_CHARS and len(t.split()) <= HEURISTIC_MAX_WORDS
    no_sentence_punct = not _RE_SENTENCE_PUNCT.search(t)
    return all_caps and short_line and no_sentence_punct


def classify(
    text: str, style_id: str, has_list_marker: bool, mode: HeadingMode = "strict"
) -> bool:
    t = (text or "").strip()
    if not t or has_list_marker:
        return False
    if mode == "strict":
        return is_style_heading(style_id)
    return is_style_heading(style_id) or heuristic_heading(t, has_list_marker)


def classify_sequence(
    paragraphs: Iterable[StructuralParagraph], mode: HeadingMode = "strict"
) -> HeadingClassification:
    """
    Classify every paragraph. In strict mode a result with fewer than
    MIN_STRICT_HEADINGS headings is thrown away and the whole sequence is
    reclassified with `heuristic_heading` alone.
    """
    mode = check_mode(mode)
    paras = list(paragraphs)
    flags = tuple(
        classify(p.text, p.style_id, p.has_list_marker, mode) for p in paras
    )
    if mode == "heuristic":
        return HeadingClassification(mode_used="heuristic", flags=flags)

    if sum(flags) >= MIN_STRICT_HEADINGS:
        return HeadingClassification(mode_used="strict-style", flags=flags)

    fallback = tuple(heuristic_heading(p.text, p.has_list_marker) for p in paras)
    return HeadingClassification(mode_used="strict-fallback-heuristic", flags=fallback)
